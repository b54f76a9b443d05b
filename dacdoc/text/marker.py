from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from dacdoc.constants import (
    ANCHOR_FRAMING,
    ANCHOR_KEYWORD,
    ANCHOR_PARAMETER_ID,
    ANCHOR_PARAMETER_IDS,
    ANCHOR_PARAMETER_IDS_SEPARATOR,
    ANCHOR_PARAMETER_KEY_VALUE_SEPARATOR,
    ANCHOR_PARAMETER_SEPARATOR,
    ANCHOR_PARAMETER_TEST_ID,
    DEFAULT_TEST_ID,
    KNOWN_PARAMETER_KEYS,
    PARAMETER_KEY_PATTERN,
)
from dacdoc.errors import DacDocError


class MarkerParseError(DacDocError):
    """A placeholder body does not follow the marker grammar."""

    def __init__(self, message: str, *, raw: str, offset: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.raw = raw
        self.offset = offset

    def __str__(self) -> str:
        where = f" at offset {self.offset}" if self.offset is not None else ""
        return f"malformed placeholder{where}: {self.message}: {self.raw!r}"


class MarkerKind(str, Enum):
    PRIMITIVE = "PRIMITIVE"
    COMPOSITE = "COMPOSITE"


@dataclass(frozen=True)
class Marker:
    """One parsed `!DACDOC...!` placeholder.

    Equality and hashing use the full raw text only, so identical placeholders
    in one file collapse into a single marker.
    """

    raw: str
    argument: str | None = field(default=None, compare=False)
    kind: MarkerKind = field(default=MarkerKind.PRIMITIVE, compare=False)
    id: str | None = field(default=None, compare=False)
    test_id: str = field(default=DEFAULT_TEST_ID, compare=False)
    ids: tuple[str, ...] = field(default=(), compare=False)
    offset: int = field(default=0, compare=False)

    @property
    def is_composite(self) -> bool:
        return self.kind is MarkerKind.COMPOSITE


def _split_clause(clause: str) -> tuple[str | None, str]:
    """Return (key, value) for `key=value` clauses and (None, clause) for bare ones."""

    if ANCHOR_PARAMETER_KEY_VALUE_SEPARATOR not in clause:
        return None, clause
    key, value = clause.split(ANCHOR_PARAMETER_KEY_VALUE_SEPARATOR, 1)
    key = key.strip()
    # "http://x?a=b" is an argument, not a parameter.
    if PARAMETER_KEY_PATTERN.fullmatch(key) is None:
        return None, clause
    return key, value.strip()


def _parse_ids(value: str, *, raw: str, offset: int | None) -> tuple[str, ...]:
    if not value:
        raise MarkerParseError("'ids' must list at least one identifier", raw=raw, offset=offset)
    out: list[str] = []
    for i, part in enumerate(value.split(ANCHOR_PARAMETER_IDS_SEPARATOR)):
        ident = part.strip()
        if not ident:
            raise MarkerParseError(f"'ids' entry {i} is empty", raw=raw, offset=offset)
        out.append(ident)
    return tuple(out)


def parse_marker(raw: str, *, offset: int = 0) -> Marker:
    """Parse the full text of one placeholder, framing included."""

    prefix = ANCHOR_FRAMING + ANCHOR_KEYWORD
    if not raw.startswith(prefix) or not raw.endswith(ANCHOR_FRAMING) or len(raw) < len(prefix) + 1:
        raise MarkerParseError("missing placeholder framing", raw=raw, offset=offset)
    body = raw[len(prefix) : -len(ANCHOR_FRAMING)]

    argument: str | None = None
    params: dict[str, str] = {}
    for clause in body.split(ANCHOR_PARAMETER_SEPARATOR):
        clause = clause.strip()
        if not clause:
            continue
        key, value = _split_clause(clause)
        if key is None:
            if argument is None:
                argument = value
            continue
        if key not in KNOWN_PARAMETER_KEYS:
            raise MarkerParseError(f"unknown parameter {key!r}", raw=raw, offset=offset)
        if key in params:
            raise MarkerParseError(f"duplicate parameter {key!r}", raw=raw, offset=offset)
        params[key] = value

    marker_id = params.get(ANCHOR_PARAMETER_ID)
    if marker_id is not None and not marker_id:
        raise MarkerParseError("'id' must not be empty", raw=raw, offset=offset)

    test_id = params.get(ANCHOR_PARAMETER_TEST_ID, DEFAULT_TEST_ID)
    if not test_id:
        raise MarkerParseError("'test' must not be empty", raw=raw, offset=offset)

    if ANCHOR_PARAMETER_IDS in params:
        ids = _parse_ids(params[ANCHOR_PARAMETER_IDS], raw=raw, offset=offset)
        kind = MarkerKind.COMPOSITE
    else:
        ids = ()
        kind = MarkerKind.PRIMITIVE
        if argument is None:
            raise MarkerParseError("placeholder has no argument and no 'ids'", raw=raw, offset=offset)

    return Marker(
        raw=raw,
        argument=argument,
        kind=kind,
        id=marker_id,
        test_id=test_id,
        ids=ids,
        offset=offset,
    )
