from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Union


Status = str  # "PASS" | "FAIL" | "UNKNOWN"

PASS = "PASS"
FAIL = "FAIL"
UNKNOWN = "UNKNOWN"

# [label](<dest> "title") or [label](dest "title"); dest may hold one level of balanced parens.
_MARKDOWN_LINK_RE = re.compile(
    r"""^\s*!?\[[^\]]*\]\(\s*
    (?:<(?P<angle>[^>]*)>|(?P<plain>(?:[^\s()]|\([^\s()]*\))*))
    (?:\s+(?:"[^"]*"|'[^']*'|\([^)]*\)))?
    \s*\)\s*$""",
    re.DOTALL | re.VERBOSE,
)


def extract_markdown_uri(argument: str) -> str:
    """URI of a `[label](uri)` argument, or the trimmed argument itself."""

    m = _MARKDOWN_LINK_RE.match(argument)
    if m is not None:
        dest = m.group("angle") if m.group("angle") is not None else m.group("plain")
        return dest.strip()
    return argument.strip()


@dataclass(frozen=True)
class UrlCheck:
    """Primitive check: does `uri` resolve (relative to `file` when local)."""

    kind: ClassVar[str] = "url"

    file: Path
    uri: str

    @classmethod
    def from_argument(cls, file: Path, argument: str) -> "UrlCheck":
        return cls(file=file, uri=extract_markdown_uri(argument))


@dataclass(eq=False)
class CompositeCheck:
    """Conjunction of other checks, in the order of the marker's `ids`.

    Identity semantics: the same instance may be shared by several composites.
    """

    kind: ClassVar[str] = "composite"

    checks: list["Check"] = field(default_factory=list)


@dataclass(frozen=True)
class UnknownCheck:
    """Unresolved reference or unrecognized test kind. Never passes.

    All instances compare equal; `reason` is diagnostic only.
    """

    kind: ClassVar[str] = "unknown"

    reason: str = field(default="unresolved", compare=False)


Check = Union[UrlCheck, CompositeCheck, UnknownCheck]

UNKNOWN_CHECK = UnknownCheck()


@dataclass(frozen=True)
class CheckOutcome:
    status: Status
    message: str

    @property
    def passed(self) -> bool:
        return self.status == PASS


def describe_check(check: Check) -> dict[str, Any]:
    """JSON-friendly descriptor of a check (sub-checks are summarized by kind)."""

    if isinstance(check, UrlCheck):
        return {"kind": check.kind, "uri": check.uri}
    if isinstance(check, CompositeCheck):
        return {"kind": check.kind, "checks": [sub.kind for sub in check.checks]}
    if isinstance(check, UnknownCheck):
        return {"kind": check.kind, "reason": check.reason}
    raise TypeError(f"not a check: {check!r}")
