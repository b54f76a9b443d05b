"""Reader: find documentation files and extract their DacDoc placeholders."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Mapping

from dacdoc.constants import ANCHOR_PATTERN, MARKDOWN_EXTENSIONS
from dacdoc.errors import DacDocError
from dacdoc.text.marker import Marker, MarkerParseError, parse_marker


DEFAULT_EXCLUDE_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".venv",
        "venv",
        "node_modules",
        "__pycache__",
        "site-packages",
        "build",
        "dist",
    }
)


class FileReadError(DacDocError):
    """A documentation file could not be read or decoded."""

    def __init__(self, path: Path, cause: Exception) -> None:
        super().__init__(f"cannot read {path}: {cause}")
        self.path = path
        self.cause = cause


@dataclass(frozen=True)
class ParsedFiles:
    """Markers per file, plus the files that failed to read or parse."""

    markers: dict[Path, tuple[Marker, ...]] = field(default_factory=dict)
    failures: dict[Path, DacDocError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def iter_markers(text: str) -> Iterator[Marker]:
    """Yield one Marker per placeholder occurrence, in text order.

    Raises MarkerParseError on the first malformed placeholder.
    """

    for m in ANCHOR_PATTERN.finditer(text):
        yield parse_marker(m.group(0), offset=m.start())


def parse_text(text: str) -> tuple[Marker, ...]:
    """Parse all placeholders of one text, de-duplicated, first occurrence first."""

    seen: dict[Marker, None] = {}
    for marker in iter_markers(text):
        if marker not in seen:
            seen[marker] = None
    return tuple(seen)


def find_markdown_files(
    root: Path,
    *,
    extensions: Iterable[str] = MARKDOWN_EXTENSIONS,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
) -> list[Path]:
    """Return documentation files under root, sorted by POSIX path."""

    if not root.exists() or not root.is_dir():
        raise FileReadError(root, NotADirectoryError("root is not a directory"))

    suffixes = tuple(s.lower() for s in extensions)
    skip = frozenset(exclude_dirs)
    out: list[Path] = []
    for p in root.rglob("*"):
        rel_parts = p.relative_to(root).parts
        if any(part in skip for part in rel_parts[:-1]):
            continue
        if not p.is_file():
            continue
        if p.name.lower().endswith(suffixes):
            out.append(p)
    out.sort(key=lambda x: x.as_posix())
    return out


def read_files(files: Iterable[Path]) -> tuple[dict[Path, str], dict[Path, FileReadError]]:
    """Read files as UTF-8. Returns (contents, read failures)."""

    contents: dict[Path, str] = {}
    failures: dict[Path, FileReadError] = {}
    for f in files:
        try:
            contents[f] = f.read_text(encoding="utf-8", errors="strict")
        except (OSError, UnicodeDecodeError) as e:
            failures[f] = FileReadError(f, e)
    return contents, failures


def parse_contents(contents: Mapping[Path, str]) -> ParsedFiles:
    """Parse each file independently; one malformed file does not stop the others."""

    markers: dict[Path, tuple[Marker, ...]] = {}
    failures: dict[Path, DacDocError] = {}
    for path in sorted(contents, key=lambda x: x.as_posix()):
        try:
            markers[path] = parse_text(contents[path])
        except MarkerParseError as e:
            failures[path] = e
    return ParsedFiles(markers=markers, failures=failures)


def parse_files(files: Iterable[Path]) -> tuple[ParsedFiles, dict[Path, str]]:
    """Read and parse files. Returns the parse result and the texts that were read."""

    contents, read_failures = read_files(files)
    parsed = parse_contents(contents)
    failures: dict[Path, DacDocError] = dict(read_failures)
    failures.update(parsed.failures)
    ordered = {p: failures[p] for p in sorted(failures, key=lambda x: x.as_posix())}
    return ParsedFiles(markers=parsed.markers, failures=ordered), contents
