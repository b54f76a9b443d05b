"""Write check outcomes back into documentation text.

Each placeholder is replaced by its argument followed by a status badge.
Placeholders without an outcome are kept byte-for-byte.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from dacdoc.check.base import FAIL, PASS, UNKNOWN, CheckOutcome
from dacdoc.constants import ANCHOR_PATTERN
from dacdoc.core.jail import ensure_within_root, safe_relpath
from dacdoc.text.marker import Marker


STATUS_BADGES = {
    PASS: "✅",
    FAIL: "❌",
    UNKNOWN: "❓",
}


def replacement_for(marker: Marker, outcome: CheckOutcome) -> str:
    badge = STATUS_BADGES.get(outcome.status, STATUS_BADGES[UNKNOWN])
    if marker.argument:
        return f"{marker.argument} {badge}"
    return badge


def render_text(text: str, outcomes: Mapping[Marker, CheckOutcome]) -> str:
    by_raw = {marker.raw: (marker, outcome) for marker, outcome in outcomes.items()}

    def _substitute(m) -> str:
        raw = m.group(0)
        hit = by_raw.get(raw)
        if hit is None:
            return raw
        return replacement_for(*hit)

    return ANCHOR_PATTERN.sub(_substitute, text)


def render_files(
    *,
    root: Path,
    contents: Mapping[Path, str],
    outcomes: Mapping[Path, Mapping[Marker, CheckOutcome]],
    out_dir: Path,
) -> list[Path]:
    """Write rewritten copies of files under out_dir. Sources are never modified."""

    written: list[Path] = []
    for file in sorted(contents, key=lambda p: p.as_posix()):
        rel = safe_relpath(root, file)
        if Path(rel).is_absolute():
            raise ValueError(f"file outside project root: {file}")
        dest = out_dir / rel
        ensure_within_root(out_dir, dest)
        rendered = render_text(contents[file], outcomes.get(file, {}))
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(rendered, encoding="utf-8", errors="strict", newline="\n")
        written.append(dest)
    return written
