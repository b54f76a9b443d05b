from __future__ import annotations

from pathlib import Path
from urllib.parse import unquote


def safe_relpath(root: Path, p: Path) -> str:
    """POSIX path of p relative to root, or p itself when it lies outside root."""

    try:
        return p.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return p.as_posix()


def ensure_within_root(root: Path, target: Path) -> None:
    root_resolved = root.resolve()
    target_resolved = target.resolve()
    if root_resolved not in target_resolved.parents and root_resolved != target_resolved:
        raise ValueError(f"link target escapes project root: {target}")


def split_link_target(target: str) -> str:
    """Drop the '#fragment' and '?query' parts of a local link target."""

    return target.split("#", 1)[0].split("?", 1)[0].strip()


def resolve_link_target(root: Path, source_file: Path, target: str) -> Path:
    """Resolve a local markdown link target to a path inside root.

    - '/x' is taken relative to root
    - anything else is relative to the directory of source_file
    - fragment and query suffixes are ignored
    - the remaining path is percent-decoded

    Raises ValueError for empty targets, NUL bytes and root escapes.
    """

    path_part = unquote(split_link_target(target))
    if "\x00" in path_part:
        raise ValueError("link target contains NUL")
    if not path_part:
        raise ValueError("link target has no path component")

    if path_part.startswith("/"):
        candidate = root / path_part.lstrip("/")
    else:
        source = source_file if source_file.is_absolute() else root / source_file
        candidate = source.parent / path_part

    ensure_within_root(root, candidate)
    return candidate.resolve()
