"""Project configuration.

Optional `.dacdoc.toml` at the project root:

    [scan]
    extensions = [".md"]
    exclude_dirs = [".git", "node_modules"]

    [check]
    timeout_seconds = 10
    offline = false
    user_agent = "dacdoc-url-check/1"

Unknown tables/keys and wrong types are rejected. CLI flags override file values.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from dacdoc.check.evaluate import DEFAULT_TIMEOUT_SECONDS, DEFAULT_USER_AGENT
from dacdoc.constants import MARKDOWN_EXTENSIONS
from dacdoc.text.reader import DEFAULT_EXCLUDE_DIRS


CONFIG_FILENAME = ".dacdoc.toml"


@dataclass(frozen=True)
class DacDocConfig:
    extensions: tuple[str, ...] = MARKDOWN_EXTENSIONS
    exclude_dirs: tuple[str, ...] = tuple(sorted(DEFAULT_EXCLUDE_DIRS))
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    offline: bool = False
    user_agent: str = DEFAULT_USER_AGENT

    def with_overrides(self, **overrides: Any) -> "DacDocConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _require_str_list(value: Any, *, label: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"{label} must be a list of strings")
    out: list[str] = []
    for i, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"{label}[{i}] missing/invalid")
        out.append(item.strip())
    return tuple(out)


def _require_table(obj: dict[str, Any], name: str) -> dict[str, Any]:
    table = obj.get(name, {})
    if not isinstance(table, dict):
        raise ValueError(f"[{name}] must be a table")
    return table


def _reject_unknown(table: dict[str, Any], allowed: set[str], *, label: str) -> None:
    unknown = sorted(set(table) - allowed)
    if unknown:
        raise ValueError(f"{label}: unknown key(s): {', '.join(unknown)}")


def parse_config(obj: dict[str, Any]) -> DacDocConfig:
    _reject_unknown(obj, {"scan", "check"}, label=CONFIG_FILENAME)
    scan = _require_table(obj, "scan")
    check = _require_table(obj, "check")
    _reject_unknown(scan, {"extensions", "exclude_dirs"}, label="[scan]")
    _reject_unknown(check, {"timeout_seconds", "offline", "user_agent"}, label="[check]")

    cfg = DacDocConfig()
    if "extensions" in scan:
        exts = _require_str_list(scan["extensions"], label="scan.extensions")
        if not exts:
            raise ValueError("scan.extensions must not be empty")
        bad = [e for e in exts if not e.startswith(".")]
        if bad:
            raise ValueError(f"scan.extensions entries must start with '.': {', '.join(bad)}")
        cfg = replace(cfg, extensions=exts)
    if "exclude_dirs" in scan:
        cfg = replace(cfg, exclude_dirs=_require_str_list(scan["exclude_dirs"], label="scan.exclude_dirs"))

    if "timeout_seconds" in check:
        timeout = check["timeout_seconds"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError("check.timeout_seconds must be a positive number")
        cfg = replace(cfg, timeout_seconds=float(timeout))
    if "offline" in check:
        if not isinstance(check["offline"], bool):
            raise ValueError("check.offline must be a boolean")
        cfg = replace(cfg, offline=check["offline"])
    if "user_agent" in check:
        ua = check["user_agent"]
        if not isinstance(ua, str) or not ua.strip():
            raise ValueError("check.user_agent missing/invalid")
        cfg = replace(cfg, user_agent=ua.strip())

    return cfg


def load_config(root: Path) -> DacDocConfig:
    path = root / CONFIG_FILENAME
    if not path.exists():
        return DacDocConfig()
    if path.is_symlink() or not path.is_file():
        raise ValueError(f"invalid config path: {path}")
    try:
        obj = tomllib.loads(path.read_text(encoding="utf-8", errors="strict"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"{CONFIG_FILENAME} is not valid UTF-8 TOML: {e}") from e
    return parse_config(obj)
