from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from dacdoc.check.base import FAIL, PASS, CheckOutcome, describe_check
from dacdoc.check.resolver import Occurrence, Resolution, resolve
from dacdoc.config import DacDocConfig
from dacdoc.core.canon import content_sha256, report_timestamp
from dacdoc.core.jail import safe_relpath
from dacdoc.text.marker import MarkerParseError
from dacdoc.text.reader import FileReadError, ParsedFiles, find_markdown_files, parse_files


REPORT_SCHEMA_VERSION = "1.0.0"

# Sorted keys and compact separators keep repeated reports byte-identical.
_REPORT_ENCODER = json.JSONEncoder(ensure_ascii=False, sort_keys=True, separators=(",", ":"), allow_nan=False)


@dataclass(frozen=True)
class ScanResult:
    root: Path
    files: tuple[Path, ...]
    contents: dict[Path, str]
    parsed: ParsedFiles
    resolution: Resolution


def scan_project(root: Path, config: DacDocConfig) -> ScanResult:
    """Discover documentation files under root, parse them and resolve their markers."""

    root = root.resolve()
    files = find_markdown_files(root, extensions=config.extensions, exclude_dirs=config.exclude_dirs)
    parsed, contents = parse_files(files)
    return ScanResult(
        root=root,
        files=tuple(files),
        contents=contents,
        parsed=parsed,
        resolution=resolve(parsed.markers),
    )


def _failure_kind(err: Exception) -> str:
    if isinstance(err, MarkerParseError):
        return "malformed-placeholder"
    if isinstance(err, FileReadError):
        return "unreadable-file"
    return "error"


def _occurrence_entry(scan: ScanResult, occ: Occurrence, outcome: CheckOutcome | None) -> dict[str, Any]:
    marker = occ.marker
    entry: dict[str, Any] = {
        "file": safe_relpath(scan.root, occ.file),
        "marker": marker.raw,
        "offset": marker.offset,
        "kind": marker.kind.value,
        "id": marker.id,
        "test": marker.test_id,
        "ids": list(marker.ids),
        "check": describe_check(scan.resolution.checks[occ]),
    }
    if outcome is not None:
        entry["outcome"] = {"status": outcome.status, "message": outcome.message}
    return entry


def build_report(
    scan: ScanResult,
    *,
    deterministic: bool,
    outcomes: Mapping[Occurrence, CheckOutcome] | None = None,
) -> dict[str, Any]:
    occurrences = scan.resolution.occurrences
    files = []
    for f in scan.files:
        text = scan.contents.get(f)
        files.append(
            {
                "path": safe_relpath(scan.root, f),
                "sha256": content_sha256(text) if text is not None else None,
                "markers": len(scan.parsed.markers.get(f, ())),
            }
        )

    summary: dict[str, Any] = {
        "files": len(scan.files),
        "occurrences": len(occurrences),
        "composites": sum(1 for occ in occurrences if occ.marker.is_composite),
        "issues": len(scan.resolution.issues),
        "parse_failures": len(scan.parsed.failures),
    }
    if outcomes is not None:
        statuses = [outcomes[occ].status for occ in occurrences]
        summary["passed"] = statuses.count(PASS)
        summary["failed"] = statuses.count(FAIL)
        summary["unknown"] = len(statuses) - summary["passed"] - summary["failed"]

    return {
        "schema_version": REPORT_SCHEMA_VERSION,
        "generated_at": report_timestamp(deterministic=deterministic),
        "root": scan.root.as_posix() if not deterministic else ".",
        "files": files,
        "occurrences": [
            _occurrence_entry(scan, occ, outcomes.get(occ) if outcomes is not None else None) for occ in occurrences
        ],
        "issues": [
            {**issue.to_dict(), "file": safe_relpath(scan.root, issue.file)} for issue in scan.resolution.issues
        ],
        "parse_failures": [
            {"file": safe_relpath(scan.root, path), "kind": _failure_kind(err), "message": str(err)}
            for path, err in scan.parsed.failures.items()
        ],
        "summary": summary,
    }


def encode_report(payload: dict[str, Any]) -> bytes:
    """Report bytes, newline terminated."""

    return f"{_REPORT_ENCODER.encode(payload)}\n".encode("utf-8")


def write_report(payload: dict[str, Any], out_path: Path) -> bytes:
    if out_path.exists() and (out_path.is_symlink() or not out_path.is_file()):
        raise ValueError(f"invalid output path: {out_path}")
    data = encode_report(payload)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(data)
    return data


def diagnostic_lines(scan: ScanResult) -> list[str]:
    """One line per parse failure and resolution issue, in report order."""

    lines: list[str] = []
    for path, err in scan.parsed.failures.items():
        lines.append(f"{_failure_kind(err)}: {safe_relpath(scan.root, path)}: {err}")
    for issue in scan.resolution.issues:
        lines.append(f"{issue.code}: {safe_relpath(scan.root, issue.file)}: {issue.message}")
    return lines
