from __future__ import annotations

from pathlib import Path
from typing import Mapping

from dacdoc.check.base import PASS, CheckOutcome
from dacdoc.check.evaluate import HttpOpener, UrlProbe, evaluate_resolution, urlopen_status
from dacdoc.check.resolver import Occurrence
from dacdoc.commands.scan import ScanResult
from dacdoc.config import DacDocConfig
from dacdoc.text.marker import Marker
from dacdoc.text.writer import render_files


def run_checks(
    scan: ScanResult,
    config: DacDocConfig,
    *,
    opener: HttpOpener = urlopen_status,
) -> dict[Occurrence, CheckOutcome]:
    probe = UrlProbe(
        root=scan.root,
        offline=config.offline,
        timeout_seconds=config.timeout_seconds,
        user_agent=config.user_agent,
        opener=opener,
    )
    return evaluate_resolution(scan.resolution, probe)


def outcomes_by_file(outcomes: Mapping[Occurrence, CheckOutcome]) -> dict[Path, dict[Marker, CheckOutcome]]:
    out: dict[Path, dict[Marker, CheckOutcome]] = {}
    for occ, outcome in outcomes.items():
        out.setdefault(occ.file, {})[occ.marker] = outcome
    return out


def write_results(scan: ScanResult, outcomes: Mapping[Occurrence, CheckOutcome], out_dir: Path) -> list[Path]:
    """Write rewritten copies of every file that parsed."""

    contents = {f: scan.contents[f] for f in scan.parsed.markers if f in scan.contents}
    return render_files(
        root=scan.root,
        contents=contents,
        outcomes=outcomes_by_file(outcomes),
        out_dir=out_dir.resolve(),
    )


def all_passed(scan: ScanResult, outcomes: Mapping[Occurrence, CheckOutcome]) -> bool:
    return scan.parsed.ok and all(o.status == PASS for o in outcomes.values())
