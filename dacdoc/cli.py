#!/usr/bin/env python3
"""DacDoc CLI — check claims embedded in documentation.

This is the installable CLI entrypoint (console_scripts).

Subcommands:
- dacdoc scan    → Parse placeholders and report the resolved check graph (no network)
- dacdoc check   → Evaluate every check and report PASS/FAIL/UNKNOWN
- dacdoc about   → Print package identity info

Exit codes:
- 0: success (scan: every file parsed; check: every check passed)
- 2: NO-GO (parse failures or failing/indeterminate checks)
- 3: usage/internal error
"""

from __future__ import annotations

import argparse
import sys
from importlib.metadata import PackageNotFoundError, metadata, version
from pathlib import Path


def _load_config(root: Path, args: argparse.Namespace):
    from dacdoc.config import load_config

    timeout = getattr(args, "timeout", None)
    if timeout is not None and timeout <= 0:
        raise ValueError("--timeout must be a positive number of seconds")
    config = load_config(root)
    return config.with_overrides(
        offline=True if getattr(args, "offline", False) else None,
        timeout_seconds=getattr(args, "timeout", None),
    )


def _emit_report(prefix: str, payload: dict, out: str | None) -> None:
    from dacdoc.commands.scan import encode_report, write_report

    if out:
        out_path = Path(out)
        write_report(payload, out_path)
        print(f"[{prefix}] wrote: {out_path}", file=sys.stderr)
    else:
        sys.stdout.write(encode_report(payload).decode("utf-8"))


def _resolve_root(prefix: str, raw: str) -> Path | None:
    root = Path(raw).resolve()
    if not root.exists() or not root.is_dir():
        print(f"[{prefix}] ERROR: invalid root: {root}", file=sys.stderr)
        return None
    return root


# ---------------------------------------------------------------------------
# scan subcommand
# ---------------------------------------------------------------------------

def cmd_scan(args: argparse.Namespace) -> int:
    from dacdoc.commands.scan import build_report, diagnostic_lines, scan_project

    prefix = "dacdoc scan"
    root = _resolve_root(prefix, str(args.root))
    if root is None:
        return 3
    try:
        config = _load_config(root, args)
        scan = scan_project(root, config)
        payload = build_report(scan, deterministic=bool(args.deterministic))
        _emit_report(prefix, payload, args.out)
    except Exception as e:
        print(f"[{prefix}] ERROR: {e}", file=sys.stderr)
        return 3

    for line in diagnostic_lines(scan):
        print(f"[{prefix}] {line}", file=sys.stderr)
    summary = payload["summary"]
    print(
        f"[{prefix}] files={summary['files']} occurrences={summary['occurrences']} "
        f"issues={summary['issues']} parse_failures={summary['parse_failures']}",
        file=sys.stderr,
    )
    return 0 if scan.parsed.ok else 2


# ---------------------------------------------------------------------------
# check subcommand
# ---------------------------------------------------------------------------

def cmd_check(args: argparse.Namespace) -> int:
    from dacdoc.commands.check import all_passed, run_checks, write_results
    from dacdoc.commands.scan import build_report, diagnostic_lines, scan_project

    prefix = "dacdoc check"
    root = _resolve_root(prefix, str(args.root))
    if root is None:
        return 3
    try:
        config = _load_config(root, args)
        scan = scan_project(root, config)
        outcomes = run_checks(scan, config)
        payload = build_report(scan, deterministic=bool(args.deterministic), outcomes=outcomes)
        _emit_report(prefix, payload, args.out)
        if args.write_to:
            written = write_results(scan, outcomes, Path(args.write_to))
            print(f"[{prefix}] rewrote {len(written)} file(s) under {args.write_to}", file=sys.stderr)
    except Exception as e:
        print(f"[{prefix}] ERROR: {e}", file=sys.stderr)
        return 3

    for line in diagnostic_lines(scan):
        print(f"[{prefix}] {line}", file=sys.stderr)
    summary = payload["summary"]
    go = all_passed(scan, outcomes)
    print(
        f"[{prefix}] {'GO' if go else 'NO-GO'}: passed={summary['passed']} failed={summary['failed']} "
        f"unknown={summary['unknown']} parse_failures={summary['parse_failures']}",
        file=sys.stderr,
    )
    return 0 if go else 2


# ---------------------------------------------------------------------------
# about subcommand
# ---------------------------------------------------------------------------

def cmd_about(_: argparse.Namespace) -> int:
    """Print package identity info (human-readable)."""

    try:
        pkg_version = version("dacdoc")
    except PackageNotFoundError:
        pkg_version = "0.0.0"

    pkg_name = "dacdoc"
    pkg_summary = ""
    try:
        meta = metadata("dacdoc")
        pkg_name = str(meta.get("Name") or pkg_name)
        pkg_summary = str(meta.get("Summary") or "")
    except PackageNotFoundError:
        pass

    from dacdoc.check.registry import known_test_ids

    print(f"{pkg_name} {pkg_version}")
    if pkg_summary:
        print(pkg_summary)
    print(f"Test kinds: {', '.join(known_test_ids())}")
    return 0


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="dacdoc",
        description="DacDoc CLI — check claims embedded in documentation",
    )
    subparsers = parser.add_subparsers(dest="command", help="Subcommand")

    # about
    p_about = subparsers.add_parser("about", help="Print package identity info")
    p_about.set_defaults(func=cmd_about)

    # scan
    p_scan = subparsers.add_parser("scan", help="Parse placeholders and report the resolved check graph")
    p_scan.add_argument("--root", default=".", help="Project root (default: .)")
    p_scan.add_argument("--out", default=None, help="Output JSON path (default: stdout)")
    p_scan.add_argument("--deterministic", action="store_true", help="Use fixed timestamps and a relative root")
    p_scan.set_defaults(func=cmd_scan)

    # check
    p_check = subparsers.add_parser("check", help="Evaluate every check")
    p_check.add_argument("--root", default=".", help="Project root (default: .)")
    p_check.add_argument("--out", default=None, help="Output JSON path (default: stdout)")
    p_check.add_argument("--offline", action="store_true", help="Do not probe http(s) targets (reported UNKNOWN)")
    p_check.add_argument("--timeout", type=float, default=None, help="HTTP timeout in seconds")
    p_check.add_argument(
        "--write-to",
        default=None,
        help="Directory for rewritten copies of the documentation with results substituted",
    )
    p_check.add_argument("--deterministic", action="store_true", help="Use fixed timestamps and a relative root")
    p_check.set_defaults(func=cmd_check)

    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        if isinstance(e.code, int):
            return 3 if e.code != 0 else 0
        return 3

    if not getattr(args, "func", None):
        parser.print_help()
        return 3
    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
