"""Evaluate resolved checks.

Local link targets are checked on disk. http(s) targets are probed with a
HEAD request (GET on 405/501) through an injectable opener; the resolver
itself never performs I/O.
"""

from __future__ import annotations

import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from dacdoc.check.base import (
    FAIL,
    PASS,
    UNKNOWN,
    Check,
    CheckOutcome,
    CompositeCheck,
    UnknownCheck,
    UrlCheck,
)
from dacdoc.check.resolver import Occurrence, Resolution
from dacdoc.core.jail import resolve_link_target, safe_relpath, split_link_target


DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_USER_AGENT = "dacdoc-url-check/1"

HttpOpener = Callable[[urllib.request.Request, float], int]


def urlopen_status(request: urllib.request.Request, timeout: float) -> int:
    with urllib.request.urlopen(request, timeout=timeout) as resp:  # nosec - URL comes from the checked docs
        return int(resp.status)


@dataclass
class UrlProbe:
    root: Path
    offline: bool = False
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    opener: HttpOpener = urlopen_status
    _http_cache: dict[str, CheckOutcome] = field(default_factory=dict, init=False, repr=False)

    def probe(self, check: UrlCheck) -> CheckOutcome:
        uri = check.uri
        if not uri:
            return CheckOutcome(FAIL, "empty URI")

        try:
            scheme = urllib.parse.urlsplit(uri).scheme.lower()
        except ValueError as e:
            return CheckOutcome(FAIL, f"invalid URI: {e}")
        if scheme in ("http", "https"):
            cached = self._http_cache.get(uri)
            if cached is None:
                cached = self._probe_http(uri)
                self._http_cache[uri] = cached
            return cached
        if scheme or uri.startswith("//"):
            return CheckOutcome(UNKNOWN, f"unsupported URI scheme: {uri}")

        return self._probe_local(check.file, uri)

    def _probe_local(self, file: Path, uri: str) -> CheckOutcome:
        if not split_link_target(uri):
            return CheckOutcome(PASS, "same-document reference")
        try:
            target = resolve_link_target(self.root, file, uri)
            found = target.exists()
        except (ValueError, OSError) as e:
            return CheckOutcome(FAIL, str(e))
        rel = safe_relpath(self.root, target)
        if found:
            return CheckOutcome(PASS, f"found {rel}")
        return CheckOutcome(FAIL, f"missing {rel}")

    def _status(self, uri: str, method: str) -> int:
        request = urllib.request.Request(uri, method=method, headers={"User-Agent": self.user_agent})
        try:
            return self.opener(request, self.timeout_seconds)
        except urllib.error.HTTPError as e:
            return int(e.code)

    def _probe_http(self, uri: str) -> CheckOutcome:
        if self.offline:
            return CheckOutcome(UNKNOWN, f"offline: {uri} not probed")
        try:
            status = self._status(uri, "HEAD")
            if status in (405, 501):
                status = self._status(uri, "GET")
        except (urllib.error.URLError, OSError, ValueError) as e:
            reason = getattr(e, "reason", e)
            return CheckOutcome(FAIL, f"request failed: {reason}")
        if status < 400:
            return CheckOutcome(PASS, f"HTTP {status}")
        return CheckOutcome(FAIL, f"HTTP {status}")


class Evaluator:
    """Evaluates checks once each; shared sub-checks reuse the first outcome."""

    def __init__(self, probe: UrlProbe) -> None:
        self._probe = probe
        self._memo: dict[int, tuple[Check, CheckOutcome]] = {}
        self._active: set[int] = set()

    def evaluate(self, check: Check) -> CheckOutcome:
        key = id(check)
        hit = self._memo.get(key)
        if hit is not None:
            return hit[1]

        if isinstance(check, UnknownCheck):
            outcome = CheckOutcome(UNKNOWN, check.reason)
        elif isinstance(check, UrlCheck):
            outcome = self._probe.probe(check)
        elif isinstance(check, CompositeCheck):
            if key in self._active:
                return CheckOutcome(UNKNOWN, "composite references itself")
            self._active.add(key)
            try:
                outcome = self._evaluate_composite(check)
            finally:
                self._active.discard(key)
        else:
            raise TypeError(f"not a check: {check!r}")

        self._memo[key] = (check, outcome)
        return outcome

    def _evaluate_composite(self, check: CompositeCheck) -> CheckOutcome:
        if not check.checks:
            return CheckOutcome(UNKNOWN, "composite has no sub-checks")

        first_unknown: tuple[int, CheckOutcome] | None = None
        for i, sub in enumerate(check.checks):
            outcome = self.evaluate(sub)
            if outcome.status == FAIL:
                return CheckOutcome(FAIL, f"sub-check {i} failed: {outcome.message}")
            if outcome.status != PASS and first_unknown is None:
                first_unknown = (i, outcome)

        if first_unknown is not None:
            i, outcome = first_unknown
            return CheckOutcome(UNKNOWN, f"sub-check {i} indeterminate: {outcome.message}")
        return CheckOutcome(PASS, f"all {len(check.checks)} sub-checks passed")


def evaluate_resolution(resolution: Resolution, probe: UrlProbe) -> dict[Occurrence, CheckOutcome]:
    evaluator = Evaluator(probe)
    return {occ: evaluator.evaluate(resolution.checks[occ]) for occ in resolution.occurrences}
