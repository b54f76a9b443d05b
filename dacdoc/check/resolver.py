"""Resolve placeholder occurrences to checks.

The resolver works on the complete, flattened set of (file, marker)
occurrences of a project:

1. pass 1 assigns every occurrence a check: an empty CompositeCheck for
   composite markers, a primitive check for known test kinds, UnknownCheck
   otherwise;
2. pass 2 fills each composite with the checks bound to its `ids`, looked up
   across all files.

Pass 2 only starts once pass 1 has covered every occurrence, because an id
may be declared later in the same file, in another file, or nowhere.

Determinism rules:
- occurrences are ordered by file POSIX path, then by marker offset;
- when several markers declare the same id, the first one in that order wins;
- composites on a reference cycle (a self-reference, or a strongly connected
  group) have every reference to a member of their own group wired to an
  UnknownCheck; references from outside the group bind normally, and every
  sub-check sequence stays as long as its `ids`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from dacdoc.check.base import Check, CompositeCheck, UnknownCheck
from dacdoc.check.registry import PrimitiveFactory, get_primitive_factories
from dacdoc.text.marker import Marker
from dacdoc.text.reader import ParsedFiles, parse_contents


ISSUE_UNRESOLVED_ID = "unresolved-id"
ISSUE_UNKNOWN_TEST = "unknown-test"
ISSUE_DUPLICATE_ID = "duplicate-id"
ISSUE_CYCLIC_REFERENCE = "cyclic-reference"


@dataclass(frozen=True)
class Occurrence:
    file: Path
    marker: Marker

    def sort_key(self) -> tuple[str, int, str]:
        return (self.file.as_posix(), self.marker.offset, self.marker.raw)


@dataclass(frozen=True)
class ResolutionIssue:
    code: str
    file: Path
    marker: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "file": self.file.as_posix(), "marker": self.marker, "message": self.message}


@dataclass(frozen=True)
class Resolution:
    occurrences: tuple[Occurrence, ...]
    checks: dict[Occurrence, Check]
    issues: tuple[ResolutionIssue, ...]

    def issues_with_code(self, code: str) -> list[ResolutionIssue]:
        return [i for i in self.issues if i.code == code]


def flatten(file_markers: Mapping[Path, Iterable[Marker]]) -> tuple[Occurrence, ...]:
    """All (file, marker) occurrences, de-duplicated, in deterministic order."""

    seen: set[Occurrence] = set()
    out: list[Occurrence] = []
    for file, markers in file_markers.items():
        for marker in markers:
            occ = Occurrence(file, marker)
            if occ in seen:
                continue
            seen.add(occ)
            out.append(occ)
    out.sort(key=Occurrence.sort_key)
    return tuple(out)


def _issue(code: str, occ: Occurrence, message: str) -> ResolutionIssue:
    return ResolutionIssue(code=code, file=occ.file, marker=occ.marker.raw, message=message)


def _index_ids(occurrences: tuple[Occurrence, ...], issues: list[ResolutionIssue]) -> dict[str, Occurrence]:
    by_id: dict[str, Occurrence] = {}
    for occ in occurrences:
        ident = occ.marker.id
        if ident is None:
            continue
        first = by_id.get(ident)
        if first is None:
            by_id[ident] = occ
            continue
        issues.append(
            _issue(
                ISSUE_DUPLICATE_ID,
                occ,
                f"id {ident!r} already declared in {first.file.as_posix()}; references bind to the first declaration",
            )
        )
    return by_id


def _reference_edges(
    occurrences: tuple[Occurrence, ...], by_id: dict[str, Occurrence]
) -> dict[Occurrence, tuple[Occurrence, ...]]:
    edges: dict[Occurrence, tuple[Occurrence, ...]] = {}
    for occ in occurrences:
        if not occ.marker.is_composite:
            continue
        edges[occ] = tuple(by_id[i] for i in occ.marker.ids if i in by_id)
    return edges


def _cyclic_components(
    occurrences: tuple[Occurrence, ...], edges: dict[Occurrence, tuple[Occurrence, ...]]
) -> dict[Occurrence, int]:
    """Map each occurrence that sits on a reference cycle to its component number.

    Iterative Tarjan SCC; components of one node count only with a self-reference.
    """

    index: dict[Occurrence, int] = {}
    low: dict[Occurrence, int] = {}
    stack: list[Occurrence] = []
    on_stack: set[Occurrence] = set()
    result: dict[Occurrence, int] = {}
    counter = 0
    component = 0

    for root in occurrences:
        if root in index or root not in edges:
            continue
        index[root] = low[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)
        work = [(root, iter(edges.get(root, ())))]

        while work:
            node, successors = work[-1]
            descended = False
            for nxt in successors:
                if nxt not in index:
                    index[nxt] = low[nxt] = counter
                    counter += 1
                    stack.append(nxt)
                    on_stack.add(nxt)
                    work.append((nxt, iter(edges.get(nxt, ()))))
                    descended = True
                    break
                if nxt in on_stack:
                    low[node] = min(low[node], index[nxt])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                low[parent] = min(low[parent], low[node])

            if low[node] == index[node]:
                members: list[Occurrence] = []
                while True:
                    w = stack.pop()
                    on_stack.discard(w)
                    members.append(w)
                    if w == node:
                        break
                if len(members) > 1 or node in edges.get(node, ()):
                    for w in members:
                        result[w] = component
                    component += 1

    return result


def _fill_checks_initial(
    occurrences: tuple[Occurrence, ...],
    result: dict[Occurrence, Check],
    issues: list[ResolutionIssue],
    factories: Mapping[str, PrimitiveFactory],
) -> None:
    for occ in occurrences:
        marker = occ.marker
        check: Check
        if marker.is_composite:
            # filled in pass 2
            check = CompositeCheck()
        else:
            factory = factories.get(marker.test_id)
            if factory is None:
                check = UnknownCheck(reason=f"unknown test kind {marker.test_id!r}")
                issues.append(_issue(ISSUE_UNKNOWN_TEST, occ, f"unknown test kind {marker.test_id!r}"))
            else:
                check = factory(occ.file, marker.argument or "")
        result[occ] = check


def _fill_checks_composite(
    occurrences: tuple[Occurrence, ...],
    result: dict[Occurrence, Check],
    issues: list[ResolutionIssue],
    by_id: dict[str, Occurrence],
    cyclic: dict[Occurrence, int],
) -> None:
    for occ in occurrences:
        if not occ.marker.is_composite:
            continue
        composite = result[occ]
        if not isinstance(composite, CompositeCheck):
            raise TypeError(f"composite marker bound to {type(composite).__name__}: {occ.marker.raw!r}")

        for ident in occ.marker.ids:
            target = by_id.get(ident)
            sub: Check
            if target is None:
                sub = UnknownCheck(reason=f"unresolved id {ident!r}")
                issues.append(_issue(ISSUE_UNRESOLVED_ID, occ, f"no marker declares id {ident!r}"))
            elif occ in cyclic and cyclic.get(target) == cyclic[occ]:
                sub = UnknownCheck(reason=f"cyclic reference to id {ident!r}")
                issues.append(_issue(ISSUE_CYCLIC_REFERENCE, occ, f"reference to id {ident!r} closes a cycle"))
            else:
                sub = result[target]
            composite.checks.append(sub)


def resolve(
    file_markers: Mapping[Path, Iterable[Marker]],
    *,
    factories: Mapping[str, PrimitiveFactory] | None = None,
) -> Resolution:
    """Map every (file, marker) occurrence to exactly one check."""

    if factories is None:
        factories = get_primitive_factories()

    occurrences = flatten(file_markers)
    issues: list[ResolutionIssue] = []
    by_id = _index_ids(occurrences, issues)
    cyclic = _cyclic_components(occurrences, _reference_edges(occurrences, by_id))

    checks: dict[Occurrence, Check] = {}
    _fill_checks_initial(occurrences, checks, issues, factories)
    _fill_checks_composite(occurrences, checks, issues, by_id, cyclic)

    return Resolution(occurrences=occurrences, checks=checks, issues=tuple(issues))


def resolve_contents(contents: Mapping[Path, str]) -> tuple[ParsedFiles, Resolution]:
    """Parse raw file texts and resolve the files that parsed.

    Markers of a file that failed to parse are absent, so composites that
    reference ids declared there degrade to UnknownCheck.
    """

    parsed = parse_contents(contents)
    return parsed, resolve(parsed.markers)
