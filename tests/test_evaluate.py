from __future__ import annotations

import sys
import urllib.error
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dacdoc.check.base import (
    FAIL,
    PASS,
    UNKNOWN,
    UNKNOWN_CHECK,
    CompositeCheck,
    UnknownCheck,
    UrlCheck,
    extract_markdown_uri,
)
from dacdoc.check.evaluate import Evaluator, UrlProbe, evaluate_resolution
from dacdoc.check.resolver import resolve
from dacdoc.text.reader import parse_text


class StubOpener:
    """Records requests and answers from a {(method, url): status | Exception} table."""

    def __init__(self, answers: dict) -> None:
        self.answers = answers
        self.calls: list[tuple[str, str, float, str]] = []

    def __call__(self, request, timeout: float) -> int:
        self.calls.append((request.get_method(), request.full_url, timeout, request.get_header("User-agent")))
        answer = self.answers[(request.get_method(), request.full_url)]
        if isinstance(answer, BaseException):
            raise answer
        return answer


def _http_error(url: str, code: int) -> urllib.error.HTTPError:
    return urllib.error.HTTPError(url, code, "error", None, None)  # type: ignore[arg-type]


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    (tmp_path / "docs").mkdir()
    (tmp_path / "README.md").write_text("# readme\n", encoding="utf-8")
    (tmp_path / "docs" / "guide.md").write_text("# guide\n", encoding="utf-8")
    return tmp_path


class TestExtractUri:
    @pytest.mark.parametrize(
        "argument, expected",
        [
            ("[Example](http://example.com)", "http://example.com"),
            ("  [Spaced]( docs/a.md )  ", "docs/a.md"),
            ("[Angle](<docs/with space.md>)", "docs/with space.md"),
            ("![img](img/logo.png)", "img/logo.png"),
            ("https://example.org/bare", "https://example.org/bare"),
            ("  ./README.md ", "./README.md"),
            ("[Foo](https://en.wikipedia.org/wiki/Foo_(bar))", "https://en.wikipedia.org/wiki/Foo_(bar)"),
            ('[a](docs/a.md "Title")', "docs/a.md"),
            ("[b](<docs/b c.md> 'Title')", "docs/b c.md"),
            ("[c](docs/c.md (Title))", "docs/c.md"),
        ],
    )
    def test_extract(self, argument: str, expected: str) -> None:
        assert extract_markdown_uri(argument) == expected


class TestLocalProbe:
    def test_relative_to_source_file(self, project: Path) -> None:
        probe = UrlProbe(root=project)
        outcome = probe.probe(UrlCheck(project / "docs" / "guide.md", "../README.md"))
        assert outcome.status == PASS
        assert outcome.message == "found README.md"

    def test_root_relative(self, project: Path) -> None:
        probe = UrlProbe(root=project)
        assert probe.probe(UrlCheck(project / "docs" / "guide.md", "/README.md#top")).status == PASS

    def test_missing_target(self, project: Path) -> None:
        outcome = UrlProbe(root=project).probe(UrlCheck(project / "README.md", "docs/nope.md"))
        assert outcome.status == FAIL
        assert outcome.message == "missing docs/nope.md"

    def test_escape_is_a_failure(self, project: Path) -> None:
        outcome = UrlProbe(root=project).probe(UrlCheck(project / "README.md", "../../etc/passwd"))
        assert outcome.status == FAIL
        assert "escapes project root" in outcome.message

    def test_percent_encoded_target(self, project: Path) -> None:
        (project / "my file.md").write_text("x\n", encoding="utf-8")
        outcome = UrlProbe(root=project).probe(UrlCheck(project / "README.md", "my%20file.md"))
        assert outcome.status == PASS
        assert outcome.message == "found my file.md"

    def test_unparseable_uri_fails_without_raising(self, project: Path) -> None:
        outcome = UrlProbe(root=project).probe(UrlCheck(project / "README.md", "http://[::1"))
        assert outcome.status == FAIL
        assert outcome.message.startswith("invalid URI:")

    def test_fragment_only(self, project: Path) -> None:
        outcome = UrlProbe(root=project).probe(UrlCheck(project / "README.md", "#section"))
        assert outcome.status == PASS

    def test_empty_uri(self, project: Path) -> None:
        assert UrlProbe(root=project).probe(UrlCheck(project / "README.md", "")).status == FAIL

    @pytest.mark.parametrize("uri", ["mailto:someone@example.com", "ftp://example.com/x", "//cdn.example.com/a.js"])
    def test_other_schemes_are_unknown(self, project: Path, uri: str) -> None:
        outcome = UrlProbe(root=project).probe(UrlCheck(project / "README.md", uri))
        assert outcome.status == UNKNOWN


class TestHttpProbe:
    URL = "https://example.org/page"

    def _probe(self, project: Path, answers: dict, **kw) -> tuple[UrlProbe, StubOpener]:
        opener = StubOpener(answers)
        return UrlProbe(root=project, opener=opener, **kw), opener

    def test_head_ok(self, project: Path) -> None:
        probe, opener = self._probe(project, {("HEAD", self.URL): 200}, timeout_seconds=2.5, user_agent="ua/1")
        outcome = probe.probe(UrlCheck(project / "README.md", self.URL))
        assert outcome.status == PASS
        assert outcome.message == "HTTP 200"
        assert opener.calls == [("HEAD", self.URL, 2.5, "ua/1")]

    def test_head_not_allowed_falls_back_to_get(self, project: Path) -> None:
        probe, opener = self._probe(project, {("HEAD", self.URL): _http_error(self.URL, 405), ("GET", self.URL): 200})
        assert probe.probe(UrlCheck(project / "README.md", self.URL)).status == PASS
        assert [c[0] for c in opener.calls] == ["HEAD", "GET"]

    def test_http_error_status_fails(self, project: Path) -> None:
        probe, _ = self._probe(project, {("HEAD", self.URL): _http_error(self.URL, 404)})
        outcome = probe.probe(UrlCheck(project / "README.md", self.URL))
        assert outcome.status == FAIL
        assert outcome.message == "HTTP 404"

    def test_network_error_fails(self, project: Path) -> None:
        probe, _ = self._probe(project, {("HEAD", self.URL): urllib.error.URLError("no route")})
        outcome = probe.probe(UrlCheck(project / "README.md", self.URL))
        assert outcome.status == FAIL
        assert outcome.message == "request failed: no route"

    def test_offline_never_calls_opener(self, project: Path) -> None:
        probe, opener = self._probe(project, {}, offline=True)
        outcome = probe.probe(UrlCheck(project / "README.md", self.URL))
        assert outcome.status == UNKNOWN
        assert opener.calls == []

    def test_each_url_probed_once(self, project: Path) -> None:
        probe, opener = self._probe(project, {("HEAD", self.URL): 204})
        probe.probe(UrlCheck(project / "README.md", self.URL))
        probe.probe(UrlCheck(project / "docs" / "guide.md", self.URL))
        assert len(opener.calls) == 1


class TestEvaluator:
    def test_unknown_check_is_unknown(self, project: Path) -> None:
        outcome = Evaluator(UrlProbe(root=project)).evaluate(UnknownCheck(reason="unresolved id 'b'"))
        assert outcome.status == UNKNOWN
        assert outcome.message == "unresolved id 'b'"

    def test_composite_all_pass(self, project: Path) -> None:
        f = project / "README.md"
        comp = CompositeCheck([UrlCheck(f, "docs/guide.md"), UrlCheck(f, "#x")])
        outcome = Evaluator(UrlProbe(root=project)).evaluate(comp)
        assert outcome.status == PASS
        assert outcome.message == "all 2 sub-checks passed"

    def test_composite_failure_wins_over_unknown(self, project: Path) -> None:
        f = project / "README.md"
        comp = CompositeCheck([UNKNOWN_CHECK, UrlCheck(f, "docs/guide.md"), UrlCheck(f, "gone.md")])
        outcome = Evaluator(UrlProbe(root=project)).evaluate(comp)
        assert outcome.status == FAIL
        assert outcome.message.startswith("sub-check 2 failed")

    def test_composite_with_unknown_is_unknown(self, project: Path) -> None:
        f = project / "README.md"
        comp = CompositeCheck([UrlCheck(f, "docs/guide.md"), UNKNOWN_CHECK])
        outcome = Evaluator(UrlProbe(root=project)).evaluate(comp)
        assert outcome.status == UNKNOWN
        assert outcome.message.startswith("sub-check 1 indeterminate")

    def test_empty_composite_is_unknown(self, project: Path) -> None:
        assert Evaluator(UrlProbe(root=project)).evaluate(CompositeCheck()).status == UNKNOWN

    def test_self_containing_composite_terminates(self, project: Path) -> None:
        comp = CompositeCheck()
        comp.checks.append(comp)
        outcome = Evaluator(UrlProbe(root=project)).evaluate(comp)
        assert outcome.status == UNKNOWN

    def test_rejects_non_checks(self, project: Path) -> None:
        with pytest.raises(TypeError):
            Evaluator(UrlProbe(root=project)).evaluate("http://example.com")  # type: ignore[arg-type]


def test_evaluate_resolution_shares_outcomes(project: Path) -> None:
    url = "https://example.org/shared"
    text = f"!DACDOC[s]({url});id=s! !DACDOC ids=s! !DACDOC ids=s,missing!"
    resolution = resolve({project / "README.md": parse_text(text)})
    opener = StubOpener({("HEAD", url): 200})
    outcomes = evaluate_resolution(resolution, UrlProbe(root=project, opener=opener))

    assert list(outcomes) == list(resolution.occurrences)
    assert [o.status for o in outcomes.values()] == [PASS, PASS, UNKNOWN]
    assert len(opener.calls) == 1
