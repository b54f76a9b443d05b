from __future__ import annotations

import sys
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dacdoc.core.canon import FIXED_TIMESTAMP_UTC_Z, content_sha256, report_timestamp
from dacdoc.core.jail import ensure_within_root, resolve_link_target, safe_relpath, split_link_target


class TestLinkResolution:
    def test_split_link_target(self) -> None:
        assert split_link_target("a/b.md#sec") == "a/b.md"
        assert split_link_target("a.md?plain=1#L3") == "a.md"
        assert split_link_target("#only") == ""

    def test_relative_and_root_relative(self, tmp_path: Path) -> None:
        src = tmp_path / "docs" / "guide.md"
        assert resolve_link_target(tmp_path, src, "img/x.png") == (tmp_path / "docs" / "img" / "x.png").resolve()
        assert resolve_link_target(tmp_path, src, "/README.md") == (tmp_path / "README.md").resolve()

    def test_relative_source_file_is_taken_from_root(self, tmp_path: Path) -> None:
        got = resolve_link_target(tmp_path, Path("docs/guide.md"), "../README.md")
        assert got == (tmp_path / "README.md").resolve()

    @pytest.mark.parametrize("target", ["../outside.md", "/../../x", "a\x00b", "a%00b", "%2E%2E/outside.md", "#frag", ""])
    def test_rejected(self, tmp_path: Path, target: str) -> None:
        with pytest.raises(ValueError):
            resolve_link_target(tmp_path, tmp_path / "README.md", target)

    def test_percent_encoded_path_is_decoded(self, tmp_path: Path) -> None:
        got = resolve_link_target(tmp_path, tmp_path / "README.md", "my%20file.md#top")
        assert got == (tmp_path / "my file.md").resolve()

    def test_ensure_within_root_accepts_root_itself(self, tmp_path: Path) -> None:
        ensure_within_root(tmp_path, tmp_path)

    def test_safe_relpath(self, tmp_path: Path) -> None:
        assert safe_relpath(tmp_path, tmp_path / "a" / "b.md") == "a/b.md"
        outside = Path("/definitely/elsewhere.md")
        assert safe_relpath(tmp_path, outside) == outside.as_posix()


class TestCanonical:
    def test_content_sha256(self) -> None:
        assert content_sha256("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

    def test_deterministic_timestamp(self) -> None:
        assert report_timestamp(deterministic=True) == FIXED_TIMESTAMP_UTC_Z
        assert report_timestamp(deterministic=False).endswith("Z")
