"""
Tests for the layered style store.
"""

import json
import logging
import shutil
import tempfile
from pathlib import Path

import pytest

from tool_ledger.config.styles import (
    PROJECT_CONFIG_FILENAME,
    StyleConfigStore,
    StyleScope,
    normalize_folder_path,
)


class TestNormalize:
    """Test folder path normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("/a/b/", "/a/b"),
        ("/a/b///", "/a/b"),
        ("/a/b", "/a/b"),
        ("/", ""),
    ])
    def test_trailing_slashes(self, raw, expected):
        assert normalize_folder_path(raw) == expected


class TestStyleConfigStore:
    """Test merge precedence, mutations and folder resolution."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.project_root = self.temp_dir / "project"
        self.global_path = self.temp_dir / "home" / ".mcp" / "lottie-styles.json"
        self.store = StyleConfigStore(project_root=self.project_root, global_path=self.global_path)

    def teardown_method(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_empty_when_no_files(self):
        merged = self.store.merge()

        assert merged.styles == {}
        assert merged.folders == {}
        assert not self.global_path.exists()

    def test_save_writes_project_file(self):
        self.store.save_style("minimal", ["flat", "outline"])

        path = self.project_root / PROJECT_CONFIG_FILENAME
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == {"styles": {"minimal": ["flat", "outline"]}, "folders": {}}

    def test_project_overrides_global(self):
        self.store.save_style("minimal", ["flat", "outline"], StyleScope.GLOBAL)
        self.store.save_style("minimal", ["flat"], StyleScope.PROJECT)
        self.store.save_style("bold", ["thick"], "global")

        merged = self.store.merge()

        assert merged.styles["minimal"] == ["flat"]
        assert merged.sources.styles["minimal"] == "project"
        assert merged.styles["bold"] == ["thick"]
        assert merged.sources.styles["bold"] == "global"

    def test_save_rejects_empty_tags(self):
        with pytest.raises(ValueError):
            self.store.save_style("minimal", [])

    def test_invalid_scope(self):
        with pytest.raises(ValueError, match="scope"):
            self.store.save_style("minimal", ["flat"], "team")

    def test_delete_cascades_within_scope_only(self):
        self.store.save_style("minimal", ["flat"], StyleScope.GLOBAL)
        self.store.save_style("minimal", ["flat"], StyleScope.PROJECT)
        self.store.set_folder_style("/g", "minimal", StyleScope.GLOBAL)
        self.store.set_folder_style("/p", "minimal", StyleScope.PROJECT)

        assert self.store.delete_style("minimal", StyleScope.PROJECT) is True

        assert self.store.read_scope(StyleScope.PROJECT).folders == {}
        assert self.store.read_scope(StyleScope.GLOBAL).folders == {"/g": "minimal"}
        assert self.store.merge().styles["minimal"] == ["flat"]

    def test_delete_missing_style(self):
        assert self.store.delete_style("ghost") is False

    def test_set_folder_normalizes_key(self):
        normalized = self.store.set_folder_style("/a/b/", "minimal")

        assert normalized == "/a/b"
        assert self.store.read_scope(StyleScope.PROJECT).folders == {"/a/b": "minimal"}

    def test_remove_folder_style(self):
        self.store.set_folder_style("/a", "minimal")

        assert self.store.remove_folder_style("/a/") is True
        assert self.store.remove_folder_style("/a") is False

    def test_resolve_nearest_ancestor(self):
        self.store.save_style("s1", ["one"])
        self.store.save_style("s2", ["two"])
        self.store.set_folder_style("/a", "s1")
        self.store.set_folder_style("/a/b", "s2")

        deep = self.store.resolve_folder("/a/b/c")
        sibling = self.store.resolve_folder("/a/x")
        exact = self.store.resolve_folder("/a/b/")

        assert (deep.style, deep.matched_path) == ("s2", "/a/b")
        assert (sibling.style, sibling.matched_path) == ("s1", "/a")
        assert (exact.style, exact.matched_path, exact.tags) == ("s2", "/a/b", ["two"])

    def test_resolve_root_association(self):
        self.store.save_style("base", ["plain"])
        self.store.set_folder_style("/", "base")

        match = self.store.resolve_folder("/deep/nested/dir")

        assert match.style == "base"
        assert match.matched_path == ""

    def test_resolve_skips_dangling_association(self):
        self.store.save_style("s1", ["one"])
        self.store.set_folder_style("/a", "s1")
        # Association to a style that no longer exists
        self.store.set_folder_style("/a/b", "deleted")

        match = self.store.resolve_folder("/a/b/c")

        assert match.style == "s1"
        assert match.matched_path == "/a"

    def test_resolve_uses_merged_scopes(self):
        self.store.save_style("shared", ["global-tag"], StyleScope.GLOBAL)
        self.store.set_folder_style("/work", "shared", StyleScope.GLOBAL)
        self.store.save_style("shared", ["project-tag"], StyleScope.PROJECT)

        match = self.store.resolve_folder("/work/app")

        assert match.tags == ["project-tag"]

    def test_resolve_none(self):
        assert self.store.resolve_folder("/nothing/here") is None

    def test_external_edits_are_seen(self):
        self.store.save_style("minimal", ["flat"])
        path = self.project_root / PROJECT_CONFIG_FILENAME
        path.write_text(json.dumps({"styles": {"edited": ["x"]}, "folders": {}}), encoding="utf-8")

        assert self.store.get_style_tags("edited") == ["x"]
        assert self.store.get_style_tags("minimal") is None

    def test_corrupt_scope_reads_empty(self):
        self.global_path.parent.mkdir(parents=True)
        self.global_path.write_text("{broken", encoding="utf-8")

        assert self.store.read_scope(StyleScope.GLOBAL).styles == {}

    def test_malformed_entries_are_ignored(self, caplog):
        self.global_path.parent.mkdir(parents=True)
        raw = {
            "styles": {"broken": "flat", "mixed": ["a", 1], "ok": ["a"]},
            "folders": {"/a": "broken", "/b": 7, "/c": "ok"},
        }
        self.global_path.write_text(json.dumps(raw), encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="tool_ledger"):
            merged = self.store.merge()

        assert merged.styles == {"ok": ["a"]}
        assert merged.folders == {"/a": "broken", "/c": "ok"}
        assert self.store.resolve_folder("/a") is None
        assert self.store.resolve_folder("/c/d").style == "ok"
        assert "broken" in caplog.text

    def test_set_project_root(self):
        other = self.temp_dir / "other"
        self.store.set_project_root(other)
        self.store.save_style("minimal", ["flat"])

        assert (other / PROJECT_CONFIG_FILENAME).exists()
        assert not (self.project_root / PROJECT_CONFIG_FILENAME).exists()
