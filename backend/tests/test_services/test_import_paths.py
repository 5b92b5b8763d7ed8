"""Tests for dependency import path discovery."""

from vulnboard.services.import_paths import get_import_paths


class TestGetImportPaths:
    def test_single_chain(self):
        parents = {"c": ["b"], "b": ["a"], "a": []}
        assert get_import_paths(parents, "c") == ["a -> b -> c"]

    def test_diamond(self):
        parents = {"d": ["b", "c"], "b": ["a"], "c": ["a"]}
        assert get_import_paths(parents, "d") == ["a -> b -> d", "a -> c -> d"]

    def test_root_dependency(self):
        assert get_import_paths({}, "root") == ["root"]

    def test_cycle_terminates(self):
        parents = {"c": ["b"], "b": ["a", "c"], "a": []}
        assert get_import_paths(parents, "c") == ["a -> b -> c"]

    def test_pure_cycle_has_no_root(self):
        parents = {"a": ["b"], "b": ["a"]}
        assert get_import_paths(parents, "a") == []
