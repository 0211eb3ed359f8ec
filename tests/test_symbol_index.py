"""Tests for SymbolIndex."""

import logging
from pathlib import Path

from conftest import STACKED_CS, write_file

from refscope.config_store import AnalyzerConfig
from refscope.models import SymbolKind
from refscope.symbol_index import ReferenceCache, SymbolIndex


class TestBuildSymbolTable:
    def test_indexes_only_source_files(self, unity_index, unity_project):
        files = unity_index.project_files

        assert len(files) == 2
        assert all(f.endswith(".cs") for f in files)
        assert unity_index.root == unity_project.absolute()

    def test_keys(self, unity_index):
        assert unity_index.find_symbol("Player").kind == SymbolKind.CLASS
        assert unity_index.find_symbol("Player.Update").kind == SymbolKind.METHOD
        assert unity_index.find_symbol("Enemy.Attack").kind == SymbolKind.METHOD

    def test_scenario(self, scenario_index):
        keys = {s.key for s in scenario_index.symbols()}

        assert keys == {"Player", "Player.Update", "Player.Move"}
        assert scenario_index.find_symbol("Player.Update").is_framework_lifecycle_method

    def test_rebuild_clears_and_bumps_generation(self, unity_project):
        index = SymbolIndex()
        index.build_symbol_table(unity_project)
        generation = index.generation

        (unity_project / "Assets" / "Scripts" / "Enemy.cs").unlink()
        index.build_symbol_table(unity_project)

        assert index.generation == generation + 1
        assert index.find_symbol("Enemy") is None
        assert index.symbol_count > 0

    def test_exclude_patterns(self, unity_project):
        write_file(unity_project, "Assets/Plugins/Lib.cs", "public class Lib\n{\n}\n")
        index = SymbolIndex(AnalyzerConfig(exclude_patterns=("Assets/Plugins/*",)))
        index.build_symbol_table(unity_project)

        assert index.find_symbol("Lib") is None
        assert index.find_symbol("Player") is not None

    def test_custom_file_filter(self, unity_project):
        index = SymbolIndex()
        index.build_symbol_table(unity_project, lambda p: p.name == "Enemy.cs")

        assert index.find_symbol("Enemy") is not None
        assert index.find_symbol("Player") is None

    def test_filter_admitting_other_languages(self, unity_project, caplog):
        index = SymbolIndex()
        with caplog.at_level(logging.WARNING, logger="refscope.symbol_index"):
            index.build_symbol_table(unity_project, lambda p: True)

        assert [Path(p).name for p in index.project_files] == ["Enemy.cs", "Player.cs"]
        assert "README.txt: no analyzer for its extension" in caplog.text

    def test_hidden_directories_skipped(self, unity_project):
        write_file(unity_project, ".hidden/Secret.cs", "public class Secret\n{\n}\n")
        index = SymbolIndex()
        index.build_symbol_table(unity_project)

        assert index.find_symbol("Secret") is None


class TestFindSymbol:
    def test_exact_key(self, unity_index):
        assert unity_index.find_symbol("Player.Die").name == "Die"

    def test_suffix_match(self, unity_index):
        assert unity_index.find_symbol("Attack").key == "Enemy.Attack"

    def test_not_found(self, unity_index):
        assert unity_index.find_symbol("Nope") is None


class TestSearchSymbols:
    def test_case_insensitive_sorted(self, unity_index):
        names = [s.name for s in unity_index.search_symbols("E")]

        assert names == sorted(names)
        assert "Enemy" in names
        assert "speed" in names
        assert "Respawn" in names

    def test_kind_filter(self, unity_index):
        fields = unity_index.search_symbols("", SymbolKind.FIELD)

        assert [s.name for s in fields] == ["health", "speed", "target"]


class TestReferences:
    def test_references_across_files(self, unity_index):
        refs = unity_index.get_references("Die")

        files = {Path(r.file_path).name for r in refs}
        assert files == {"Player.cs", "Enemy.cs"}
        assert len(refs) == 3

    def test_references_are_memoized_until_rebuild(self, unity_project):
        index = SymbolIndex()
        index.build_symbol_table(unity_project)
        first = index.get_references("Die")

        # Edits made outside the engine are not seen until the next rebuild
        write_file(unity_project, "Assets/Scripts/Extra.cs", "class Extra { void A() { Die(); } }")
        assert index.get_references("Die") is first

        index.build_symbol_table(unity_project)
        assert len(index.get_references("Die")) == len(first) + 1


class TestReferenceCache:
    def test_invalidate(self):
        cache = ReferenceCache()
        cache.put("Move", [])

        assert cache.get("Move") == []
        cache.invalidate()
        assert cache.get("Move") is None
        assert cache.generation == 1
        assert len(cache) == 0


class TestCallHierarchy:
    def test_scenario_callees(self, scenario_index):
        update = scenario_index.find_symbol("Player.Update")
        node = scenario_index.get_call_hierarchy(update)

        assert [c.symbol.key for c in node.callees] == ["Player.Move"]

    def test_callers_exclude_definition(self, unity_index):
        die = unity_index.find_symbol("Player.Die")
        node = unity_index.get_call_hierarchy(die)

        assert {c.symbol.key for c in node.callers} == {"Player.Update", "Enemy.Attack"}
        assert node.callees == []

    def test_callees(self, unity_index):
        update = unity_index.find_symbol("Player.Update")
        node = unity_index.get_call_hierarchy(update)

        assert {c.symbol.key for c in node.callees} == {"Player.Move", "Player.Die"}

    def test_caller_declared_after_closing_brace(self, temp_dir):
        write_file(temp_dir, "Stacked.cs", STACKED_CS)
        index = SymbolIndex()
        index.build_symbol_table(temp_dir)

        node = index.get_call_hierarchy(index.find_symbol("Stacked.Z"))

        assert [c.symbol.key for c in node.callers] == ["Stacked.Y"]
        stacked = index.find_symbol("Stacked.Y").file_path
        assert index.find_containing_method(stacked, 4).name == "Y"

    def test_one_level_only(self, unity_index):
        start = unity_index.find_symbol("Enemy.Start")
        node = unity_index.get_call_hierarchy(start, max_depth=5)

        assert [c.symbol.key for c in node.callees] == ["Enemy.Attack"]
        assert node.callees[0].callees == []

    def test_non_method_has_empty_hierarchy(self, unity_index):
        node = unity_index.get_call_hierarchy(unity_index.find_symbol("Player"))

        assert node.callers == []
        assert node.callees == []


class TestProjections:
    def test_symbols_in_file_ordered_by_line(self, unity_index):
        symbols = unity_index.symbols_in_file("Assets/Scripts/Enemy.cs")
        lines = [s.start_line for s in symbols]

        assert lines == sorted(lines)
        assert symbols[0].name == "Enemy"

    def test_class_methods_and_fields(self, unity_index):
        methods = [s.name for s in unity_index.class_methods("Player")]
        fields = [s.name for s in unity_index.class_fields("Player")]

        assert methods == ["Die", "Move", "Respawn", "Update"]
        assert fields == ["health", "speed"]

    def test_find_containing_method(self, unity_index):
        player = unity_index.find_symbol("Player.Update").file_path

        assert unity_index.find_containing_method(player, 13).name == "Update"
        assert unity_index.find_containing_method(player, 5) is None
