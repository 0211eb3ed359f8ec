"""Tests for ExtractMethodOperation."""

from conftest import PLAYER_CS, STACKED_CS, write_file

from refscope.models import ChangeKind, OperationKind, SymbolKind
from refscope.refactoring import ExtractMethodOperation
from refscope.symbol_index import SymbolIndex


def lines_of(text, start, end):
    return "".join(text.splitlines(keepends=True)[start - 1 : end])


class TestExtractMethod:
    def test_single_line(self, unity_index, unity_project):
        update = unity_index.find_symbol("Player.Update")
        op = ExtractMethodOperation(unity_index, update, "        Move();\n", "DoMove")
        preview = op.prepare()

        assert preview.can_proceed
        assert preview.operation == OperationKind.EXTRACT_METHOD
        assert preview.total_changes == 2
        assert {c.kind for c in op.changes} == {ChangeKind.INSERT, ChangeKind.REPLACE}

        assert op.apply().success
        content = (unity_project / "Assets" / "Scripts" / "Player.cs").read_text()
        expected_update = (
            "    void Update()\n"
            "    {\n"
            "        DoMove();\n"
            "        if (health <= 0)\n"
        )
        expected_method = (
            "    }\n"
            "\n"
            "        private void DoMove()\n"
            "        {\n"
            "            Move();\n"
            "        }\n"
            "\n"
            "    void Move()\n"
        )
        assert expected_update in content
        assert expected_method in content

    def test_multi_line_body_is_reindented_copy(self, unity_index):
        selection = lines_of(PLAYER_CS, 11, 14)
        update = unity_index.find_symbol("Player.Update")
        op = ExtractMethodOperation(unity_index, update, selection, "CheckDeath")
        op.prepare()

        insert = next(c for c in op.changes if c.kind == ChangeKind.INSERT)
        assert insert.new_text == (
            "\n"
            "        private void CheckDeath()\n"
            "        {\n"
            "            if (health <= 0)\n"
            "            {\n"
            "            Die();\n"
            "            }\n"
            "        }\n"
        )
        # Every token of the selection moves into the new method unchanged
        assert "".join(selection.split()) in "".join(insert.new_text.split())

        replace = next(c for c in op.changes if c.kind == ChangeKind.REPLACE)
        assert replace.old_text == selection
        assert replace.new_text == "        CheckDeath();\n"

    def test_new_method_is_indexed_after_apply(self, unity_index, unity_project):
        update = unity_index.find_symbol("Player.Update")
        op = ExtractMethodOperation(unity_index, update, "        Move();\n", "DoMove")
        op.prepare()
        assert op.apply().success

        index = SymbolIndex()
        index.build_symbol_table(unity_project)
        extracted = index.find_symbol("Player.DoMove")

        assert extracted.kind == SymbolKind.METHOD
        assert extracted.modifiers == ("private",)
        callees = index.get_call_hierarchy(index.find_symbol("Player.Update")).callees
        assert "Player.DoMove" in {c.symbol.key for c in callees}

    def test_uses_file_newline(self, temp_dir):
        path = write_file(temp_dir, "Player.cs", PLAYER_CS, newline="\r\n")
        index = SymbolIndex()
        index.build_symbol_table(temp_dir)

        op = ExtractMethodOperation(
            index, index.find_symbol("Player.Update"), "        Move();\r\n", "DoMove"
        )
        op.prepare()
        assert op.apply().success

        data = path.read_bytes()
        assert b"        DoMove();\r\n" in data
        assert b"        private void DoMove()\r\n        {\r\n            Move();\r\n" in data
        assert b"\n" not in data.replace(b"\r\n", b"")

    def test_first_occurrence_is_replaced(self, temp_dir):
        source = (
            "class Twice\n"
            "{\n"
            "    void A()\n"
            "    {\n"
            "        Step();\n"
            "    }\n"
            "    void B()\n"
            "    {\n"
            "        Step();\n"
            "    }\n"
            "}\n"
        )
        write_file(temp_dir, "Twice.cs", source)
        index = SymbolIndex()
        index.build_symbol_table(temp_dir)

        op = ExtractMethodOperation(index, index.find_symbol("Twice.B"), "        Step();\n", "Go")
        op.prepare()

        replace = next(c for c in op.changes if c.kind == ChangeKind.REPLACE)
        assert replace.start == source.index("        Step();\n")


    def test_insert_after_method_declared_on_closing_line(self, temp_dir):
        path = write_file(temp_dir, "Stacked.cs", STACKED_CS)
        index = SymbolIndex()
        index.build_symbol_table(temp_dir)

        op = ExtractMethodOperation(index, index.find_symbol("Stacked.Y"), "    Z();\n", "CallZ")
        assert op.prepare().can_proceed
        assert op.apply().success

        content = path.read_text()
        assert "  } void Y() {\n    CallZ();\n  }\n\n        private void CallZ()\n" in content
        assert content.endswith("  void Z() {\n  }\n}\n")


class TestExtractMethodBlockers:
    def test_invalid_name(self, unity_index):
        update = unity_index.find_symbol("Player.Update")
        preview = ExtractMethodOperation(unity_index, update, "        Move();\n", "do-move").prepare()

        assert not preview.can_proceed
        assert preview.total_changes == 0

    def test_empty_selection(self, unity_index):
        update = unity_index.find_symbol("Player.Update")
        preview = ExtractMethodOperation(unity_index, update, "   \n", "DoMove").prepare()

        assert preview.safety_report.blockers == ("No code selected to extract",)

    def test_selection_not_found(self, unity_index):
        update = unity_index.find_symbol("Player.Update")
        preview = ExtractMethodOperation(unity_index, update, "Jump();", "DoJump").prepare()

        assert preview.safety_report.blockers == ("Selected code not found in Player.cs",)
        assert preview.diffs == ()

    def test_selection_crossing_method_end(self, unity_index):
        update = unity_index.find_symbol("Player.Update")
        selection = lines_of(PLAYER_CS, 14, 16)
        preview = ExtractMethodOperation(unity_index, update, selection, "Tail").prepare()

        assert not preview.can_proceed
        assert "crosses the end of 'Update'" in preview.safety_report.blockers[0]
