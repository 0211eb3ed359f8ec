"""Tests for text and JSON renderings."""

from refscope.models import (
    CallHierarchyNode,
    CodeSymbol,
    DiffPreview,
    OperationKind,
    RefactoringPreview,
    RiskLevel,
    SafetyReport,
    SymbolKind,
)
from refscope.render import format_call_hierarchy, format_preview, preview_to_dict


def method(name, parent="Player"):
    return CodeSymbol(name, SymbolKind.METHOD, "Player.cs", 1, 1, parent_class=parent)


class TestCallHierarchyText:
    def test_callers_and_callees(self):
        node = CallHierarchyNode(
            symbol=method("Die"),
            callers=[CallHierarchyNode(method("Update")), CallHierarchyNode(method("Attack", "Enemy"))],
            callees=[CallHierarchyNode(method("Respawn"))],
        )

        assert format_call_hierarchy(node) == (
            "Player.Die\n"
            "  Called by:\n"
            "    - Player.Update\n"
            "    - Enemy.Attack\n"
            "  Calls:\n"
            "    - Player.Respawn\n"
        )

    def test_empty_sections_omitted_and_indent(self):
        text = format_call_hierarchy(CallHierarchyNode(method("Move")), indent=1)

        assert text == "  Player.Move\n"


class TestSimpleDiff:
    def test_headers_and_changes(self):
        diff = DiffPreview("Assets/Player.cs", "a\r\nb\r\nc\r\n", "a\r\nB\r\nc\r\n")
        text = diff.simple_diff()

        assert text.splitlines()[:2] == [
            "--- Player.cs (original)",
            "+++ Player.cs (modified)",
        ]
        assert "-b" in text.splitlines()
        assert "+B" in text.splitlines()
        assert "\r" not in text

    def test_identical_content_has_no_diff(self):
        assert DiffPreview("x.cs", "same\n", "same\n").simple_diff() == ""


class TestPreviewRendering:
    def make_preview(self, blockers=()):
        symbol = method("Move")
        report = SafetyReport(
            symbol,
            OperationKind.RENAME,
            RiskLevel.MEDIUM,
            warnings=("'Move' is public.",),
            blockers=blockers,
        )
        return RefactoringPreview(
            operation=OperationKind.RENAME,
            target_symbol=symbol,
            safety_report=report,
            affected_files=("Player.cs",),
            diffs=(DiffPreview("Player.cs", "Move();\n", "Walk();\n"),),
            total_changes=1,
        )

    def test_format_preview(self):
        text = format_preview(self.make_preview())

        assert text.startswith("Rename 'Move' - 1 file(s), 1 change(s)\nRisk: Medium - 1 warning(s)\n")
        assert "  warning: 'Move' is public." in text
        assert "+Walk();" in text

    def test_blocked_summary(self):
        preview = self.make_preview(blockers=("nope",))

        assert not preview.can_proceed
        assert preview.safety_report.summary() == "BLOCKED: nope"

    def test_preview_to_dict(self):
        data = preview_to_dict(self.make_preview())

        assert data["operation"] == "rename"
        assert data["can_proceed"] is True
        assert data["safety_report"]["risk_level"] == "Medium"
        assert data["target_symbol"]["name"] == "Move"
        assert data["diffs"][0]["file_path"] == "Player.cs"
        assert "-Move();" in data["diffs"][0]["diff"]

    def test_operation_labels(self):
        assert OperationKind.EXTRACT_METHOD.label == "ExtractMethod"
        assert OperationKind.REMOVE_UNUSED.label == "RemoveUnused"
