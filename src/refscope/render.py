"""Human-readable and JSON renderings of index queries and previews."""

from typing import Any

from .models import CallHierarchyNode, CodeSymbol, RefactoringPreview


def format_symbol(symbol: CodeSymbol) -> str:
    """One-line listing: location, kind, key and lifecycle/serialization flags."""
    flags = []
    if symbol.is_framework_lifecycle_method:
        flags.append("lifecycle")
    if symbol.is_serialization_exposed_field:
        flags.append("serialized")
    suffix = f"  [{', '.join(flags)}]" if flags else ""
    location = f"{symbol.file_path}:{symbol.start_line}-{symbol.end_line}"
    return f"{location}  {symbol.kind.value:<9} {symbol.key}{suffix}"


def format_call_hierarchy(node: CallHierarchyNode, indent: int = 0) -> str:
    """
    Render a call hierarchy as an indented text dump.

    Example:
        Player.Update
          Calls:
            - Player.Move
    """
    prefix = " " * (indent * 2)
    lines = [f"{prefix}{node.symbol.key}"]

    if node.callers:
        lines.append(f"{prefix}  Called by:")
        lines.extend(f"{prefix}    - {c.symbol.key}" for c in node.callers)

    if node.callees:
        lines.append(f"{prefix}  Calls:")
        lines.extend(f"{prefix}    - {c.symbol.key}" for c in node.callees)

    return "\n".join(lines) + "\n"


def format_preview(preview: RefactoringPreview, context_lines: int = 3) -> str:
    """Render a preview as its summary, the safety findings and a diff per file."""
    report = preview.safety_report
    lines = [preview.summary(), report.summary()]
    lines.extend(f"  blocker: {b}" for b in report.blockers)
    lines.extend(f"  warning: {w}" for w in report.warnings)

    for diff in preview.diffs:
        lines.append("")
        lines.append(diff.simple_diff(context_lines))

    return "\n".join(lines) + "\n"


def preview_to_dict(preview: RefactoringPreview) -> dict[str, Any]:
    """
    Convert a preview to a dictionary for JSON serialization.

    Args:
        preview: The prepared preview.

    Returns:
        Dictionary representation, with a unified diff per affected file.
    """
    return {
        "operation": preview.operation.value,
        "target_symbol": preview.target_symbol.to_dict(),
        "safety_report": preview.safety_report.to_dict(),
        "can_proceed": preview.can_proceed,
        "affected_files": list(preview.affected_files),
        "total_changes": preview.total_changes,
        "summary": preview.summary(),
        "diffs": [
            {"file_path": d.file_path, "diff": d.simple_diff()}
            for d in preview.diffs
        ],
    }
