"""Command-line interface for refscope."""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .config_store import AnalyzerConfig, ConfigStore
from .errors import InvalidLineRangeError, RefscopeError, SymbolNotFoundError
from .models import CodeSymbol, OperationKind, SymbolKind
from .refactoring import ExtractMethodOperation, RefactoringOperation, RenameOperation
from .render import format_call_hierarchy, format_preview, format_symbol, preview_to_dict
from .safety import SafetyAnalyzer
from .symbol_index import SymbolIndex
from .utils import parse_line_range


def get_store(args: argparse.Namespace) -> ConfigStore:
    """Get the ConfigStore for the selected project root."""
    return ConfigStore(Path(args.root).absolute())


def load_index(args: argparse.Namespace) -> tuple[AnalyzerConfig, SymbolIndex]:
    """Load the project config (or the preset) and build a fresh symbol index."""
    store = get_store(args)
    config = store.load_or_default()
    index = SymbolIndex(config)
    index.build_symbol_table(store.project_root)
    return config, index


def require_symbol(index: SymbolIndex, name: str) -> CodeSymbol:
    symbol = index.find_symbol(name)
    if symbol is None:
        raise SymbolNotFoundError(name)
    return symbol


def cmd_init(args: argparse.Namespace) -> int:
    """Write the default analyzer config into the project root."""
    try:
        store = get_store(args)
        config = store.init(force=args.force)

        print(f"Initialized refscope at {store.config_path}")
        print(f"Language: {config.language}")
        print(f"Lifecycle methods: {len(config.lifecycle_methods)}")
        return 0

    except RefscopeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_symbols(args: argparse.Namespace) -> int:
    """List the symbols declared in one file."""
    try:
        _, index = load_index(args)
        symbols = index.symbols_in_file(args.path)

        if args.kind:
            symbols = [s for s in symbols if s.kind == SymbolKind(args.kind)]
        if args.grep:
            symbols = [s for s in symbols if args.grep in s.key]

        if args.json:
            print(json.dumps([s.to_dict() for s in symbols], indent=2))
            return 0

        if not symbols:
            print(f"No symbols found in {args.path}")
            return 0

        print(f"Symbols in {args.path} ({len(symbols)}):")
        print()
        for s in symbols:
            lines_str = (
                f"{s.start_line}"
                if s.start_line == s.end_line
                else f"{s.start_line}-{s.end_line}"
            )
            print(f"  {s.kind.value:<10} {s.key}")
            print(f"             Lines:     {lines_str}")
            if s.signature:
                print(f"             Signature: {s.signature}")
        return 0

    except RefscopeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_search(args: argparse.Namespace) -> int:
    """Search symbols project-wide by name substring."""
    try:
        _, index = load_index(args)
        kind = SymbolKind(args.kind) if args.kind else None
        symbols = index.search_symbols(args.pattern, kind)

        if args.json:
            print(json.dumps([s.to_dict() for s in symbols], indent=2))
            return 0

        if not symbols:
            print(f"No symbols matching '{args.pattern}'")
            return 0

        for s in symbols:
            print(format_symbol(s))
        return 0

    except RefscopeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_refs(args: argparse.Namespace) -> int:
    """List whole-word references to a name."""
    try:
        _, index = load_index(args)
        references = index.get_references(args.name)

        if args.json:
            print(json.dumps([r.to_dict() for r in references], indent=2))
            return 0

        print(f"References to '{args.name}' ({len(references)}):")
        for r in references:
            print(f"  {r.file_path}:{r.line}:{r.column}  {r.context}")
        return 0

    except RefscopeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_calls(args: argparse.Namespace) -> int:
    """Show the direct callers and callees of a method."""
    try:
        _, index = load_index(args)
        symbol = require_symbol(index, args.symbol)
        if symbol.kind != SymbolKind.METHOD:
            print(f"Error: '{symbol.key}' is a {symbol.kind.value}, not a method", file=sys.stderr)
            return 1

        node = index.get_call_hierarchy(symbol, max_depth=args.depth)
        print(format_call_hierarchy(node), end="")
        return 0

    except RefscopeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_check(args: argparse.Namespace) -> int:
    """Assess the risk of an operation on a symbol."""
    try:
        config, index = load_index(args)
        symbol = require_symbol(index, args.symbol)

        safety = SafetyAnalyzer(
            index.root, config, file_filter=index.default_file_filter(index.root)
        )
        report = safety.check_safety(symbol, OperationKind(args.operation), args.new_name)

        if args.json:
            print(json.dumps(report.to_dict(), indent=2))
        else:
            print(f"{args.operation} {symbol.key}: {report.summary()}")
            for blocker in report.blockers:
                print(f"  blocker: {blocker}")
            for warning in report.warnings:
                print(f"  warning: {warning}")

        return 0 if report.can_proceed else 1

    except RefscopeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _run_operation(op: RefactoringOperation, args: argparse.Namespace) -> int:
    """Print the preview, then apply when requested and not blocked."""
    preview = op.prepare()

    if args.json:
        data = preview_to_dict(preview)
    else:
        print(format_preview(preview), end="")

    if not preview.can_proceed:
        if args.json:
            print(json.dumps(data, indent=2))
        return 1

    if not args.apply:
        if args.json:
            print(json.dumps(data, indent=2))
        else:
            print()
            print("Dry run. Re-run with --apply to write these changes.")
        return 0

    result = op.apply()
    if args.json:
        data["apply_result"] = result.to_dict()
        print(json.dumps(data, indent=2))
    elif result.success:
        print()
        print(f"Applied {result.change_count} change(s) to {len(result.files_changed)} file(s)")
    else:
        print(f"Error: {result.error}", file=sys.stderr)
        if result.restored_files:
            print(f"Restored {len(result.restored_files)} file(s) from backup", file=sys.stderr)
        for path in result.restore_errors:
            print(f"Warning: could not restore {path}", file=sys.stderr)

    return 0 if result.success else 1


def cmd_rename(args: argparse.Namespace) -> int:
    """Rename a symbol across the project."""
    try:
        _, index = load_index(args)
        symbol = require_symbol(index, args.symbol)
        return _run_operation(RenameOperation(index, symbol, args.new_name), args)

    except RefscopeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_extract(args: argparse.Namespace) -> int:
    """Extract a range of lines of a method into a new method."""
    try:
        start, end = parse_line_range(args.lines)
        _, index = load_index(args)
        symbol = require_symbol(index, args.symbol)
        if symbol.kind != SymbolKind.METHOD:
            print(f"Error: '{symbol.key}' is a {symbol.kind.value}, not a method", file=sys.stderr)
            return 1

        # Numbered the way the analyzer numbers lines: split on "\n" only
        content = index.fs.read_text(symbol.file_path)
        lines = content.split("\n")
        line_count = len(lines) - 1 if content.endswith("\n") else len(lines)
        if end > line_count:
            raise InvalidLineRangeError(
                start, end, f"exceeds file length ({line_count} lines)"
            )
        selection = "\n".join(lines[start - 1 : end])
        if end < len(lines):
            selection += "\n"

        op = ExtractMethodOperation(index, symbol, selection, args.new_name)
        return _run_operation(op, args)

    except RefscopeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import os

        import uvicorn

        root = Path(args.root).absolute()
        os.environ["REFSCOPE_ROOT"] = str(root)

        print("Starting refscope API server...")
        print(f"Project root: {root}")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "refscope.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,  # Applies are serialized in-process
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="refscope",
        description="Resolve C# symbols and run safety-checked refactorings.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--root", "-r", default=".", help="Project root directory (default: current directory)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    kinds = [k.value for k in SymbolKind]
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init
    init_parser = subparsers.add_parser("init", help="Write the default refscope.json")
    init_parser.add_argument(
        "--force", "-f", action="store_true", help="Overwrite existing config"
    )

    # symbols
    symbols_parser = subparsers.add_parser("symbols", help="List the symbols in a file")
    symbols_parser.add_argument("path", help="File path, relative to the project root")
    symbols_parser.add_argument("--kind", choices=kinds, help="Filter by symbol kind")
    symbols_parser.add_argument("--grep", help="Filter by name substring")
    symbols_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # search
    search_parser = subparsers.add_parser("search", help="Search symbols by name")
    search_parser.add_argument("pattern", help="Case-insensitive name substring")
    search_parser.add_argument("--kind", choices=kinds, help="Filter by symbol kind")
    search_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # refs
    refs_parser = subparsers.add_parser("refs", help="Find whole-word references to a name")
    refs_parser.add_argument("name", help="Identifier to search for")
    refs_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # calls
    calls_parser = subparsers.add_parser("calls", help="Show callers and callees of a method")
    calls_parser.add_argument("symbol", help="Method name or 'Class.Method'")
    calls_parser.add_argument(
        "--depth", type=int, default=3, help="Maximum expansion depth (default: 3)"
    )

    # check
    check_parser = subparsers.add_parser("check", help="Assess the risk of an operation")
    check_parser.add_argument("symbol", help="Symbol name or 'Class.Member'")
    check_parser.add_argument(
        "--operation", "-o",
        choices=[k.value for k in OperationKind],
        default=OperationKind.RENAME.value,
        help="Operation to assess (default: rename)",
    )
    check_parser.add_argument("--new-name", help="Proposed new name")
    check_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # rename
    rename_parser = subparsers.add_parser("rename", help="Rename a symbol project-wide")
    rename_parser.add_argument("symbol", help="Symbol name or 'Class.Member'")
    rename_parser.add_argument("new_name", help="New identifier")
    rename_parser.add_argument(
        "--apply", action="store_true", help="Write the changes (default: preview only)"
    )
    rename_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # extract
    extract_parser = subparsers.add_parser(
        "extract", help="Extract lines of a method into a new method"
    )
    extract_parser.add_argument("symbol", help="Containing method name or 'Class.Method'")
    extract_parser.add_argument("new_name", help="Name of the new method")
    extract_parser.add_argument(
        "--lines", "-l", required=True, help="Line range to extract: 'start-end'"
    )
    extract_parser.add_argument(
        "--apply", action="store_true", help="Write the changes (default: preview only)"
    )
    extract_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "init": cmd_init,
        "symbols": cmd_symbols,
        "search": cmd_search,
        "refs": cmd_refs,
        "calls": cmd_calls,
        "check": cmd_check,
        "rename": cmd_rename,
        "extract": cmd_extract,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
