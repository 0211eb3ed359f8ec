"""FastAPI REST API for symbol queries and refactorings."""

import logging
import os
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .config_store import ConfigStore
from .errors import (
    ApplyFailureError,
    ConfigExistsError,
    ConfigNotFoundError,
    InvalidConfigError,
    InvalidLineRangeError,
    InvalidLocationError,
    InvalidSchemaVersionError,
    PreviewNotFoundError,
    RefscopeError,
    SymbolNotFoundError,
    UnsupportedLanguageError,
)
from .models import CodeSymbol, SymbolKind
from .refactoring import ExtractMethodOperation, RefactoringOperation, RenameOperation
from .render import format_call_hierarchy, preview_to_dict
from .semantic import supported_languages
from .symbol_index import SymbolIndex

logger = logging.getLogger(__name__)

ROOT_ENV_VAR = "REFSCOPE_ROOT"


# --- Pydantic Schemas ---


class SymbolSchema(BaseModel):
    name: str
    kind: str
    file_path: str
    start_line: int
    end_line: int
    parent_class: Optional[str] = None
    signature: str = ""
    modifiers: list[str] = []
    attributes: list[str] = []
    is_framework_lifecycle_method: bool = False
    is_serialization_exposed_field: bool = False


class SymbolListResponse(BaseModel):
    symbols: list[SymbolSchema]
    count: int


class ReferenceSchema(BaseModel):
    file_path: str
    line: int
    column: int
    context: str


class ReferenceListResponse(BaseModel):
    name: str
    references: list[ReferenceSchema]
    count: int


class IndexBuildResponse(BaseModel):
    root: str
    symbol_count: int
    file_count: int
    generation: int


class RenameRequest(BaseModel):
    symbol: str = Field(..., description="Symbol name or 'Class.Member'")
    new_name: str = Field(..., description="New identifier")


class ExtractMethodRequest(BaseModel):
    symbol: str = Field(..., description="Containing method name or 'Class.Method'")
    selection: str = Field(..., description="Verbatim code fragment to extract")
    new_method_name: str = Field(..., description="Name of the new method")


class ApplyResultSchema(BaseModel):
    id: str
    success: bool
    files_changed: list[str]
    change_count: int
    error: Optional[str] = None
    restored_files: list[str] = []
    restore_errors: list[str] = []


class ErrorResponse(BaseModel):
    detail: str
    error_type: str


# --- Workspace ---


class Workspace:
    """
    Process-wide state for one project root.

    Holds the symbol index and the prepared operations awaiting approval.
    Every index query, prepare, register and apply runs under the lock, so
    no request observes a half-rebuilt table and at most one apply is in
    flight.
    """

    def __init__(self, root: Path):
        self.root = root
        self.store = ConfigStore(root)
        self.config = self.store.load_or_default()
        self.index = SymbolIndex(self.config)
        self.operations: dict[str, RefactoringOperation] = {}
        self.lock = threading.Lock()
        self.built = False

    @contextmanager
    def locked_index(self, rebuild: bool = False) -> Iterator[SymbolIndex]:
        """Hold the lock and yield the index, building it on first use."""
        with self.lock:
            if rebuild or not self.built:
                self._rebuild()
            yield self.index

    def on_project_changed(self, files: tuple[str, ...]) -> None:
        """Rebuild the index after an apply; called with the lock held."""
        logger.info("Project changed (%d file(s)), rebuilding index", len(files))
        self._rebuild()
        # Prepared offsets refer to the old file contents
        self.operations.clear()

    def register(self, op: RefactoringOperation) -> str:
        """Store a prepared operation; called with the lock held."""
        op_id = uuid.uuid4().hex
        self.operations[op_id] = op
        return op_id

    def get_operation(self, op_id: str) -> RefactoringOperation:
        op = self.operations.get(op_id)
        if op is None:
            raise PreviewNotFoundError(op_id)
        return op

    def _rebuild(self) -> None:
        self.index.build_symbol_table(self.root)
        self.built = True


_workspace: Optional[Workspace] = None
_workspace_lock = threading.Lock()


def workspace_root() -> Path:
    """Project root from $REFSCOPE_ROOT, else the current directory."""
    return Path(os.environ.get(ROOT_ENV_VAR) or Path.cwd()).absolute()


def get_workspace() -> Workspace:
    """Get the workspace, recreating it when the configured root changes."""
    global _workspace
    root = workspace_root()
    with _workspace_lock:
        if _workspace is None or _workspace.root != root:
            _workspace = Workspace(root)
        return _workspace


def reset_workspace() -> None:
    """Drop the cached workspace. Mainly for testing."""
    global _workspace
    with _workspace_lock:
        _workspace = None


def symbol_to_schema(symbol: CodeSymbol) -> SymbolSchema:
    return SymbolSchema(**symbol.to_dict())


def require_symbol(index: SymbolIndex, name: str) -> CodeSymbol:
    symbol = index.find_symbol(name)
    if symbol is None:
        raise SymbolNotFoundError(name)
    return symbol


def symbol_list(symbols: list[CodeSymbol]) -> SymbolListResponse:
    return SymbolListResponse(
        symbols=[symbol_to_schema(s) for s in symbols], count=len(symbols)
    )


# --- App ---


app = FastAPI(
    title="refscope API",
    description="C# symbol resolution and safety-checked refactoring",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Global Exception Handler ---


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    ConfigNotFoundError: 409,
    ConfigExistsError: 409,
    InvalidSchemaVersionError: 500,
    InvalidConfigError: 500,
    UnsupportedLanguageError: 400,
    SymbolNotFoundError: 404,
    InvalidLocationError: 400,
    InvalidLineRangeError: 400,
    PreviewNotFoundError: 404,
    ApplyFailureError: 500,
}


@app.exception_handler(RefscopeError)
async def refscope_error_handler(request: Request, exc: RefscopeError) -> JSONResponse:
    """Map RefscopeError subclasses to appropriate HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error_type": type(exc).__name__},
    )


# --- Endpoints ---


@app.get("/api/health")
def health_check():
    """Report the project root and index state without building it."""
    ws = get_workspace()
    return {
        "status": "ok",
        "root": str(ws.root),
        "config_initialized": ws.store.exists(),
        "language": ws.config.language,
        "supported_languages": supported_languages(),
        "indexed": ws.built,
        "symbol_count": ws.index.symbol_count,
    }


@app.post("/api/index/build", response_model=IndexBuildResponse)
def build_index():
    """Rescan the project and rebuild the symbol table."""
    ws = get_workspace()
    with ws.locked_index(rebuild=True) as index:
        return IndexBuildResponse(
            root=str(ws.root),
            symbol_count=index.symbol_count,
            file_count=len(index.project_files),
            generation=index.generation,
        )


# --- Symbol Endpoints ---


@app.get("/api/symbols", response_model=SymbolListResponse)
def search_symbols(
    pattern: str = Query(default="", description="Case-insensitive name substring"),
    kind: Optional[SymbolKind] = Query(default=None, description="Filter by kind"),
):
    with get_workspace().locked_index() as index:
        return symbol_list(index.search_symbols(pattern, kind))


@app.get("/api/symbols/{name}", response_model=SymbolSchema)
def get_symbol(name: str):
    with get_workspace().locked_index() as index:
        return symbol_to_schema(require_symbol(index, name))


@app.get("/api/files/symbols", response_model=SymbolListResponse)
def get_file_symbols(path: str = Query(..., description="File path relative to the root")):
    with get_workspace().locked_index() as index:
        return symbol_list(index.symbols_in_file(path))


@app.get("/api/classes/{name}/methods", response_model=SymbolListResponse)
def get_class_methods(name: str):
    with get_workspace().locked_index() as index:
        return symbol_list(index.class_methods(name))


@app.get("/api/classes/{name}/fields", response_model=SymbolListResponse)
def get_class_fields(name: str):
    with get_workspace().locked_index() as index:
        return symbol_list(index.class_fields(name))


@app.get("/api/references/{name}", response_model=ReferenceListResponse)
def get_references(name: str):
    with get_workspace().locked_index() as index:
        references = index.get_references(name)
    return ReferenceListResponse(
        name=name,
        references=[ReferenceSchema(**r.to_dict()) for r in references],
        count=len(references),
    )


@app.get("/api/call-hierarchy/{name}")
def get_call_hierarchy(name: str, max_depth: int = Query(default=3, ge=1)):
    """Direct callers and callees of a method, as a tree and as text."""
    with get_workspace().locked_index() as index:
        node = index.get_call_hierarchy(require_symbol(index, name), max_depth=max_depth)
    return {"hierarchy": node.to_dict(), "text": format_call_hierarchy(node)}


# --- Refactoring Endpoints ---


@app.post("/api/refactorings/rename", status_code=201)
def prepare_rename(request: RenameRequest):
    """Prepare a rename and register it for a later apply."""
    ws = get_workspace()
    with ws.locked_index() as index:
        symbol = require_symbol(index, request.symbol)
        op = RenameOperation(
            index, symbol, request.new_name, on_project_changed=ws.on_project_changed
        )
        preview = op.prepare()
        op_id = ws.register(op)
    return {"id": op_id, "preview": preview_to_dict(preview)}


@app.post("/api/refactorings/extract-method", status_code=201)
def prepare_extract_method(request: ExtractMethodRequest):
    """Prepare a method extraction and register it for a later apply."""
    ws = get_workspace()
    with ws.locked_index() as index:
        symbol = require_symbol(index, request.symbol)
        op = ExtractMethodOperation(
            index,
            symbol,
            request.selection,
            request.new_method_name,
            on_project_changed=ws.on_project_changed,
        )
        preview = op.prepare()
        op_id = ws.register(op)
    return {"id": op_id, "preview": preview_to_dict(preview)}


@app.get("/api/refactorings/{op_id}/diff")
def get_refactoring_diff(op_id: str):
    ws = get_workspace()
    with ws.lock:
        op = ws.get_operation(op_id)
        state = op.state
    preview = op.preview
    return {
        "id": op_id,
        "state": state.value,
        "summary": preview.summary() if preview else "",
        "diffs": [
            {"file_path": d.file_path, "diff": d.simple_diff()}
            for d in (preview.diffs if preview else ())
        ],
    }


@app.post("/api/refactorings/{op_id}/apply", response_model=ApplyResultSchema)
def apply_refactoring(op_id: str):
    """
    Commit a prepared refactoring.

    On success the index is rebuilt and every prepared operation is
    discarded, since their offsets refer to the previous file contents.
    """
    ws = get_workspace()
    with ws.lock:
        op = ws.get_operation(op_id)
        result = op.apply()
        ws.operations.pop(op_id, None)
    return ApplyResultSchema(id=op_id, **result.to_dict())
