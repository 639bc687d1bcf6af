"""MCP server exposing the block tools over a directory of markdown documents."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from block_editor.config import resolve_documents_directory
from block_editor.core.documents.session import AgentSession
from block_editor.core.documents.store import EditorStore
from block_editor.core.markdown.diffing import diff_for_pending, format_diff_for_display
from block_editor.errors import ToolArgumentError, UnknownToolError

# --- Core functions (testable without MCP context) ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    session: AgentSession
    paths: dict[str, Path]
    store: EditorStore = field(init=False)
    tool_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def __post_init__(self) -> None:
        self.store = EditorStore(self.session)


def load_documents(directory: Path | None) -> ServerContext:
    """Open every ``*.md`` file in ``directory`` as a document, sorted by name."""
    session = AgentSession.from_documents(())
    paths: dict[str, Path] = {}
    if directory is None or not directory.is_dir():
        logger.warning("No documents directory found; starting with no documents")
        return ServerContext(session=session, paths=paths)

    for path in sorted(directory.glob("*.md")):
        doc_id = session.add_document(name=path.stem, content=path.read_text(encoding="utf-8"))
        paths[doc_id] = path
    logger.info("Loaded {} documents from {}", len(paths), directory)
    return ServerContext(session=session, paths=paths)


def call_tool(ctx: ServerContext, name: str, args: dict[str, Any] | None = None) -> dict[str, Any]:
    """Run an agent tool, reporting bad arguments as an ``error`` result."""
    try:
        return ctx.session.run_tool(name, args)
    except (ToolArgumentError, UnknownToolError) as e:
        return {"error": str(e)}


def save_active_document(ctx: ServerContext) -> dict[str, Any]:
    doc = ctx.session.manager.get_active_document()
    if doc is None:
        return {"error": "No active document."}
    path = ctx.paths.get(doc.id)
    if path is None:
        return {"error": f"Document '{doc.id}' has no file on disk."}
    path.write_text(doc.content + "\n", encoding="utf-8")
    ctx.session.manager.mark_document_clean(doc.id)
    logger.info("Saved {} to {}", doc.id, path)
    return {"doc_id": doc.id, "path": str(path), "saved": True}


def describe_pending_diffs(ctx: ServerContext) -> dict[str, Any]:
    """Render the active document's pending diffs as line diffs for review."""
    diffs = []
    for diff in ctx.session.pending_diffs:
        rendered = diff_for_pending(diff)
        diffs.append(
            {
                "diff_id": diff.id,
                "action": str(diff.action),
                "block_id": diff.block_id,
                "reason": diff.reason,
                "additions": rendered.additions,
                "deletions": rendered.deletions,
                "diff": format_diff_for_display(rendered),
            }
        )
    return {"doc_id": ctx.session.active_doc_id, "count": len(diffs), "diffs": diffs}


def review_pending_diffs(
    ctx: ServerContext, *, accept: bool, diff_id: str | None = None
) -> dict[str, Any]:
    """Apply or reject pending diffs of the active document.

    Accepted changes are written back to the document's file.

    Args:
        accept: Apply when True, reject when False.
        diff_id: A single diff to review; all pending diffs when None.
    """
    if ctx.session.active_doc_id is None:
        return {"error": "No active document."}

    if diff_id is None:
        if accept:
            count = ctx.store.apply_all_diffs()
        else:
            count = len(ctx.session.pending_diffs)
            ctx.store.reject_all_diffs()
    else:
        done = ctx.store.apply_diff(diff_id) if accept else ctx.store.reject_diff(diff_id)
        if not done:
            verb = "applied" if accept else "rejected"
            return {"error": f"Diff '{diff_id}' could not be {verb}."}
        count = 1

    result: dict[str, Any] = {
        "doc_id": ctx.session.active_doc_id,
        "applied" if accept else "rejected": count,
        "pending_diffs": len(ctx.session.pending_diffs),
    }
    if accept and count:
        result.update(save_active_document(ctx))
    return result


# --- MCP Server Setup ---


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Load documents on startup."""
    yield load_documents(resolve_documents_directory())


mcp_server = FastMCP(
    "block-editor",
    instructions="""\
Documents are split into blocks (headings, paragraphs, code, list items).
Edits are queued as pending diffs and only reach the file once reviewed.

## Workflow
1. list_blocks_tool to see the outline of the active document.
2. read_blocks_tool on every block you intend to edit or delete.
3. edit_blocks_tool / add_blocks_tool / delete_blocks_tool, batching up to 25 items.
4. pending_diffs_tool to preview the changes, then review_diffs_tool to apply
   (and save) or reject them.

Use list_documents_tool and switch_document_tool to work on other documents.
Switching resets read state, so list and read again afterwards.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


async def _locked_call(mcp_ctx: Context, name: str, args: dict[str, Any]) -> dict[str, Any]:
    ctx = _ctx(mcp_ctx)
    async with ctx.tool_lock:
        return call_tool(ctx, name, args)


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def list_documents_tool(ctx: Context) -> dict[str, Any]:
    """List open documents with block counts and pending diff counts."""
    return await _locked_call(ctx, "list_documents", {})


@mcp_server.tool()
async def switch_document_tool(ctx: Context, doc_id: str) -> dict[str, Any]:
    """Make another document active. Resets read state.

    Args:
        doc_id: Document ID from list_documents_tool.
    """
    return await _locked_call(ctx, "switch_document", {"doc_id": doc_id})


@mcp_server.tool()
async def list_blocks_tool(ctx: Context) -> dict[str, Any]:
    """List every block of the active document with a short preview.

    Call this before any edit.
    """
    return await _locked_call(ctx, "list_blocks", {})


@mcp_server.tool()
async def read_blocks_tool(
    ctx: Context, block_ids: list[str], with_context: bool = False
) -> dict[str, Any]:
    """Read full block content, including pending edits.

    Args:
        block_ids: Block IDs to read (max 25).
        with_context: Also show previews of neighbouring blocks.
    """
    return await _locked_call(
        ctx, "read_blocks", {"block_ids": block_ids, "with_context": with_context}
    )


@mcp_server.tool()
async def edit_blocks_tool(ctx: Context, edits: list[dict[str, Any]]) -> dict[str, Any]:
    """Queue content changes for blocks you have read.

    Args:
        edits: Items of {"block_id", "new_content", "reason"} (max 25).
    """
    return await _locked_call(ctx, "edit_blocks", {"edits": edits})


@mcp_server.tool()
async def add_blocks_tool(ctx: Context, additions: list[dict[str, Any]]) -> dict[str, Any]:
    """Queue new blocks. Each addition goes after the previous one.

    Args:
        additions: Items of {"after_block_id", "type", "content", "level", "reason"}
            (max 25). Use "__start__" or null as after_block_id for the top.
    """
    return await _locked_call(ctx, "add_blocks", {"additions": additions})


@mcp_server.tool()
async def delete_blocks_tool(ctx: Context, deletions: list[dict[str, Any]]) -> dict[str, Any]:
    """Queue deletions for blocks you have read.

    Args:
        deletions: Items of {"block_id", "reason"} (max 25).
    """
    return await _locked_call(ctx, "delete_blocks", {"deletions": deletions})


@mcp_server.tool()
async def pending_diffs_tool(ctx: Context) -> dict[str, Any]:
    """Show the pending diffs of the active document as line diffs."""
    server_ctx = _ctx(ctx)
    async with server_ctx.tool_lock:
        return describe_pending_diffs(server_ctx)


@mcp_server.tool()
async def review_diffs_tool(
    ctx: Context, accept: bool, diff_id: str | None = None
) -> dict[str, Any]:
    """Apply or reject pending diffs of the active document.

    Applied changes are saved to the document's file.

    Args:
        accept: True to apply, False to reject.
        diff_id: A single diff ID; omit to review all pending diffs.
    """
    server_ctx = _ctx(ctx)
    async with server_ctx.tool_lock:
        return review_pending_diffs(server_ctx, accept=accept, diff_id=diff_id)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from block_editor.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
