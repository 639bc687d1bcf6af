"""Batch block tools the editing agent calls.

Each tool returns a JSON-serializable dict whose ``blocks`` or ``results``
array mirrors the (capped) input batch. Per-item failures are reported as
``{"ok": False, "error": ...}`` entries and never block the rest of the batch.
Tools only ever append pending diffs; merging them into the document is up
to the caller.
"""

import json
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from block_editor.config import CONTEXT_PREVIEW_LENGTH, MAX_BATCH_SIZE, MAX_CONTENT_LENGTH
from block_editor.core.guard.read_guard import ReadWriteGuard
from block_editor.core.index.block_index import BlockIndex, make_preview
from block_editor.core.runtime.cache import CachedRead, ReadCache
from block_editor.core.tools.schemas import (
    BLOCK_TOOL_ARGS,
    BlockAddition,
    BlockDeletion,
    BlockEdit,
    ToolArgs,
    parse_tool_args,
)
from block_editor.errors import UnknownToolError
from block_editor.models.block import (
    START_OF_DOCUMENT,
    AddPayload,
    Block,
    DiffAction,
    PendingDiff,
    generate_block_id,
    generate_diff_id,
)
from block_editor.protocols import DiffListener


@dataclass
class ToolContext:
    """Per-session state the tools operate on.

    ``pending_diffs`` is the active document's own diff list; the tools append
    to it in place.
    """

    block_index: BlockIndex
    guard: ReadWriteGuard
    pending_diffs: list[PendingDiff] = field(default_factory=list)
    cache: ReadCache = field(default_factory=ReadCache)
    on_diff_created: DiffListener | None = None
    doc_id: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.block_index, BlockIndex):
            msg = f"ToolContext requires a BlockIndex, got {type(self.block_index).__name__}"
            raise TypeError(msg)
        if not isinstance(self.guard, ReadWriteGuard):
            msg = f"ToolContext requires a ReadWriteGuard, got {type(self.guard).__name__}"
            raise TypeError(msg)

    def record_diff(self, diff: PendingDiff) -> None:
        self.pending_diffs.append(diff)
        if self.on_diff_created is not None:
            self.on_diff_created(diff)


def _failure(key: str, value: str | None, error: str | None) -> dict[str, Any]:
    return {key: value, "ok": False, "error": error}


def _too_long(content: str) -> str | None:
    if len(content) > MAX_CONTENT_LENGTH:
        return f"Content exceeds {MAX_CONTENT_LENGTH} characters ({len(content)} given)"
    return None


def list_blocks(ctx: ToolContext) -> dict[str, Any]:
    """List every block with a short preview and mark the document as read."""
    ctx.guard.mark_document_read()
    summaries = ctx.block_index.get_block_index()
    return {
        "count": len(summaries),
        "blocks": [s.to_dict() for s in summaries],
        "pending_diffs": len(ctx.pending_diffs),
    }


def _context_entry(ctx: ToolContext, block: Block) -> dict[str, Any]:
    content = ctx.block_index.get_effective_content(block.id, ctx.pending_diffs)
    if content is None:
        return {"id": block.id, "deleted": True}
    return {"id": block.id, "preview": make_preview(content, CONTEXT_PREVIEW_LENGTH)}


def _read_one(
    ctx: ToolContext, block_id: str, *, with_context: bool
) -> tuple[dict[str, Any], tuple[str, ...]]:
    found = ctx.block_index.get_with_context(block_id)
    if found.block is None:
        return _failure("id", block_id, "Block not found"), ()

    content = ctx.block_index.get_effective_content(block_id, ctx.pending_diffs)
    if content is None:
        return _failure("id", block_id, "Block already deleted"), ()

    item: dict[str, Any] = {
        "id": block_id,
        "ok": True,
        "type": str(found.block.type),
        "content": content,
    }
    if found.block.level is not None:
        item["level"] = found.block.level
    if not with_context:
        return item, ()

    item["context_before"] = [_context_entry(ctx, b) for b in found.before]
    item["context_after"] = [_context_entry(ctx, b) for b in found.after]
    return item, tuple(b.id for b in (*found.before, *found.after))


def read_blocks(
    ctx: ToolContext, block_ids: Sequence[str], *, with_context: bool = False
) -> dict[str, Any]:
    """Read blocks with pending edits applied, marking them (and any context) as read."""
    ids = list(block_ids)[:MAX_BATCH_SIZE]
    ctx.guard.mark_document_read()
    ctx.guard.mark_blocks_read(ids)

    overlay_version = len(ctx.pending_diffs)
    blocks: list[dict[str, Any]] = []
    for block_id in ids:
        key = ReadCache.key(block_id, with_context=with_context, overlay_version=overlay_version)
        cached = ctx.cache.get(key)
        if cached is None:
            item, context_ids = _read_one(ctx, block_id, with_context=with_context)
            cached = CachedRead(payload=json.dumps(item), context_ids=context_ids)
            ctx.cache.set(key, cached)
        else:
            logger.debug("Read cache hit for {}", block_id)
        # A cached read still counts as having seen its context blocks.
        ctx.guard.mark_blocks_read(cached.context_ids)
        blocks.append(json.loads(cached.payload))

    return {"blocks": blocks}


def edit_blocks(ctx: ToolContext, edits: Iterable[BlockEdit]) -> dict[str, Any]:
    """Queue content updates for blocks that have been read."""
    results: list[dict[str, Any]] = []
    created = 0
    for edit in list(edits)[:MAX_BATCH_SIZE]:
        check = ctx.guard.can_edit(edit.block_id)
        if not check.allowed:
            results.append(_failure("block_id", edit.block_id, check.error))
            continue

        if error := _too_long(edit.new_content):
            results.append(_failure("block_id", edit.block_id, error))
            continue

        # Chained edits diff against the newest pending content, not the original.
        old_content = ctx.block_index.get_effective_content(edit.block_id, ctx.pending_diffs)
        if old_content is None:
            results.append(_failure("block_id", edit.block_id, "Block not found or deleted"))
            continue

        diff = PendingDiff(
            id=generate_diff_id(),
            block_id=edit.block_id,
            action=DiffAction.UPDATE,
            old_content=old_content,
            new_content=edit.new_content,
            reason=edit.reason,
            doc_id=ctx.doc_id,
        )
        ctx.record_diff(diff)
        created += 1
        results.append({"block_id": edit.block_id, "ok": True, "diff_id": diff.id})

    if created:
        ctx.cache.invalidate()
    logger.debug("edit_blocks queued {} of {} edits", created, len(results))
    return {"results": results}


def _pending_add_ids(ctx: ToolContext) -> set[str]:
    return {
        d.new_block_id
        for d in ctx.pending_diffs
        if d.action == DiffAction.ADD and d.new_block_id is not None
    }


def _anchor_error(ctx: ToolContext, anchor: str, batch_ids: set[str]) -> str | None:
    if anchor == START_OF_DOCUMENT or anchor in batch_ids:
        return None
    if anchor in ctx.block_index:
        if ctx.block_index.get_effective_content(anchor, ctx.pending_diffs) is None:
            return f'Block "{anchor}" already deleted'
        return None
    if anchor in _pending_add_ids(ctx):
        return None
    return f'Block "{anchor}" not found'


def add_blocks(ctx: ToolContext, additions: Iterable[BlockAddition]) -> dict[str, Any]:
    """Queue new blocks, chaining every addition after the previous one in the batch.

    New block ids are allocated before their diff is recorded, so later
    additions in the same batch (and later calls) can anchor on blocks that
    do not exist in the document yet.
    """
    results: list[dict[str, Any]] = []
    batch_ids: set[str] = set()
    previous_new_id: str | None = None

    for addition in list(additions)[:MAX_BATCH_SIZE]:
        if previous_new_id is not None:
            anchor = previous_new_id
        else:
            anchor = addition.after_block_id or START_OF_DOCUMENT

        check = ctx.guard.can_add()
        if not check.allowed:
            results.append(_failure("after_block_id", anchor, check.error))
            continue

        content = addition.content.strip()
        if not content:
            results.append(
                _failure(
                    "after_block_id",
                    anchor,
                    "Content cannot be empty or whitespace-only. Provide meaningful content.",
                )
            )
            continue

        if error := _too_long(addition.content):
            results.append(_failure("after_block_id", anchor, error))
            continue

        if error := _anchor_error(ctx, anchor, batch_ids):
            results.append(_failure("after_block_id", anchor, error))
            continue

        new_block_id = generate_block_id()
        payload = AddPayload(type=addition.type, content=content, level=addition.level)
        diff = PendingDiff(
            id=generate_diff_id(),
            block_id=anchor,
            action=DiffAction.ADD,
            old_content="",
            new_content=payload.to_json(),
            reason=addition.reason,
            new_block_id=new_block_id,
            doc_id=ctx.doc_id,
        )
        ctx.record_diff(diff)
        batch_ids.add(new_block_id)
        previous_new_id = new_block_id
        results.append(
            {
                "after_block_id": anchor,
                "ok": True,
                "diff_id": diff.id,
                "new_block_id": new_block_id,
            }
        )

    if batch_ids:
        ctx.cache.invalidate()
    logger.debug("add_blocks queued {} of {} additions", len(batch_ids), len(results))
    return {"results": results}


def delete_blocks(ctx: ToolContext, deletions: Iterable[BlockDeletion]) -> dict[str, Any]:
    """Queue deletions for blocks that have been read and still exist."""
    batch = list(deletions)[:MAX_BATCH_SIZE]
    check = ctx.guard.can_delete_blocks(d.block_id for d in batch)

    results: list[dict[str, Any]] = []
    created = 0
    for deletion in batch:
        if deletion.block_id in check.errors:
            results.append(_failure("block_id", deletion.block_id, check.errors[deletion.block_id]))
            continue

        content = ctx.block_index.get_effective_content(deletion.block_id, ctx.pending_diffs)
        if content is None:
            if deletion.block_id in ctx.block_index:
                error = f'Block "{deletion.block_id}" already deleted'
            else:
                error = f'Block "{deletion.block_id}" not found'
            results.append(_failure("block_id", deletion.block_id, error))
            continue

        diff = PendingDiff(
            id=generate_diff_id(),
            block_id=deletion.block_id,
            action=DiffAction.DELETE,
            old_content=content,
            new_content="",
            reason=deletion.reason,
            doc_id=ctx.doc_id,
        )
        ctx.record_diff(diff)
        created += 1
        results.append({"block_id": deletion.block_id, "ok": True, "diff_id": diff.id})

    if created:
        ctx.cache.invalidate()
    logger.debug("delete_blocks queued {} of {} deletions", created, len(results))
    return {"results": results}


ToolHandler = Callable[[ToolContext, Any], dict[str, Any]]

_BLOCK_HANDLERS: dict[str, ToolHandler] = {
    "list_blocks": lambda ctx, _args: list_blocks(ctx),
    "read_blocks": lambda ctx, args: read_blocks(
        ctx, args.block_ids, with_context=args.with_context
    ),
    "edit_blocks": lambda ctx, args: edit_blocks(ctx, args.edits),
    "add_blocks": lambda ctx, args: add_blocks(ctx, args.additions),
    "delete_blocks": lambda ctx, args: delete_blocks(ctx, args.deletions),
}

BLOCK_TOOL_NAMES: tuple[str, ...] = tuple(_BLOCK_HANDLERS)


def run_block_tool(ctx: ToolContext, name: str, args: dict[str, Any] | None) -> dict[str, Any]:
    """Validate arguments and run a block tool by name."""
    handler = _BLOCK_HANDLERS.get(name)
    if handler is None:
        raise UnknownToolError(name, list(BLOCK_TOOL_NAMES))
    model: type[ToolArgs] = BLOCK_TOOL_ARGS[name]
    return handler(ctx, parse_tool_args(name, model, args))


def execute_tool(ctx: ToolContext, name: str, args: dict[str, Any] | None) -> str:
    """Run a block tool and return its result as a JSON string."""
    return json.dumps(run_block_tool(ctx, name, args), ensure_ascii=False)

