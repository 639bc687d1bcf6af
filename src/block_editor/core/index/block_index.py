"""Ordered block index with a pending-diff overlay."""

import dataclasses
from collections.abc import Iterable, Sequence

from block_editor.config import PREVIEW_LENGTH
from block_editor.models.block import (
    Block,
    BlockContext,
    BlockSummary,
    BlockType,
    DiffAction,
    PendingDiff,
)


def make_preview(content: str, length: int = PREVIEW_LENGTH) -> str:
    return content[:length] + ("..." if len(content) > length else "")


class BlockIndex:
    """Authoritative ordered list of blocks for one document.

    The index never applies pending diffs itself. Callers pass the diff list
    to the ``get_effective_*`` methods to see content as it would look once
    the diffs are accepted.
    """

    def __init__(self, blocks: Iterable[Block] = ()) -> None:
        self._by_id: dict[str, Block] = {}
        self._ordered: list[Block] = []
        self.set_blocks(blocks)

    def set_blocks(self, blocks: Iterable[Block]) -> None:
        """Replace all blocks, re-deriving a dense 0-based ``order``."""
        ordered = sorted(blocks, key=lambda b: b.order)
        self._ordered = [
            b if b.order == i else dataclasses.replace(b, order=i) for i, b in enumerate(ordered)
        ]
        self._by_id = {b.id: b for b in self._ordered}

    def get_blocks(self) -> list[Block]:
        return list(self._ordered)

    def get_block_index(self) -> list[BlockSummary]:
        return [
            BlockSummary(id=b.id, type=b.type, preview=make_preview(b.content), order=b.order)
            for b in self._ordered
        ]

    def get_by_id(self, block_id: str) -> Block | None:
        return self._by_id.get(block_id)

    def get_by_ids(self, block_ids: Sequence[str]) -> list[Block]:
        """Return known blocks in the order requested, dropping unknown ids."""
        return [self._by_id[i] for i in block_ids if i in self._by_id]

    def get_by_order(self, order: int) -> Block | None:
        if 0 <= order < len(self._ordered):
            return self._ordered[order]
        return None

    def get_by_type(self, block_type: BlockType) -> list[Block]:
        return [b for b in self._ordered if b.type == block_type]

    def get_with_context(self, block_id: str, context_size: int = 1) -> BlockContext:
        """Get a block plus up to ``context_size`` neighbours on each side."""
        block = self._by_id.get(block_id)
        if block is None:
            return BlockContext(block=None)

        idx = block.order
        before = self._ordered[max(0, idx - context_size) : idx]
        after = self._ordered[idx + 1 : idx + 1 + context_size]
        return BlockContext(block=block, before=tuple(before), after=tuple(after))

    def get_effective_content(
        self, block_id: str, pending_diffs: Sequence[PendingDiff]
    ) -> str | None:
        """Content after the overlay, or None when the block is deleted or unknown.

        The newest diff touching the block wins: a ``delete`` hides it, an
        ``update`` replaces its content.
        """
        for diff in reversed(pending_diffs):
            if diff.block_id != block_id:
                continue
            if diff.action == DiffAction.DELETE:
                return None
            if diff.action == DiffAction.UPDATE:
                return diff.new_content

        block = self._by_id.get(block_id)
        return block.content if block is not None else None

    def get_effective_block(
        self, block_id: str, pending_diffs: Sequence[PendingDiff]
    ) -> Block | None:
        block = self._by_id.get(block_id)
        if block is None:
            return None

        content = self.get_effective_content(block_id, pending_diffs)
        if content is None:
            return None
        return dataclasses.replace(block, content=content)

    def search(self, keyword: str) -> list[Block]:
        """Case-insensitive substring search over raw block content."""
        needle = keyword.lower()
        return [b for b in self._ordered if needle in b.content.lower()]

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._by_id
