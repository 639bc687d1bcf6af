"""Read-before-write enforcement for agent tools."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum


class GuardDenial(StrEnum):
    NEEDS_DOCUMENT_READ = "needs_document_read"
    NEEDS_BLOCK_READ = "needs_block_read"


@dataclass(frozen=True)
class GuardCheck:
    allowed: bool
    error: str | None = None
    denial: GuardDenial | None = None


@dataclass(frozen=True)
class BatchGuardCheck:
    """Result of checking several ids at once; ``errors`` has one entry per failing id."""

    allowed: bool
    errors: dict[str, str] = field(default_factory=dict)


_ALLOWED = GuardCheck(allowed=True)


class ReadWriteGuard:
    """Tracks what the agent has read in the current document session.

    Two independent axes: whether the document structure has been listed,
    and which individual blocks have been fetched. Edits and deletes need
    both; adds only need the structure.
    """

    def __init__(self) -> None:
        self._document_read = False
        self._read_blocks: set[str] = set()

    def mark_document_read(self) -> None:
        self._document_read = True

    def mark_block_read(self, block_id: str) -> None:
        self._read_blocks.add(block_id)

    def mark_blocks_read(self, block_ids: Iterable[str]) -> None:
        self._read_blocks.update(block_ids)

    def has_read_document(self) -> bool:
        return self._document_read

    def has_read_block(self, block_id: str) -> bool:
        return block_id in self._read_blocks

    def has_read_blocks(self, block_ids: Iterable[str]) -> bool:
        return all(i in self._read_blocks for i in block_ids)

    def can_edit(self, block_id: str) -> GuardCheck:
        return self._check_block(block_id, verb="editing")

    def can_delete(self, block_id: str) -> GuardCheck:
        return self._check_block(block_id, verb="deleting")

    def can_add(self) -> GuardCheck:
        if not self._document_read:
            return GuardCheck(
                allowed=False,
                error=(
                    "Must call list_blocks before adding blocks. "
                    "Use list_blocks to see document structure first."
                ),
                denial=GuardDenial.NEEDS_DOCUMENT_READ,
            )
        return _ALLOWED

    def can_edit_blocks(self, block_ids: Iterable[str]) -> BatchGuardCheck:
        return self._check_batch(block_ids, verb="editing")

    def can_delete_blocks(self, block_ids: Iterable[str]) -> BatchGuardCheck:
        return self._check_batch(block_ids, verb="deleting")

    def reset(self) -> None:
        self._read_blocks.clear()
        self._document_read = False

    def on_document_change(self) -> None:
        self.reset()

    def _check_block(self, block_id: str, *, verb: str) -> GuardCheck:
        if not self._document_read:
            return GuardCheck(
                allowed=False,
                error=(
                    f"Must call list_blocks before {verb}. "
                    "Use list_blocks to see document structure first."
                ),
                denial=GuardDenial.NEEDS_DOCUMENT_READ,
            )
        if block_id not in self._read_blocks:
            return GuardCheck(
                allowed=False,
                error=(
                    f'Must call read_blocks(["{block_id}"]) before {verb}. '
                    "Read the block content first to ensure accurate edits."
                ),
                denial=GuardDenial.NEEDS_BLOCK_READ,
            )
        return _ALLOWED

    def _check_batch(self, block_ids: Iterable[str], *, verb: str) -> BatchGuardCheck:
        ids = list(block_ids)
        if not self._document_read:
            errors = {i: f"Must call list_blocks before {verb}." for i in ids}
            return BatchGuardCheck(allowed=False, errors=errors)

        errors = {
            i: f'Must call read_blocks(["{i}"]) before {verb}.'
            for i in ids
            if i not in self._read_blocks
        }
        return BatchGuardCheck(allowed=not errors, errors=errors)
