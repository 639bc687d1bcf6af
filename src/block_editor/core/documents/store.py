"""Editor store: serialized document switching plus diff review."""

import asyncio
import inspect
from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from block_editor.config import MAX_UNDO_STACK, SWITCH_LOCK_TIMEOUT
from block_editor.core.documents.session import AgentSession
from block_editor.core.markdown.parser import add_block, delete_block, update_block_content
from block_editor.models.block import (
    START_OF_DOCUMENT,
    AddPayload,
    Block,
    DiffAction,
    EditorDocument,
    PendingDiff,
)
from block_editor.protocols import CaptureHook

LockedOperation = Callable[[], Awaitable[Any] | Any]


class SwitchLock:
    """Cooperative single-flight lock with FIFO queueing and forced release.

    :meth:`with_lock` runs the operation at once when the lock is free and
    queues it otherwise. The lock is released exactly once, when the
    operation settles or when ``timeout`` seconds pass, whichever comes first.
    A timed-out operation keeps running in the background with no observer.
    """

    def __init__(self, timeout: float = SWITCH_LOCK_TIMEOUT) -> None:
        self.timeout = timeout
        self._locked = False
        self._queue: deque[tuple[LockedOperation, asyncio.Future[bool]]] = deque()
        self._tasks: set[asyncio.Future[Any]] = set()

    @property
    def locked(self) -> bool:
        return self._locked

    @property
    def queued(self) -> int:
        return len(self._queue)

    def with_lock(self, operation: LockedOperation) -> "asyncio.Future[bool]":
        """Run ``operation`` under the lock.

        Must be called from a running event loop.

        Returns:
            A future resolving when the lock window closes: True if the
            operation settled (successfully or not), False if the timeout
            forced the release.
        """
        loop = asyncio.get_running_loop()
        window: asyncio.Future[bool] = loop.create_future()
        self._queue.append((operation, window))
        if not self._locked:
            self._locked = True
            self._start_next(loop)
        return window

    def _start_next(self, loop: asyncio.AbstractEventLoop) -> None:
        operation, window = self._queue.popleft()
        released = False
        timer: asyncio.TimerHandle | None = None

        def release(settled: bool) -> None:
            nonlocal released
            if released:
                return
            released = True
            if timer is not None:
                timer.cancel()
            if not settled:
                logger.warning("Switch lock timed out after {}s, forcing release", self.timeout)
            if not window.done():
                window.set_result(settled)
            # Stay locked while handing over so no new caller can jump the queue.
            if self._queue:
                loop.call_soon(self._start_next, loop)
            else:
                self._locked = False

        timer = loop.call_later(self.timeout, release, False)
        try:
            result = operation()
        except Exception:
            logger.exception("Locked operation failed")
            release(True)
            return

        if not inspect.isawaitable(result):
            release(True)
            return

        task = asyncio.ensure_future(result)
        self._tasks.add(task)

        def on_done(fut: "asyncio.Future[Any]") -> None:
            self._tasks.discard(fut)
            if not fut.cancelled() and fut.exception() is not None:
                logger.opt(exception=fut.exception()).error("Locked operation failed")
            release(True)

        task.add_done_callback(on_done)


@dataclass(frozen=True)
class LockedOutcome:
    """Outcome of a store operation that ran under the switch lock.

    ``ok`` is None when the lock timed out before the operation confirmed
    anything, or when the operation raised.
    """

    settled: bool
    ok: bool | None


def _apply_to_blocks(blocks: Sequence[Block], diff: PendingDiff) -> list[Block]:
    """Return ``blocks`` with one diff merged in.

    Raises:
        KeyError: If the target or anchor block is missing.
        ValueError: If an add payload cannot be decoded.
    """
    if diff.action == DiffAction.ADD:
        payload = AddPayload.from_json(diff.new_content)
        after = None if diff.block_id == START_OF_DOCUMENT else diff.block_id
        return add_block(
            blocks,
            after,
            payload.type,
            payload.content,
            payload.level,
            block_id=diff.new_block_id,
        )

    if not any(b.id == diff.block_id for b in blocks):
        msg = f"Block {diff.block_id} not found"
        raise KeyError(msg)
    if diff.action == DiffAction.UPDATE:
        return update_block_content(blocks, diff.block_id, diff.new_content)
    return delete_block(blocks, diff.block_id)


class EditorStore:
    """Owns an :class:`AgentSession` and serializes switch/remove requests.

    Pending diffs are only merged into a document here, through the apply
    methods; the tools never do it themselves.
    """

    def __init__(
        self,
        session: AgentSession,
        *,
        lock: SwitchLock | None = None,
        on_capture: CaptureHook | None = None,
        max_undo: int = MAX_UNDO_STACK,
    ) -> None:
        self.session = session
        self.lock = lock or SwitchLock()
        self.on_capture = on_capture
        self._max_undo = max_undo
        self._undo: dict[str, deque[list[Block]]] = {}
        self._redo: dict[str, deque[list[Block]]] = {}

    @property
    def active_document(self) -> EditorDocument | None:
        return self.session.manager.get_active_document()

    async def _capture_active(self) -> None:
        doc = self.active_document
        if doc is None:
            return
        diffs = list(self.session.diffs_for(doc.id))
        logger.debug("Capturing {} with {} pending diffs", doc.id, len(diffs))
        if self.on_capture is not None:
            result = self.on_capture(doc, diffs)
            if inspect.isawaitable(result):
                await result

    async def switch_document(self, doc_id: str) -> LockedOutcome:
        """Capture the active document's state, then switch, under the lock."""
        outcome: dict[str, bool] = {}

        async def operation() -> None:
            await self._capture_active()
            outcome["ok"] = self.session.switch_document(doc_id)

        settled = await self.lock.with_lock(operation)
        return LockedOutcome(settled=settled, ok=outcome.get("ok"))

    async def remove_document(self, doc_id: str) -> LockedOutcome:
        outcome: dict[str, bool] = {}

        def operation() -> None:
            outcome["ok"] = self.session.remove_document(doc_id)
            self._undo.pop(doc_id, None)
            self._redo.pop(doc_id, None)

        settled = await self.lock.with_lock(operation)
        return LockedOutcome(settled=settled, ok=outcome.get("ok"))

    def _stack(self, stacks: dict[str, deque[list[Block]]], doc_id: str) -> deque[list[Block]]:
        return stacks.setdefault(doc_id, deque(maxlen=self._max_undo))

    def _replace_blocks(self, doc: EditorDocument, blocks: list[Block]) -> None:
        self.session.manager.update_document_blocks(doc.id, blocks)
        self.session.refresh_active()

    def _commit(self, doc: EditorDocument, blocks: list[Block]) -> None:
        self._stack(self._undo, doc.id).append(list(doc.blocks))
        self._stack(self._redo, doc.id).clear()
        self._replace_blocks(doc, blocks)

    def apply_diff(self, diff_id: str) -> bool:
        """Merge one pending diff of the active document into its blocks."""
        doc = self.active_document
        if doc is None:
            return False
        diffs = self.session.pending_diffs
        diff = next((d for d in diffs if d.id == diff_id), None)
        if diff is None:
            return False

        try:
            blocks = _apply_to_blocks(doc.blocks, diff)
        except (KeyError, ValueError) as e:
            logger.warning("Cannot apply diff {}: {}", diff_id, e)
            return False

        diffs.remove(diff)
        self._commit(doc, blocks)
        return True

    def apply_all_diffs(self) -> int:
        """Merge every pending diff of the active document in creation order.

        Diffs that no longer apply are skipped. All pending diffs are cleared.

        Returns:
            Number of diffs applied.
        """
        doc = self.active_document
        if doc is None:
            return 0
        diffs = self.session.pending_diffs
        blocks = list(doc.blocks)
        applied = 0
        for diff in diffs:
            try:
                blocks = _apply_to_blocks(blocks, diff)
            except (KeyError, ValueError) as e:
                logger.warning("Skipping diff {}: {}", diff.id, e)
                continue
            applied += 1

        skipped = len(diffs) - applied
        diffs.clear()
        if applied:
            self._commit(doc, blocks)
        else:
            self.session.refresh_active()
        logger.info("Applied {} diffs to {} ({} skipped)", applied, doc.id, skipped)
        return applied

    def reject_diff(self, diff_id: str) -> bool:
        """Drop a pending diff, along with adds chained onto a rejected add."""
        diffs = self.session.pending_diffs
        target = next((d for d in diffs if d.id == diff_id), None)
        if target is None:
            return False

        rejected = {target.id}
        orphaned = {target.new_block_id} if target.new_block_id else set()
        for diff in diffs:
            if diff.action == DiffAction.ADD and diff.block_id in orphaned:
                rejected.add(diff.id)
                if diff.new_block_id:
                    orphaned.add(diff.new_block_id)

        diffs[:] = [d for d in diffs if d.id not in rejected]
        self.session.context.cache.invalidate()
        return True

    def reject_all_diffs(self) -> None:
        self.session.pending_diffs.clear()
        self.session.context.cache.invalidate()

    def undo(self) -> bool:
        doc = self.active_document
        if doc is None or not self._undo.get(doc.id):
            return False
        previous = self._undo[doc.id].pop()
        self._stack(self._redo, doc.id).append(list(doc.blocks))
        self._replace_blocks(doc, previous)
        return True

    def redo(self) -> bool:
        doc = self.active_document
        if doc is None or not self._redo.get(doc.id):
            return False
        following = self._redo[doc.id].pop()
        self._stack(self._undo, doc.id).append(list(doc.blocks))
        self._replace_blocks(doc, following)
        return True
