"""Tool call trace and loop detection for the agent runtime."""

import json
from collections import deque
from dataclasses import dataclass

from block_editor.config import NO_PROGRESS_THRESHOLD, REPEAT_THRESHOLD, TRACE_CAPACITY
from block_editor.models.block import ToolStatus, ToolTraceEntry

MUTATION_TOOLS = frozenset({"edit_blocks", "add_blocks", "delete_blocks"})


class ToolTrace:
    """Fixed-capacity ring buffer of executed tool calls, oldest evicted first."""

    def __init__(self, max_size: int = TRACE_CAPACITY) -> None:
        if max_size < 1:
            msg = f"Trace capacity must be positive, got {max_size}"
            raise ValueError(msg)
        self._buffer: deque[ToolTraceEntry] = deque(maxlen=max_size)

    @property
    def max_size(self) -> int:
        return self._buffer.maxlen or 0

    def add(self, entry: ToolTraceEntry) -> None:
        self._buffer.append(entry)

    def get_recent(self, n: int | None = None) -> list[ToolTraceEntry]:
        entries = list(self._buffer)
        if n is None:
            return entries
        return entries[-n:] if n > 0 else []

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)


@dataclass(frozen=True)
class StuckResult:
    is_stuck: bool
    reason: str | None = None


_NOT_STUCK = StuckResult(is_stuck=False)


def _succeeded(entry: ToolTraceEntry, name: str) -> bool:
    return entry.name == name and entry.status == ToolStatus.SUCCESS


def detect_stuck(trace: ToolTrace) -> StuckResult:
    """Flag non-terminating agent behaviour from the trace alone.

    Stuck when the last calls are repeated successful ``list_blocks``, or
    repeated successful ``read_blocks`` with identical arguments, or when a
    long run of calls contains no successful mutation. Failed calls never
    count as repetition.
    """
    entries = trace.get_recent()
    if len(entries) < REPEAT_THRESHOLD:
        return _NOT_STUCK

    recent = entries[-REPEAT_THRESHOLD:]
    if all(_succeeded(e, "list_blocks") for e in recent):
        return StuckResult(
            is_stuck=True,
            reason=f"list_blocks called {REPEAT_THRESHOLD} times consecutively",
        )

    if all(_succeeded(e, "read_blocks") for e in recent):
        serialized = {json.dumps(e.args, sort_keys=True, default=str) for e in recent}
        if len(serialized) == 1:
            return StuckResult(
                is_stuck=True,
                reason=f"read_blocks called {REPEAT_THRESHOLD} times with same args",
            )

    if len(entries) >= NO_PROGRESS_THRESHOLD:
        window = entries[-NO_PROGRESS_THRESHOLD:]
        progressed = any(
            e.name in MUTATION_TOOLS and e.status == ToolStatus.SUCCESS for e in window
        )
        if not progressed:
            return StuckResult(
                is_stuck=True,
                reason=f"{NO_PROGRESS_THRESHOLD} calls without any edit/add/delete",
            )

    return _NOT_STUCK
