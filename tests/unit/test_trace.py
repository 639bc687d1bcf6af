"""Tests for the tool trace and stuck detection."""

from typing import Any

import pytest

from block_editor.core.runtime.trace import ToolTrace, detect_stuck
from block_editor.models.block import ToolStatus, ToolTraceEntry


def _entry(
    name: str, args: dict[str, Any] | None = None, status: ToolStatus = ToolStatus.SUCCESS
) -> ToolTraceEntry:
    return ToolTraceEntry(name=name, args=args or {}, status=status)


def _trace(*entries: ToolTraceEntry) -> ToolTrace:
    trace = ToolTrace()
    for entry in entries:
        trace.add(entry)
    return trace


def test_trace_evicts_oldest_entries() -> None:
    trace = ToolTrace(max_size=3)
    for i in range(5):
        trace.add(_entry(f"tool_{i}"))

    assert len(trace) == 3
    assert [e.name for e in trace.get_recent()] == ["tool_2", "tool_3", "tool_4"]
    assert [e.name for e in trace.get_recent(2)] == ["tool_3", "tool_4"]
    assert trace.get_recent(0) == []


def test_trace_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError, match="positive"):
        ToolTrace(max_size=0)


def test_trace_clear() -> None:
    trace = _trace(_entry("list_blocks"))
    trace.clear()
    assert len(trace) == 0
    assert trace.max_size == 30


def test_normal_workflow_is_not_stuck() -> None:
    trace = _trace(
        _entry("list_blocks"), _entry("read_blocks", {"block_ids": ["b1"]}), _entry("edit_blocks")
    )
    assert detect_stuck(trace).is_stuck is False


def test_short_trace_is_not_stuck() -> None:
    assert not detect_stuck(_trace(_entry("list_blocks"), _entry("list_blocks"))).is_stuck


def test_repeated_listing_is_stuck() -> None:
    result = detect_stuck(_trace(*[_entry("list_blocks") for _ in range(3)]))
    assert result.is_stuck
    assert result.reason == "list_blocks called 3 times consecutively"


def test_failed_listing_does_not_count() -> None:
    trace = _trace(
        _entry("list_blocks"),
        _entry("list_blocks", status=ToolStatus.ERROR),
        _entry("list_blocks"),
    )
    assert not detect_stuck(trace).is_stuck


def test_repeated_identical_reads_are_stuck() -> None:
    args = {"block_ids": ["b1", "b2"], "with_context": False}
    result = detect_stuck(_trace(*[_entry("read_blocks", dict(args)) for _ in range(3)]))
    assert result.is_stuck
    assert result.reason == "read_blocks called 3 times with same args"


def test_reads_with_different_args_are_not_stuck() -> None:
    trace = _trace(
        _entry("read_blocks", {"block_ids": ["b1"]}),
        _entry("read_blocks", {"block_ids": ["b2"]}),
        _entry("read_blocks", {"block_ids": ["b3"]}),
    )
    assert not detect_stuck(trace).is_stuck


def test_ten_calls_without_mutation_are_stuck() -> None:
    trace = _trace(*[_entry(f"tool_{i}") for i in range(10)])
    result = detect_stuck(trace)
    assert result.is_stuck
    assert result.reason == "10 calls without any edit/add/delete"


def test_nine_calls_without_mutation_are_not_stuck() -> None:
    assert not detect_stuck(_trace(*[_entry(f"tool_{i}") for i in range(9)])).is_stuck


def test_successful_mutation_resets_progress_window() -> None:
    entries = [_entry(f"tool_{i}") for i in range(9)]
    entries.insert(3, _entry("add_blocks"))
    assert not detect_stuck(_trace(*entries)).is_stuck


def test_failed_mutation_is_not_progress() -> None:
    entries = [_entry(f"tool_{i}") for i in range(9)]
    entries.append(_entry("delete_blocks", status=ToolStatus.ERROR))
    assert detect_stuck(_trace(*entries)).is_stuck
