"""Run tool calls for the agent loop while keeping the call trace."""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from block_editor.core.documents.session import AgentSession
from block_editor.core.runtime.trace import StuckResult, ToolTrace, detect_stuck
from block_editor.errors import ToolArgumentError, UnknownToolError
from block_editor.models.block import ToolStatus, ToolTraceEntry


@dataclass(frozen=True)
class ToolOutcome:
    """What the model sees (``result``) plus what the loop needs to know."""

    result: str
    status: ToolStatus
    stuck: StuckResult


class ToolExecutor:
    """Executes tools against a session and records each call in a trace.

    Malformed arguments and unknown tool names become an ``{"error": ...}``
    result with ``error`` status so the model can correct itself. Per-item
    failures inside a batch still count as a successful call.
    """

    def __init__(self, session: AgentSession, trace: ToolTrace | None = None) -> None:
        self.session = session
        self.trace = trace or ToolTrace()

    def execute(self, name: str, args: Mapping[str, Any] | None = None) -> ToolOutcome:
        call_args = dict(args or {})
        try:
            result = self.session.execute_tool(name, call_args)
            status = ToolStatus.SUCCESS
        except (ToolArgumentError, UnknownToolError) as e:
            logger.warning("Tool {} failed: {}", name, e)
            result = json.dumps({"error": str(e)}, ensure_ascii=False)
            status = ToolStatus.ERROR

        self.trace.add(ToolTraceEntry(name=name, args=call_args, status=status))
        stuck = detect_stuck(self.trace)
        if stuck.is_stuck:
            logger.warning("Agent looks stuck: {}", stuck.reason)
        return ToolOutcome(result=result, status=status, stuck=stuck)
