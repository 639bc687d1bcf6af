"""Message and event types exchanged with the chat model and the caller."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from block_editor.models.block import PendingDiff, ToolStatus


class Role(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ChatMessage:
    """One conversation turn.

    Assistant messages may carry ``tool_calls``; tool messages answer one
    of them through ``tool_call_id``.
    """

    role: Role
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str = "", tool_calls: tuple[ToolCall, ...] = ()) -> "ChatMessage":
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tool_calls)

    @classmethod
    def tool(cls, content: str, tool_call_id: str) -> "ChatMessage":
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id)


class AgentEventType(StrEnum):
    TOOL_CALL = "tool_call"
    CONTENT = "content"
    DIFF = "diff"
    STUCK = "stuck"
    NEW_TURN = "new_turn"
    DONE = "done"


@dataclass(frozen=True)
class ToolCallEvent:
    id: str
    name: str
    status: ToolStatus
    args: dict[str, Any] | None = None
    result: str | None = None


@dataclass(frozen=True)
class AgentEvent:
    """An item of the agent stream. ``data`` depends on ``type``."""

    type: AgentEventType
    data: ToolCallEvent | PendingDiff | str | None = None
