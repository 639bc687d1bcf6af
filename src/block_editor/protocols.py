"""Protocols for the collaborators the editing runtime is wired to."""

from collections.abc import Awaitable, Sequence
from typing import Protocol, runtime_checkable

from block_editor.models.agent import ChatMessage
from block_editor.models.block import Block, EditorDocument, PendingDiff


@runtime_checkable
class DocumentParser(Protocol):
    """Converts between serialized document content and blocks."""

    def parse(self, content: str) -> list[Block]:
        """Split content into ordered blocks."""
        ...

    def serialize(self, blocks: Sequence[Block]) -> str:
        """Render blocks back into document content."""
        ...


class DiffListener(Protocol):
    def __call__(self, diff: PendingDiff) -> None: ...


class DocumentSwitchListener(Protocol):
    def __call__(self, doc_id: str, blocks: list[Block]) -> None: ...


class CaptureHook(Protocol):
    """Receives a document's in-flight state before the active document changes."""

    def __call__(
        self, document: EditorDocument, pending_diffs: list[PendingDiff]
    ) -> Awaitable[None] | None: ...


@runtime_checkable
class ChatModelProtocol(Protocol):
    """Protocol for tool-calling chat models driving the agent loop."""

    async def invoke(self, messages: list[ChatMessage]) -> ChatMessage:
        """Send the conversation and return the assistant reply, possibly with tool calls."""
        ...
