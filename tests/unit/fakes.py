"""Fake collaborators for testing the editing runtime."""

from typing import Any

from block_editor.models.agent import ChatMessage, ToolCall
from block_editor.models.block import Block, BlockType, PendingDiff

LESSON_MARKDOWN = """\
# Fractions

A fraction is part of a whole.

## Examples

- one half
- one third

```python
print(1 / 2)
```
"""

GUIDE_MARKDOWN = """\
# Tutor guide

Start with pizza slices.
"""


def make_block(
    block_id: str,
    content: str,
    order: int,
    block_type: BlockType = BlockType.PARAGRAPH,
    level: int | None = None,
) -> Block:
    """Build a block with sensible defaults."""
    return Block(id=block_id, type=block_type, content=content, order=order, level=level)


class FakeChatModel:
    """Scripted chat model.

    Returns the queued replies in order and records every conversation it
    was invoked with. Once the script runs out it answers with plain text.
    """

    def __init__(self, replies: list[ChatMessage] | None = None) -> None:
        self.replies = list(replies or [])
        self.calls: list[list[ChatMessage]] = []

    def reply_with_tools(self, *calls: tuple[str, dict[str, Any]], content: str = "") -> None:
        """Queue an assistant reply calling the given tools."""
        offset = sum(len(r.tool_calls) for r in self.replies)
        tool_calls = tuple(
            ToolCall(id=f"call-{offset + i}", name=name, args=args)
            for i, (name, args) in enumerate(calls)
        )
        self.replies.append(ChatMessage.assistant(content, tool_calls))

    def reply_with_text(self, content: str) -> None:
        self.replies.append(ChatMessage.assistant(content))

    async def invoke(self, messages: list[ChatMessage]) -> ChatMessage:
        self.calls.append(list(messages))
        if self.replies:
            return self.replies.pop(0)
        return ChatMessage.assistant("Done.")


class DiffRecorder:
    """Collects diffs passed to an ``on_diff_created`` listener."""

    def __init__(self) -> None:
        self.diffs: list[PendingDiff] = []

    def __call__(self, diff: PendingDiff) -> None:
        self.diffs.append(diff)
