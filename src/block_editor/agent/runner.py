"""Tool-calling agent loop that streams its progress as events."""

from collections import deque
from collections.abc import AsyncIterator, Sequence

from loguru import logger

from block_editor.config import MAX_AGENT_ITERATIONS
from block_editor.core.documents.session import AgentSession
from block_editor.core.runtime.executor import ToolExecutor
from block_editor.models.agent import (
    AgentEvent,
    AgentEventType,
    ChatMessage,
    ToolCallEvent,
)
from block_editor.models.block import PendingDiff, ToolStatus
from block_editor.protocols import ChatModelProtocol

SYSTEM_PROMPT = """\
You edit block-structured documents through tools. Every change you make is
queued as a pending diff for the user to review.

## Workflow
1. Call list_blocks to see the document outline.
2. Call read_blocks with the ids you intend to change (with_context=true to
   see neighbours).
3. Call edit_blocks, add_blocks or delete_blocks. Batch up to 25 items.

Editing or deleting a block you have not read is refused. Additions in one
add_blocks call are inserted in order after the first anchor; use "__start__"
to insert at the top. With several documents open, use list_documents and
switch_document; switching resets what you have read.

When the request is done, reply with a short summary and no tool calls.
"""

MAX_ITERATIONS_MESSAGE = "Max iterations reached. Please try a simpler request."

# Tool results echoed in tool_call events are cut to this length.
_RESULT_PREVIEW = 100


async def run_agent_stream(
    model: ChatModelProtocol,
    session: AgentSession,
    message: str,
    history: Sequence[ChatMessage] = (),
    *,
    max_iterations: int = MAX_AGENT_ITERATIONS,
    executor: ToolExecutor | None = None,
) -> AsyncIterator[AgentEvent]:
    """Drive ``model`` until it stops calling tools, yielding events as they happen.

    Diffs are yielded right after the tool call that created them. Stuck
    warnings are surfaced as ``stuck`` events but do not stop the loop.

    Args:
        model: Chat model that may answer with tool calls.
        session: Documents and tool state the tools act on.
        message: The user's request.
        history: Earlier conversation turns, oldest first.
        max_iterations: Model calls allowed before giving up.
        executor: Tool executor, to share a trace across runs.
    """
    executor = executor or ToolExecutor(session)
    created: deque[PendingDiff] = deque()
    previous_listener = session.on_diff_created

    def collect(diff: PendingDiff) -> None:
        created.append(diff)
        if previous_listener is not None:
            previous_listener(diff)

    def drain() -> list[AgentEvent]:
        events = [AgentEvent(AgentEventType.DIFF, diff) for diff in created]
        created.clear()
        return events

    messages = [ChatMessage.system(SYSTEM_PROMPT), *history, ChatMessage.user(message)]
    session.on_diff_created = collect
    try:
        for iteration in range(1, max_iterations + 1):
            if iteration > 1:
                yield AgentEvent(AgentEventType.NEW_TURN)
            logger.debug("Agent iteration {}/{}", iteration, max_iterations)

            response = await model.invoke(list(messages))
            messages.append(response)
            if response.content:
                yield AgentEvent(AgentEventType.CONTENT, response.content)

            if not response.tool_calls:
                for event in drain():
                    yield event
                yield AgentEvent(AgentEventType.DONE)
                return

            stuck_reason: str | None = None
            for call in response.tool_calls:
                yield AgentEvent(
                    AgentEventType.TOOL_CALL,
                    ToolCallEvent(call.id, call.name, ToolStatus.CALLING, args=call.args),
                )
                outcome = executor.execute(call.name, call.args)
                yield AgentEvent(
                    AgentEventType.TOOL_CALL,
                    ToolCallEvent(
                        call.id, call.name, outcome.status, result=outcome.result[:_RESULT_PREVIEW]
                    ),
                )
                for event in drain():
                    yield event
                messages.append(ChatMessage.tool(outcome.result, call.id))
                if outcome.stuck.is_stuck:
                    stuck_reason = outcome.stuck.reason

            if stuck_reason is not None:
                yield AgentEvent(AgentEventType.STUCK, stuck_reason)

        logger.info(
            "Max iterations reached with {} pending diffs", len(session.all_pending_diffs())
        )
        yield AgentEvent(AgentEventType.CONTENT, MAX_ITERATIONS_MESSAGE)
        for event in drain():
            yield event
        yield AgentEvent(AgentEventType.DONE)
    finally:
        session.on_diff_created = previous_listener
