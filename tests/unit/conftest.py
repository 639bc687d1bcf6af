"""Shared test fixtures."""

import pytest

from block_editor.core.documents.manager import DocumentManager
from block_editor.core.documents.session import AgentSession
from block_editor.core.guard.read_guard import ReadWriteGuard
from block_editor.core.index.block_index import BlockIndex
from block_editor.core.tools.block_tools import ToolContext
from block_editor.models.block import Block, BlockType
from tests.unit.fakes import GUIDE_MARKDOWN, LESSON_MARKDOWN, make_block


@pytest.fixture
def blocks() -> list[Block]:
    return [
        make_block("b1", "# Title", 0, BlockType.HEADING, level=1),
        make_block("b2", "First paragraph", 1),
        make_block("b3", "Second paragraph", 2),
        make_block("b4", "Third paragraph", 3),
    ]


@pytest.fixture
def ctx(blocks: list[Block]) -> ToolContext:
    """Tool context over ``blocks`` with nothing read yet."""
    return ToolContext(block_index=BlockIndex(blocks), guard=ReadWriteGuard())


@pytest.fixture
def session() -> AgentSession:
    """Session with a lesson (active) and a guide document."""
    manager = DocumentManager()
    manager.add_document(name="Fractions lesson", content=LESSON_MARKDOWN)
    manager.add_document(name="Tutor guide", content=GUIDE_MARKDOWN)
    return AgentSession(manager)
