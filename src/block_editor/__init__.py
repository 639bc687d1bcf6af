"""Block-level document editing tools for LLM agents."""

from block_editor.core.documents.manager import DocumentManager
from block_editor.core.documents.session import AgentSession
from block_editor.core.documents.store import EditorStore, SwitchLock
from block_editor.core.index.block_index import BlockIndex
from block_editor.core.tools.block_tools import ToolContext, execute_tool
from block_editor.protocols import ChatModelProtocol, DocumentParser

__all__ = [
    "AgentSession",
    "BlockIndex",
    "ChatModelProtocol",
    "DocumentManager",
    "DocumentParser",
    "EditorStore",
    "SwitchLock",
    "ToolContext",
    "execute_tool",
]
