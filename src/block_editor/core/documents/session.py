"""Multi-document wiring between the document manager and the block tools."""

import json
from collections.abc import Iterable
from typing import Any

from loguru import logger

from block_editor.core.documents.manager import DocumentManager
from block_editor.core.guard.read_guard import ReadWriteGuard
from block_editor.core.index.block_index import BlockIndex
from block_editor.core.runtime.cache import ReadCache
from block_editor.core.tools import document_tools
from block_editor.core.tools.block_tools import BLOCK_TOOL_NAMES, ToolContext, run_block_tool
from block_editor.errors import UnknownToolError
from block_editor.models.block import DocumentType, EditorDocument, PendingDiff
from block_editor.protocols import DiffListener, DocumentParser, DocumentSwitchListener


class AgentSession:
    """One agent's view over a set of open documents.

    Owns the guard, block index, read cache and one pending-diff list per
    document. The tool context always points at the active document's
    state; :meth:`switch_document` performs the hand-off.
    """

    def __init__(
        self,
        manager: DocumentManager,
        *,
        on_diff_created: DiffListener | None = None,
        on_document_switch: DocumentSwitchListener | None = None,
    ) -> None:
        self.manager = manager
        self.on_diff_created = on_diff_created
        self.on_document_switch = on_document_switch
        self.pending_diffs_by_doc: dict[str, list[PendingDiff]] = {
            d.id: [] for d in manager.get_all_documents()
        }

        active = manager.get_active_document()
        self.context = ToolContext(
            block_index=BlockIndex(active.blocks if active else ()),
            guard=ReadWriteGuard(),
            pending_diffs=self.diffs_for(active.id) if active else [],
            cache=ReadCache(),
            on_diff_created=self._diff_created,
            doc_id=active.id if active else None,
        )

    @classmethod
    def from_documents(
        cls,
        documents: Iterable[EditorDocument],
        active_doc_id: str | None = None,
        *,
        parser: DocumentParser | None = None,
        on_diff_created: DiffListener | None = None,
        on_document_switch: DocumentSwitchListener | None = None,
    ) -> "AgentSession":
        manager = DocumentManager(documents, active_doc_id, parser=parser)
        return cls(
            manager, on_diff_created=on_diff_created, on_document_switch=on_document_switch
        )

    @property
    def guard(self) -> ReadWriteGuard:
        return self.context.guard

    @property
    def block_index(self) -> BlockIndex:
        return self.context.block_index

    @property
    def pending_diffs(self) -> list[PendingDiff]:
        return self.context.pending_diffs

    @property
    def active_doc_id(self) -> str | None:
        return self.manager.get_active_doc_id()

    def diffs_for(self, doc_id: str) -> list[PendingDiff]:
        return self.pending_diffs_by_doc.setdefault(doc_id, [])

    def all_pending_diffs(self) -> list[PendingDiff]:
        return [d for diffs in self.pending_diffs_by_doc.values() for d in diffs]

    def _diff_created(self, diff: PendingDiff) -> None:
        if self.on_diff_created is not None:
            self.on_diff_created(diff)

    def _hand_off(self, doc: EditorDocument | None) -> None:
        # Order matters: read state belongs to the previous document.
        self.context.guard.reset()
        self.context.block_index.set_blocks(doc.blocks if doc else ())
        self.context.pending_diffs = self.diffs_for(doc.id) if doc else []
        self.context.doc_id = doc.id if doc else None
        self.context.cache.invalidate()
        if doc is not None and self.on_document_switch is not None:
            self.on_document_switch(doc.id, list(doc.blocks))

    def switch_document(self, doc_id: str) -> bool:
        """Make ``doc_id`` active and point the tools at its blocks and diffs."""
        doc = self.manager.get_document(doc_id)
        if doc is None or not self.manager.set_active_document(doc_id):
            return False
        self._hand_off(doc)
        logger.info("Switched active document to {} ({!r})", doc_id, doc.name)
        return True

    def refresh_active(self) -> None:
        """Re-index the active document after its blocks changed in place.

        Read state, the pending-diff list and the switch hook are left alone;
        block ids survive an apply, undo or redo.
        """
        doc = self.manager.get_active_document()
        self.context.block_index.set_blocks(doc.blocks if doc else ())
        self.context.cache.invalidate()

    def add_document(
        self, *, name: str, content: str, doc_type: DocumentType = DocumentType.CUSTOM
    ) -> str:
        had_active = self.manager.get_active_doc_id() is not None
        doc_id = self.manager.add_document(name=name, content=content, doc_type=doc_type)
        self.diffs_for(doc_id)
        if not had_active:
            self._hand_off(self.manager.get_document(doc_id))
        return doc_id

    def remove_document(self, doc_id: str) -> bool:
        was_active = self.manager.get_active_doc_id() == doc_id
        if not self.manager.remove_document(doc_id):
            return False
        dropped = self.pending_diffs_by_doc.pop(doc_id, [])
        if dropped:
            logger.warning(
                "Discarded {} pending diffs of removed document {}", len(dropped), doc_id
            )
        if was_active:
            self._hand_off(self.manager.get_active_document())
        return True

    def run_tool(self, name: str, args: dict[str, Any] | None) -> dict[str, Any]:
        if name in document_tools.DOCUMENT_TOOL_NAMES:
            return document_tools.run_document_tool(self, name, args)
        if name in BLOCK_TOOL_NAMES:
            return run_block_tool(self.context, name, args)
        raise UnknownToolError(name, [*document_tools.DOCUMENT_TOOL_NAMES, *BLOCK_TOOL_NAMES])

    def execute_tool(self, name: str, args: dict[str, Any] | None) -> str:
        """Run any document or block tool and return its JSON result."""
        return json.dumps(self.run_tool(name, args), ensure_ascii=False)
