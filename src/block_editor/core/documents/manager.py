"""Registry of open documents with an active-document pointer."""

import dataclasses
from collections.abc import Iterable, Sequence

from loguru import logger

from block_editor.core.markdown.parser import MarkdownParser
from block_editor.models.block import Block, DocumentType, EditorDocument, generate_document_id
from block_editor.protocols import DocumentParser


class DocumentManager:
    """Holds the open documents and which one is active.

    Changing the active pointer is all :meth:`set_active_document` does.
    Resetting read state and repointing the block index is the job of the
    session that wires the tools (see ``AgentSession``).
    """

    def __init__(
        self,
        documents: Iterable[EditorDocument] = (),
        active_doc_id: str | None = None,
        *,
        parser: DocumentParser | None = None,
    ) -> None:
        self.parser: DocumentParser = parser or MarkdownParser()
        self._documents: dict[str, EditorDocument] = {d.id: d for d in documents}
        self._active_doc_id: str | None = None
        if active_doc_id is not None and active_doc_id in self._documents:
            self._active_doc_id = active_doc_id
        elif self._documents:
            self._active_doc_id = next(iter(self._documents))

    def get_all_documents(self) -> list[EditorDocument]:
        return list(self._documents.values())

    def get_document(self, doc_id: str) -> EditorDocument | None:
        return self._documents.get(doc_id)

    def get_active_document(self) -> EditorDocument | None:
        if self._active_doc_id is None:
            return None
        return self._documents.get(self._active_doc_id)

    def get_active_doc_id(self) -> str | None:
        return self._active_doc_id

    def set_active_document(self, doc_id: str) -> bool:
        if doc_id not in self._documents:
            return False
        self._active_doc_id = doc_id
        return True

    def add_document(
        self,
        *,
        name: str,
        content: str,
        doc_type: DocumentType = DocumentType.CUSTOM,
        is_dirty: bool = False,
    ) -> str:
        """Parse and register a new document, activating it if none is active.

        Returns:
            The generated document id.
        """
        doc_id = generate_document_id()
        self._documents[doc_id] = EditorDocument(
            id=doc_id,
            name=name,
            type=doc_type,
            content=content,
            blocks=self.parser.parse(content),
            is_dirty=is_dirty,
        )
        if self._active_doc_id is None:
            self._active_doc_id = doc_id
        logger.debug("Added document {} ({!r})", doc_id, name)
        return doc_id

    def remove_document(self, doc_id: str) -> bool:
        if doc_id not in self._documents:
            return False
        del self._documents[doc_id]
        if self._active_doc_id == doc_id:
            self._active_doc_id = next(iter(self._documents), None)
        return True

    def update_document_content(self, doc_id: str, content: str) -> bool:
        """Replace content and re-parse blocks."""
        doc = self._documents.get(doc_id)
        if doc is None:
            return False
        self._documents[doc_id] = dataclasses.replace(
            doc, content=content, blocks=self.parser.parse(content), is_dirty=True
        )
        return True

    def update_document_blocks(self, doc_id: str, blocks: Sequence[Block]) -> bool:
        """Replace blocks, keeping their ids, and re-serialize content."""
        doc = self._documents.get(doc_id)
        if doc is None:
            return False
        self._documents[doc_id] = dataclasses.replace(
            doc, blocks=list(blocks), content=self.parser.serialize(blocks), is_dirty=True
        )
        return True

    def mark_document_clean(self, doc_id: str) -> bool:
        doc = self._documents.get(doc_id)
        if doc is None:
            return False
        self._documents[doc_id] = dataclasses.replace(doc, is_dirty=False)
        return True

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._documents
