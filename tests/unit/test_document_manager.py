"""Tests for the document manager."""

from collections.abc import Sequence

from block_editor.core.documents.manager import DocumentManager
from block_editor.models.block import Block, BlockType, DocumentType, EditorDocument
from tests.unit.fakes import make_block


def _doc(doc_id: str, content: str = "text") -> EditorDocument:
    return EditorDocument(
        id=doc_id,
        name=doc_id.upper(),
        type=DocumentType.LESSON,
        content=content,
        blocks=[make_block(f"{doc_id}-b0", content, 0)],
    )


class OneBlockParser:
    """Parser that keeps the whole content as a single paragraph."""

    def parse(self, content: str) -> list[Block]:
        return [make_block("whole", content, 0)]

    def serialize(self, blocks: Sequence[Block]) -> str:
        return "|".join(b.content for b in blocks)


def test_first_document_is_active_by_default() -> None:
    manager = DocumentManager([_doc("a"), _doc("b")])
    assert manager.get_active_doc_id() == "a"
    assert manager.get_active_document() is manager.get_document("a")


def test_explicit_active_document() -> None:
    assert DocumentManager([_doc("a"), _doc("b")], "b").get_active_doc_id() == "b"


def test_unknown_active_document_falls_back_to_first() -> None:
    assert DocumentManager([_doc("a"), _doc("b")], "zzz").get_active_doc_id() == "a"


def test_empty_manager_has_no_active_document() -> None:
    manager = DocumentManager()
    assert manager.get_active_doc_id() is None
    assert manager.get_active_document() is None
    assert len(manager) == 0


def test_set_active_document_only_moves_pointer() -> None:
    manager = DocumentManager([_doc("a"), _doc("b")])

    assert manager.set_active_document("b") is True
    assert manager.get_active_doc_id() == "b"
    assert manager.set_active_document("missing") is False
    assert manager.get_active_doc_id() == "b"


def test_add_document_parses_markdown() -> None:
    manager = DocumentManager()

    doc_id = manager.add_document(
        name="Notes", content="# Notes\n\nBody text.", doc_type=DocumentType.GUIDE
    )

    doc = manager.get_document(doc_id)
    assert doc is not None
    assert doc_id.startswith("doc-")
    assert doc.type == DocumentType.GUIDE
    assert [b.type for b in doc.blocks] == [BlockType.HEADING, BlockType.PARAGRAPH]
    assert doc.is_dirty is False
    assert manager.get_active_doc_id() == doc_id


def test_add_document_keeps_existing_active() -> None:
    manager = DocumentManager([_doc("a")])
    manager.add_document(name="Other", content="x")
    assert manager.get_active_doc_id() == "a"
    assert len(manager) == 2


def test_remove_active_document_activates_first_remaining() -> None:
    manager = DocumentManager([_doc("a"), _doc("b"), _doc("c")], "b")

    assert manager.remove_document("b") is True

    assert "b" not in manager
    assert manager.get_active_doc_id() == "a"


def test_remove_last_document_clears_active() -> None:
    manager = DocumentManager([_doc("a")])
    manager.remove_document("a")
    assert manager.get_active_doc_id() is None
    assert manager.remove_document("a") is False


def test_update_document_content_reparses_and_marks_dirty() -> None:
    manager = DocumentManager([_doc("a")])

    assert manager.update_document_content("a", "# New\n\nBody")

    doc = manager.get_document("a")
    assert doc is not None
    assert doc.is_dirty
    assert [b.content for b in doc.blocks] == ["New", "Body"]
    assert manager.update_document_content("missing", "x") is False


def test_update_document_blocks_keeps_ids_and_serializes() -> None:
    manager = DocumentManager([_doc("a")])
    blocks = [
        make_block("keep-1", "Heading", 0, BlockType.HEADING, level=2),
        make_block("keep-2", "Body", 1),
    ]

    manager.update_document_blocks("a", blocks)

    doc = manager.get_document("a")
    assert doc is not None
    assert [b.id for b in doc.blocks] == ["keep-1", "keep-2"]
    assert doc.content == "## Heading\n\nBody"
    assert doc.is_dirty


def test_mark_document_clean() -> None:
    manager = DocumentManager([_doc("a")])
    manager.update_document_content("a", "changed")
    manager.mark_document_clean("a")
    doc = manager.get_document("a")
    assert doc is not None
    assert doc.is_dirty is False


def test_injected_parser_is_used() -> None:
    manager = DocumentManager(parser=OneBlockParser())
    doc_id = manager.add_document(name="Raw", content="# not a heading here")
    doc = manager.get_document(doc_id)
    assert doc is not None
    assert [b.id for b in doc.blocks] == ["whole"]
    assert doc.blocks[0].type == BlockType.PARAGRAPH
