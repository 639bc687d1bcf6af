"""Tools for listing and switching between open documents."""

from typing import TYPE_CHECKING, Any

from block_editor.core.tools.schemas import (
    DOCUMENT_TOOL_ARGS,
    SwitchDocumentArgs,
    parse_tool_args,
)
from block_editor.errors import UnknownToolError

if TYPE_CHECKING:
    from block_editor.core.documents.session import AgentSession

DOCUMENT_TOOL_NAMES: tuple[str, ...] = tuple(DOCUMENT_TOOL_ARGS)


def list_documents(session: "AgentSession") -> dict[str, Any]:
    """List open documents, flagging the active one and unsaved changes."""
    active_id = session.active_doc_id
    documents = [
        {
            "id": doc.id,
            "name": doc.name,
            "type": str(doc.type),
            "blocks": len(doc.blocks),
            "is_dirty": doc.is_dirty,
            "active": doc.id == active_id,
            "pending_diffs": len(session.diffs_for(doc.id)),
        }
        for doc in session.manager.get_all_documents()
    ]
    return {"count": len(documents), "active_doc_id": active_id, "documents": documents}


def switch_document(session: "AgentSession", doc_id: str) -> dict[str, Any]:
    doc = session.manager.get_document(doc_id)
    if doc is None:
        available = ", ".join(d.id for d in session.manager.get_all_documents())
        return {
            "doc_id": doc_id,
            "ok": False,
            "error": f'Document "{doc_id}" not found. Available: {available}',
        }

    if not session.switch_document(doc_id):
        return {"doc_id": doc_id, "ok": False, "error": f'Failed to switch to "{doc_id}"'}

    return {
        "doc_id": doc_id,
        "ok": True,
        "name": doc.name,
        "type": str(doc.type),
        "blocks": len(doc.blocks),
        "message": "Read state was reset. Call list_blocks before editing this document.",
    }


def run_document_tool(
    session: "AgentSession", name: str, args: dict[str, Any] | None
) -> dict[str, Any]:
    if name == "list_documents":
        parse_tool_args(name, DOCUMENT_TOOL_ARGS[name], args)
        return list_documents(session)
    if name == "switch_document":
        parsed = parse_tool_args(name, SwitchDocumentArgs, args)
        return switch_document(session, parsed.doc_id)
    raise UnknownToolError(name, list(DOCUMENT_TOOL_NAMES))
