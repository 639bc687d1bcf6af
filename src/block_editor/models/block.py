"""Domain models for block-structured documents and pending edits."""

import json
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

START_OF_DOCUMENT = "__start__"


class BlockType(StrEnum):
    """Kinds of content block a document is split into."""

    HEADING = "heading"
    PARAGRAPH = "paragraph"
    CODE = "code"
    LIST_ITEM = "list-item"


class DiffAction(StrEnum):
    UPDATE = "update"
    ADD = "add"
    DELETE = "delete"


class DocumentType(StrEnum):
    LESSON = "lesson"
    GUIDE = "guide"
    WORKSHEET = "worksheet"
    CUSTOM = "custom"


class ToolStatus(StrEnum):
    CALLING = "calling"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Block:
    """The smallest addressable unit of document content."""

    id: str
    type: BlockType
    content: str
    order: int
    level: int | None = None
    line_start: int | None = None
    line_end: int | None = None


@dataclass(frozen=True)
class BlockSummary:
    """A block as shown in the document outline."""

    id: str
    type: BlockType
    preview: str
    order: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": str(self.type), "preview": self.preview, "order": self.order}


@dataclass(frozen=True)
class BlockContext:
    """A block with its neighbours by document order."""

    block: Block | None
    before: tuple[Block, ...] = ()
    after: tuple[Block, ...] = ()


@dataclass(frozen=True)
class PendingDiff:
    """An uncommitted change layered over the block index.

    For ``add`` diffs ``block_id`` is the anchor the new block goes after
    (``START_OF_DOCUMENT`` for the top) and ``new_content`` holds the JSON
    payload produced by :meth:`AddPayload.to_json`.
    """

    id: str
    block_id: str
    action: DiffAction
    old_content: str
    new_content: str
    reason: str
    new_block_id: str | None = None
    doc_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "block_id": self.block_id,
            "action": str(self.action),
            "old_content": self.old_content,
            "new_content": self.new_content,
            "reason": self.reason,
        }
        if self.new_block_id is not None:
            data["new_block_id"] = self.new_block_id
        if self.doc_id is not None:
            data["doc_id"] = self.doc_id
        return data


@dataclass(frozen=True)
class AddPayload:
    """The block an ``add`` diff will materialize."""

    type: BlockType
    content: str
    level: int | None = None

    def to_json(self) -> str:
        data: dict[str, Any] = {"type": str(self.type), "content": self.content}
        if self.level is not None:
            data["level"] = self.level
        return json.dumps(data)

    @classmethod
    def from_json(cls, raw: str) -> "AddPayload":
        data = json.loads(raw)
        return cls(type=BlockType(data["type"]), content=data["content"], level=data.get("level"))


@dataclass
class EditorDocument:
    """An open document. ``blocks`` always mirrors ``content``."""

    id: str
    name: str
    type: DocumentType
    content: str
    blocks: list[Block] = field(default_factory=list)
    is_dirty: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


@dataclass(frozen=True)
class ToolTraceEntry:
    """One executed tool call."""

    name: str
    args: dict[str, Any]
    status: ToolStatus
    timestamp: float = field(default_factory=time.time)


def _millis() -> int:
    return int(time.time() * 1000)


def generate_diff_id() -> str:
    return f"diff-{_millis()}-{uuid.uuid4().hex[:6]}"


def generate_block_id() -> str:
    """Allocate a block id for a block that does not exist yet."""
    return f"block-{uuid.uuid4().hex[:12]}"


def generate_document_id() -> str:
    return f"doc-{_millis()}-{uuid.uuid4().hex[:4]}"
