"""Argument schemas for the agent-facing tools."""

from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from block_editor.config import MAX_BATCH_SIZE
from block_editor.errors import ToolArgumentError
from block_editor.models.block import BlockType


class ToolArgs(BaseModel):
    """Base for tool arguments. Accepts snake_case and camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


def _cap_batch(value: Any) -> Any:
    # Items past the cap are dropped before validation, so they can never fail the batch.
    if isinstance(value, list):
        return value[:MAX_BATCH_SIZE]
    return value


class ListBlocksArgs(ToolArgs):
    pass


class ListDocumentsArgs(ToolArgs):
    pass


class ReadBlocksArgs(ToolArgs):
    block_ids: Annotated[list[str], BeforeValidator(_cap_batch)] = Field(
        min_length=1, description="Block IDs to read"
    )
    with_context: bool = Field(default=False, description="Include surrounding blocks")


class BlockEdit(ToolArgs):
    block_id: str = Field(description="Block ID")
    new_content: str = Field(description="New content")
    reason: str = Field(default="", description="Brief reason")


class EditBlocksArgs(ToolArgs):
    edits: Annotated[list[BlockEdit], BeforeValidator(_cap_batch)] = Field(
        min_length=1, description="Edits to apply"
    )


class BlockAddition(ToolArgs):
    after_block_id: str | None = Field(
        default=None,
        description="Block to insert after, or null for the start of the document",
    )
    type: BlockType = Field(description="Type of the new block")
    content: str = Field(description="Content of the new block (must not be empty)")
    level: int | None = Field(
        default=None, ge=0, description="Heading level (1-6) or list nesting depth"
    )
    reason: str = Field(default="", description="Why this block is being added")


class AddBlocksArgs(ToolArgs):
    additions: Annotated[list[BlockAddition], BeforeValidator(_cap_batch)] = Field(
        min_length=1, description="Blocks to add, in order"
    )


class BlockDeletion(ToolArgs):
    block_id: str = Field(description="Block ID")
    reason: str = Field(default="", description="Why this block is being deleted")


class DeleteBlocksArgs(ToolArgs):
    deletions: Annotated[list[BlockDeletion], BeforeValidator(_cap_batch)] = Field(
        min_length=1, description="Blocks to delete"
    )


class SwitchDocumentArgs(ToolArgs):
    doc_id: str = Field(description="The document ID to switch to")


TOOL_DESCRIPTIONS: dict[str, str] = {
    "list_blocks": (
        "List all blocks in the document with their IDs, types, and content previews. "
        "Call this first to understand document structure."
    ),
    "read_blocks": (
        f"Batch read up to {MAX_BATCH_SIZE} blocks in ONE call. "
        "Required before editing or deleting a block."
    ),
    "edit_blocks": (
        f"Batch edit up to {MAX_BATCH_SIZE} blocks in ONE call. Requires read_blocks first."
    ),
    "add_blocks": (
        f"Batch add up to {MAX_BATCH_SIZE} blocks in ONE call. Each addition after the first "
        "is placed directly after the previous one. Use afterBlockId=null for the start "
        "of the document."
    ),
    "delete_blocks": (
        f"Batch delete up to {MAX_BATCH_SIZE} blocks in ONE call. Requires read_blocks first."
    ),
    "list_documents": "List all open documents. Call this before switching documents.",
    "switch_document": (
        "Switch to a different document. Resets read state: call list_blocks again afterwards."
    ),
}

BLOCK_TOOL_ARGS: dict[str, type[ToolArgs]] = {
    "list_blocks": ListBlocksArgs,
    "read_blocks": ReadBlocksArgs,
    "edit_blocks": EditBlocksArgs,
    "add_blocks": AddBlocksArgs,
    "delete_blocks": DeleteBlocksArgs,
}

DOCUMENT_TOOL_ARGS: dict[str, type[ToolArgs]] = {
    "list_documents": ListDocumentsArgs,
    "switch_document": SwitchDocumentArgs,
}

ArgsT = TypeVar("ArgsT", bound=ToolArgs)


def parse_tool_args(tool_name: str, model: type[ArgsT], args: dict[str, Any] | None) -> ArgsT:
    """Validate raw tool arguments, raising ToolArgumentError on malformed input."""
    try:
        return model.model_validate(args or {})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise ToolArgumentError(tool_name, problems) from e


def tool_definitions(*, include_documents: bool = False) -> list[dict[str, Any]]:
    """Describe the tools as name/description/JSON-schema entries for an LLM binding."""
    registry = dict(BLOCK_TOOL_ARGS)
    if include_documents:
        registry = {**DOCUMENT_TOOL_ARGS, **registry}
    return [
        {
            "name": name,
            "description": TOOL_DESCRIPTIONS[name],
            "parameters": model.model_json_schema(by_alias=True),
        }
        for name, model in registry.items()
    ]
