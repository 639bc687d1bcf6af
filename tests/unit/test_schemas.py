"""Tests for tool argument schemas."""

from typing import Any

import pytest

from block_editor.core.tools.schemas import (
    AddBlocksArgs,
    ReadBlocksArgs,
    parse_tool_args,
    tool_definitions,
)
from block_editor.errors import ToolArgumentError
from block_editor.models.block import BlockType


def test_camel_and_snake_case_are_both_accepted() -> None:
    camel = parse_tool_args("read_blocks", ReadBlocksArgs, {"blockIds": ["a"], "withContext": 1})
    snake = parse_tool_args("read_blocks", ReadBlocksArgs, {"block_ids": ["a"], "with_context": 1})
    assert camel == snake
    assert camel.with_context is True


def test_batches_are_capped_before_validation() -> None:
    ids = [str(i) for i in range(40)]
    args = parse_tool_args("read_blocks", ReadBlocksArgs, {"block_ids": ids})
    assert len(args.block_ids) == 25


def test_addition_defaults() -> None:
    args = parse_tool_args(
        "add_blocks", AddBlocksArgs, {"additions": [{"type": "code", "content": "x = 1"}]}
    )
    addition = args.additions[0]
    assert addition.after_block_id is None
    assert addition.type == BlockType.CODE
    assert addition.level is None
    assert addition.reason == ""


@pytest.mark.parametrize(
    "args",
    [
        None,
        {"additions": []},
        {"additions": [{"type": "table", "content": "x"}]},
        {"additions": [{"type": "heading", "content": "x", "level": -1}]},
    ],
)
def test_malformed_additions_raise(args: dict[str, Any] | None) -> None:
    with pytest.raises(ToolArgumentError) as excinfo:
        parse_tool_args("add_blocks", AddBlocksArgs, args)
    assert excinfo.value.tool_name == "add_blocks"
    assert isinstance(excinfo.value, ValueError)


def test_tool_definitions_use_camel_case_schemas() -> None:
    definitions = {d["name"]: d for d in tool_definitions()}
    assert set(definitions) == {
        "list_blocks",
        "read_blocks",
        "edit_blocks",
        "add_blocks",
        "delete_blocks",
    }
    assert "blockIds" in definitions["read_blocks"]["parameters"]["properties"]
    assert "25" in definitions["edit_blocks"]["description"]


def test_tool_definitions_can_include_document_tools() -> None:
    names = [d["name"] for d in tool_definitions(include_documents=True)]
    assert names[:2] == ["list_documents", "switch_document"]
    assert len(names) == 7
