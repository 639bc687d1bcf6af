"""Split markdown into blocks and render blocks back to markdown."""

import dataclasses
import io
import re
from collections.abc import Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token

from block_editor.models.block import Block, BlockType, generate_block_id

_MARKDOWN = MarkdownIt("commonmark").enable("table")

_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])[ \t]?")
_LIST_OPEN = {"bullet_list_open", "ordered_list_open"}
_LIST_CLOSE = {"bullet_list_close", "ordered_list_close"}
# Containers kept verbatim as a single paragraph block.
_RAW_CONTAINERS = {"blockquote_open": "blockquote_close", "table_open": "table_close"}
_RAW_LEAVES = {"hr", "html_block"}


def _reorder(blocks: Sequence[Block]) -> list[Block]:
    return [b if b.order == i else dataclasses.replace(b, order=i) for i, b in enumerate(blocks)]


def _span(lines: Sequence[str], start: int, end: int) -> tuple[int, int]:
    """Trim trailing blank lines off a ``token.map`` range."""
    end = min(end, len(lines))
    while end > start + 1 and not lines[end - 1].strip():
        end -= 1
    return start, end


def _source(lines: Sequence[str], start: int, end: int) -> str:
    return "\n".join(lines[start:end]).rstrip()


def _list_item_end(tokens: Sequence[Token], idx: int) -> int:
    """Line where a list item's own text stops: its first nested list, or its end."""
    item = tokens[idx]
    for token in tokens[idx + 1 :]:
        if token.type == "list_item_close" and token.level == item.level:
            break
        if token.type in _LIST_OPEN and token.level == item.level + 1 and token.map:
            return token.map[0]
    return item.map[1] if item.map else 0


def _list_item_text(lines: Sequence[str], start: int, end: int) -> str:
    first = lines[start]
    marker = _LIST_MARKER_RE.match(first)
    indent = marker.end() if marker else 0
    parts = [first[indent:]]
    for line in lines[start + 1 : end]:
        # Lazy continuation lines are not indented.
        parts.append(line[indent:] if not line[:indent].strip() else line.lstrip())
    return "\n".join(parts).strip()


def parse_markdown(markdown: str) -> list[Block]:
    """Parse markdown into ordered blocks.

    Tokenizes with markdown-it (CommonMark plus tables). Headings, paragraphs
    and code (fences kept in the content) come from top-level tokens; every
    list item becomes its own block with ``level`` set to its nesting depth
    and its nested lists split off. Block quotes, tables, rules and HTML are
    kept verbatim as paragraphs. Ids are ``block-<n>`` in document order.

    Args:
        markdown: Markdown source.

    Returns:
        Blocks with dense ``order`` and 1-based line spans.
    """
    markdown = markdown.replace("\r\n", "\n").replace("\r", "\n")
    lines = markdown.split("\n")
    tokens = _MARKDOWN.parse(markdown)
    blocks: list[Block] = []

    def emit(block_type: BlockType, content: str, start: int, end: int, level: int | None) -> None:
        blocks.append(
            Block(
                id=f"block-{len(blocks)}",
                type=block_type,
                content=content,
                order=len(blocks),
                level=level,
                line_start=start + 1,
                line_end=end,
            )
        )

    list_depth = 0
    skip_until: tuple[str, int] | None = None
    for idx, token in enumerate(tokens):
        if skip_until is not None:
            if (token.type, token.level) == skip_until:
                skip_until = None
            continue
        if token.type in _LIST_OPEN:
            list_depth += 1
            continue
        if token.type in _LIST_CLOSE:
            list_depth -= 1
            continue
        if token.map is None:
            continue

        if token.type == "list_item_open":
            start, end = _span(lines, token.map[0], _list_item_end(tokens, idx))
            text = _list_item_text(lines, start, end)
            emit(BlockType.LIST_ITEM, text, start, end, list_depth - 1)
            continue
        if token.level != 0:
            continue

        start, end = _span(lines, *token.map)
        if token.type == "heading_open":
            emit(BlockType.HEADING, tokens[idx + 1].content, start, end, int(token.tag[1]))
        elif token.type in ("fence", "code_block"):
            emit(BlockType.CODE, _source(lines, start, end), start, end, None)
        elif token.type == "paragraph_open" or token.type in _RAW_LEAVES:
            emit(BlockType.PARAGRAPH, _source(lines, start, end).strip(), start, end, None)
        elif token.type in _RAW_CONTAINERS:
            emit(BlockType.PARAGRAPH, _source(lines, start, end), start, end, None)
            skip_until = (_RAW_CONTAINERS[token.type], token.level)

    return blocks


def blocks_to_markdown(blocks: Sequence[Block]) -> str:
    """Render blocks in ``order`` as markdown separated by blank lines."""
    out = io.StringIO()
    for block in sorted(blocks, key=lambda b: b.order):
        if block.type == BlockType.HEADING:
            out.write(f"{'#' * (block.level or 1)} {block.content}\n")
        elif block.type == BlockType.LIST_ITEM:
            indent = "  " * (block.level or 0)
            first, *rest = block.content.split("\n")
            out.write(f"{indent}- {first}\n")
            for line in rest:
                out.write(f"{indent}  {line}\n" if line.strip() else "\n")
        else:
            out.write(f"{block.content}\n")
        out.write("\n")
    return out.getvalue().strip()


def update_block_content(blocks: Sequence[Block], block_id: str, content: str) -> list[Block]:
    return [dataclasses.replace(b, content=content) if b.id == block_id else b for b in blocks]


def add_block(
    blocks: Sequence[Block],
    after_block_id: str | None,
    block_type: BlockType,
    content: str,
    level: int | None = None,
    *,
    block_id: str | None = None,
) -> list[Block]:
    """Insert a block after ``after_block_id`` (or at the start when None).

    A fresh id is generated unless ``block_id`` is given.

    Raises:
        KeyError: If ``after_block_id`` is not in ``blocks``.
    """
    new_block = Block(
        id=block_id or generate_block_id(),
        type=block_type,
        content=content,
        order=0,
        level=level,
    )
    ordered = sorted(blocks, key=lambda b: b.order)
    if after_block_id is None:
        return _reorder([new_block, *ordered])

    for idx, block in enumerate(ordered):
        if block.id == after_block_id:
            return _reorder([*ordered[: idx + 1], new_block, *ordered[idx + 1 :]])
    msg = f"Block {after_block_id} not found"
    raise KeyError(msg)


def delete_block(blocks: Sequence[Block], block_id: str) -> list[Block]:
    return _reorder([b for b in sorted(blocks, key=lambda b: b.order) if b.id != block_id])


class MarkdownParser:
    """Default :class:`~block_editor.protocols.DocumentParser` for markdown content."""

    def parse(self, content: str) -> list[Block]:
        return parse_markdown(content)

    def serialize(self, blocks: Sequence[Block]) -> str:
        return blocks_to_markdown(blocks)
