"""CLI for the block editor (inspect documents, MCP server)."""

import json
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from block_editor.config import resolve_documents_directory
from block_editor.core.index.block_index import BlockIndex
from block_editor.core.markdown.parser import parse_markdown
from block_editor.logging_config import configure_logging

app = typer.Typer(help="Block editor: block-level document editing tools for LLM agents.")


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


@app.command()
def blocks(
    file: Path = typer.Argument(..., help="Markdown file to split into blocks"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the block outline of a markdown file."""
    if not file.is_file():
        logger.error("File not found: {}", file)
        raise typer.Exit(1)

    index = BlockIndex(parse_markdown(file.read_text(encoding="utf-8")))
    summaries = index.get_block_index()
    if output_json:
        typer.echo(json.dumps([s.to_dict() for s in summaries], indent=2, ensure_ascii=False))
        return

    typer.echo(f"{len(summaries)} blocks:\n")
    for s in summaries:
        typer.echo(f"  {s.order:>3}  {s.id:<10} {s.type:<10} {s.preview}")


@app.command()
def documents(
    docs_dir: Annotated[
        Path | None,
        typer.Argument(help="Documents directory (default: BLOCK_EDITOR_DOCS_DIR)"),
    ] = None,
) -> None:
    """List the markdown documents the MCP server would open."""
    directory = docs_dir or resolve_documents_directory()
    if directory is None or not directory.is_dir():
        logger.error("Documents directory not found: {}", directory)
        raise typer.Exit(1)

    paths = sorted(directory.glob("*.md"))
    typer.echo(f"{len(paths)} documents in {directory}:\n")
    for path in paths:
        count = len(parse_markdown(path.read_text(encoding="utf-8")))
        typer.echo(f"  {path.stem} - {count} blocks")


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from block_editor.mcp.server import run_mcp_server

    run_mcp_server()


def main() -> None:
    app()
