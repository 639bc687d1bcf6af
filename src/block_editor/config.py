"""Configuration constants for block-editor."""

import os
from pathlib import Path

# Tool layer limits.
MAX_BATCH_SIZE: int = 25
MAX_CONTENT_LENGTH: int = 50_000

# Preview length in list_blocks summaries, and in read_blocks context entries.
PREVIEW_LENGTH: int = 50
CONTEXT_PREVIEW_LENGTH: int = 30

# Stuck detection.
TRACE_CAPACITY: int = 30
REPEAT_THRESHOLD: int = 3
NO_PROGRESS_THRESHOLD: int = 10

# Seconds before a document switch releases the lock even if it has not settled.
SWITCH_LOCK_TIMEOUT: float = 2.0

MAX_AGENT_ITERATIONS: int = 30
MAX_UNDO_STACK: int = 20

# Directory with markdown documents served over MCP. First directory which is found is used.
DOCUMENT_DIRECTORIES: list[Path] = [
    Path("~/.local/share/block-editor").expanduser(),
    Path("~/.config/block-editor/documents").expanduser(),
]


def resolve_documents_directory() -> Path | None:
    """Return the documents directory, preferring ``BLOCK_EDITOR_DOCS_DIR``."""
    env_dir = os.environ.get("BLOCK_EDITOR_DOCS_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    for candidate in DOCUMENT_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return None
