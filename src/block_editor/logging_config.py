"""Logging configuration for the block editor.

Logs always go to stderr by default: the MCP server speaks its protocol over
stdout.
"""

import sys
from typing import TextIO

from loguru import logger

_FORMAT = "{level.icon} {message}"
# Debug output names the emitting function so tool and lock traces can be followed.
_VERBOSE_FORMAT = "{time:HH:mm:ss.SSS} {level.icon} {name}:{function} {message}"


def configure_logging(*, verbose: bool = False, sink: TextIO | None = None) -> None:
    """Replace loguru's handlers with a single sink.

    Args:
        verbose: Log at DEBUG with timestamps and origin instead of INFO.
        sink: Stream to write to; stderr when None.
    """
    logger.remove()
    target = sys.stderr if sink is None else sink
    if verbose:
        logger.add(target, level="DEBUG", format=_VERBOSE_FORMAT)
    else:
        logger.add(target, level="INFO", format=_FORMAT)
