"""loguru setup for CLI runs and the review UI status line."""

from __future__ import annotations

import os
import sys
from collections import deque

from loguru import logger

DEFAULT_FORMAT = "<level>{level: <8}</level> | {message}"
DEBUG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - {message}"
)


def configure_logging(debug: bool = False) -> None:
    """Replace loguru's default sink with driftcheck's stderr (and file) sinks.

    DRIFTCHECK_DEBUG_FILE adds a DEBUG-level file sink regardless of debug.
    """
    logger.remove()
    # Resolve sys.stderr per message so rich Live can redirect it while reviewing
    logger.add(
        lambda message: sys.stderr.write(message),
        level="DEBUG" if debug else "WARNING",
        format=DEBUG_FORMAT if debug else DEFAULT_FORMAT,
        colorize=sys.stderr.isatty(),
    )

    debug_file = os.getenv("DRIFTCHECK_DEBUG_FILE")
    if debug_file:
        logger.add(debug_file, level="DEBUG", format=DEBUG_FORMAT, enqueue=False)


class WarningBuffer:
    """loguru sink that keeps the most recent WARNING+ messages.

    Attached while the review UI owns the terminal so warnings surface in the
    status line instead of tearing the screen.
    """

    def __init__(self, maxlen: int = 20):
        self._messages: deque[str] = deque(maxlen=maxlen)
        self._handler_id: int | None = None

    def __call__(self, message) -> None:
        record = message.record
        self._messages.append(f"{record['level'].name}: {record['message']}")

    def attach(self) -> WarningBuffer:
        if self._handler_id is None:
            self._handler_id = logger.add(self, level="WARNING", format="{message}")
        return self

    def detach(self) -> None:
        if self._handler_id is not None:
            logger.remove(self._handler_id)
            self._handler_id = None

    def add(self, text: str) -> None:
        self._messages.append(text)

    @property
    def latest(self) -> str | None:
        return self._messages[-1] if self._messages else None

    @property
    def messages(self) -> list[str]:
        return list(self._messages)
