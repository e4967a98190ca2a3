"""Raw key input from the controlling terminal.

Inside a pre-push hook stdin carries the ref list, so keys are read from
``/dev/tty``. The descriptor is registered with the event loop and every
decoded key is posted to the review channel as ``KeyPressed``.
"""

from __future__ import annotations

import asyncio
import os
import termios
import tty

from loguru import logger

from driftcheck.services.remediation import Event, KeyPressed

TTY_PATH = "/dev/tty"

_ESCAPE_SEQUENCES = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1bOA": "up",
    "\x1bOB": "down",
}


def decode_keys(data: str) -> list[str]:
    """Split a chunk of terminal input into key names."""
    keys: list[str] = []
    i = 0
    while i < len(data):
        if data[i] == "\x1b":
            seq = data[i : i + 3]
            if seq in _ESCAPE_SEQUENCES:
                keys.append(_ESCAPE_SEQUENCES[seq])
                i += 3
                continue
            keys.append("esc")
            i += 1
            continue
        char = data[i]
        if char in ("\r", "\n"):
            keys.append("enter")
        elif char == "\x03":
            # Ctrl-C in cbreak mode still arrives as a character
            keys.append("esc")
        else:
            keys.append(char)
        i += 1
    return keys


def tty_available() -> bool:
    try:
        fd = os.open(TTY_PATH, os.O_RDONLY)
    except OSError:
        return False
    os.close(fd)
    return True


class KeyReader:
    """Context manager putting /dev/tty in cbreak mode and streaming keys."""

    def __init__(self, channel: asyncio.Queue[Event], path: str = TTY_PATH):
        self._channel = channel
        self._path = path
        self._fd: int | None = None
        self._saved: list | None = None

    def __enter__(self) -> KeyReader:
        self._fd = os.open(self._path, os.O_RDONLY | os.O_NONBLOCK)
        self._saved = termios.tcgetattr(self._fd)
        tty.setcbreak(self._fd)
        asyncio.get_running_loop().add_reader(self._fd, self._on_readable)
        return self

    def __exit__(self, *exc_info) -> None:
        if self._fd is None:
            return
        asyncio.get_running_loop().remove_reader(self._fd)
        if self._saved is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
        os.close(self._fd)
        self._fd = None

    def _on_readable(self) -> None:
        try:
            data = os.read(self._fd, 64).decode("utf-8", errors="ignore")
        except BlockingIOError:
            return
        except OSError as e:
            logger.warning(f"Lost terminal input: {e}")
            self._channel.put_nowait(KeyPressed("esc"))
            return
        for key in decode_keys(data):
            self._channel.put_nowait(KeyPressed(key))
