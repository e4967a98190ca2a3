"""ripgrep-backed search provider."""

import asyncio
import subprocess
from pathlib import Path

from loguru import logger

from driftcheck.interfaces.search_provider import SearchProvider

RIPGREP_INSTALL_URL = "https://github.com/BurntSushi/ripgrep#installation"


class RipgrepProvider(SearchProvider):
    """Runs ``rg --json`` as an async subprocess per query."""

    def __init__(self, root: Path, binary: str = "rg", timeout: int = 30):
        self._root = root
        self._binary = binary
        self._timeout = timeout

    async def search(self, pattern: str, files: list[Path], context_lines: int) -> str:
        if not files:
            return ""

        cmd = [
            self._binary,
            "--json",
            "--fixed-strings",
            "--context",
            str(context_lines),
            "--",
            pattern,
            *(str(f) for f in files),
        ]

        process = None
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(self._root),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self._timeout)
        except FileNotFoundError as e:
            raise RuntimeError(
                f"ripgrep ({self._binary}) not found. Please install it: {RIPGREP_INSTALL_URL}"
            ) from e
        except asyncio.TimeoutError as e:
            if process and process.returncode is None:
                process.kill()
                await process.wait()
            raise RuntimeError(f"ripgrep timed out after {self._timeout}s") from e

        # ripgrep returns exit code 1 if no matches (which is fine)
        if process.returncode not in (0, 1):
            error_msg = stderr.decode("utf-8", errors="replace").strip()
            raise RuntimeError(f"ripgrep failed (exit {process.returncode}): {error_msg}")

        output = stdout.decode("utf-8", errors="replace")
        logger.debug(f"rg {pattern!r}: {len(output)} bytes of output")
        return output
