from __future__ import annotations

import asyncio
import contextlib
import logging

from .exceptions import ExternalToolError

LOGGER = logging.getLogger("benchit.load")


def threads_for(concurrency: int) -> int:
    """wrk thread count for a connection count: one thread per ten connections."""
    return concurrency // 10 + 1


class WrkRunner:
    """Runs one wrk load test as a child process and captures its report."""

    def __init__(self, binary: str = "wrk") -> None:
        self._binary = binary

    def build_command(self, concurrency: int, url: str, duration_seconds: int) -> list[str]:
        return [
            self._binary,
            "-t",
            str(threads_for(concurrency)),
            "-c",
            str(concurrency),
            f"-d{duration_seconds}s",
            url,
        ]

    async def run(self, concurrency: int, url: str, duration_seconds: int) -> bytes:
        command = self.build_command(concurrency, url, duration_seconds)
        LOGGER.debug("Spawning %s", " ".join(command))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ExternalToolError(f"Unable to start {self._binary}: {exc}") from exc

        try:
            stdout, stderr = await process.communicate()
        finally:
            if process.returncode is None:
                LOGGER.warning("Killing unfinished %s run (pid %s)", self._binary, process.pid)
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        if process.returncode != 0:
            stderr_text = stderr.decode("utf-8", errors="replace").strip()
            raise ExternalToolError(
                f"{self._binary} exited with status {process.returncode}: {stderr_text}",
                returncode=process.returncode,
                stderr=stderr_text,
            )
        return stdout
