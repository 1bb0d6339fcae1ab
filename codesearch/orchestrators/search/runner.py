"""Process runner: the single place an external search binary is spawned.

stdout and stderr are drained by reader tasks into capped buffers as data
arrives. Hitting the byte cap only drops output; the timeout is the only thing
that stops the process (terminate, then kill after a grace window).
Each engine runs in its own process group and signals go to the whole group,
so a wrapper script cannot leave a grandchild holding the pipes open.
"""

import asyncio
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path

from codesearch.core.config import config
from codesearch.core.logger import logger
from codesearch.orchestrators.search.constants import (
    EXIT_SIGNAL_BASE,
    EXIT_SPAWN_FAILED,
    EXIT_TIMED_OUT,
)

_READ_CHUNK_BYTES = 8192


@dataclass(frozen=True)
class RunnerResult:
    stdout: str
    stderr: str
    exit_code: int
    duration_ms: int
    timed_out: bool
    truncated: bool


class _CappedBuffer:
    """Keeps at most `limit` bytes; anything past that is counted as truncation."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._data = bytearray()
        self.truncated = False

    def feed(self, chunk: bytes) -> None:
        room = self._limit - len(self._data)
        if room <= 0:
            self.truncated = True
            return
        if len(chunk) > room:
            self._data += chunk[:room]
            self.truncated = True
            return
        self._data += chunk

    def __len__(self) -> int:
        return len(self._data)

    def text(self) -> str:
        return self._data.decode("utf-8", errors="replace")


async def _drain(stream: asyncio.StreamReader | None, buffer: _CappedBuffer) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_READ_CHUNK_BYTES)
        if not chunk:
            return
        buffer.feed(chunk)


class ProcessRunner:
    def __init__(
        self,
        max_output_bytes: int | None = None,
        kill_grace_ms: int | None = None,
    ) -> None:
        self._max_output_bytes = max_output_bytes or config.max_output_bytes
        self._kill_grace = (
            kill_grace_ms if kill_grace_ms is not None else config.kill_grace_ms
        ) / 1000

    async def run(
        self,
        binary: str,
        args: list[str],
        *,
        cwd: Path | str,
        timeout_ms: int,
        max_output_bytes: int | None = None,
    ) -> RunnerResult:
        limit = max_output_bytes or self._max_output_bytes
        started = time.monotonic()
        logger.process_spawn(binary, args, str(cwd))

        try:
            proc = await asyncio.create_subprocess_exec(
                binary,
                *args,
                cwd=str(cwd),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            duration_ms = round((time.monotonic() - started) * 1000)
            logger.warning(f"Failed to start {binary}: {e}")
            return RunnerResult(
                stdout="",
                stderr=f"Failed to start {binary}: {e}",
                exit_code=EXIT_SPAWN_FAILED,
                duration_ms=duration_ms,
                timed_out=False,
                truncated=False,
            )

        stdout_buf = _CappedBuffer(limit)
        stderr_buf = _CappedBuffer(limit)
        readers = [
            asyncio.create_task(_drain(proc.stdout, stdout_buf)),
            asyncio.create_task(_drain(proc.stderr, stderr_buf)),
        ]

        timed_out = False
        try:
            await asyncio.wait_for(proc.wait(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            timed_out = True
            await self._stop(proc)

        await self._finish_readers(readers)
        duration_ms = round((time.monotonic() - started) * 1000)

        stderr = stderr_buf.text()
        if timed_out:
            exit_code = EXIT_TIMED_OUT
            stderr = f"{stderr}\nProcess timed out after {timeout_ms}ms"
        elif proc.returncode is None:
            exit_code = EXIT_TIMED_OUT
        elif proc.returncode < 0:
            exit_code = EXIT_SIGNAL_BASE - proc.returncode
        else:
            exit_code = proc.returncode

        truncated = stdout_buf.truncated or stderr_buf.truncated
        logger.process_result(
            binary,
            exit_code,
            duration_ms,
            timed_out=timed_out,
            truncated=truncated,
            stdout_bytes=len(stdout_buf),
        )
        return RunnerResult(
            stdout=stdout_buf.text(),
            stderr=stderr.strip(),
            exit_code=exit_code,
            duration_ms=duration_ms,
            timed_out=timed_out,
            truncated=truncated,
        )

    @staticmethod
    def _signal_group(proc: asyncio.subprocess.Process, sig: int) -> bool:
        """Signal the engine's process group; False once it is gone."""
        try:
            os.killpg(proc.pid, sig)
        except ProcessLookupError:
            return False
        except PermissionError:
            proc.send_signal(sig)
        return True

    async def _stop(self, proc: asyncio.subprocess.Process) -> None:
        if not self._signal_group(proc, signal.SIGTERM):
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=self._kill_grace)
            return
        except asyncio.TimeoutError:
            logger.warning(f"Process {proc.pid} ignored SIGTERM, killing")
        if not self._signal_group(proc, signal.SIGKILL):
            return
        try:
            # wait() also waits for every pipe to close, so it is bounded too.
            await asyncio.wait_for(proc.wait(), timeout=max(self._kill_grace, 0.1))
        except asyncio.TimeoutError:
            logger.warning(f"Process {proc.pid} did not exit after SIGKILL")

    async def _finish_readers(self, readers: list[asyncio.Task[None]]) -> None:
        # A grandchild can keep a pipe open after the child is gone.
        _, pending = await asyncio.wait(readers, timeout=max(self._kill_grace, 0.1))
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
