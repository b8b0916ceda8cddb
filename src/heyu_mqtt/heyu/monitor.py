"""Supervision of the long-running `heyu monitor` process."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable

from heyu_mqtt.logging_abstraction import get_logger

logger = get_logger(__name__)

type LineHandler = Callable[[str], Awaitable[None]]


class HeyuMonitor:
    """Runs `<heyu_cmd> monitor` and feeds each line of its output to a handler.

    The monitor is not restarted when it exits; the failure is logged and
    `start()` returns.
    """

    lp: str = "heyu:monitor:"
    start_task: asyncio.Task[None] | None = None

    def __init__(self, heyu_cmd: str, on_line: LineHandler) -> None:
        self.heyu_cmd: str = heyu_cmd
        self.on_line: LineHandler = on_line
        self.process: asyncio.subprocess.Process | None = None
        self._stopping: bool = False

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def start(self) -> None:
        lp = f"{self.lp}start:"
        self._stopping = False
        try:
            self.process = await asyncio.create_subprocess_exec(
                self.heyu_cmd,
                "monitor",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            logger.error("%s error running heyu monitor: %s", lp, e, extra={"heyu_cmd": self.heyu_cmd})
            return

        logger.info("%s Started %s monitor", lp, self.heyu_cmd, extra={"pid": self.process.pid})
        await self._read_lines()

        returncode = await self.process.wait()
        if not self._stopping:
            logger.error("%s error running heyu monitor: process exited with status %s", lp, returncode)

    async def _read_lines(self) -> None:
        lp = f"{self.lp}read:"
        assert self.process is not None
        assert self.process.stdout is not None, "monitor stdout must be piped"
        while True:
            try:
                raw = await self.process.stdout.readline()
            except ValueError as e:
                # line over the stream limit; readline has discarded what it buffered
                logger.warning("%s Skipping oversized monitor line: %s", lp, e)
                continue
            if not raw:
                logger.debug("%s EOF from monitor", lp)
                return
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            try:
                await self.on_line(line)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("%s Failed to handle monitor line: %r", lp, line)

    async def stop(self) -> None:
        lp = f"{self.lp}stop:"
        self._stopping = True
        if not self.running:
            return
        assert self.process is not None
        logger.debug("%s Terminating monitor (pid %s)", lp, self.process.pid)
        with contextlib.suppress(ProcessLookupError):
            self.process.terminate()
        _ = await self.process.wait()
        logger.info("%s heyu monitor stopped", lp)
