"""Fire-and-forget execution of heyu commands."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from heyu_mqtt.logging_abstraction import get_logger

logger = get_logger(__name__)


class HeyuCommandRunner:
    """Spawns `<heyu_cmd> *tokens` in the background.

    Callers never wait for the command: `run()` schedules it and returns. The
    outcome (spawn failure, non-zero exit) only ends up in the log.
    """

    lp: str = "heyu:run:"

    def __init__(self, heyu_cmd: str) -> None:
        self.heyu_cmd: str = heyu_cmd
        self.tasks: set[asyncio.Task[int | None]] = set()

    def run(self, tokens: Sequence[str]) -> asyncio.Task[int | None]:
        """Schedule a heyu invocation and return the task tracking it."""
        task = asyncio.create_task(self.execute(tokens), name=f"heyu {' '.join(tokens)}".strip())
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task

    async def execute(self, tokens: Sequence[str]) -> int | None:
        """Run heyu to completion. Returns its exit status, or None if it could not start."""
        lp = self.lp
        cmd = [self.heyu_cmd, *tokens]
        logger.debug("%s Executing: %s", lp, " ".join(cmd))
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("%s Failed to start %s: %s", lp, self.heyu_cmd, e, extra={"args": list(tokens)})
            return None

        _, stderr = await process.communicate()
        returncode = process.returncode
        if returncode:
            logger.warning(
                "%s %s exited with status %s",
                lp,
                " ".join(cmd),
                returncode,
                extra={"stderr": (stderr or b"").decode(errors="replace").strip()},
            )
        return returncode

    async def stop(self) -> None:
        """Cancel commands that are still running."""
        pending = [task for task in self.tasks if not task.done()]
        for task in pending:
            _ = task.cancel()
        if pending:
            _ = await asyncio.gather(*pending, return_exceptions=True)
