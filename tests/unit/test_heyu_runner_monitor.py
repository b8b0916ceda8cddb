"""Unit tests for the heyu subprocess collaborators.

Tests for HeyuCommandRunner (fire-and-forget invocations) and HeyuMonitor
(line-by-line supervision of `heyu monitor`) with the subprocess layer mocked.
"""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from heyu_mqtt.heyu.monitor import HeyuMonitor
from heyu_mqtt.heyu.runner import HeyuCommandRunner

HEYU = "/usr/local/bin/heyu"


def _finished_process(returncode: int = 0, stderr: bytes = b"") -> MagicMock:
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(None, stderr))
    process.returncode = returncode
    return process


def _monitor_process(lines: list[bytes | Exception], returncode: int = 1) -> MagicMock:
    process = MagicMock()
    process.pid = 4242
    process.stdout = MagicMock()
    process.stdout.readline = AsyncMock(side_effect=[*lines, b""])
    process.returncode = None

    async def wait() -> int:
        process.returncode = returncode
        return returncode

    process.wait = AsyncMock(side_effect=wait)
    return process


class TestHeyuCommandRunner:
    """Tests for HeyuCommandRunner"""

    @pytest.mark.asyncio
    async def test_execute_passes_tokens_as_arguments(self):
        runner = HeyuCommandRunner(HEYU)

        with patch(
            "heyu_mqtt.heyu.runner.asyncio.create_subprocess_exec",
            AsyncMock(return_value=_finished_process()),
        ) as mock_exec:
            result = await runner.execute(("xpreset", "o3", "32"))

        assert result == 0
        assert mock_exec.await_args.args == (HEYU, "xpreset", "o3", "32")
        assert mock_exec.await_args.kwargs["stdout"] == asyncio.subprocess.DEVNULL

    @pytest.mark.asyncio
    async def test_execute_with_no_tokens(self):
        runner = HeyuCommandRunner(HEYU)

        with patch(
            "heyu_mqtt.heyu.runner.asyncio.create_subprocess_exec",
            AsyncMock(return_value=_finished_process()),
        ) as mock_exec:
            _ = await runner.execute(())

        assert mock_exec.await_args.args == (HEYU,)

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_logged(self, caplog):
        runner = HeyuCommandRunner(HEYU)

        with (
            caplog.at_level(logging.WARNING),
            patch(
                "heyu_mqtt.heyu.runner.asyncio.create_subprocess_exec",
                AsyncMock(return_value=_finished_process(1, b"Invalid command\n")),
            ),
        ):
            result = await runner.execute(("bogus",))

        assert result == 1
        assert "exited with status 1" in caplog.text

    @pytest.mark.asyncio
    async def test_spawn_failure_returns_none(self, caplog):
        runner = HeyuCommandRunner("/nonexistent/heyu")

        with (
            caplog.at_level(logging.ERROR),
            patch(
                "heyu_mqtt.heyu.runner.asyncio.create_subprocess_exec",
                AsyncMock(side_effect=FileNotFoundError("no such file")),
            ),
        ):
            result = await runner.execute(("on", "A1"))

        assert result is None
        assert "Failed to start" in caplog.text

    @pytest.mark.asyncio
    async def test_run_does_not_wait(self):
        runner = HeyuCommandRunner(HEYU)
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_exec(*_args, **_kwargs):
            started.set()
            await release.wait()
            return _finished_process()

        with patch("heyu_mqtt.heyu.runner.asyncio.create_subprocess_exec", AsyncMock(side_effect=slow_exec)):
            task = runner.run(("on", "A1"))
            assert task in runner.tasks
            await started.wait()
            assert not task.done()
            release.set()
            assert await task == 0

        await asyncio.sleep(0)
        assert task not in runner.tasks

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_commands(self):
        runner = HeyuCommandRunner(HEYU)

        async def hang(*_args, **_kwargs):
            await asyncio.sleep(3600)

        with patch("heyu_mqtt.heyu.runner.asyncio.create_subprocess_exec", AsyncMock(side_effect=hang)):
            task = runner.run(("on", "A1"))
            await asyncio.sleep(0)
            await runner.stop()

        assert task.cancelled()


class TestHeyuMonitor:
    """Tests for HeyuMonitor"""

    @pytest.mark.asyncio
    async def test_lines_are_decoded_and_forwarded(self):
        on_line = AsyncMock()
        monitor = HeyuMonitor(HEYU, on_line)
        process = _monitor_process([b"05/24 13:14:15  Monitor started\n", b"... func  on : hc C\r\n"])

        with patch(
            "heyu_mqtt.heyu.monitor.asyncio.create_subprocess_exec",
            AsyncMock(return_value=process),
        ) as mock_exec:
            await monitor.start()

        assert mock_exec.await_args.args == (HEYU, "monitor")
        assert [call.args[0] for call in on_line.await_args_list] == [
            "05/24 13:14:15  Monitor started",
            "... func  on : hc C",
        ]

    @pytest.mark.asyncio
    async def test_unexpected_exit_is_logged(self, caplog):
        monitor = HeyuMonitor(HEYU, AsyncMock())

        with (
            caplog.at_level(logging.ERROR),
            patch(
                "heyu_mqtt.heyu.monitor.asyncio.create_subprocess_exec",
                AsyncMock(return_value=_monitor_process([], returncode=1)),
            ),
        ):
            await monitor.start()

        assert "error running heyu monitor" in caplog.text
        assert not monitor.running

    @pytest.mark.asyncio
    async def test_spawn_failure_is_logged(self, caplog):
        monitor = HeyuMonitor("/nonexistent/heyu", AsyncMock())

        with (
            caplog.at_level(logging.ERROR),
            patch(
                "heyu_mqtt.heyu.monitor.asyncio.create_subprocess_exec",
                AsyncMock(side_effect=FileNotFoundError("no such file")),
            ),
        ):
            await monitor.start()

        assert "error running heyu monitor" in caplog.text
        assert monitor.process is None

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_reading(self):
        on_line = AsyncMock(side_effect=[RuntimeError("boom"), None])
        monitor = HeyuMonitor(HEYU, on_line)

        with patch(
            "heyu_mqtt.heyu.monitor.asyncio.create_subprocess_exec",
            AsyncMock(return_value=_monitor_process([b"first\n", b"second\n"])),
        ):
            await monitor.start()

        assert on_line.await_count == 2

    @pytest.mark.asyncio
    async def test_oversized_line_is_skipped(self, caplog):
        on_line = AsyncMock()
        monitor = HeyuMonitor(HEYU, on_line)
        overrun = ValueError("Separator is not found, and chunk exceed the limit")

        with (
            caplog.at_level(logging.WARNING),
            patch(
                "heyu_mqtt.heyu.monitor.asyncio.create_subprocess_exec",
                AsyncMock(return_value=_monitor_process([overrun, b"... func  on : hc C\n"])),
            ),
        ):
            await monitor.start()

        on_line.assert_awaited_once_with("... func  on : hc C")
        assert "oversized monitor line" in caplog.text

    @pytest.mark.asyncio
    async def test_stop_terminates_running_process(self):
        monitor = HeyuMonitor(HEYU, AsyncMock())
        process = _monitor_process([])
        monitor.process = process

        await monitor.stop()

        process.terminate.assert_called_once()
        process.wait.assert_awaited_once()
        assert not monitor.running

    @pytest.mark.asyncio
    async def test_stop_without_process_is_noop(self):
        monitor = HeyuMonitor(HEYU, AsyncMock())
        await monitor.stop()
        assert monitor.process is None
