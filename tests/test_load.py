"""Unit tests for the wrk runner."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from benchit.exceptions import ExternalToolError
from benchit.load import WrkRunner, threads_for


def _mock_process(stdout=b"", stderr=b"", returncode=0):
    process = MagicMock()
    process.pid = 4242
    process.returncode = None

    async def communicate():
        process.returncode = returncode
        return stdout, stderr

    process.communicate = AsyncMock(side_effect=communicate)
    process.wait = AsyncMock(return_value=returncode)
    return process


class TestThreadsFor:
    """Test the wrk thread count hint."""

    @pytest.mark.parametrize(
        "concurrency, threads",
        [(1, 1), (9, 1), (10, 2), (64, 7), (128, 13)],
    )
    def test_threads(self, concurrency, threads):
        assert threads_for(concurrency) == threads


class TestWrkRunner:
    """Test command construction and subprocess lifecycle."""

    def test_build_command(self):
        runner = WrkRunner("wrk")
        command = runner.build_command(32, "http://127.0.0.1:3000/tasks", 60)
        assert command == ["wrk", "-t", "4", "-c", "32", "-d60s", "http://127.0.0.1:3000/tasks"]

    def test_build_command_custom_binary(self):
        command = WrkRunner("/opt/wrk/bin/wrk").build_command(1, "http://h/tasks", 5)
        assert command[0] == "/opt/wrk/bin/wrk"
        assert command[-2:] == ["-d5s", "http://h/tasks"]

    @pytest.mark.asyncio
    async def test_run_returns_stdout(self, wrk_output):
        process = _mock_process(stdout=wrk_output)
        with patch(
            "benchit.load.asyncio.create_subprocess_exec", AsyncMock(return_value=process)
        ) as spawn:
            output = await WrkRunner().run(16, "http://127.0.0.1:3000/tasks", 10)

        assert output == wrk_output
        args, kwargs = spawn.call_args
        assert args == ("wrk", "-t", "2", "-c", "16", "-d10s", "http://127.0.0.1:3000/tasks")
        assert kwargs["stdout"] == asyncio.subprocess.PIPE
        process.kill.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_zero_exit_raises(self):
        process = _mock_process(stderr=b"unable to connect\n", returncode=1)
        with patch("benchit.load.asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            with pytest.raises(ExternalToolError) as excinfo:
                await WrkRunner().run(1, "http://127.0.0.1:3000/tasks", 1)

        assert excinfo.value.returncode == 1
        assert excinfo.value.stderr == "unable to connect"

    @pytest.mark.asyncio
    async def test_missing_binary_raises(self):
        spawn = AsyncMock(side_effect=FileNotFoundError("wrk"))
        with patch("benchit.load.asyncio.create_subprocess_exec", spawn):
            with pytest.raises(ExternalToolError, match="Unable to start wrk"):
                await WrkRunner().run(1, "http://127.0.0.1:3000/tasks", 1)

    @pytest.mark.asyncio
    async def test_cancellation_kills_child(self):
        started = asyncio.Event()
        process = MagicMock()
        process.pid = 99
        process.returncode = None
        process.wait = AsyncMock(return_value=-9)

        async def communicate():
            started.set()
            await asyncio.sleep(3600)

        process.communicate = AsyncMock(side_effect=communicate)
        with patch("benchit.load.asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
            task = asyncio.ensure_future(WrkRunner().run(1, "http://127.0.0.1:3000/tasks", 60))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        process.kill.assert_called_once()
        process.wait.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_real_process_output_is_captured(self, tmp_path):
        script = tmp_path / "fake-wrk"
        script.write_text("#!/bin/sh\necho \"Requests/sec: 42.00\"\n")
        script.chmod(0o755)

        output = await WrkRunner(str(script)).run(1, "http://127.0.0.1:3000/tasks", 1)
        assert output.strip() == b"Requests/sec: 42.00"
