"""Tests for process lifecycle management utilities."""

import asyncio
import os

import pytest

from hyprfinity.process import ManagedProcess, run_command, spawn_detached, terminate_pid


class TestManagedProcess:
    """Tests for ManagedProcess."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        """Test basic start and stop lifecycle."""
        proc = ManagedProcess()
        assert not proc.is_alive
        assert proc.pid is None
        assert not proc.has_exited()

        await proc.start(["sleep", "10"])
        assert proc.is_alive
        assert proc.pid is not None
        assert not proc.has_exited()

        returncode = await proc.stop()
        assert not proc.is_alive
        assert proc.has_exited()
        assert returncode is not None

    @pytest.mark.asyncio
    async def test_stop_not_started(self):
        """Test stop when never started returns None."""
        proc = ManagedProcess()
        result = await proc.stop()
        assert result is None

    @pytest.mark.asyncio
    async def test_exit_is_noticed(self):
        """Test the non-blocking exit check."""
        proc = ManagedProcess()
        await proc.start(["true"])
        for _ in range(100):
            if proc.has_exited():
                break
            await asyncio.sleep(0.02)

        assert proc.has_exited()
        assert await proc.stop() == 0

    @pytest.mark.asyncio
    async def test_kill_after_grace(self):
        """Test SIGKILL is sent when SIGTERM is ignored."""
        proc = ManagedProcess(graceful_timeout=0.2)
        await proc.start(["sh", "-c", "trap '' TERM; sleep 10"])
        await asyncio.sleep(0.1)  # let the trap be installed

        returncode = await proc.stop()
        assert returncode == -9

    @pytest.mark.asyncio
    async def test_start_missing_binary(self):
        """Test a missing program raises OSError."""
        proc = ManagedProcess()
        with pytest.raises(OSError):
            await proc.start(["hyprfinity-does-not-exist"])


@pytest.mark.asyncio
async def test_run_command_status():
    assert await run_command("true") == 0
    assert await run_command("false") == 1


@pytest.mark.asyncio
async def test_spawn_detached():
    pid = await spawn_detached("sleep", "10")
    assert os.getpgid(pid) == pid
    terminate_pid(pid)


def test_terminate_missing_pid():
    with pytest.raises(ProcessLookupError):
        terminate_pid(2**22 + 12345)
