"""Child processes: the gamescope child and a few one-shot helpers."""

__all__ = ["ManagedProcess", "run_command", "spawn_detached", "terminate_pid"]

import asyncio
import contextlib
import os
import signal

from .constants import PROCESS_GRACE_TIMEOUT


class ManagedProcess:
    """The gamescope child.

    `stop` sends SIGTERM, gives the child `graceful_timeout` seconds to exit,
    then SIGKILLs it. The child is always reaped.
    """

    def __init__(self, graceful_timeout: float = PROCESS_GRACE_TIMEOUT) -> None:
        self.graceful_timeout = graceful_timeout
        self.child: asyncio.subprocess.Process | None = None

    @property
    def pid(self) -> int | None:
        """Child PID, None before `start`."""
        return None if self.child is None else self.child.pid

    @property
    def returncode(self) -> int | None:
        """Exit status once the child is gone."""
        return None if self.child is None else self.child.returncode

    @property
    def is_alive(self) -> bool:
        """Tell if a started child is still running."""
        return self.child is not None and self.child.returncode is None

    def has_exited(self) -> bool:
        """Non-blocking exit check (False before `start`)."""
        return self.child is not None and self.child.returncode is not None

    async def start(self, argv: list[str], quiet: bool = True) -> int:
        """Spawn `argv` without a shell and return the PID.

        A child still running from a previous start is stopped first.
        `quiet` discards the child's stdout and stderr.
        """
        if self.is_alive:
            await self.stop()
        output = asyncio.subprocess.DEVNULL if quiet else None
        self.child = await asyncio.create_subprocess_exec(*argv, stdout=output, stderr=output)
        return self.child.pid

    def _send(self, sig: signal.Signals) -> None:
        if self.child is not None:
            with contextlib.suppress(ProcessLookupError):
                self.child.send_signal(sig)

    async def stop(self) -> int | None:
        """End the child and return its exit status, None if it never started."""
        child = self.child
        if child is None or child.returncode is not None:
            return self.returncode
        self._send(signal.SIGTERM)
        try:
            return await asyncio.wait_for(child.wait(), self.graceful_timeout)
        except TimeoutError:
            self._send(signal.SIGKILL)
            return await child.wait()


async def run_command(*argv: str) -> int:
    """Run a short-lived program quietly and return its exit status.

    Raises:
        OSError: if the program can't be started
    """
    proc = await asyncio.create_subprocess_exec(*argv, stdout=asyncio.subprocess.DEVNULL, stderr=asyncio.subprocess.DEVNULL)
    return await proc.wait()


async def spawn_detached(*argv: str) -> int:
    """Start a program that must outlive us; return its PID.

    Raises:
        OSError: if the program can't be started
    """
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL,
        start_new_session=True,
    )
    return proc.pid


def terminate_pid(pid: int) -> None:
    """Send SIGTERM to `pid`.

    Raises:
        ProcessLookupError: if the process is already gone
        PermissionError: if it isn't ours
    """
    os.kill(pid, signal.SIGTERM)
