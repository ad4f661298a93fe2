"""Desktop helpers changed around a session: the waybar status bar and the exit hotkey."""

from logging import Logger

from .constants import EXIT_HOTKEY_COMMAND, WAYBAR_BINARY
from .gateway import BindKey, CompositorGateway, UnbindKey
from .models import ExitHotkey, SidecarError
from .process import run_command, spawn_detached

__all__ = ["ExitHotkeyControl", "WaybarControl"]


class WaybarControl:
    """Stop waybar for the session, start it again afterwards."""

    def __init__(self, log: Logger, binary: str = WAYBAR_BINARY) -> None:
        self.log = log
        self.binary = binary

    async def is_running(self) -> bool:
        """Tell if a process with the exact waybar name exists."""
        try:
            return await run_command("pgrep", "-x", self.binary) == 0
        except OSError as e:
            raise SidecarError(f"Unable to look for {self.binary}: {e}") from e

    async def stop_if_running(self) -> bool:
        """Stop waybar.

        Returns:
            True if it was running (and got stopped)

        Raises:
            SidecarError: if it couldn't be stopped
        """
        if not await self.is_running():
            return False
        try:
            status = await run_command("pkill", "-x", self.binary)
        except OSError as e:
            raise SidecarError(f"Unable to stop {self.binary}: {e}") from e
        if status != 0:
            raise SidecarError(f"Unable to stop {self.binary} (pkill exited with {status})")
        self.log.info("Stopped %s for the session.", self.binary)
        return True

    async def restart_if_stopped(self, was_stopped: bool) -> None:
        """Start waybar again, detached, when we stopped it and nothing restarted it since.

        Raises:
            SidecarError: if it can't be started
        """
        if not was_stopped:
            return
        if await self.is_running():
            self.log.debug("%s is already running, not restarting it.", self.binary)
            return
        try:
            pid = await spawn_detached(self.binary)
        except OSError as e:
            raise SidecarError(f"Unable to restart {self.binary}: {e}") from e
        self.log.info("Restarted %s (pid %d).", self.binary, pid)


class ExitHotkeyControl:
    """Bind/unbind the key ending the session."""

    def __init__(self, gateway: CompositorGateway, log: Logger) -> None:
        self.gateway = gateway
        self.log = log

    async def register(self, hotkey: ExitHotkey, action: str = EXIT_HOTKEY_COMMAND) -> ExitHotkey | None:
        """Bind `hotkey` unless something already uses it.

        Returns:
            The bound hotkey (the caller owns it), None when it was already taken
        """
        if await self.gateway.bind_exists(hotkey):
            self.log.warning("Exit hotkey %s is already bound, leaving it alone.", hotkey)
            return None
        await self.gateway.dispatch(BindKey(hotkey, action))
        self.log.info("Exit hotkey: %s", hotkey)
        return hotkey

    async def unregister(self, hotkey: ExitHotkey) -> None:
        """Remove a binding made by `register`."""
        await self.gateway.dispatch(UnbindKey(hotkey))
        self.log.debug("Unbound exit hotkey %s", hotkey)
