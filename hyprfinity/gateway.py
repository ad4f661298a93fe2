"""Compositor gateway: typed requests against Hyprland's control socket.

Every call waits for the compositor's reply and either returns parsed data or
raises `GatewayError` (non-"ok" reply, unreachable socket, unparsable JSON).
Window commands are a small closed set of dataclasses serialized here, at the
socket boundary.
"""

import json
from dataclasses import dataclass
from logging import Logger
from typing import ClassVar, cast

from .ipc import get_response
from .models import BindInfo, ClientInfo, ExitHotkey, GatewayError, Geometry, JSONResponse, Monitor, MonitorInfo, NoMonitorsUp, WindowHandle

__all__ = [
    "BindKey",
    "CompositorGateway",
    "GatewayCommand",
    "MoveWindow",
    "PinWindow",
    "ResizeWindow",
    "SetFloating",
    "UnbindKey",
    "client_geometry",
    "modmask",
    "select_primary_client",
]

MOD_BITS = {
    "SHIFT": 1,
    "CAPS": 2,
    "CTRL": 4,
    "CONTROL": 4,
    "ALT": 8,
    "MOD2": 16,
    "MOD3": 32,
    "SUPER": 64,
    "WIN": 64,
    "LOGO": 64,
    "MOD4": 64,
    "META": 64,
    "MOD5": 128,
}


def modmask(mods: str) -> int:
    """Return Hyprland's modifier mask for a modifier list such as "SUPER SHIFT"."""
    mask = 0
    for token in mods.replace("_", " ").replace("+", " ").split():
        mask |= MOD_BITS.get(token.upper(), 0)
    return mask


class GatewayCommand:
    """A request sent to the compositor."""

    base_command: ClassVar[str] = "dispatch"

    def arguments(self) -> str:
        """Return the argument string following the base command."""
        raise NotImplementedError

    def serialize(self) -> str:
        """Return the text written on the control socket."""
        return f"/{self.base_command} {self.arguments()}"

    def __str__(self) -> str:
        return f"{self.base_command} {self.arguments()}"


@dataclass(frozen=True)
class SetFloating(GatewayCommand):
    """Make the window floating."""

    window: WindowHandle

    def arguments(self) -> str:
        return f"setfloating {self.window.selector}"


@dataclass(frozen=True)
class MoveWindow(GatewayCommand):
    """Move the window to an exact position."""

    window: WindowHandle
    x: int
    y: int

    def arguments(self) -> str:
        return f"movewindowpixel exact {self.x} {self.y},{self.window.selector}"


@dataclass(frozen=True)
class ResizeWindow(GatewayCommand):
    """Resize the window to an exact size."""

    window: WindowHandle
    width: int
    height: int

    def arguments(self) -> str:
        return f"resizewindowpixel exact {self.width} {self.height},{self.window.selector}"


@dataclass(frozen=True)
class PinWindow(GatewayCommand):
    """Toggle the pinned (visible on all workspaces) state."""

    window: WindowHandle

    def arguments(self) -> str:
        return f"pin {self.window.selector}"


@dataclass(frozen=True)
class BindKey(GatewayCommand):
    """Bind a hotkey to a shell command."""

    base_command: ClassVar[str] = "keyword"

    hotkey: ExitHotkey
    action: str

    def arguments(self) -> str:
        return f"bind {self.hotkey.mods}, {self.hotkey.key}, exec, {self.action}"


@dataclass(frozen=True)
class UnbindKey(GatewayCommand):
    """Remove a hotkey binding."""

    base_command: ClassVar[str] = "keyword"

    hotkey: ExitHotkey

    def arguments(self) -> str:
        return f"unbind {self.hotkey.mods}, {self.hotkey.key}"


def _client_area(client: ClientInfo) -> int:
    size = client.get("size") or [0, 0]
    return max(int(size[0]), 0) * max(int(size[1]), 0)


def select_primary_client(clients: list[ClientInfo], pid: int) -> ClientInfo | None:
    """Return the largest window owned by `pid`, skipping helper/splash windows."""
    owned = [client for client in clients if client.get("pid") == pid]
    if not owned:
        return None
    return max(owned, key=_client_area)


def client_geometry(client: ClientInfo) -> Geometry | None:
    """Return the geometry of a client, if Hyprland reported it."""
    at = client.get("at")
    size = client.get("size")
    if not at or not size:
        return None
    return Geometry(int(at[0]), int(at[1]), int(size[0]), int(size[1]))


class CompositorGateway:
    """Queries and commands for the Hyprland instance we run in."""

    def __init__(self, log: Logger) -> None:
        self.log = log

    async def query_json(self, command: str) -> JSONResponse:
        """Run a query and return the decoded JSON reply."""
        self.log.debug("query %s", command)
        reply = await get_response(f"j/{command}".encode(), self.log)
        try:
            return cast("JSONResponse", json.loads(reply))
        except json.JSONDecodeError as e:
            raise GatewayError(command, reply.strip() or f"unparsable reply: {e}") from e

    async def _query_list(self, command: str) -> list:
        data = await self.query_json(command)
        if not isinstance(data, list):
            raise GatewayError(command, f"expected a list, got {type(data).__name__}")
        return data

    async def get_monitors(self) -> list[Monitor]:
        """Return the connected monitors.

        Raises:
            NoMonitorsUp: if Hyprland reports none
        """
        data = await self._query_list("monitors")
        self.log.debug("raw monitors json: %s", data)
        try:
            monitors = [Monitor.from_info(cast("MonitorInfo", info)) for info in data]
        except (KeyError, TypeError, ValueError) as e:
            raise GatewayError("monitors", f"malformed monitor entry: {e}") from e
        if not monitors:
            raise NoMonitorsUp
        return monitors

    async def get_clients(self) -> list[ClientInfo]:
        """Return every client window."""
        clients = await self._query_list("clients")
        return [cast("ClientInfo", client) for client in clients if isinstance(client, dict) and "pid" in client]

    async def get_binds(self) -> list[BindInfo]:
        """Return the bind table."""
        binds = await self._query_list("binds")
        return [cast("BindInfo", bind) for bind in binds if isinstance(bind, dict)]

    async def dispatch(self, command: GatewayCommand) -> None:
        """Send a command, raising GatewayError unless Hyprland answers "ok"."""
        self.log.debug("%s", command)
        reply = await get_response(command.serialize().encode(), self.log)
        if reply.strip() != "ok":
            raise GatewayError(str(command), reply.strip() or "empty reply")

    async def bind_exists(self, hotkey: ExitHotkey) -> bool:
        """Tell if the hotkey is already bound (in the global submap)."""
        mask = modmask(hotkey.mods)
        key = hotkey.key.strip().lower()
        return any(
            bind.get("modmask") == mask and str(bind.get("key", "")).strip().lower() == key and not bind.get("submap")
            for bind in await self.get_binds()
        )

    async def find_client(self, pid: int) -> ClientInfo | None:
        """Return the primary window of `pid`, if it is mapped."""
        return select_primary_client(await self.get_clients(), pid)

    async def resolve_window(self, pid: int) -> WindowHandle:
        """Return a handle on the primary window of `pid`, by address when possible."""
        client = await self.find_client(pid)
        address = client.get("address") if client else None
        return WindowHandle(pid=pid, address=address or None)

    async def get_window(self, window: WindowHandle) -> ClientInfo | None:
        """Return the client designated by `window`, falling back to the pid's primary window."""
        clients = await self.get_clients()
        if window.address:
            for client in clients:
                if client.get("address") == window.address:
                    return client
        return select_primary_client(clients, window.pid)

    async def get_window_geometry(self, window: WindowHandle) -> Geometry | None:
        """Return the current geometry of `window`, None if unknown."""
        client = await self.get_window(window)
        return client_geometry(client) if client else None
