"""Interact with hyprland using sockets."""

__all__ = [
    "HYPRCTL",
    "get_response",
    "hyprctl_connection",
    "ipc_folder",
]

import asyncio
import contextlib
import os
from collections.abc import AsyncIterator
from logging import Logger
from pathlib import Path

from .models import GatewayError

MAX_SOCKET_FILE_LEN = 15
MAX_SOCKET_PATH_LEN = 107


def ipc_folder(environ: dict[str, str] | None = None) -> str:
    """Return the folder holding Hyprland's control sockets.

    Uses `$XDG_RUNTIME_DIR/hypr/<signature>` when it exists, `/tmp/hypr/<signature>` otherwise.
    A path too long for AF_UNIX is replaced by a `/tmp/.hyprfinity-<signature>` symlink.
    """
    env = os.environ if environ is None else environ
    signature = env.get("HYPRLAND_INSTANCE_SIGNATURE", "NO_INSTANCE")
    runtime_dir = env.get("XDG_RUNTIME_DIR")
    folder = f"/tmp/hypr/{signature}"  # noqa: S108
    if runtime_dir and Path(f"{runtime_dir}/hypr/{signature}").exists():
        folder = f"{runtime_dir}/hypr/{signature}"

    if len(folder) >= MAX_SOCKET_PATH_LEN - MAX_SOCKET_FILE_LEN:
        short = f"/tmp/.hyprfinity-{signature}"  # noqa: S108
        if not Path(short).exists():
            with contextlib.suppress(OSError):
                Path(short).symlink_to(folder)
        return short
    return folder


HYPRCTL = f"{ipc_folder()}/.socket.sock"


@contextlib.asynccontextmanager
async def hyprctl_connection(logger: Logger, command: str = "") -> AsyncIterator[tuple[asyncio.StreamReader, asyncio.StreamWriter]]:
    """Open the control socket, closing it on exit.

    Raises:
        GatewayError: if the socket can't be reached
    """
    try:
        reader, writer = await asyncio.open_unix_connection(HYPRCTL)
    except (FileNotFoundError, ConnectionRefusedError) as e:
        logger.critical("hyprctl socket not found! is it running ?")
        raise GatewayError(command, f"cannot connect to {HYPRCTL}: {e}") from e
    try:
        yield reader, writer
    finally:
        writer.close()
        await writer.wait_closed()


async def get_response(command: bytes, logger: Logger) -> str:
    """Send `command` on the control socket and return the full decoded reply.

    Raises:
        GatewayError: if the socket can't be reached or drops the connection
    """
    text = command.decode(errors="replace")
    try:
        async with hyprctl_connection(logger, text) as (reader, writer):
            writer.write(command)
            await writer.drain()
            reader_data = await reader.read()
    except OSError as e:
        raise GatewayError(text, f"connection lost: {e}") from e
    return reader_data.decode("utf-8", errors="replace")
