"""Interactive pickers: internal render size and desktop application."""

import re
import shlex
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os
import questionary
from questionary import Choice

from .models import HyprfinityError, SizeSpec, Span
from .sizing import build_size_presets

__all__ = [
    "DesktopApp",
    "list_desktop_apps",
    "parse_desktop_entry",
    "pick_desktop_app_command",
    "pick_internal_size",
    "sanitize_exec",
]

APPLICATION_DIRS = (
    Path("/usr/share/applications"),
    Path("/usr/local/share/applications"),
    Path("~/.local/share/applications").expanduser(),
)

# freedesktop Exec field codes
FIELD_CODES = re.compile(r"%[UuFfickdDnNvmMrR]")


@dataclass(frozen=True)
class DesktopApp:
    """A launchable application."""

    name: str
    exec: str


def parse_desktop_entry(content: str) -> DesktopApp | None:
    """Return the application described by a .desktop file, None if hidden or incomplete."""
    in_entry = False
    name = exec_line = None
    hidden = False
    for raw in content.splitlines():
        line = raw.strip()
        if line.startswith("[") and line.endswith("]"):
            in_entry = line == "[Desktop Entry]"
            continue
        if not in_entry or not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        if key == "Name" and value:
            name = value
        elif key == "Exec" and value:
            exec_line = value
        elif key in ("NoDisplay", "Hidden") and value.lower() == "true":
            hidden = True
    if hidden or not name or not exec_line:
        return None
    return DesktopApp(name=name, exec=exec_line)


async def list_desktop_apps(dirs: tuple[Path, ...] = APPLICATION_DIRS) -> list[DesktopApp]:
    """List visible applications, sorted by name (case-insensitive)."""
    apps: list[DesktopApp] = []
    for folder in dirs:
        if not await aiofiles.os.path.isdir(folder):
            continue
        for fname in await aiofiles.os.listdir(folder):
            if not fname.endswith(".desktop"):
                continue
            try:
                async with aiofiles.open(folder / fname, encoding="utf-8", errors="replace") as f:
                    content = await f.read()
            except OSError:
                continue
            app = parse_desktop_entry(content)
            if app:
                apps.append(app)
    apps.sort(key=lambda app: app.name.lower())
    return apps


def sanitize_exec(exec_line: str) -> str:
    """Remove the field codes (%U, %f...) from an Exec line."""
    return FIELD_CODES.sub("", exec_line).strip()


async def pick_desktop_app_command() -> list[str]:
    """Ask for an application and return its command line.

    Raises:
        HyprfinityError: when nothing is available or picked
    """
    apps = await list_desktop_apps()
    if not apps:
        raise HyprfinityError("No desktop applications found.")
    app = await questionary.select(
        "Select app to launch:",
        choices=[Choice(title=app.name, value=app) for app in apps],
        use_search_filter=True,
        use_jk_keys=False,
    ).ask_async()
    if app is None:
        raise HyprfinityError("No app selected.")
    try:
        command = shlex.split(sanitize_exec(app.exec))
    except ValueError as e:
        raise HyprfinityError(f"Unable to parse Exec line of {app.name}: {e}") from e
    if not command:
        raise HyprfinityError(f"Empty command for {app.name}.")
    return command


async def pick_internal_size(span: Span) -> SizeSpec | None:
    """Ask for an internal render size; None keeps the configured one."""
    presets = build_size_presets(span.width, span.height)
    if not presets:
        return None
    return await questionary.select(  # type: ignore[no-any-return]
        "Select internal size:",
        choices=[Choice(title=label, value=size) for label, size in presets],
    ).ask_async()
