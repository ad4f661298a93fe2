"""Common types: Hyprland API payloads, span/session data and errors."""

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Any, NotRequired, TypedDict

PlainTypes = float | str | dict[str, "PlainTypes"] | list["PlainTypes"]
JSONResponse = dict[str, PlainTypes] | list[dict[str, PlainTypes]] | PlainTypes


class MonitorInfo(TypedDict):
    """Monitor information as returned by Hyprland (the fields we rely on)."""

    name: NotRequired[str]
    x: int
    y: int
    width: int
    height: int


class ClientInfo(TypedDict):
    """Client information as returned by Hyprland (the fields we rely on)."""

    pid: int
    address: NotRequired[str]
    at: NotRequired[list[int]]
    size: NotRequired[list[int]]
    floating: NotRequired[bool]
    pinned: NotRequired[bool]


class BindInfo(TypedDict):
    """Key binding as returned by `binds`."""

    modmask: int
    key: str
    submap: NotRequired[str]
    dispatcher: NotRequired[str]
    arg: NotRequired[str]


@dataclass(frozen=True)
class Monitor:
    """Immutable snapshot of a connected monitor."""

    x: int
    y: int
    width: int
    height: int
    name: str | None = None

    @classmethod
    def from_info(cls, info: MonitorInfo) -> "Monitor":
        """Build a monitor from its Hyprland description."""
        return cls(x=int(info["x"]), y=int(info["y"]), width=int(info["width"]), height=int(info["height"]), name=info.get("name"))

    def __str__(self) -> str:
        return f"{self.name or 'unknown'}:{self.width}x{self.height}@{self.x},{self.y}"


@dataclass(frozen=True)
class Span:
    """Bounding box covering every monitor."""

    origin_x: int
    origin_y: int
    width: int
    height: int

    def __str__(self) -> str:
        return f"origin=({self.origin_x}, {self.origin_y}), size={self.width}x{self.height}"


@dataclass(frozen=True)
class SizeSpec:
    """An even pixel size."""

    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class Geometry:
    """Position and size of a window."""

    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_span(cls, span: Span) -> "Geometry":
        """Target geometry covering the whole span."""
        return cls(span.origin_x, span.origin_y, span.width, span.height)

    def __str__(self) -> str:
        return f"at=({self.x}, {self.y}), size={self.width}x{self.height}"


@dataclass(frozen=True)
class WindowHandle:
    """Selector for the session window: its address when known, else its pid."""

    pid: int
    address: str | None = None

    @property
    def selector(self) -> str:
        """Return the Hyprland window selector."""
        if self.address:
            return f"address:{self.address}"
        return f"pid:{self.pid}"

    def __str__(self) -> str:
        return self.selector


@dataclass(frozen=True)
class ExitHotkey:
    """Key binding ending the session."""

    mods: str
    key: str

    def to_dict(self) -> dict[str, str]:
        """Serialize for the session state file."""
        return {"mods": self.mods, "key": self.key}

    def __str__(self) -> str:
        return f"{self.mods}+{self.key}"


@dataclass
class SessionState:
    """Durable record of the running session, read back by the teardown."""

    gamescope_pid: int
    span: Span
    gamescope_args: list[str] = field(default_factory=list)
    waybar_was_stopped: bool = False
    exit_hotkey: ExitHotkey | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the state file JSON layout."""
        return {
            "gamescope_pid": self.gamescope_pid,
            "span_x": self.span.origin_x,
            "span_y": self.span.origin_y,
            "span_width": self.span.width,
            "span_height": self.span.height,
            "gamescope_args": list(self.gamescope_args),
            "waybar_was_stopped": self.waybar_was_stopped,
            "exit_hotkey": self.exit_hotkey.to_dict() if self.exit_hotkey else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionState":
        """Deserialize the state file JSON layout.

        Raises:
            KeyError, TypeError, ValueError: on malformed data
        """
        hotkey = data.get("exit_hotkey")
        return cls(
            gamescope_pid=int(data["gamescope_pid"]),
            span=Span(int(data["span_x"]), int(data["span_y"]), int(data["span_width"]), int(data["span_height"])),
            gamescope_args=[str(arg) for arg in data.get("gamescope_args", [])],
            waybar_was_stopped=bool(data.get("waybar_was_stopped", False)),
            exit_hotkey=ExitHotkey(str(hotkey["mods"]), str(hotkey["key"])) if hotkey else None,
        )


@dataclass(frozen=True)
class FitWarning:
    """The window could not be fitted to its target within the attempt budget."""

    target: Geometry
    actual: Geometry | None
    attempts: int

    def __str__(self) -> str:
        if self.actual is None:
            return "Unable to verify final Gamescope window geometry."
        return f"Gamescope window may not fully cover span (actual {self.actual}; target {self.target})."


@dataclass(frozen=True)
class AutoTuneProfile:
    """Recommended internal render scale."""

    render_scale: float
    reason: str


class SessionPhase(StrEnum):
    """Lifecycle of a spanned session."""

    IDLE = "idle"
    LAUNCHING = "launching"
    LAUNCH_FAILED = "launch_failed"
    ACTIVE = "active"
    TEARING_DOWN = "tearing_down"
    TERMINATED = "terminated"


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    ERROR = 1
    INTERRUPTED = 130


class HyprfinityError(Exception):
    """Base class for hyprfinity failures."""


class NoMonitorsError(HyprfinityError):
    """A span was requested for an empty monitor list."""

    def __init__(self, message: str = "No monitors detected.") -> None:
        super().__init__(message)


class GatewayError(HyprfinityError):
    """A compositor request failed or returned garbage."""

    def __init__(self, command: str, stderr: str) -> None:
        super().__init__(f"hyprctl failed for {command!r}: {stderr}")
        self.command = command
        self.stderr = stderr


class NoMonitorsUp(HyprfinityError):
    """The compositor itself reports no monitors."""

    def __init__(self) -> None:
        super().__init__("No monitors detected. Is Hyprland running?")


class StartupTimeout(HyprfinityError):
    """The child never mapped a window."""

    def __init__(self, pid: int, timeout: float) -> None:
        super().__init__(f"Timed out waiting for Gamescope window (PID {pid}) after {timeout:g}s.")
        self.pid = pid
        self.timeout = timeout


class SidecarError(HyprfinityError):
    """A helper desktop component could not be stopped or restarted."""


class SessionStateError(HyprfinityError):
    """The session state file is missing or unreadable."""


class ConfigError(HyprfinityError):
    """The configuration file can't be used."""
