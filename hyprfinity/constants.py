"""Shared constants for hyprfinity."""

import os
import tempfile
from pathlib import Path

__all__ = [
    "CONFIG_FILE",
    "DEBUG_LOG_ENV_VAR",
    "DEFAULT_DEBUG_LOG_PATH",
    "DEFAULT_EXIT_HOTKEY_KEY",
    "DEFAULT_EXIT_HOTKEY_MODS",
    "DEFAULT_GAMESCOPE_ARGS",
    "DEFAULT_RENDER_SCALE",
    "DEFAULT_STARTUP_TIMEOUT_SECS",
    "EXIT_HOTKEY_COMMAND",
    "FALLBACK_DEBUG_LOG_PATH",
    "FIT_MAX_ATTEMPTS",
    "FIT_SETTLE_DELAY",
    "FIT_TOLERANCE_PX",
    "GAMESCOPE_BINARY",
    "MIN_DIMENSION",
    "PROCESS_GRACE_TIMEOUT",
    "REFLOW_EVERY_TICKS",
    "RENDER_SCALE_MAX",
    "RENDER_SCALE_MIN",
    "SESSION_STATE_FILE",
    "SESSION_TICK_INTERVAL",
    "STARTUP_POLL_INTERVAL",
    "WAYBAR_BINARY",
]

_xdg_config_home = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
CONFIG_FILE = _xdg_config_home / "hyprfinity" / "config.toml"

SESSION_STATE_FILE = Path(tempfile.gettempdir()) / "hyprfinity_gamescope_state.json"

DEBUG_LOG_ENV_VAR = "HYPRFINITY_DEBUG_LOG"
DEFAULT_DEBUG_LOG_PATH = "/var/log/hyprfinity-debug.log"
FALLBACK_DEBUG_LOG_PATH = "/tmp/hyprfinity-debug.log"  # noqa: S108

GAMESCOPE_BINARY = "gamescope"
WAYBAR_BINARY = "waybar"

# Exit hotkey
DEFAULT_EXIT_HOTKEY_MODS = "SUPER SHIFT"
DEFAULT_EXIT_HOTKEY_KEY = "F12"
EXIT_HOTKEY_COMMAND = "hyprfinity down"

# Launch defaults
DEFAULT_GAMESCOPE_ARGS = ("-r", "60")
DEFAULT_RENDER_SCALE = 1.0
RENDER_SCALE_MIN = 0.1
RENDER_SCALE_MAX = 1.0
DEFAULT_STARTUP_TIMEOUT_SECS = 10

# Hyprland rejects odd or near-zero pixel sizes
MIN_DIMENSION = 2

# Window fitting
FIT_MAX_ATTEMPTS = 4
FIT_SETTLE_DELAY = 0.08
FIT_TOLERANCE_PX = 1

# Session timings (seconds)
STARTUP_POLL_INTERVAL = 0.25
SESSION_TICK_INTERVAL = 1.0
REFLOW_EVERY_TICKS = 2
PROCESS_GRACE_TIMEOUT = 1.0
