"""TOML configuration: schema, loading, CLI merge, template and display.

The file is optional; every key has a default. Values given on the command line
win over the file, except for booleans which can only be switched on from the
command line.
"""

from __future__ import annotations

import difflib
import json
import math
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles
import aiofiles.os
import questionary

from .constants import (
    CONFIG_FILE,
    DEFAULT_GAMESCOPE_ARGS,
    DEFAULT_RENDER_SCALE,
    DEFAULT_STARTUP_TIMEOUT_SECS,
    RENDER_SCALE_MAX,
    RENDER_SCALE_MIN,
)
from .launch_args import SEPARATOR
from .models import ConfigError

if TYPE_CHECKING:
    import logging

    from .models import AutoTuneProfile

__all__ = [
    "CONFIG_SCHEMA",
    "CliOverrides",
    "ConfigField",
    "ConfigItems",
    "Configuration",
    "LaunchSettings",
    "apply_config",
    "format_kv_table",
    "load_config",
    "render_config_template",
    "resolve_config_path",
    "show_config",
    "validate_config",
    "write_default_config",
]

ConfigValueType = float | bool | str | list | dict

BOOL_FALSE_STRINGS = frozenset({"false", "no", "off", "0", "disabled"})


@dataclass
class ConfigField:
    """Describes an expected configuration field.

    Attributes:
        name: The configuration key name
        field_type: Expected type, or tuple of types for unions
        default: Default value if not provided
        description: Human-readable description, used in the template
    """

    name: str
    field_type: type | tuple[type, ...] = str
    default: Any = None
    description: str = ""

    @property
    def type_name(self) -> str:
        """Return human-readable type name (e.g., 'int or float')."""
        if isinstance(self.field_type, tuple):
            return " or ".join(typ.__name__ for typ in self.field_type)
        return self.field_type.__name__


class ConfigItems(list):
    """A list of ConfigField items with cached lookup by name."""

    def __init__(self, *args: ConfigField) -> None:
        super().__init__(args)
        self._cache: dict[str, ConfigField] = {}

    def get(self, name: str) -> ConfigField | None:
        """Get a ConfigField by name."""
        v = self._cache.get(name)
        if not v:
            for prop in self:
                if prop.name == name:
                    v = prop
                    self._cache[name] = v
                    break
        return v

    @property
    def names(self) -> list[str]:
        """Return every field name, in declaration order."""
        return [prop.name for prop in self]


CONFIG_SCHEMA = ConfigItems(
    ConfigField("gamescope_args", list, default=[], description="Default gamescope args (used when no args are provided on the CLI)"),
    ConfigField("default_command", list, description="Optional default game/app command (appended if no `--` command is provided)"),
    ConfigField("no_pin", bool, default=False, description="Don't pin the window on every workspace"),
    ConfigField("pick", bool, default=False, description="Always pick the application to run"),
    ConfigField("hide_waybar", bool, default=True, description="Stop waybar during the session"),
    ConfigField("pick_size", bool, default=False, description="Pick the internal render size interactively"),
    ConfigField("render_scale", (float, int), default=DEFAULT_RENDER_SCALE, description="Internal render scale relative to output span; 1.0 = native span."),
    ConfigField("virtual_width", int, description="Explicit internal render width (takes precedence over render_scale)"),
    ConfigField("virtual_height", int, description="Explicit internal render height (takes precedence over render_scale)"),
    ConfigField("output_width", int, description="Explicit gamescope output width (-W). Default is the full monitor span."),
    ConfigField("output_height", int, description="Explicit gamescope output height (-H). Default is the full monitor span."),
    ConfigField("startup_timeout_secs", int, default=DEFAULT_STARTUP_TIMEOUT_SECS, description="Seconds to wait for the gamescope window"),
)


def coerce_to_bool(value: ConfigValueType | None, default: bool = False) -> bool:
    """Coerce a value to boolean, handling loose typing.

    Behavior:
        - None → default
        - Empty string → False
        - Explicit falsy strings ("false", "no", "off", "0", "disabled") → False
        - Any other non-empty string → True
        - Non-string values → bool(value)
    """
    if value is None:
        return default
    if isinstance(value, str):
        if not value.strip():
            return False
        return value.lower().strip() not in BOOL_FALSE_STRINGS
    return bool(value)


class Configuration(dict):
    """Configuration wrapper providing typed access and schema defaults."""

    def __init__(
        self,
        *args: Any,  # noqa: ANN401
        logger: logging.Logger,
        schema: ConfigItems = CONFIG_SCHEMA,
        **kwargs: Any,  # noqa: ANN401
    ):
        super().__init__(*args, **kwargs)
        self.log = logger
        self._schema_defaults = {prop.name: prop.default for prop in schema if prop.default is not None}

    def get(self, name: str, default: ConfigValueType | None = None) -> ConfigValueType | None:  # type: ignore[override]
        """Get a value, falling back to the schema default then to `default`."""
        if name in self:
            return dict.get(self, name)  # type: ignore[no-any-return]
        return self._schema_defaults.get(name, default)

    def has_explicit(self, name: str) -> bool:
        """Check if value was set in the file (not from schema default)."""
        return name in self

    def get_bool(self, name: str, default: bool = False) -> bool:
        """Get a boolean value, handling loose typing."""
        return coerce_to_bool(self.get(name), default)

    def get_int(self, name: str, default: int = 0) -> int:
        """Get an integer value."""
        value = self.get(name)
        if value is None:
            return default
        try:
            return int(value)  # type: ignore[arg-type]
        except (ValueError, TypeError):
            self.log.warning("Invalid integer value for %s: %s", name, value)
            return default

    def get_optional_int(self, name: str) -> int | None:
        """Get an integer value, None when unset."""
        if self.get(name) is None:
            return None
        return self.get_int(name)

    def get_float(self, name: str, default: float = 0.0) -> float:
        """Get a float value."""
        value = self.get(name)
        if value is None:
            return default
        try:
            return float(value)  # type: ignore[arg-type]
        except (ValueError, TypeError):
            self.log.warning("Invalid float value for %s: %s", name, value)
            return default

    def get_list(self, name: str) -> list[str] | None:
        """Get a list of strings, None when unset."""
        value = self.get(name)
        if value is None:
            return None
        return [str(item) for item in value]  # type: ignore[union-attr]


def _check_type(prop: ConfigField, value: Any) -> str | None:  # noqa: ANN401
    expected = prop.field_type if isinstance(prop.field_type, tuple) else (prop.field_type,)
    if isinstance(value, bool) and bool not in expected:
        return f"Expected {prop.type_name}, got bool"
    if not isinstance(value, expected):
        return f"Expected {prop.type_name}, got {type(value).__name__}"
    if isinstance(value, list) and not all(isinstance(item, str) for item in value):
        return "Expected a list of strings"
    return None


def validate_config(config: Configuration, schema: ConfigItems = CONFIG_SCHEMA) -> list[str]:
    """Warn about unknown keys and drop wrongly typed values.

    Returns:
        The warning messages
    """
    warnings: list[str] = []
    for key in list(config):
        prop = schema.get(key)
        if prop is None:
            matches = difflib.get_close_matches(key, schema.names, n=1)
            hint = f" -> did you mean '{matches[0]}'?" if matches else ""
            warnings.append(f"Config error for '{key}': unknown option{hint}")
            continue
        error = _check_type(prop, config[key])
        if error:
            warnings.append(f"Config error for '{key}': {error}, using the default")
            del config[key]
    for message in warnings:
        config.log.warning(message)
    return warnings


def resolve_config_path(path_override: str | Path | None = None) -> Path:
    """Return the config file path: the override, else the XDG location."""
    if path_override:
        return Path(os.path.expandvars(str(path_override))).expanduser()
    return CONFIG_FILE


def load_config(path: Path, log: logging.Logger) -> Configuration:
    """Load `path`; a missing file gives an empty (all defaults) configuration.

    Raises:
        ConfigError: on unreadable or invalid TOML
    """
    if not path.exists():
        log.debug("No config file at %s, using defaults", path)
        return Configuration(logger=log)
    log.debug("Loading %s", path)
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse config {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Unable to read config {path}: {e}") from e
    config = Configuration(data, logger=log)
    validate_config(config)
    return config


# Launch settings {{{


@dataclass
class CliOverrides:
    """Launch options given on the command line (None/False = not given)."""

    gamescope_args: list[str] = field(default_factory=list)
    no_pin: bool = False
    pick: bool = False
    hide_waybar: bool = False
    pick_size: bool = False
    render_scale: float | None = None
    virtual_width: int | None = None
    virtual_height: int | None = None
    startup_timeout_secs: int = DEFAULT_STARTUP_TIMEOUT_SECS


@dataclass
class LaunchSettings:  # pylint: disable=too-many-instance-attributes
    """Resolved launch parameters."""

    gamescope_args: list[str] = field(default_factory=list)
    no_pin: bool = False
    pick: bool = False
    hide_waybar: bool = True
    pick_size: bool = False
    render_scale: float = DEFAULT_RENDER_SCALE
    virtual_width: int | None = None
    virtual_height: int | None = None
    output_width: int | None = None
    output_height: int | None = None
    startup_timeout_secs: int = DEFAULT_STARTUP_TIMEOUT_SECS


def apply_config(cli: CliOverrides, config: Configuration) -> LaunchSettings:
    """Merge command line options over the configuration file."""
    args = list(cli.gamescope_args) or (config.get_list("gamescope_args") or [])

    render_scale = cli.render_scale if cli.render_scale is not None else config.get_float("render_scale", DEFAULT_RENDER_SCALE)
    if not math.isfinite(render_scale):
        config.log.warning("render_scale %s is not finite; using %s.", render_scale, DEFAULT_RENDER_SCALE)
        render_scale = DEFAULT_RENDER_SCALE
    if not RENDER_SCALE_MIN <= render_scale <= RENDER_SCALE_MAX:
        config.log.warning("render_scale %s is out of range; clamping to [%s, %s].", render_scale, RENDER_SCALE_MIN, RENDER_SCALE_MAX)
        render_scale = min(max(render_scale, RENDER_SCALE_MIN), RENDER_SCALE_MAX)

    if cli.startup_timeout_secs != DEFAULT_STARTUP_TIMEOUT_SECS:
        timeout = cli.startup_timeout_secs
    else:
        timeout = config.get_int("startup_timeout_secs", DEFAULT_STARTUP_TIMEOUT_SECS)

    default_command = config.get_list("default_command")
    if default_command is not None and SEPARATOR not in args:
        args = [*args, SEPARATOR, *default_command]

    return LaunchSettings(
        gamescope_args=args,
        no_pin=cli.no_pin or config.get_bool("no_pin"),
        pick=cli.pick or config.get_bool("pick"),
        hide_waybar=cli.hide_waybar or config.get_bool("hide_waybar", True),
        pick_size=cli.pick_size or config.get_bool("pick_size"),
        render_scale=render_scale,
        virtual_width=cli.virtual_width if cli.virtual_width is not None else config.get_optional_int("virtual_width"),
        virtual_height=cli.virtual_height if cli.virtual_height is not None else config.get_optional_int("virtual_height"),
        output_width=config.get_optional_int("output_width"),
        output_height=config.get_optional_int("output_height"),
        startup_timeout_secs=timeout,
    )


# }}}
# Template & display {{{


def _toml_list(values: list[str]) -> str:
    return "[" + ", ".join(json.dumps(value) for value in values) + "]"


def _optional_line(name: str, value: int | None, example: int) -> str:
    return f"{name} = {value}" if value is not None else f"# {name} = {example}"


def render_config_template(values: dict[str, Any], auto_reason: str) -> str:
    """Render a commented config file holding `values` (missing keys get defaults)."""
    args = values.get("gamescope_args") or list(DEFAULT_GAMESCOPE_ARGS)
    default_command = values.get("default_command")
    command_line = (
        f"default_command = {_toml_list(default_command)}" if default_command else '# default_command = ["steam", "-applaunch", "620"]'
    )

    def flag(name: str, default: bool) -> str:
        return "true" if values.get(name, default) else "false"

    return "\n".join(
        [
            "# Hyprfinity config",
            "",
            f"# {CONFIG_SCHEMA.get('gamescope_args').description}",  # type: ignore[union-attr]
            f"gamescope_args = {_toml_list(args)}",
            "",
            f"# {CONFIG_SCHEMA.get('default_command').description}",  # type: ignore[union-attr]
            command_line,
            "",
            "# Defaults for CLI flags",
            f"no_pin = {flag('no_pin', False)}",
            f"pick = {flag('pick', False)}",
            f"hide_waybar = {flag('hide_waybar', True)}",
            f"pick_size = {flag('pick_size', False)}",
            "# Internal render scale relative to output span; 1.0 = native span.",
            f"# {auto_reason}",
            f"render_scale = {values.get('render_scale', DEFAULT_RENDER_SCALE)}",
            "# Optional explicit internal render size (when set, these take precedence over render_scale).",
            _optional_line("virtual_width", values.get("virtual_width"), 5760),
            _optional_line("virtual_height", values.get("virtual_height"), 1080),
            "# Optional explicit output size for Gamescope (-W/-H). Default is full monitor span.",
            _optional_line("output_width", values.get("output_width"), 7680),
            _optional_line("output_height", values.get("output_height"), 1440),
            f"startup_timeout_secs = {values.get('startup_timeout_secs', DEFAULT_STARTUP_TIMEOUT_SECS)}",
            "",
        ]
    )


def format_optional_size(width: int | None, height: int | None) -> str:
    """Format a possibly partial size override."""
    if width is None and height is None:
        return "auto"
    return f"{'(auto)' if width is None else width}x{'(auto)' if height is None else height}"


def format_kv_table(title: str, rows: list[tuple[str, str]]) -> str:
    """Render a two columns ASCII table."""
    key_width = max([len("Key"), *(len(k) for k, _ in rows)])
    val_width = max([len("Value"), *(len(v) for _, v in rows)])
    sep = f"+-{'-' * key_width}-+-{'-' * val_width}-+"
    lines = [title, sep, f"| {'Key':<{key_width}} | {'Value':<{val_width}} |", sep]
    lines.extend(f"| {k:<{key_width}} | {v:<{val_width}} |" for k, v in rows)
    lines.append(sep)
    return "\n".join(lines)


def _launch_rows(launch: LaunchSettings) -> list[tuple[str, str]]:
    return [
        ("gamescope_args", str(launch.gamescope_args)),
        ("no_pin", str(launch.no_pin).lower()),
        ("pick", str(launch.pick).lower()),
        ("hide_waybar", str(launch.hide_waybar).lower()),
        ("pick_size", str(launch.pick_size).lower()),
        ("render_scale", str(launch.render_scale)),
        ("virtual_size", format_optional_size(launch.virtual_width, launch.virtual_height)),
        ("output_size", format_optional_size(launch.output_width, launch.output_height)),
        ("startup_timeout_secs", str(launch.startup_timeout_secs)),
    ]


def _config_rows(config: Configuration) -> list[tuple[str, str]]:
    return [
        ("gamescope_args", str(config.get_list("gamescope_args") or [])),
        ("default_command", str(config.get_list("default_command") or [])),
        ("no_pin", str(config.get_bool("no_pin")).lower()),
        ("pick", str(config.get_bool("pick")).lower()),
        ("hide_waybar", str(config.get_bool("hide_waybar", True)).lower()),
        ("pick_size", str(config.get_bool("pick_size")).lower()),
        ("render_scale", str(config.get_float("render_scale", DEFAULT_RENDER_SCALE))),
        ("virtual_size", format_optional_size(config.get_optional_int("virtual_width"), config.get_optional_int("virtual_height"))),
        ("output_size", format_optional_size(config.get_optional_int("output_width"), config.get_optional_int("output_height"))),
        ("startup_timeout_secs", str(config.get_int("startup_timeout_secs", DEFAULT_STARTUP_TIMEOUT_SECS))),
    ]


def show_config(path: Path, cli: CliOverrides, log: logging.Logger) -> str:
    """Return the config report: path, effective values and raw file values.

    Raises:
        ConfigError: if the file can't be loaded
    """
    config = load_config(path, log)
    launch = apply_config(cli, config)
    return "\n".join(
        [
            f"Hyprfinity: Config path: {path}",
            "Hyprfinity: " + format_kv_table("Effective Values (after CLI overrides)", _launch_rows(launch)),
            "Hyprfinity: " + format_kv_table("Raw Config Values", _config_rows(config)),
        ]
    )


async def write_default_config(path: Path, force: bool, profile: AutoTuneProfile, log: logging.Logger) -> bool:
    """Write the default config template to `path`.

    An existing file is only replaced with `force` or after confirmation.

    Returns:
        True if the file was written
    """
    if not force and await aiofiles.os.path.exists(path):
        overwrite = await questionary.confirm(f"Config already exists at {path}. Overwrite it?", default=False).ask_async()
        if not overwrite:
            log.info("Keeping existing config unchanged.")
            return False

    values: dict[str, Any] = {prop.name: prop.default for prop in CONFIG_SCHEMA if prop.default is not None}
    values["gamescope_args"] = list(DEFAULT_GAMESCOPE_ARGS)
    values["render_scale"] = profile.render_scale

    await aiofiles.os.makedirs(path.parent, exist_ok=True)
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(render_config_template(values, profile.reason))
    log.info("Wrote config to %s", path)
    launch = apply_config(CliOverrides(), Configuration(values, logger=log))
    log.info("%s", format_kv_table("Final Config Defaults", _launch_rows(launch)))
    return True


# }}}
