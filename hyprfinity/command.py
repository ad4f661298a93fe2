"""Hyprfinity command line.

    hyprfinity [--verbose] [--debug] [--debug-log PATH] [--config PATH] [COMMAND] [OPTIONS] [-- CHILD_ARGS...]

Everything after the first `--` is given to gamescope untouched (it may
itself hold a second `--` followed by the game command).
"""

import argparse
import asyncio
import sys
from logging import Logger

from .autotune import detect_auto_tune_profile
from .config import CliOverrides, apply_config, load_config, resolve_config_path, show_config, write_default_config
from .constants import DEFAULT_STARTUP_TIMEOUT_SECS
from .gateway import CompositorGateway
from .launch_args import SEPARATOR
from .logging_setup import get_logger, init_logger, resolve_debug_log_path
from .models import ExitCode, HyprfinityError
from .picker import pick_desktop_app_command, pick_internal_size
from .session import SessionManager, teardown_session
from .span import compute_span
from .state_file import SessionStore

__all__ = ["build_parser", "main", "run"]

UP_COMMANDS = ("up", "gamescope-up")
DOWN_COMMANDS = ("down", "gamescope-down")
COMMAND_NAMES = frozenset((*UP_COMMANDS, *DOWN_COMMANDS, "config-init", "config-show"))

# global options, with and without a value
VALUE_OPTIONS = frozenset(("--debug-log", "--config"))
FLAG_OPTIONS = frozenset(("-v", "--verbose", "--debug"))
HELP_OPTIONS = frozenset(("-h", "--help"))


def _add_launch_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--startup-timeout-secs",
        type=int,
        default=DEFAULT_STARTUP_TIMEOUT_SECS,
        metavar="N",
        help="seconds to wait for the gamescope window (default: %(default)s)",
    )
    parser.add_argument("--no-pin", action="store_true", help="don't pin the window on every workspace")
    parser.add_argument("--pick", action="store_true", help="pick the application to run")
    parser.add_argument("--hide-waybar", action="store_true", help="stop waybar during the session")
    parser.add_argument("--pick-size", action="store_true", help="pick the internal render size")
    parser.add_argument("--render-scale", type=float, metavar="F", help="internal render scale, in [0.1, 1.0]")
    parser.add_argument("--virtual-width", type=int, metavar="N", help="internal render width")
    parser.add_argument("--virtual-height", type=int, metavar="N", help="internal render height")


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser (the `--` tail is handled separately)."""
    parser = argparse.ArgumentParser(
        prog="hyprfinity",
        description="Span a Gamescope session across every Hyprland monitor.",
        epilog="Arguments after `--` are passed to gamescope.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="show debug messages")
    parser.add_argument("--debug", action="store_true", help="write a debug log file")
    parser.add_argument("--debug-log", metavar="PATH", help="debug log file (implies --debug)")
    parser.add_argument("--config", metavar="PATH", help="configuration file")

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    up = commands.add_parser("up", aliases=["gamescope-up"], help="launch a spanned gamescope session (default)")
    _add_launch_options(up)
    commands.add_parser("down", aliases=["gamescope-down"], help="tear down the running session")
    init = commands.add_parser("config-init", help="write a default configuration file")
    init.add_argument("--force", action="store_true", help="overwrite without asking")
    show = commands.add_parser("config-show", help="show the effective configuration")
    _add_launch_options(show)
    return parser


def split_child_args(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split the command line at the first `--`; the separator is dropped."""
    if SEPARATOR in argv:
        idx = argv.index(SEPARATOR)
        return argv[:idx], argv[idx + 1 :]
    return list(argv), []


def _is_global_option(arg: str) -> bool:
    return arg in FLAG_OPTIONS or arg.split("=", 1)[0] in VALUE_OPTIONS


def with_default_command(argv: list[str]) -> list[str]:
    """Insert `up` after the global options when no command is given."""
    if any(arg in COMMAND_NAMES or arg in HELP_OPTIONS for arg in argv):
        return argv
    idx = 0
    while idx < len(argv) and _is_global_option(argv[idx]):
        idx += 2 if argv[idx] in VALUE_OPTIONS else 1
    return [*argv[:idx], "up", *argv[idx:]]


def cli_overrides(options: argparse.Namespace, child_args: list[str]) -> CliOverrides:
    """Collect the launch options given on the command line."""
    return CliOverrides(
        gamescope_args=child_args,
        no_pin=options.no_pin,
        pick=options.pick,
        hide_waybar=options.hide_waybar,
        pick_size=options.pick_size,
        render_scale=options.render_scale,
        virtual_width=options.virtual_width,
        virtual_height=options.virtual_height,
        startup_timeout_secs=options.startup_timeout_secs,
    )


async def span_pixels(gateway: CompositorGateway) -> int | None:
    """Return the pixel count of the monitor span, None when Hyprland can't tell."""
    try:
        span = compute_span(await gateway.get_monitors())
    except HyprfinityError:
        return None
    return span.width * span.height


async def dispatch(options: argparse.Namespace, child_args: list[str], log: Logger) -> ExitCode:
    """Run the selected command."""
    config_path = resolve_config_path(options.config)
    gateway = CompositorGateway(log)

    if options.command in UP_COMMANDS:
        settings = apply_config(cli_overrides(options, child_args), load_config(config_path, log))
        manager = SessionManager(
            gateway,
            log,
            size_picker=pick_internal_size,
            app_picker=pick_desktop_app_command,
            verbose=options.verbose,
        )
        return await manager.run(settings)

    if options.command in DOWN_COMMANDS:
        failed = await teardown_session(SessionStore(log), gateway, log)
        if failed:
            log.error("Teardown incomplete: %s", ", ".join(failed))
            return ExitCode.ERROR
        log.info("Gamescope session stopped.")
        return ExitCode.SUCCESS

    if options.command == "config-init":
        profile = await detect_auto_tune_profile(await span_pixels(gateway))
        await write_default_config(config_path, options.force, profile, log)
        return ExitCode.SUCCESS

    # config-show
    print(show_config(config_path, cli_overrides(options, child_args), log))
    return ExitCode.SUCCESS


def run(argv: list[str] | None = None) -> int:
    """Parse `argv`, run the command and return the exit code."""
    head, child_args = split_child_args(sys.argv[1:] if argv is None else argv)
    options = build_parser().parse_args(with_default_command(head))

    debug_log = resolve_debug_log_path(options.debug_log) if options.debug or options.debug_log else None
    init_logger(filename=debug_log, verbose=options.verbose)
    log = get_logger()
    log.debug("argv=%s child_args=%s", head, child_args)

    try:
        return int(asyncio.run(dispatch(options, child_args, log)))
    except KeyboardInterrupt:
        return int(ExitCode.INTERRUPTED)
    except HyprfinityError as e:
        log.critical("Error: %s", e)
        return int(ExitCode.ERROR)


def main() -> None:
    """Run the command."""
    sys.exit(run())


if __name__ == "__main__":
    main()
