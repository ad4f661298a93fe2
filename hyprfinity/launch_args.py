"""Gamescope command line handling.

The flag vector is `[gamescope flags...] [-- game command...]`. Sizes are only
injected in the gamescope part, and only when the user didn't set them.
"""

from collections.abc import Awaitable, Callable

from .models import SizeSpec

__all__ = ["SEPARATOR", "build_gamescope_args", "ensure_game_command", "has_flag", "split_game_command"]

SEPARATOR = "--"

SIZE_FLAGS = (
    ("-W", "--output-width"),
    ("-H", "--output-height"),
    ("-w", "--nested-width"),
    ("-h", "--nested-height"),
)


def has_flag(args: list[str], flag: str) -> bool:
    """Tell if `flag` is set, as `-W 10`, `-W=10` or `-W10` (short flags only)."""
    for arg in args:
        if arg == flag or arg.startswith(f"{flag}="):
            return True
        if len(flag) == 2 and arg.startswith(flag) and len(arg) > 2 and not arg.startswith("--"):  # noqa: PLR2004
            return True
    return False


def split_game_command(args: list[str]) -> tuple[list[str], list[str]]:
    """Split at the first separator; the tail keeps the separator."""
    if SEPARATOR in args:
        idx = args.index(SEPARATOR)
        return list(args[:idx]), list(args[idx:])
    return list(args), []


def build_gamescope_args(args: list[str], output: SizeSpec, internal: SizeSpec) -> list[str]:
    """Return `args` with output (-W/-H) and internal (-w/-h) sizes added when missing."""
    pre, post = split_game_command(args)
    values = (output.width, output.height, internal.width, internal.height)
    for (short, long), value in zip(SIZE_FLAGS, values, strict=True):
        if not (has_flag(pre, short) or has_flag(pre, long)):
            pre.extend([short, str(value)])
    return pre + post


async def ensure_game_command(args: list[str], pick: bool, picker: Callable[[], Awaitable[list[str]]]) -> list[str]:
    """Pick the game command when asked to, or when none was given.

    A picked command replaces whatever followed the separator.

    Args:
        args: the gamescope flag vector
        pick: always run the picker
        picker: coroutine returning the chosen command's argv
    """
    pre, post = split_game_command(args)
    if not pick and len(post) > 1:
        return list(args)
    command = await picker()
    return [*pre, SEPARATOR, *command]
