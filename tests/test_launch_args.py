from unittest.mock import AsyncMock

import pytest

from hyprfinity.launch_args import build_gamescope_args, ensure_game_command, has_flag, split_game_command
from hyprfinity.models import SizeSpec

OUTPUT = SizeSpec(4480, 1440)
INTERNAL = SizeSpec(3360, 1080)


def test_has_flag_forms():
    assert has_flag(["-W", "1920"], "-W")
    assert has_flag(["-W=1920"], "-W")
    assert has_flag(["-W1920"], "-W")
    assert has_flag(["--output-width=1920"], "--output-width")
    assert not has_flag(["-w", "1920"], "-W")
    assert not has_flag(["--output-width", "1"], "-W")


def test_split_game_command():
    assert split_game_command(["-r", "60", "--", "steam", "--", "x"]) == (["-r", "60"], ["--", "steam", "--", "x"])
    assert split_game_command(["-r", "60"]) == (["-r", "60"], [])


def test_sizes_injected_before_separator():
    args = build_gamescope_args(["-r", "60", "--", "steam", "-applaunch", "620"], OUTPUT, INTERNAL)
    assert args == ["-r", "60", "-W", "4480", "-H", "1440", "-w", "3360", "-h", "1080", "--", "steam", "-applaunch", "620"]


def test_user_sizes_are_kept():
    args = build_gamescope_args(["--output-width", "3840", "-h720"], OUTPUT, INTERNAL)
    assert args == ["--output-width", "3840", "-h720", "-H", "1440", "-w", "3360"]


def test_flags_after_separator_are_ignored():
    args = build_gamescope_args(["--", "game", "-W", "1"], OUTPUT, INTERNAL)
    assert args[:8] == ["-W", "4480", "-H", "1440", "-w", "3360", "-h", "1080"]
    assert args[8:] == ["--", "game", "-W", "1"]


@pytest.mark.asyncio
async def test_game_command_kept():
    picker = AsyncMock(return_value=["other"])
    assert await ensure_game_command(["-r", "60", "--", "steam"], False, picker) == ["-r", "60", "--", "steam"]
    picker.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("args", [["-r", "60"], ["-r", "60", "--"]])
async def test_game_command_picked_when_missing(args):
    picker = AsyncMock(return_value=["steam", "-bigpicture"])
    assert await ensure_game_command(args, False, picker) == ["-r", "60", "--", "steam", "-bigpicture"]


@pytest.mark.asyncio
async def test_pick_replaces_command():
    picker = AsyncMock(return_value=["lutris"])
    assert await ensure_game_command(["-r", "60", "--", "steam"], True, picker) == ["-r", "60", "--", "lutris"]
