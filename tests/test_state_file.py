import json

import pytest

from hyprfinity.models import ExitHotkey, SessionState, SessionStateError, Span

STATE = SessionState(
    gamescope_pid=4242,
    span=Span(-1920, 0, 4480, 1440),
    gamescope_args=["-W", "4480", "--", "steam"],
    waybar_was_stopped=True,
    exit_hotkey=ExitHotkey("SUPER SHIFT", "F12"),
)


@pytest.mark.asyncio
async def test_save_layout(store):
    await store.save(STATE)
    data = json.loads(store.path.read_text())
    assert data == {
        "gamescope_pid": 4242,
        "span_x": -1920,
        "span_y": 0,
        "span_width": 4480,
        "span_height": 1440,
        "gamescope_args": ["-W", "4480", "--", "steam"],
        "waybar_was_stopped": True,
        "exit_hotkey": {"mods": "SUPER SHIFT", "key": "F12"},
    }


@pytest.mark.asyncio
async def test_load_saved(store):
    await store.save(STATE)
    assert await store.exists()
    assert await store.load() == STATE


@pytest.mark.asyncio
async def test_load_without_hotkey(store):
    store.path.write_text(
        json.dumps({"gamescope_pid": 1, "span_x": 0, "span_y": 0, "span_width": 10, "span_height": 10, "exit_hotkey": None})
    )
    state = await store.load()
    assert state.exit_hotkey is None
    assert state.waybar_was_stopped is False
    assert state.gamescope_args == []


@pytest.mark.asyncio
async def test_load_missing(store):
    with pytest.raises(SessionStateError, match="No session state file"):
        await store.load()


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"gamescope_pid": 1}', '{"gamescope_pid": "x", "span_x": 0}'])
async def test_load_malformed(store, content):
    store.path.write_text(content)
    with pytest.raises(SessionStateError, match="Malformed"):
        await store.load()


@pytest.mark.asyncio
async def test_delete(store):
    await store.save(STATE)
    assert await store.delete()
    assert not store.path.exists()
    assert not await store.delete()
