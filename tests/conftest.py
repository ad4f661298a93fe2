" generic fixtures "
import pytest
from pytest_asyncio import fixture

from .testtools import FakeCompositor

MONITORS = [
    {"id": 0, "name": "HDMI-A-1", "x": -1920, "y": 0, "width": 1920, "height": 1080, "focused": False},
    {"id": 1, "name": "DP-1", "x": 0, "y": 0, "width": 2560, "height": 1440, "focused": True},
]


def pytest_configure():
    "Runs once before all"
    from hyprfinity.logging_setup import init_logger

    init_logger("/dev/null", force_debug=True)


@pytest.fixture
def log():
    from hyprfinity.logging_setup import get_logger

    return get_logger("tests")


@fixture
async def fake(monkeypatch):
    "Simulated compositor wired in place of the control socket"
    compositor = FakeCompositor(monitors=[dict(m) for m in MONITORS])
    monkeypatch.setattr("hyprfinity.gateway.get_response", compositor.get_response)
    yield compositor


@pytest.fixture
def gateway(log):
    from hyprfinity.gateway import CompositorGateway

    return CompositorGateway(log)


@pytest.fixture
def store(tmp_path, log):
    from hyprfinity.state_file import SessionStore

    return SessionStore(log, tmp_path / "state.json")
