import pytest
from unittest.mock import Mock, AsyncMock

from hyprfinity import ipc
from hyprfinity.models import GatewayError


@pytest.fixture
def mock_open_connection(mocker):
    reader = AsyncMock()
    # StreamWriter methods write and close are synchronous, drain and wait_closed are async
    writer = Mock()
    writer.drain = AsyncMock()
    writer.wait_closed = AsyncMock()

    mock_connect = mocker.patch("asyncio.open_unix_connection", return_value=(reader, writer))
    return mock_connect, reader, writer


@pytest.mark.asyncio
async def test_hyprctl_connection_context_manager(mock_open_connection):
    mock_connect, reader, writer = mock_open_connection
    logger = Mock()

    async with ipc.hyprctl_connection(logger) as (r, w):
        assert r == reader
        assert w == writer

    mock_connect.assert_called_once_with(ipc.HYPRCTL)
    writer.close.assert_called_once()
    writer.wait_closed.assert_awaited_once()


@pytest.mark.asyncio
async def test_hyprctl_connection_error(mocker):
    mocker.patch("asyncio.open_unix_connection", side_effect=FileNotFoundError)
    logger = Mock()

    with pytest.raises(GatewayError) as exc_info:
        async with ipc.hyprctl_connection(logger, "j/monitors"):
            pass

    assert exc_info.value.command == "j/monitors"
    logger.critical.assert_called_with("hyprctl socket not found! is it running ?")


@pytest.mark.asyncio
async def test_connection_refused(mocker):
    mocker.patch("asyncio.open_unix_connection", side_effect=ConnectionRefusedError)

    with pytest.raises(GatewayError):
        await ipc.get_response(b"j/clients", Mock())


@pytest.mark.asyncio
async def test_get_response(mock_open_connection):
    mock_connect, reader, writer = mock_open_connection
    logger = Mock()
    reader.read.return_value = b'[{"pid": 42}]'

    result = await ipc.get_response(b"j/clients", logger)

    assert result == '[{"pid": 42}]'
    writer.write.assert_called_with(b"j/clients")
    writer.drain.assert_awaited_once()
    writer.close.assert_called_once()


@pytest.mark.asyncio
async def test_connection_reset(mock_open_connection):
    _, reader, writer = mock_open_connection
    writer.drain.side_effect = ConnectionResetError("reset by peer")

    with pytest.raises(GatewayError) as exc_info:
        await ipc.get_response(b"j/clients", Mock())

    assert exc_info.value.command == "j/clients"
    assert "reset by peer" in str(exc_info.value)
    writer.close.assert_called_once()
    reader.read.assert_not_awaited()


def test_ipc_folder_prefers_runtime_dir(tmp_path):
    (tmp_path / "hypr" / "abc").mkdir(parents=True)
    folder = ipc.ipc_folder({"XDG_RUNTIME_DIR": str(tmp_path), "HYPRLAND_INSTANCE_SIGNATURE": "abc"})
    assert folder == f"{tmp_path}/hypr/abc"


def test_ipc_folder_falls_back_to_tmp(tmp_path):
    folder = ipc.ipc_folder({"XDG_RUNTIME_DIR": str(tmp_path), "HYPRLAND_INSTANCE_SIGNATURE": "missing"})
    assert folder == "/tmp/hypr/missing"
