"""Durable session record shared by the launcher and the `down` command."""

import json
from logging import Logger
from pathlib import Path

import aiofiles
import aiofiles.os

from .constants import SESSION_STATE_FILE
from .models import SessionState, SessionStateError

__all__ = ["SessionStore"]


class SessionStore:
    """Read/write the session state JSON file."""

    def __init__(self, log: Logger, path: Path | str = SESSION_STATE_FILE) -> None:
        self.log = log
        self.path = Path(path)

    async def exists(self) -> bool:
        """Tell if a session was recorded."""
        return bool(await aiofiles.os.path.exists(self.path))

    async def save(self, state: SessionState) -> None:
        """Write `state`, replacing any previous record."""
        async with aiofiles.open(self.path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(state.to_dict(), indent=2))
        self.log.debug("session state saved to %s", self.path)

    async def load(self) -> SessionState:
        """Read the recorded session.

        Raises:
            SessionStateError: if the file is missing or malformed
        """
        try:
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                content = await f.read()
        except FileNotFoundError as e:
            raise SessionStateError(f"No session state file found at {self.path}.") from e
        except OSError as e:
            raise SessionStateError(f"Unable to read {self.path}: {e}") from e
        try:
            data = json.loads(content)
            if not isinstance(data, dict):
                raise TypeError("not a JSON object")
            return SessionState.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise SessionStateError(f"Malformed session state in {self.path}: {e}") from e

    async def delete(self) -> bool:
        """Remove the record.

        Returns:
            False if there was nothing to remove
        """
        try:
            await aiofiles.os.remove(self.path)
        except FileNotFoundError:
            return False
        self.log.debug("session state %s removed", self.path)
        return True
