"""Durable persistence for the session token."""

import asyncio
import enum
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import aiofiles.os

from ..exceptions import EchoReadsStorageError

logger = logging.getLogger(__name__)

SESSION_KEY = "authToken"
DEFAULT_SESSION_FILE = Path.home() / ".echoreads" / "session.json"


class RehydrationStatus(enum.Enum):
    PENDING = "pending"
    COMPLETE = "complete"


class CredentialStore:
    """Key/value JSON file holding the persisted session token.

    Every operation goes through one lock so that a ``remove`` issued after a
    ``write`` can never be overtaken by it. ``read`` never raises: storage
    problems are logged and reported as "no session".
    """

    def __init__(self, session_file: Optional[Path] = None, key: str = SESSION_KEY):
        self.session_file = Path(session_file) if session_file else DEFAULT_SESSION_FILE
        self.key = key
        self._lock = asyncio.Lock()
        self._rehydrated: Optional[asyncio.Future] = None

    async def read(self) -> Optional[str]:
        """Return the persisted token, or None if absent or unreadable."""
        async with self._lock:
            try:
                data = await self._load()
            except (OSError, ValueError) as e:
                logger.warning(
                    "StorageUnavailable: could not read %s (%s), treating as no session",
                    self.session_file,
                    e,
                )
                return None
        token = data.get(self.key)
        return token if isinstance(token, str) and token else None

    async def write(self, token: str) -> None:
        """Persist the token, keeping any other keys in the file."""
        if not token:
            raise ValueError("Refusing to persist an empty token")
        async with self._lock:
            try:
                data = await self._load()
            except (OSError, ValueError):
                data = {}
            data[self.key] = token
            await self._save(data)
        logger.debug("Persisted session token to %s", self.session_file)

    async def remove(self) -> None:
        """Delete the token. Removing an absent token is not an error."""
        async with self._lock:
            try:
                data = await self._load()
            except (OSError, ValueError):
                data = {}
            if self.key not in data and not await aiofiles.os.path.exists(self.session_file):
                return
            data.pop(self.key, None)
            if data:
                await self._save(data)
            else:
                try:
                    await aiofiles.os.remove(self.session_file)
                except FileNotFoundError:
                    pass
                except OSError as e:
                    raise EchoReadsStorageError(
                        f"Could not remove session file {self.session_file}: {e}"
                    ) from e
        logger.debug("Removed session token from %s", self.session_file)

    async def _load(self) -> Dict[str, Any]:
        if not await aiofiles.os.path.exists(self.session_file):
            return {}
        async with aiofiles.open(self.session_file, "r", encoding="utf-8") as f:
            content = await f.read()
        if not content.strip():
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError("session file does not hold a JSON object")
        return data

    async def _save(self, data: Dict[str, Any]) -> None:
        temp_path = self.session_file.with_name(self.session_file.name + ".tmp")
        try:
            await aiofiles.os.makedirs(self.session_file.parent, exist_ok=True)
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(data))
            await aiofiles.os.replace(temp_path, self.session_file)
        except OSError as e:
            if await aiofiles.os.path.exists(temp_path):
                try:
                    await aiofiles.os.remove(temp_path)
                except OSError:
                    logger.debug("Could not clean up %s", temp_path)
            raise EchoReadsStorageError(
                f"Could not write session file {self.session_file}: {e}"
            ) from e

    # Rehydration

    def _rehydration_future(self) -> asyncio.Future:
        if self._rehydrated is None:
            self._rehydrated = asyncio.get_running_loop().create_future()
        return self._rehydrated

    @property
    def rehydration_status(self) -> RehydrationStatus:
        if self._rehydrated is not None and self._rehydrated.done():
            return RehydrationStatus.COMPLETE
        return RehydrationStatus.PENDING

    async def rehydrate(self) -> Optional[str]:
        """Restore the persisted token once; later calls return the same value."""
        future = self._rehydration_future()
        if future.done():
            return future.result()
        token = await self.read()
        # Another rehydrate() may have finished while we were reading.
        if not future.done():
            future.set_result(token)
            logger.info(
                "Credential store rehydrated (%s)",
                "token present" if token else "no token",
            )
        return future.result()

    async def wait_rehydrated(self) -> Optional[str]:
        """Wait until rehydrate() has completed and return the restored token."""
        return await asyncio.shield(self._rehydration_future())
