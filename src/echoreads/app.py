"""Wires the session components together."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from .api import EchoReadsAPI
from .auth.authenticator import AuthenticationManager
from .auth.credentials import CredentialStore
from .auth.gate import DecisionListener, GateState, SessionGate
from .auth.session import SessionCache
from .client import AuthenticatedClient
from .config.manager import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)


class EchoReadsApp:
    """
    One client session: credential store, session cache, API client and gate.

    ``start()`` kicks off rehydration of the persisted token, lets the cache
    restore itself from it and runs the startup gate.
    """

    def __init__(
        self,
        settings: Optional[Dict[str, Any]] = None,
        notifier=None,
        on_decision: Optional[DecisionListener] = None,
        http_session: Optional[requests.Session] = None,
    ):
        self.settings = dict(DEFAULT_SETTINGS)
        self.settings.update(settings or {})

        self.credential_store = CredentialStore(Path(self.settings["session_file"]))
        self.session_cache = SessionCache()
        self.client = AuthenticatedClient(
            self.session_cache,
            self.credential_store,
            notifier=notifier,
            api_url=self.settings["api_url"],
            request_timeout=float(self.settings["request_timeout"]),
            http_session=http_session,
        )
        self.api = EchoReadsAPI(self.client)
        self.auth = AuthenticationManager(self.api, self.session_cache, self.credential_store)
        self.gate = SessionGate(
            self.session_cache,
            self.credential_store,
            on_decision=on_decision,
            settle_delay=float(self.settings["settle_delay"]),
            populate_timeout=float(self.settings["populate_timeout"]),
        )
        self._background = []

    async def start(self) -> GateState:
        """Rehydrate the session and return the gate's verdict."""
        if not self._background:
            self._background = [
                asyncio.ensure_future(self.session_cache.restore(self.credential_store)),
                asyncio.ensure_future(self.credential_store.rehydrate()),
            ]
        return await self.gate.start()

    async def rehydrate(self) -> Optional[str]:
        """Restore the session without running the gate (for login/logout)."""
        await self.credential_store.rehydrate()
        return await self.session_cache.restore(self.credential_store)

    async def aclose(self) -> None:
        self.gate.close()
        for task in self._background:
            if not task.done():
                task.cancel()
        await asyncio.gather(*self._background, return_exceptions=True)
        self.client.close()

    async def __aenter__(self) -> "EchoReadsApp":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
