"""In-memory session state consulted by every outgoing request."""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .credentials import CredentialStore

logger = logging.getLogger(__name__)

TokenListener = Callable[[Optional[str]], None]


@dataclass(frozen=True)
class Session:
    token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)


def token_preview(token: Optional[str]) -> str:
    """Short, log-safe representation of a token."""
    if not token:
        return "<none>"
    return token[:8] + "..."


class SessionCache:
    """Holds the current session token for the lifetime of the process.

    Reads and writes are plain attribute access so a token set here is seen
    by the very next request. Listeners are notified synchronously whenever
    the token actually changes.
    """

    def __init__(self, token: Optional[str] = None):
        self._token = token or None
        self._listeners: List[TokenListener] = []
        # Bumped by every set/clear, including ones that change nothing.
        self._epoch = 0

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: Optional[str]) -> None:
        self._update(token or None)

    def clear(self) -> None:
        self._update(None)

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def snapshot(self) -> Session:
        return Session(token=self._token)

    def subscribe(self, listener: TokenListener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def restore(self, store: CredentialStore) -> Optional[str]:
        """Populate the cache from the store once it has rehydrated.

        Any set or clear made while we were waiting wins over the persisted
        token: a fresh login keeps its token, a logout or expired session
        stays logged out.
        """
        epoch = self._epoch
        token = await store.wait_rehydrated()
        if epoch != self._epoch:
            logger.debug("Session changed during rehydration, not restoring")
            return self._token
        if self._token is None and token:
            logger.debug("Restoring session %s from credential store", token_preview(token))
            self.set(token)
        return self._token

    def _update(self, token: Optional[str]) -> None:
        self._epoch += 1
        if token == self._token:
            return
        self._token = token
        logger.debug("Session token changed to %s", token_preview(token))
        for listener in list(self._listeners):
            listener(token)
