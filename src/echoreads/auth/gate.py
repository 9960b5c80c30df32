"""Startup gate deciding whether the session can enter the protected area."""

import asyncio
import enum
import logging
from typing import Callable, Optional

from .credentials import CredentialStore
from .session import SessionCache

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 1.5
DEFAULT_POPULATE_TIMEOUT = 5.0


class GateState(enum.Enum):
    PENDING = "pending"
    DECIDING = "deciding"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class AuthCheckState(enum.Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class NavigationDecision(enum.Enum):
    STAY_ON_PROTECTED_AREA = "stay-on-protected-area"
    REDIRECT_TO_LOGIN = "redirect-to-login"


DecisionListener = Callable[[NavigationDecision], None]


class SessionGate:
    """
    Reconciles the persisted and in-memory session once at startup, then
    follows token changes.

    The startup check waits for the credential store to rehydrate, gives
    dependent caches a short grace period (``settle_delay``) and decides:

    - cache holds a token: authenticated
    - cache and persisted store both empty: unauthenticated
    - cache empty but a token is persisted: wait up to ``populate_timeout``
      for the cache to catch up, unauthenticated if it never does

    After that decision every set/clear of the cache moves the gate between
    AUTHENTICATED and UNAUTHENTICATED directly. Each transition emits one
    navigation decision.
    """

    def __init__(
        self,
        session_cache: SessionCache,
        credential_store: CredentialStore,
        on_decision: Optional[DecisionListener] = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        populate_timeout: float = DEFAULT_POPULATE_TIMEOUT,
    ):
        self.session_cache = session_cache
        self.credential_store = credential_store
        self.on_decision = on_decision
        self.settle_delay = settle_delay
        self.populate_timeout = populate_timeout

        self.state = GateState.PENDING
        self.auth_check = AuthCheckState.NOT_STARTED

        self._startup: Optional[asyncio.Future] = None
        self._populated: Optional[asyncio.Event] = None
        self._unsubscribe = session_cache.subscribe(self._on_token_change)

    @property
    def is_waiting(self) -> bool:
        return self.state in (GateState.PENDING, GateState.DECIDING)

    async def start(self) -> GateState:
        """Run the startup check (only the first call does any work)."""
        if self.auth_check is AuthCheckState.NOT_STARTED:
            self.auth_check = AuthCheckState.IN_PROGRESS
            self._startup = asyncio.ensure_future(self._run_startup())
        await asyncio.shield(self._startup)
        return self.state

    async def _run_startup(self) -> None:
        logger.debug("Waiting for credential store rehydration...")
        await self.credential_store.wait_rehydrated()

        if self.settle_delay > 0:
            await asyncio.sleep(self.settle_delay)

        self.state = GateState.DECIDING
        try:
            verdict = await self._reconcile()
        finally:
            self.auth_check = AuthCheckState.DONE
        self._transition(verdict)

    async def _reconcile(self) -> GateState:
        if self.session_cache.get():
            logger.debug("Session token found in memory")
            return GateState.AUTHENTICATED

        persisted = await self.credential_store.read()
        if not persisted:
            logger.debug("No session token in memory or in storage")
            return GateState.UNAUTHENTICATED

        if self.session_cache.get():
            return GateState.AUTHENTICATED

        logger.info(
            "Session token found in storage, waiting up to %gs for it to load",
            self.populate_timeout,
        )
        self._populated = asyncio.Event()
        try:
            await asyncio.wait_for(self._populated.wait(), timeout=self.populate_timeout)
        except asyncio.TimeoutError:
            logger.warning("Persisted session never reached memory, treating as logged out")
            return GateState.UNAUTHENTICATED
        finally:
            self._populated = None

        if self.session_cache.get():
            return GateState.AUTHENTICATED
        return GateState.UNAUTHENTICATED

    def _on_token_change(self, token: Optional[str]) -> None:
        if self.state is GateState.DECIDING:
            if token and self._populated is not None:
                self._populated.set()
            return
        if self.auth_check is AuthCheckState.DONE:
            self._transition(GateState.AUTHENTICATED if token else GateState.UNAUTHENTICATED)

    def _transition(self, new_state: GateState) -> None:
        if new_state is self.state:
            return
        logger.info("Session gate: %s -> %s", self.state.value, new_state.value)
        self.state = new_state

        if new_state is GateState.AUTHENTICATED:
            decision = NavigationDecision.STAY_ON_PROTECTED_AREA
        else:
            decision = NavigationDecision.REDIRECT_TO_LOGIN
        if self.on_decision is not None:
            self.on_decision(decision)

    def close(self) -> None:
        """Stop following the session cache."""
        self._unsubscribe()
        if self._startup is not None and not self._startup.done():
            self._startup.cancel()
