"""Login, signup and logout workflows."""

import logging
from typing import Any, Dict, Optional

from .credentials import CredentialStore
from .session import SessionCache, token_preview
from ..api import EchoReadsAPI
from ..exceptions import EchoReadsAuthenticationError, EchoReadsStorageError

logger = logging.getLogger(__name__)


def extract_token(body: Any) -> Optional[str]:
    """Find the session token in a login or verification response."""
    if not isinstance(body, dict):
        return None
    for key in ("token", "accessToken", "access_token", "authToken"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    data = body.get("data")
    if isinstance(data, dict):
        return extract_token(data)
    return None


class AuthenticationManager:
    """Creates and ends sessions, keeping cache and storage in step."""

    def __init__(
        self,
        api: EchoReadsAPI,
        session_cache: SessionCache,
        credential_store: CredentialStore,
    ):
        self.api = api
        self.session_cache = session_cache
        self.credential_store = credential_store

    async def login(self, email: str, password: str) -> str:
        """Log in and start a session. Returns the new token."""
        body = await self.api.login(email, password)
        token = extract_token(body)
        if not token:
            raise EchoReadsAuthenticationError("Login response did not contain a token")
        await self.start_session(token)
        return token

    async def signup(self, name: str, email: str, password: str) -> Dict[str, Any]:
        body = await self.api.signup(name, email, password)
        return body if isinstance(body, dict) else {"response": body}

    async def verify_email(self, email: str, otp: str) -> Dict[str, Any]:
        """Confirm an email address; starts a session if the API hands out a token."""
        body = await self.api.verify_email(email, otp)
        token = extract_token(body)
        if token:
            await self.start_session(token)
        return body if isinstance(body, dict) else {"response": body}

    async def start_session(self, token: str) -> None:
        # Memory first: requests issued right after login must carry the token.
        self.session_cache.set(token)
        try:
            await self.credential_store.write(token)
        except EchoReadsStorageError as e:
            logger.warning("Session %s will not survive a restart: %s", token_preview(token), e)
        logger.info("Session %s started", token_preview(token))

    async def logout(self) -> None:
        """Clear authentication session."""
        self.session_cache.clear()
        try:
            await self.credential_store.remove()
        except EchoReadsStorageError as e:
            logger.warning("Could not remove persisted session: %s", e)
        logger.info("Session cleared")
