"""Authenticated gateway to the echoreads API."""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .auth.credentials import CredentialStore
from .auth.session import SessionCache, token_preview
from .exceptions import (
    EchoReadsAuthenticationError,
    EchoReadsConnectionError,
    EchoReadsHTTPError,
    EchoReadsStorageError,
    EchoReadsTimeoutError,
)
from .notifications import SESSION_EXPIRED, NullNotifier

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.echoreads.online/api/v1"
DEFAULT_REQUEST_TIMEOUT = 10.0


@dataclass(frozen=True)
class ApiResponse:
    status: int
    body: Any = None


class AuthenticatedClient:
    """
    Sends requests to the echoreads API on behalf of the current session.

    The bearer token is read from the session cache at the moment a request
    is issued. A 401 answer invalidates the session (cache, persisted token,
    one "session expired" notification) at most once per expiry, however
    many requests were in flight when it happened.

    Args:
        session_cache: In-memory holder of the current token
        credential_store: Durable copy of the token, cleared on 401
        notifier: Channel for the "session expired" message
        api_url: Base URL of the API
        request_timeout: Deadline for a whole request in seconds
        http_session: requests.Session to send with (one is created if omitted)

    Example:
        >>> client = AuthenticatedClient(SessionCache(), CredentialStore())
        >>> response = await client.get("/magazines")
        >>> print(response.body)
    """

    def __init__(
        self,
        session_cache: SessionCache,
        credential_store: CredentialStore,
        notifier=None,
        api_url: Optional[str] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        http_session: Optional[requests.Session] = None,
    ):
        self.base_url = (api_url or DEFAULT_API_URL).rstrip("/")
        self.session_cache = session_cache
        self.credential_store = credential_store
        self.notifier = notifier or NullNotifier()
        self.request_timeout = request_timeout

        self._owns_http_session = http_session is None
        self.http_session = http_session or requests.Session()

        # Set while a 401 invalidation is running.
        self._invalidating = False

    def build_headers(self, token: Optional[str]) -> Dict[str, str]:
        """Headers for one request; Authorization only when a token is present."""
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> ApiResponse:
        """
        Send one request and return its status and decoded body.

        Raises:
            EchoReadsAuthenticationError: The API answered 401
            EchoReadsConnectionError: No response was received
            EchoReadsTimeoutError: The request exceeded its deadline
            EchoReadsHTTPError: Any other non-2xx status
        """
        # Read the token before the first suspension point.
        token = self.session_cache.get()
        headers = self.build_headers(token)
        url = self.url_for(path)
        method = method.upper()

        logger.debug("%s %s (session %s)", method, url, token_preview(token))

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self._send, method, url, headers, body, params),
                timeout=self.request_timeout,
            )
        except (asyncio.TimeoutError, requests.exceptions.Timeout):
            raise EchoReadsTimeoutError(
                f"Request to {url} exceeded {self.request_timeout:g}s deadline."
            )
        except requests.exceptions.ConnectionError:
            raise EchoReadsConnectionError(
                f"Could not connect to echoreads API at {self.base_url}. "
                "Check your network connection."
            )
        except requests.exceptions.RequestException as e:
            raise EchoReadsConnectionError(f"Request to {url} failed: {str(e)}")

        status = response.status_code
        payload = self._decode(response)

        if status == 401:
            await self._invalidate_session(token)
            raise EchoReadsAuthenticationError("Session expired. Please log in again.")

        if not 200 <= status < 300:
            logger.debug("%s %s returned HTTP %s", method, url, status)
            raise EchoReadsHTTPError(status, payload)

        return ApiResponse(status=status, body=payload)

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Optional[Any] = None) -> ApiResponse:
        return await self.request("POST", path, body=body)

    def _send(self, method, url, headers, body, params) -> requests.Response:
        return self.http_session.request(
            method,
            url,
            headers=headers,
            json=body,
            params=params,
            timeout=self.request_timeout,
        )

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError):
            return response.text

    async def _invalidate_session(self, sent_token: Optional[str]) -> None:
        """Run the invalidation cycle unless one is running or already happened.

        A 401 answering a request whose token has since been cleared or
        replaced is not an expiry of the current session: the cache keeps its
        value (e.g. a fresh login) and no notification is sent, even with the
        guard unset. Only the caller sees EchoReadsAuthenticationError.
        """
        if self._invalidating:
            logger.debug("401 received while session invalidation is in progress")
            return
        if sent_token != self.session_cache.get():
            # The session this request used is already gone or was replaced.
            logger.debug("401 for stale session %s ignored", token_preview(sent_token))
            return

        self._invalidating = True
        try:
            logger.info("Session %s rejected by API, invalidating", token_preview(sent_token))
            self.session_cache.clear()
            try:
                await self.credential_store.remove()
            except EchoReadsStorageError as e:
                logger.warning("Could not remove persisted session: %s", e)
            self.notifier.notify(SESSION_EXPIRED)
        finally:
            self._invalidating = False

    async def health_check(self) -> Dict[str, Any]:
        """
        Check if the echoreads API is reachable. Never raises.
        """
        health_url = self.url_for("/health")
        try:
            response = await asyncio.to_thread(
                self.http_session.get, health_url, timeout=5.0
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.ConnectionError:
            return {
                "status": "error",
                "error": "connection_error",
                "message": f"Could not connect to echoreads API at {self.base_url}",
            }
        except requests.exceptions.Timeout:
            return {
                "status": "error",
                "error": "timeout",
                "message": "Health check request timed out",
            }
        except (requests.exceptions.RequestException, ValueError) as e:
            return {
                "status": "error",
                "error": "request_error",
                "message": f"Health check failed: {str(e)}",
            }

    async def is_healthy(self) -> bool:
        health_status = await self.health_check()
        return health_status.get("status") in ("ok", "healthy")

    def close(self) -> None:
        if self._owns_http_session:
            self.http_session.close()
