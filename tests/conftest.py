import asyncio
import json
from unittest.mock import MagicMock

import pytest
import requests

from echoreads.auth.credentials import CredentialStore
from echoreads.auth.session import SessionCache
from echoreads.client import AuthenticatedClient
from echoreads.notifications import NullNotifier


def make_response(status, body=None):
    response = requests.Response()
    response.status_code = status
    response._content = json.dumps(body).encode("utf-8") if body is not None else b""
    response.headers["Content-Type"] = "application/json"
    return response


class CountingStore(CredentialStore):
    """CredentialStore that counts removals and can hold them open."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.remove_calls = 0
        self.remove_entered = None
        self.release_remove = None

    def hold_removals(self):
        self.remove_entered = asyncio.Event()
        self.release_remove = asyncio.Event()

    async def remove(self):
        self.remove_calls += 1
        if self.release_remove is not None:
            self.remove_entered.set()
            await self.release_remove.wait()
        await super().remove()


@pytest.fixture
def session_file(tmp_path):
    return tmp_path / "session.json"


@pytest.fixture
def store(session_file):
    return CountingStore(session_file)


@pytest.fixture
def cache():
    return SessionCache()


@pytest.fixture
def notifier():
    return NullNotifier()


@pytest.fixture
def http_session():
    session = MagicMock(spec=requests.Session)
    session.request.return_value = make_response(200, {"ok": True})
    return session


@pytest.fixture
def client(cache, store, notifier, http_session):
    return AuthenticatedClient(
        cache,
        store,
        notifier=notifier,
        api_url="https://api.test/api/v1",
        request_timeout=2.0,
        http_session=http_session,
    )
