import asyncio

import pytest

from echoreads.api import EchoReadsAPI, extract_items
from echoreads.auth.authenticator import AuthenticationManager, extract_token
from echoreads.auth.credentials import CredentialStore
from echoreads.exceptions import EchoReadsAuthenticationError

from .conftest import make_response


@pytest.fixture
def auth(client, cache, store):
    return AuthenticationManager(EchoReadsAPI(client), cache, store)


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"token": "a"}, "a"),
        ({"accessToken": "b"}, "b"),
        ({"data": {"token": "c", "user": {"id": 1}}}, "c"),
        ({"message": "ok"}, None),
        ("nope", None),
        (None, None),
    ],
)
def test_extract_token(body, expected):
    assert extract_token(body) == expected


def test_login_starts_session(auth, cache, store, http_session):
    http_session.request.return_value = make_response(200, {"data": {"token": "tok-123"}})

    async def scenario():
        token = await auth.login("reader@example.com", "secret")
        return token, await store.read()

    token, persisted = asyncio.run(scenario())
    assert token == "tok-123"
    assert cache.get() == "tok-123"
    assert persisted == "tok-123"
    assert http_session.request.call_args.kwargs["json"] == {
        "email": "reader@example.com",
        "password": "secret",
    }


def test_login_without_token_fails(auth, cache, http_session):
    http_session.request.return_value = make_response(200, {"message": "ok"})

    with pytest.raises(EchoReadsAuthenticationError):
        asyncio.run(auth.login("reader@example.com", "secret"))
    assert cache.get() is None


def test_request_after_login_carries_new_token(auth, client, http_session):
    async def scenario():
        http_session.request.return_value = make_response(200, {"token": "tok-123"})
        await auth.login("reader@example.com", "secret")
        http_session.request.return_value = make_response(200, [])
        await client.get("/magazines")

    asyncio.run(scenario())
    headers = http_session.request.call_args.kwargs["headers"]
    assert headers["Authorization"] == "Bearer tok-123"


def test_session_survives_storage_failure(client, cache, tmp_path, http_session):
    not_a_dir = tmp_path / "plain-file"
    not_a_dir.write_text("x")
    auth = AuthenticationManager(
        EchoReadsAPI(client), cache, CredentialStore(not_a_dir / "session.json")
    )
    http_session.request.return_value = make_response(200, {"token": "tok-123"})

    asyncio.run(auth.login("reader@example.com", "secret"))
    assert cache.get() == "tok-123"


def test_verify_email_with_token_logs_in(auth, cache, http_session):
    http_session.request.return_value = make_response(200, {"token": "tok-789"})
    asyncio.run(auth.verify_email("reader@example.com", "123456"))
    assert cache.get() == "tok-789"


def test_verify_email_without_token_does_not(auth, cache, http_session):
    http_session.request.return_value = make_response(200, {"message": "Email verified"})
    result = asyncio.run(auth.verify_email("reader@example.com", "123456"))
    assert result == {"message": "Email verified"}
    assert cache.get() is None


def test_signup_posts_account(auth, http_session):
    http_session.request.return_value = make_response(201, {"message": "created"})
    result = asyncio.run(auth.signup("Reader", "reader@example.com", "secret"))
    assert result == {"message": "created"}
    call = http_session.request.call_args
    assert call.args[1].endswith("/auth/signup")


def test_logout_clears_memory_and_storage(auth, cache, store):
    async def scenario():
        await auth.start_session("tok-123")
        await auth.logout()
        return await store.read()

    assert asyncio.run(scenario()) is None
    assert cache.get() is None


def test_fetch_magazines_sends_query(client, http_session):
    http_session.request.return_value = make_response(200, {"data": {"articles": [{"_id": "1"}]}})

    body = asyncio.run(EchoReadsAPI(client).fetch_magazines("articles", page=2, limit=5))

    assert extract_items(body, "articles") == [{"_id": "1"}]
    assert http_session.request.call_args.kwargs["params"] == {
        "type": "articles",
        "page": 2,
        "limit": 5,
    }


def test_fetch_magazines_rejects_unknown_type(client):
    with pytest.raises(ValueError):
        asyncio.run(EchoReadsAPI(client).fetch_magazines("podcasts"))


def test_fetch_magazine_detail(client, http_session):
    http_session.request.return_value = make_response(200, {"data": {"_id": "42"}})
    body = asyncio.run(EchoReadsAPI(client).fetch_magazine_detail("42"))
    assert body == {"data": {"_id": "42"}}
    assert http_session.request.call_args.args[1].endswith("/magazines/42")


def test_fetch_magazine_detail_requires_id(client):
    with pytest.raises(ValueError):
        asyncio.run(EchoReadsAPI(client).fetch_magazine_detail("  "))


@pytest.mark.parametrize(
    "body, expected",
    [
        ([{"id": 1}], [{"id": 1}]),
        ({"data": [{"id": 2}]}, [{"id": 2}]),
        ({"magazines": [{"id": 3}]}, [{"id": 3}]),
        ({"data": {"items": [{"id": 4}]}}, [{"id": 4}]),
        ("oops", []),
    ],
)
def test_extract_items(body, expected):
    assert extract_items(body, "magazines") == expected
