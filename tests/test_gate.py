import asyncio

import pytest

from echoreads.auth.credentials import CredentialStore
from echoreads.auth.gate import AuthCheckState, GateState, NavigationDecision, SessionGate
from echoreads.auth.session import SessionCache
from echoreads.client import AuthenticatedClient
from echoreads.exceptions import EchoReadsAuthenticationError

from .conftest import make_response

STAY = NavigationDecision.STAY_ON_PROTECTED_AREA
REDIRECT = NavigationDecision.REDIRECT_TO_LOGIN


def make_gate(cache, store, **kwargs):
    heard = []
    kwargs.setdefault("settle_delay", 0)
    kwargs.setdefault("populate_timeout", 0.2)
    gate = SessionGate(cache, store, on_decision=heard.append, **kwargs)
    return gate, heard


async def boot(cache, store, gate):
    """Start rehydration, cache restore and the gate the way the app does."""
    restoring = asyncio.ensure_future(cache.restore(store))
    await store.rehydrate()
    state = await gate.start()
    await restoring
    return state


def test_stored_token_reaches_authenticated(session_file):
    async def scenario():
        store = CredentialStore(session_file)
        await store.write("tok-123")
        cache = SessionCache()
        gate, heard = make_gate(cache, store, settle_delay=0.05)
        state = await boot(cache, store, gate)
        return state, heard, cache.get()

    state, heard, token = asyncio.run(scenario())
    assert state is GateState.AUTHENTICATED
    assert heard == [STAY]
    assert token == "tok-123"


def test_empty_store_redirects_once(session_file):
    async def scenario():
        store = CredentialStore(session_file)
        cache = SessionCache()
        gate, heard = make_gate(cache, store)
        state = await boot(cache, store, gate)
        return state, heard

    state, heard = asyncio.run(scenario())
    assert state is GateState.UNAUTHENTICATED
    assert heard == [REDIRECT]


def test_unavailable_storage_is_treated_as_logged_out(tmp_path):
    blocked = tmp_path / "session.json"
    blocked.mkdir()

    async def scenario():
        store = CredentialStore(blocked)
        cache = SessionCache()
        gate, heard = make_gate(cache, store)
        state = await boot(cache, store, gate)
        return state, heard

    state, heard = asyncio.run(scenario())
    assert state is GateState.UNAUTHENTICATED
    assert heard == [REDIRECT]


def test_waits_for_cache_when_token_is_only_persisted(session_file):
    async def scenario():
        store = CredentialStore(session_file)
        await store.write("tok-123")
        cache = SessionCache()
        gate, heard = make_gate(cache, store, populate_timeout=5.0)

        await store.rehydrate()
        starting = asyncio.ensure_future(gate.start())
        await asyncio.sleep(0.05)
        # Persisted token present, cache not yet populated: no verdict.
        assert gate.state is GateState.DECIDING
        assert heard == []

        cache.set("tok-123")
        return await starting, heard

    state, heard = asyncio.run(scenario())
    assert state is GateState.AUTHENTICATED
    assert heard == [STAY]


def test_gives_up_when_cache_never_populates(session_file):
    async def scenario():
        store = CredentialStore(session_file)
        await store.write("tok-123")
        cache = SessionCache()
        gate, heard = make_gate(cache, store, populate_timeout=0.05)
        await store.rehydrate()
        return await gate.start(), heard

    state, heard = asyncio.run(scenario())
    assert state is GateState.UNAUTHENTICATED
    assert heard == [REDIRECT]


def test_startup_check_runs_once(session_file):
    async def scenario():
        store = CredentialStore(session_file)
        cache = SessionCache()
        gate, heard = make_gate(cache, store)
        first = await boot(cache, store, gate)
        second = await gate.start()
        return first, second, heard, gate.auth_check

    first, second, heard, auth_check = asyncio.run(scenario())
    assert first is second is GateState.UNAUTHENTICATED
    assert heard == [REDIRECT]
    assert auth_check is AuthCheckState.DONE


def test_same_inputs_give_same_verdict(session_file):
    async def verdict():
        store = CredentialStore(session_file)
        cache = SessionCache()
        gate, _ = make_gate(cache, store)
        return await boot(cache, store, gate)

    session_file.write_text('{"authToken": "tok-123"}')
    assert asyncio.run(verdict()) is asyncio.run(verdict()) is GateState.AUTHENTICATED


def test_stays_pending_until_rehydration(session_file):
    async def scenario():
        store = CredentialStore(session_file)
        cache = SessionCache()
        gate, heard = make_gate(cache, store)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(gate.start(), timeout=0.05)
        snapshot = (gate.state, gate.is_waiting, list(heard))
        gate.close()
        await asyncio.sleep(0)
        return snapshot

    state, waiting, heard = asyncio.run(scenario())
    assert state is GateState.PENDING
    assert waiting
    assert heard == []


def test_token_changes_after_decision_drive_transitions(session_file):
    async def scenario():
        store = CredentialStore(session_file)
        await store.write("tok-123")
        cache = SessionCache()
        gate, heard = make_gate(cache, store)
        await boot(cache, store, gate)

        cache.clear()
        cache.clear()
        states = [gate.state]
        cache.set("tok-456")
        states.append(gate.state)
        return states, heard

    states, heard = asyncio.run(scenario())
    assert states == [GateState.UNAUTHENTICATED, GateState.AUTHENTICATED]
    assert heard == [STAY, REDIRECT, STAY]


def test_expired_session_redirects_through_gate(session_file, http_session, notifier):
    http_session.request.return_value = make_response(401)

    async def scenario():
        store = CredentialStore(session_file)
        await store.write("tok-123")
        cache = SessionCache()
        gate, heard = make_gate(cache, store)
        client = AuthenticatedClient(cache, store, notifier=notifier, http_session=http_session)
        await boot(cache, store, gate)

        with pytest.raises(EchoReadsAuthenticationError):
            await client.get("/magazines")
        return gate.state, heard

    state, heard = asyncio.run(scenario())
    assert state is GateState.UNAUTHENTICATED
    assert heard == [STAY, REDIRECT]
    assert len(notifier.sent) == 1
