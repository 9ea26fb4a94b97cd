import asyncio

import pytest
from cachetools import TTLCache

from console_gate.core.dismissals import DismissalStore, InMemorySessionFlagStore
from console_gate.core.errors import DismissalPersistFailure, SessionExpired
from console_gate.schemas.dismissal import (
    AcknowledgedInterstitial, AcknowledgementChoice, DurableField, SessionFlag
)
from helpers import FakeBackend

def make_store():
    return DismissalStore(InMemorySessionFlagStore(storage={}))

def test_session_flags_are_per_session():
    store = make_store()
    store.mark_seen_this_session("tab-a", SessionFlag.EXP_ALERT_SEEN)

    assert store.session_flags("tab-a").exp_alert_seen
    assert not store.session_flags("tab-a").growth_alert_seen
    assert not store.session_flags("tab-b").exp_alert_seen

    store.clear_session("tab-a")
    assert not store.session_flags("tab-a").exp_alert_seen

def test_persist_dismissal_sends_settings_update():
    backend = FakeBackend()
    store = make_store()

    asyncio.run(store.persist_dismissal(backend.upstream(), DurableField.DISMISSED_PROMPT))
    asyncio.run(store.persist_dismissal(backend.upstream(), DurableField.SUCCESS_SHOWN))

    assert backend.puts == [{"dismissed": True}, {"successShown": True}]
    assert backend.endpoints("PUT") == ["settings/google-business", "settings/google-business"]

def test_persist_dismissal_failure_is_typed():
    backend = FakeBackend()
    backend.failing["settings/google-business"] = 500
    with pytest.raises(DismissalPersistFailure):
        asyncio.run(make_store().persist_dismissal(backend.upstream(), DurableField.DISMISSED_PROMPT))

def test_remind_later_is_ephemeral_only():
    backend = FakeBackend()
    store = make_store()
    result = asyncio.run(store.acknowledge(
        backend.upstream(), "tab-a", AcknowledgedInterstitial.GROWTH, AcknowledgementChoice.REMIND_LATER
    ))
    assert result.flags == [SessionFlag.GROWTH_ALERT_SEEN]
    assert result.durable is False
    assert backend.puts == []

def test_growth_dismiss_is_durable():
    backend = FakeBackend()
    store = make_store()
    result = asyncio.run(store.acknowledge(
        backend.upstream(), "tab-a", AcknowledgedInterstitial.GROWTH, AcknowledgementChoice.DISMISS
    ))
    assert result.durable is True
    assert SessionFlag.GROWTH_ALERT_SEEN in result.flags
    assert backend.puts == [{"dismissed": True}]

def test_failed_success_persist_falls_back_to_session_flag():
    backend = FakeBackend()
    backend.failing["settings/google-business"] = 503
    store = make_store()
    result = asyncio.run(store.acknowledge(
        backend.upstream(), "tab-a", AcknowledgedInterstitial.GOOGLE_SUCCESS, AcknowledgementChoice.CLOSE
    ))
    assert result.durable is False
    assert store.session_flags("tab-a").google_success_seen

def test_acknowledging_twice_keeps_one_flag():
    backend = FakeBackend()
    store = make_store()
    for _ in range(2):
        result = asyncio.run(store.acknowledge(
            backend.upstream(), "tab-a", AcknowledgedInterstitial.EXPIRATION_ALERT, AcknowledgementChoice.REMIND_LATER
        ))
    assert result.flags == [SessionFlag.EXP_ALERT_SEEN]

def test_unknown_answer_is_rejected():
    with pytest.raises(ValueError):
        asyncio.run(make_store().acknowledge(
            FakeBackend().upstream(), "tab-a", AcknowledgedInterstitial.EXPIRATION_ALERT, AcknowledgementChoice.DISMISS
        ))

def test_rejected_token_is_not_a_persist_failure():
    backend = FakeBackend()
    backend.failing["settings/google-business"] = 401
    store = make_store()
    with pytest.raises(SessionExpired):
        asyncio.run(store.acknowledge(
            backend.upstream(), "tab-a", AcknowledgedInterstitial.GROWTH, AcknowledgementChoice.DISMISS
        ))
    # the ephemeral flag was already written before the durable call
    assert store.session_flags("tab-a").growth_alert_seen

def test_idle_session_flags_expire():
    clock = [0.0]
    store = DismissalStore(InMemorySessionFlagStore(storage=TTLCache(maxsize=10, ttl=60, timer=lambda: clock[0])))
    store.mark_seen_this_session("tab-a", SessionFlag.GROWTH_ALERT_SEEN)
    store.mark_seen_this_session("tab-b", SessionFlag.GROWTH_ALERT_SEEN)

    clock[0] = 45.0
    assert store.session_flags("tab-a").growth_alert_seen

    # tab-a was read at 45s and stays alive; tab-b idled past the TTL
    clock[0] = 90.0
    assert store.session_flags("tab-a").growth_alert_seen
    assert not store.session_flags("tab-b").growth_alert_seen
