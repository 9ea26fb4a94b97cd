import asyncio

import pytest

from console_gate.core.dismissals import DismissalStore, InMemorySessionFlagStore
from console_gate.core.errors import SessionExpired, SnapshotUnavailable
from console_gate.core.loader import PRIVILEGED_COLLECTIONS, SnapshotLoader, fetch_collections
from console_gate.schemas.decision import SettingsRead
from console_gate.schemas.dismissal import SessionFlag
from console_gate.schemas.session import User
from helpers import NOW, FakeBackend, billing_payload, settings_payload, user_payload

UNVERIFIED = {"status": "unverified"}


def load(backend, user=None, is_payment_return=False, dismissals=None):
    loader = SnapshotLoader(backend.upstream(), dismissals or DismissalStore(InMemorySessionFlagStore(storage={})))
    user = User.model_validate(user or user_payload())
    return asyncio.run(loader.load(user, "tab-a", is_payment_return, NOW))


def test_full_waterfall_reads_settings_once_per_stage():
    backend = FakeBackend(settings=settings_payload(google_business=UNVERIFIED))
    snapshot = load(backend)

    assert backend.endpoints() == ["subscription/status", "settings", "settings", "settings"]
    for read in SettingsRead:
        assert snapshot.settings.get(read) is not None

def test_each_stage_keeps_its_own_copy():
    first = settings_payload(google_business=UNVERIFIED)
    later = settings_payload(google_business={"status": "unverified", "dismissedPrompt": True})
    backend = FakeBackend(settings=[first, first, later])
    snapshot = load(backend)

    assert not snapshot.settings.onboarding.google_business.dismissed_prompt
    assert snapshot.settings.growth.google_business.dismissed_prompt

def test_blocked_billing_needs_no_settings():
    backend = FakeBackend(billing=billing_payload(status="expired"))
    snapshot = load(backend)
    assert backend.endpoints() == ["subscription/status"]
    assert snapshot.settings.latest() is None

def test_onboarding_decision_skips_rereads():
    backend = FakeBackend(settings=settings_payload(isSetupComplete=False))
    load(backend)
    assert backend.endpoints() == ["subscription/status", "settings"]

def test_no_growth_read_for_technicians_or_payment_returns():
    backend = FakeBackend(settings=settings_payload(google_business=UNVERIFIED))
    load(backend, user=user_payload(role="technician"))
    assert backend.endpoints() == ["subscription/status", "settings", "settings"]

    backend = FakeBackend(settings=settings_payload(google_business=UNVERIFIED))
    load(backend, is_payment_return=True)
    assert backend.endpoints() == ["subscription/status", "settings", "settings"]

def test_billing_is_fetched_once():
    backend = FakeBackend(settings=settings_payload(google_business=UNVERIFIED))
    load(backend)
    assert backend.endpoints().count("subscription/status") == 1

def test_payment_required_tolerates_broken_billing():
    backend = FakeBackend(billing={"plan": "enterprise-ish"})
    snapshot = load(backend, user=user_payload(paymentRequired=True))
    assert snapshot.billing is None
    assert backend.endpoints() == ["subscription/status"]

def test_billing_failure_is_snapshot_unavailable():
    backend = FakeBackend()
    backend.failing["subscription/status"] = 502
    with pytest.raises(SnapshotUnavailable):
        load(backend)

def test_malformed_settings_is_snapshot_unavailable():
    backend = FakeBackend(settings=["not an object"])
    with pytest.raises(SnapshotUnavailable):
        load(backend)

def test_expired_session_propagates():
    backend = FakeBackend()
    backend.failing["settings"] = 401
    with pytest.raises(SessionExpired):
        load(backend)

def test_session_flags_come_from_dismissal_store():
    dismissals = DismissalStore(InMemorySessionFlagStore(storage={}))
    dismissals.mark_seen_this_session("tab-a", SessionFlag.GROWTH_ALERT_SEEN)
    snapshot = load(FakeBackend(), dismissals=dismissals)
    assert snapshot.session_flags.growth_alert_seen


def test_collections_are_role_gated():
    backend = FakeBackend(collections={"products": [{"id": "p1"}]})
    collections = asyncio.run(fetch_collections(backend.upstream(), User.model_validate(user_payload(role="technician"))))
    assert set(collections) == {"products", "services", "service-orders", "customers"}
    assert collections["products"] == [{"id": "p1"}]
    assert backend.endpoints()[0] == "products"

    backend = FakeBackend()
    collections = asyncio.run(fetch_collections(backend.upstream(), User.model_validate(user_payload(role="manager"))))
    assert set(PRIVILEGED_COLLECTIONS) <= set(collections)

def test_failed_collection_comes_back_empty():
    backend = FakeBackend()
    backend.failing["suppliers"] = 500
    collections = asyncio.run(fetch_collections(backend.upstream(), User.model_validate(user_payload())))
    assert collections["suppliers"] == []
