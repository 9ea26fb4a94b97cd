"""Shared builders and a fake upstream backend for the test suite."""
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from console_gate.core.upstream import UpstreamClient
from console_gate.schemas.billing import BillingSnapshot
from console_gate.schemas.decision import BootstrapSnapshot, SessionFlags, StageSettings
from console_gate.schemas.session import User
from console_gate.schemas.settings import TenantSettings

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def billing_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "plan": "trial",
        "status": "active",
        "trialEndsAt": iso(NOW + timedelta(days=30)),
        "subscriptionEndsAt": None,
        "billingDayConfigured": False,
        "extensionCount": 0,
        "requests": [],
    }
    payload.update(overrides)
    return payload


def settings_payload(google_business: Optional[Dict[str, Any]] = None, **overrides) -> Dict[str, Any]:
    payload = {
        "isSetupComplete": True,
        "companyInfo": {"name": "Loja Central", "address": {"cep": "01001-000", "city": "Sao Paulo"}},
        "googleBusiness": {
            "status": "verified",
            "successShown": True,
            "dismissedPrompt": True,
            "hasExternalEcommerce": True,
        },
        "predictedAvgMargin": 40,
    }
    if google_business is not None:
        payload["googleBusiness"] = google_business
    payload.update(overrides)
    return payload


def user_payload(**overrides) -> Dict[str, Any]:
    payload = {"id": "u-1", "name": "Ana", "email": "ana@example.com", "role": "owner"}
    payload.update(overrides)
    return payload


def make_snapshot(
    billing: Optional[Dict[str, Any]] = None,
    settings: Optional[Dict[str, Any]] = None,
    user: Optional[Dict[str, Any]] = None,
    flags: Optional[Dict[str, bool]] = None,
    is_payment_return: bool = False,
    now: datetime = NOW,
    growth_settings: Optional[Dict[str, Any]] = None,
) -> BootstrapSnapshot:
    stages = StageSettings(onboarding=TenantSettings.model_validate(settings or settings_payload()))
    if growth_settings is not None:
        stages = StageSettings(
            onboarding=stages.onboarding,
            growth=TenantSettings.model_validate(growth_settings),
        )
    return BootstrapSnapshot(
        user=User.model_validate(user or user_payload()),
        billing=BillingSnapshot.model_validate(billing or billing_payload()),
        settings=stages,
        is_payment_return=is_payment_return,
        session_flags=SessionFlags.model_validate(flags or {}),
        now=now,
    )


class FakeBackend:
    """
    Stands in for both the console API and the SaaS billing API.
    Records every call as (method, endpoint) in order.
    """

    def __init__(self, billing=None, settings=None, user=None, collections=None):
        self.billing = billing if billing is not None else billing_payload()
        # Successive GET settings answers; the last one repeats
        self.settings_sequence: List[Any] = settings if isinstance(settings, list) else [settings or settings_payload()]
        self.user = user or user_payload()
        self.collections: Dict[str, Any] = collections or {}
        self.calls: List[Tuple[str, str]] = []
        self.puts: List[Dict[str, Any]] = []
        self.failing: Dict[str, int] = {}
        self.on_request: Optional[Callable[[str, str], None]] = None
        self._settings_reads = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        endpoint = request.url.path.split("/api/", 1)[1]
        self.calls.append((request.method, endpoint))
        if self.on_request:
            self.on_request(request.method, endpoint)

        if endpoint in self.failing:
            return httpx.Response(self.failing[endpoint], json={"message": f"{endpoint} is down"})

        if endpoint == "auth/me":
            return httpx.Response(200, json={"user": self.user})
        if endpoint == "subscription/status":
            return httpx.Response(200, json=self.billing)
        if endpoint == "settings":
            index = min(self._settings_reads, len(self.settings_sequence) - 1)
            self._settings_reads += 1
            return httpx.Response(200, json=self.settings_sequence[index])
        if endpoint == "settings/google-business" and request.method == "PUT":
            self.puts.append(json.loads(request.content))
            return httpx.Response(204)
        return httpx.Response(200, json=self.collections.get(endpoint, []))

    def endpoints(self, method: str = "GET") -> List[str]:
        return [e for m, e in self.calls if m == method]

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def upstream(self, token: str = "token-1") -> UpstreamClient:
        return UpstreamClient(self.http_client(), token)
