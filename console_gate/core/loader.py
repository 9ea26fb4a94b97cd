from datetime import datetime
from typing import Any, Dict, List, Optional
import asyncio
import logging

from pydantic import ValidationError

from console_gate.core.dismissals import DismissalStore
from console_gate.core.engine import next_settings_read
from console_gate.core.errors import SessionExpired, SnapshotUnavailable, UpstreamError
from console_gate.core.timewindow import DEFAULT_WINDOW_DAYS
from console_gate.core.upstream import UpstreamApi, UpstreamClient
from console_gate.schemas.billing import BillingSnapshot
from console_gate.schemas.decision import BootstrapSnapshot, SettingsRead, StageSettings
from console_gate.schemas.session import User
from console_gate.schemas.settings import TenantSettings

logger = logging.getLogger(__name__)

BILLING_ENDPOINT = "subscription/status"
SETTINGS_ENDPOINT = "settings"

# Default-view data, loaded once the decision is settled
BASE_COLLECTIONS = ["products", "services", "service-orders", "customers"]
PRIVILEGED_COLLECTIONS = [
    "transactions",
    "transactions/credit-card",
    "purchases",
    "sales",
    "users",
    "suppliers",
]


class SnapshotLoader:
    """
    Assembles the decision inputs for one bootstrap pass.

    Billing status is fetched once. Tenant settings are read again for each
    waterfall stage that consumes them (onboarding, google success, growth),
    in that order, and only while the waterfall can still reach that stage.
    """

    def __init__(self, upstream: UpstreamClient, dismissals: DismissalStore,
                 window_days: int = DEFAULT_WINDOW_DAYS):
        self.upstream = upstream
        self.dismissals = dismissals
        self.window_days = window_days

    async def _fetch(self, endpoint: str, api: UpstreamApi) -> Any:
        try:
            data = await self.upstream.call(endpoint, "GET", api=api)
        except SessionExpired:
            raise
        except UpstreamError as e:
            raise SnapshotUnavailable(f"{endpoint}: {e}")
        if not isinstance(data, dict):
            raise SnapshotUnavailable(f"{endpoint}: expected an object, got {type(data).__name__}")
        return data

    async def fetch_billing(self) -> BillingSnapshot:
        data = await self._fetch(BILLING_ENDPOINT, UpstreamApi.SAAS)
        try:
            return BillingSnapshot.model_validate(data)
        except ValidationError as e:
            raise SnapshotUnavailable(f"Malformed billing status: {e.error_count()} error(s)")

    async def fetch_settings(self, read: SettingsRead) -> TenantSettings:
        data = await self._fetch(SETTINGS_ENDPOINT, UpstreamApi.CONSOLE)
        try:
            settings = TenantSettings.model_validate(data)
        except ValidationError as e:
            raise SnapshotUnavailable(f"Malformed tenant settings: {e.error_count()} error(s)")
        logger.debug(f"Settings read for stage {read.value}")
        return settings

    async def _billing_for_display(self) -> Optional[BillingSnapshot]:
        # Payment-required owners are blocked regardless; billing only feeds the block screen
        try:
            return await self.fetch_billing()
        except SnapshotUnavailable as e:
            logger.warning(f"Billing status unavailable for block screen: {e}")
            return None

    async def load(self, user: User, session_id: str, is_payment_return: bool,
                   now: datetime) -> BootstrapSnapshot:
        flags = self.dismissals.session_flags(session_id)

        if user.payment_required:
            billing = await self._billing_for_display()
        else:
            billing = await self.fetch_billing()

        snapshot = BootstrapSnapshot(
            user=user,
            billing=billing,
            is_payment_return=is_payment_return,
            session_flags=flags,
            now=now,
        )

        # Follow the waterfall: each stage that needs settings gets its own fresh read
        read = next_settings_read(snapshot, self.window_days)
        while read is not None:
            settings = await self.fetch_settings(read)
            snapshot = snapshot.model_copy(update={"settings": snapshot.settings.with_read(read, settings)})
            read = next_settings_read(snapshot, self.window_days)

        return snapshot


async def _fetch_collection(upstream: UpstreamClient, name: str) -> List[Any]:
    try:
        data = await upstream.call(name, "GET")
    except SessionExpired:
        raise
    except UpstreamError as e:
        logger.warning(f"Collection {name} unavailable: {e}")
        return []
    if not isinstance(data, list):
        logger.warning(f"Collection {name} returned {type(data).__name__}, expected a list")
        return []
    return data


async def fetch_collections(upstream: UpstreamClient, user: User) -> Dict[str, List[Any]]:
    """
    Loads the default-view collections. Products go first, the rest concurrently;
    owners and managers also get the back-office collections.
    A failed collection comes back empty instead of failing the page.
    """
    collections: Dict[str, List[Any]] = {}
    collections["products"] = await _fetch_collection(upstream, "products")

    batches = [BASE_COLLECTIONS[1:]]
    if user.is_privileged:
        batches.append(PRIVILEGED_COLLECTIONS)

    for batch in batches:
        results = await asyncio.gather(*(_fetch_collection(upstream, name) for name in batch))
        collections.update(zip(batch, results))

    return collections
