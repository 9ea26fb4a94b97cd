from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Tuple
import logging

from console_gate.core.errors import SnapshotUnavailable
from console_gate.core.timewindow import DEFAULT_WINDOW_DAYS, days_until, is_within_expiration_window
from console_gate.schemas.billing import (
    BillingPlan, BillingSnapshot, BillingStatus, FULFILLED_REQUEST_STATUSES, RequestType
)
from console_gate.schemas.decision import (
    BootstrapSnapshot, Decision, DeterminedAction, ExpirationInfo, ExpirationVariant,
    GrowthVariant, SettingsRead
)
from console_gate.schemas.settings import GoogleBusinessStatus, TenantSettings

# AUTHORITATIVE BOOTSTRAP WATERFALL – DO NOT DUPLICATE
# Stages run in priority order and the first one that returns a decision wins.
# Nothing in this module performs I/O or mutates its inputs.

logger = logging.getLogger(__name__)

def _always(snapshot: BootstrapSnapshot) -> bool:
    return True


StageFn = Callable[[BootstrapSnapshot, Optional[TenantSettings], int], Optional[Decision]]


@dataclass(frozen=True)
class Stage:
    name: str
    evaluate: StageFn
    reads: Optional[SettingsRead] = None
    applies: Callable[[BootstrapSnapshot], bool] = _always


def _require_billing(snapshot: BootstrapSnapshot) -> BillingSnapshot:
    if snapshot.billing is None:
        raise SnapshotUnavailable("Billing status missing from snapshot")
    return snapshot.billing


def _owner_payment_block(snapshot, settings, window_days):
    if snapshot.user.payment_required:
        return Decision(action=DeterminedAction.BLOCK)
    return None


def _billing_block(snapshot, settings, window_days):
    billing = _require_billing(snapshot)
    if billing.status in (BillingStatus.BLOCKED, BillingStatus.EXPIRED):
        return Decision(action=DeterminedAction.BLOCK)
    return None


def _single_tenant_first_run(snapshot, settings, window_days):
    billing = _require_billing(snapshot)
    if billing.plan == BillingPlan.SINGLE_TENANT and not billing.billing_day_configured:
        return Decision(action=DeterminedAction.SETUP_ST)
    return None


def _onboarding(snapshot, settings, window_days):
    if not settings.is_setup_complete:
        return Decision(action=DeterminedAction.WELCOME)
    if not settings.has_critical_data():
        return Decision(action=DeterminedAction.FORCE_CONTRACT)
    return None


def _google_success(snapshot, settings, window_days):
    gbus = settings.google_business
    if (
        gbus.status == GoogleBusinessStatus.VERIFIED
        and not gbus.success_shown
        and not snapshot.session_flags.google_success_seen
    ):
        return Decision(action=DeterminedAction.GOOGLE_SUCCESS, maps_uri=gbus.maps_uri or "")
    return None


def expiration_target(billing: BillingSnapshot) -> Tuple[Optional[datetime], ExpirationVariant]:
    """
    Monthly subscription end for single-tenant plans that have one, trial end otherwise.
    A subscription end that was sent but is unparseable still selects the monthly
    variant, with no target, so no window applies.
    """
    if billing.plan == BillingPlan.SINGLE_TENANT and billing.has_date("subscription_ends_at"):
        return billing.subscription_ends_at, ExpirationVariant.MONTHLY
    return billing.trial_ends_at, ExpirationVariant.TRIAL


def _expiration_alert(snapshot, settings, window_days):
    billing = _require_billing(snapshot)
    target, variant = expiration_target(billing)
    if target is None:
        # Missing or unparseable date: no window applies
        return None
    days = days_until(target, snapshot.now)
    if is_within_expiration_window(days, window_days) and not snapshot.session_flags.exp_alert_seen:
        return Decision(
            action=DeterminedAction.EXPIRATION_ALERT,
            expiration=ExpirationInfo(variant=variant, days_left=max(0, days)),
        )
    return None


def _growth_applies(snapshot: BootstrapSnapshot) -> bool:
    return snapshot.user.is_privileged and not snapshot.is_payment_return


def _growth_funnel(snapshot, settings, window_days):
    billing = _require_billing(snapshot)
    gbus = settings.google_business
    google_status = gbus.status

    maps_req = billing.first_request(RequestType.GOOGLE_MAPS)
    ecom_req = billing.first_request(RequestType.ECOMMERCE)
    is_maps_pending = maps_req is not None and maps_req.is_open
    is_ecom_pending = ecom_req is not None and ecom_req.is_open
    has_active_upgrade = billing.has_request(RequestType.UPGRADE, FULFILLED_REQUEST_STATUSES)

    if (
        gbus.dismissed_prompt
        or snapshot.session_flags.growth_alert_seen
        or is_maps_pending
        or is_ecom_pending
        or has_active_upgrade
    ):
        return None

    is_maps_completed = google_status == GoogleBusinessStatus.VERIFIED or (
        maps_req is not None and maps_req.is_fulfilled
    )
    has_ecommerce_service = billing.has_request(RequestType.ECOMMERCE, FULFILLED_REQUEST_STATUSES)
    has_external_ecom = gbus.has_external_ecommerce

    if not is_maps_completed:
        variant = GrowthVariant.VERIFY if google_status == GoogleBusinessStatus.UNVERIFIED else GrowthVariant.MAPS_OFFER
        return Decision(action=DeterminedAction.GROWTH, variant=variant)

    # Both plans get the e-commerce offer
    if not has_ecommerce_service and not has_external_ecom:
        return Decision(action=DeterminedAction.GROWTH, variant=GrowthVariant.ECOMMERCE_OFFER)

    if billing.plan == BillingPlan.TRIAL:
        return Decision(action=DeterminedAction.GROWTH, variant=GrowthVariant.SINGLE_TENANT_OFFER)
    return None


WATERFALL: Tuple[Stage, ...] = (
    Stage("owner_payment_block", _owner_payment_block),
    Stage("billing_block", _billing_block),
    Stage("single_tenant_first_run", _single_tenant_first_run),
    Stage("onboarding", _onboarding, reads=SettingsRead.ONBOARDING),
    Stage("google_success", _google_success, reads=SettingsRead.GOOGLE_SUCCESS),
    Stage("expiration_alert", _expiration_alert),
    Stage("growth_funnel", _growth_funnel, reads=SettingsRead.GROWTH, applies=_growth_applies),
)

NO_ACTION = Decision(action=DeterminedAction.NONE)


def decide(snapshot: BootstrapSnapshot, window_days: int = DEFAULT_WINDOW_DAYS) -> Decision:
    """
    Runs the waterfall and returns exactly one decision.
    Each settings-consuming stage sees the freshest read available to it.
    Raises SnapshotUnavailable when a stage it reaches has no input at all.
    """
    for stage in WATERFALL:
        if not stage.applies(snapshot):
            continue
        settings = None
        if stage.reads is not None:
            settings = snapshot.settings.for_stage(stage.reads)
            if settings is None:
                raise SnapshotUnavailable(f"Tenant settings missing for stage '{stage.name}'")
        decision = stage.evaluate(snapshot, settings, window_days)
        if decision is not None:
            logger.debug(f"Stage {stage.name} decided {decision.action.value}")
            return decision
    return NO_ACTION


def next_settings_read(snapshot: BootstrapSnapshot, window_days: int = DEFAULT_WINDOW_DAYS) -> Optional[SettingsRead]:
    """
    Walks the waterfall over what has been loaded so far and returns the next
    settings read the pass still needs, or None once a decision is reachable
    without further reads. This is the sequencing contract the loader follows.
    """
    for stage in WATERFALL:
        if not stage.applies(snapshot):
            continue
        settings = None
        if stage.reads is not None:
            settings = snapshot.settings.get(stage.reads)
            if settings is None:
                return stage.reads
        if stage.evaluate(snapshot, settings, window_days) is not None:
            return None
    return None
