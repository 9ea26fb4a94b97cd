from datetime import datetime, timezone
from typing import Mapping, Optional
import logging

from console_gate.core.config import settings
from console_gate.core.dismissals import DismissalStore, dismissal_store
from console_gate.core.dispatcher import dispatch
from console_gate.core.engine import NO_ACTION, decide
from console_gate.core.errors import SnapshotUnavailable
from console_gate.core.loader import SnapshotLoader, fetch_collections
from console_gate.core.session_guard import PassGuard, pass_guard
from console_gate.core.upstream import UpstreamClient
from console_gate.schemas.billing import BillingPlan
from console_gate.schemas.bootstrap import BootstrapResponse
from console_gate.schemas.decision import DeterminedAction
from console_gate.schemas.session import User

logger = logging.getLogger(__name__)

def detect_payment_return(query: Mapping[str, str]) -> Optional[str]:
    """
    Payment gateways redirect back with status/collection_status and ref/external_reference.
    Returns the reference id of an approved payment, else None.
    """
    status = query.get("status") or query.get("collection_status")
    ref = query.get("ref") or query.get("external_reference")
    if status == "approved" and ref:
        return ref
    return None

async def run_bootstrap_pass(
    upstream: UpstreamClient,
    user: User,
    session_id: str,
    query: Mapping[str, str],
    now: Optional[datetime] = None,
    guard: PassGuard = pass_guard,
    dismissals: DismissalStore = dismissal_store,
) -> BootstrapResponse:
    # 1. Claim the pass for this session/token
    ticket = guard.begin(session_id, upstream.token)
    now = now or datetime.now(timezone.utc)
    payment_ref = detect_payment_return(query)

    # 2. Load snapshot & decide
    loader = SnapshotLoader(upstream, dismissals, window_days=settings.EXPIRATION_WINDOW_DAYS)
    snapshot = None
    degraded = False
    try:
        snapshot = await loader.load(user, session_id, payment_ref is not None, now)
        decision = decide(snapshot, window_days=settings.EXPIRATION_WINDOW_DAYS)
    except SnapshotUnavailable as e:
        # Landing on the default view beats blocking someone mid-login
        logger.warning(f"Bootstrap degraded for session {session_id}: {e}")
        decision = NO_ACTION
        degraded = True

    guard.ensure_current(ticket)
    logger.info(f"Bootstrap decision for user {user.id}: {decision.action.value}")
    interstitial = dispatch(decision)

    # 3. Default-view data (blocked users never reach it)
    collections = {}
    if decision.action != DeterminedAction.BLOCK:
        collections = await fetch_collections(upstream, user)
        guard.ensure_current(ticket)

    billing = snapshot.billing if snapshot else None
    return BootstrapResponse(
        decision=decision,
        interstitial=interstitial,
        payment_return_ref=payment_ref,
        is_trial_mode=billing is None or billing.plan == BillingPlan.TRIAL,
        billing=billing,
        settings=snapshot.settings.latest() if snapshot else None,
        collections=collections,
        degraded=degraded,
    )
