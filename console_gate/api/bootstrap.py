from fastapi import APIRouter, Depends, HTTPException, Request
import logging

from console_gate.api.deps import get_current_user, get_session_id, get_upstream
from console_gate.core.audit import audit_repo
from console_gate.core.bootstrap import run_bootstrap_pass
from console_gate.core.errors import SessionExpired, StaleBootstrapPass
from console_gate.core.upstream import UpstreamClient
from console_gate.schemas.audit import AuditLogEntry, AuditStatus
from console_gate.schemas.bootstrap import BootstrapResponse
from console_gate.schemas.session import User

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/bootstrap", response_model=BootstrapResponse)
async def bootstrap(
    request: Request,
    session_id: str = Depends(get_session_id),
    upstream: UpstreamClient = Depends(get_upstream),
    user: User = Depends(get_current_user),
):
    """
    Runs one bootstrap pass for the calling session and returns the single
    interstitial to present, plus the data for the default view.
    """
    try:
        result = await run_bootstrap_pass(upstream, user, session_id, request.query_params)
    except StaleBootstrapPass as e:
        logger.info(f"Discarding bootstrap result: {e}")
        raise HTTPException(status_code=409, detail="Session changed during bootstrap")
    except SessionExpired:
        raise HTTPException(status_code=401, detail="Session expired")

    audit_repo.save(AuditLogEntry(
        endpoint="/bootstrap",
        method="GET",
        action_type="DECISION",
        session_id=session_id,
        user_id=user.id,
        decision=result.decision.action.value,
        status=AuditStatus.FAILURE if result.degraded else AuditStatus.SUCCESS,
    ))
    return result
