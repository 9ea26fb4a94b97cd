from fastapi import APIRouter, Depends, HTTPException, Body

from console_gate.api.deps import get_session_id, get_upstream
from console_gate.core.dismissals import dismissal_store
from console_gate.core.errors import SessionExpired
from console_gate.core.session_guard import pass_guard
from console_gate.core.upstream import UpstreamClient
from console_gate.schemas.dismissal import AcknowledgementRequest, AcknowledgementResult

router = APIRouter()

@router.post("/bootstrap/acknowledgements", response_model=AcknowledgementResult)
async def acknowledge_interstitial(
    body: AcknowledgementRequest = Body(...),
    session_id: str = Depends(get_session_id),
    upstream: UpstreamClient = Depends(get_upstream),
):
    """
    Records how the user answered the interstitial they were shown.
    A failed durable write still suppresses it for the rest of this session
    and is reported as durable=false.
    """
    try:
        return await dismissal_store.acknowledge(upstream, session_id, body.interstitial, body.choice)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SessionExpired:
        raise HTTPException(status_code=401, detail="Session expired")

@router.post("/session/logout")
async def logout(session_id: str = Depends(get_session_id)):
    # Ephemeral dismissals end with the session; in-flight passes become stale
    dismissal_store.clear_session(session_id)
    pass_guard.invalidate(session_id)
    return {"status": "logged_out"}
