from fastapi import Cookie, Depends, Header, HTTPException
from typing import Optional
import logging

import httpx
from pydantic import ValidationError

from console_gate.core.config import settings
from console_gate.core.errors import SessionExpired, UpstreamError
from console_gate.core.upstream import UpstreamClient, get_http_client
from console_gate.schemas.session import User

logger = logging.getLogger(__name__)

def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return token.strip()

def get_session_id(
    x_session_id: Optional[str] = Header(None, alias="X-Session-ID"),
    cookie_session_id: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
) -> str:
    session_id = x_session_id or cookie_session_id
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing session identifier")
    return session_id

def get_upstream(
    token: str = Depends(get_bearer_token),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> UpstreamClient:
    return UpstreamClient(http, token)

async def get_current_user(upstream: UpstreamClient = Depends(get_upstream)) -> User:
    """Resolves the session's user through the console API handshake endpoint."""
    try:
        data = await upstream.call("auth/me", "GET")
    except SessionExpired:
        raise HTTPException(status_code=401, detail="Session expired")
    except UpstreamError as e:
        logger.error(f"Session handshake failed: {e}")
        raise HTTPException(status_code=502, detail="Could not validate session")

    try:
        return User.model_validate((data or {}).get("user"))
    except (ValidationError, AttributeError):
        raise HTTPException(status_code=502, detail="Malformed session payload")
