from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, JSONResponse
import hashlib
from console_gate.core.audit import audit_repo
from console_gate.core.config import settings
from console_gate.schemas.audit import AuditLogEntry, AuditStatus
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-ID"

ACTION_TYPES = [
    ("/bootstrap/acknowledgements", "ACKNOWLEDGE"),
    ("/bootstrap", "BOOTSTRAP"),
    ("/session/logout", "LOGOUT"),
    ("/health", "HEALTH_CHECK"),
]

def resolve_action_type(endpoint: str) -> str:
    for prefix, action_type in ACTION_TYPES:
        if endpoint.startswith(prefix):
            return action_type
    return "UNKNOWN"

def resolve_session_id(request: Request) -> Optional[str]:
    # Header first (API clients), then cookie (browser)
    return request.headers.get(SESSION_HEADER) or request.cookies.get(settings.SESSION_COOKIE_NAME)

def has_bearer_token(request: Request) -> bool:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    return scheme.lower() == "bearer" and bool(token.strip())


class AuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        # 1. Capture Request Details
        endpoint = request.url.path
        method = request.method
        action_type = resolve_action_type(endpoint)
        session_id = resolve_session_id(request)
        is_public = any(endpoint.startswith(p) for p in settings.PUBLIC_PATHS)

        logger.debug(f"Request to {endpoint}, session_id={session_id}, is_public={is_public}")

        # 2. Strict Session Check
        rejection = None
        if not is_public:
            if not has_bearer_token(request):
                rejection = JSONResponse(status_code=401, content={"detail": "Missing bearer token"})
            elif not session_id:
                rejection = JSONResponse(status_code=400, content={"detail": "Missing session identifier"})

        if rejection is not None:
            self._save(AuditLogEntry(
                endpoint=endpoint,
                method=method,
                action_type=action_type,
                session_id=session_id or "MISSING",
                status=AuditStatus.FAILURE,
            ))
            return rejection

        if not session_id:
            session_id = "PUBLIC"

        # 3. Capture & Hash Input
        request_body_bytes = await request.body()
        input_hash = hashlib.sha256(request_body_bytes).hexdigest()

        # Re-inject body
        async def receive():
            return {"type": "http.request", "body": request_body_bytes}
        request._receive = receive

        # 4. Process Request
        status = AuditStatus.FAILURE
        output_hash = None

        try:
            response = await call_next(request)
            if 200 <= response.status_code < 300:
                status = AuditStatus.SUCCESS

            # 5. Capture & Hash Output
            response_body_bytes = b""
            async for chunk in response.body_iterator:
                response_body_bytes += chunk
            output_hash = hashlib.sha256(response_body_bytes).hexdigest()

            # Reconstruct response
            response = Response(
                content=response_body_bytes,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type
            )
        finally:
            # 6. Log Event
            self._save(AuditLogEntry(
                endpoint=endpoint,
                method=method,
                action_type=action_type,
                session_id=session_id,
                input_hash=input_hash,
                output_hash=output_hash,
                status=status,
            ))

        return response

    @staticmethod
    def _save(entry: AuditLogEntry):
        try:
            audit_repo.save(entry)
        except Exception as e:
            # The audit trail must never take a request down with it
            logger.error(f"Audit Logging Failed: {e}")
