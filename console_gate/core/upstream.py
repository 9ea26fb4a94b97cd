from enum import Enum
from typing import Any, Optional
import logging

import httpx

from console_gate.core.config import settings
from console_gate.core.errors import SessionExpired, UpstreamError

logger = logging.getLogger(__name__)

class UpstreamApi(str, Enum):
    CONSOLE = "console"
    SAAS = "saas"

# Shared connection pool, created lazily or on startup
_http_client: Optional[httpx.AsyncClient] = None

def get_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=settings.UPSTREAM_TIMEOUT_SECONDS)
    return _http_client

async def close_http_client():
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


class UpstreamClient:
    """
    Request execution bound to one caller's bearer token.
    Mirrors the console's own API helper: 401/403 means the session is gone,
    204/empty bodies count as success, any other non-2xx carries the server message.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        token: str,
        console_url: str = settings.CONSOLE_API_URL,
        saas_url: str = settings.SAAS_API_URL,
    ):
        self._http = http
        self.token = token
        self._bases = {UpstreamApi.CONSOLE: console_url, UpstreamApi.SAAS: saas_url}

    def _url(self, api: UpstreamApi, endpoint: str) -> str:
        return f"{self._bases[api].rstrip('/')}/{endpoint.lstrip('/')}"

    async def call(self, endpoint: str, method: str = "GET", body: Any = None,
                   api: UpstreamApi = UpstreamApi.CONSOLE) -> Any:
        headers = {
            "Authorization": f"Bearer {self.token}",
            "X-Requested-With": "XMLHttpRequest",
        }
        try:
            response = await self._http.request(method, self._url(api, endpoint), headers=headers, json=body)
        except httpx.HTTPError as e:
            logger.error(f"Upstream {method} {endpoint} failed: {e}")
            raise UpstreamError(f"{method} {endpoint} unreachable: {e}")

        if response.status_code in (401, 403):
            raise SessionExpired(f"{method} {endpoint} rejected the session", response.status_code)

        if response.status_code == 204 or not response.content:
            return {"success": True}

        try:
            data = response.json()
        except ValueError:
            raise UpstreamError(f"{method} {endpoint} returned a non-JSON body", response.status_code)

        if not response.is_success:
            message = data.get("message") if isinstance(data, dict) else None
            raise UpstreamError(message or f"{method} {endpoint} failed", response.status_code)

        return data
