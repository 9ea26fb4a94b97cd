from dataclasses import dataclass
from typing import Callable, Optional
import hashlib
import itertools
import logging
import time

from cachetools import TTLCache

from console_gate.core.config import settings
from console_gate.core.errors import StaleBootstrapPass

logger = logging.getLogger(__name__)

def _fingerprint(token: str) -> str:
    # Tokens are never kept in memory, only their hash
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

@dataclass(frozen=True)
class PassTicket:
    session_id: str
    token_fingerprint: str
    generation: int

class PassGuard:
    """
    Stale-result guard keyed by session identity.
    A pass takes a ticket when it starts; logging out or switching tokens hands
    the session a new ticket and every older one stops being current.

    Generations come from one process-wide counter, so a session entry can be
    dropped (logout, idle expiry, size cap) without an old ticket ever matching again.
    """

    def __init__(
        self,
        ttl: int = settings.SESSION_IDLE_TTL_SECONDS,
        maxsize: int = settings.SESSION_MAX_ENTRIES,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._current: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._generations = itertools.count(1)

    def begin(self, session_id: str, token: str) -> PassTicket:
        fingerprint = _fingerprint(token)
        ticket: Optional[PassTicket] = self._current.get(session_id)
        if ticket is None or ticket.token_fingerprint != fingerprint:
            if ticket is not None:
                logger.info(f"Session {session_id} changed token; in-flight passes are stale")
            ticket = PassTicket(session_id, fingerprint, next(self._generations))
        # Re-set on every pass so active sessions do not idle out
        self._current[session_id] = ticket
        return ticket

    def invalidate(self, session_id: str):
        self._current.pop(session_id, None)

    def is_current(self, ticket: PassTicket) -> bool:
        return self._current.get(ticket.session_id) == ticket

    def ensure_current(self, ticket: PassTicket):
        if not self.is_current(ticket):
            raise StaleBootstrapPass(f"Bootstrap pass for session {ticket.session_id} was superseded")

    def __len__(self) -> int:
        return len(self._current)

# Global Accessor
pass_guard = PassGuard()
