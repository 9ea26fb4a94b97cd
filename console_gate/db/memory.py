from typing import MutableMapping, Set

from cachetools import TTLCache

from console_gate.core.config import settings

# AUTHORITATIVE EPHEMERAL SESSION STORE – DO NOT DUPLICATE
# Structure: { session_id: {"expAlertSeen", "growthAlertSeen", ...} }
# Lives only as long as the process; a browser session that outlives a restart
# simply sees its "remind me later" interstitials again.
# Idle sessions expire and the store is capped, so abandoned tabs do not pile up.
SESSION_FLAGS: MutableMapping[str, Set[str]] = TTLCache(
    maxsize=settings.SESSION_MAX_ENTRIES,
    ttl=settings.SESSION_IDLE_TTL_SECONDS,
)
