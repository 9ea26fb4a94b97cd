from abc import ABC, abstractmethod
from typing import Dict, MutableMapping, Optional, Set, Tuple
import logging

from console_gate.core.errors import DismissalPersistFailure, SessionExpired, UpstreamError
from console_gate.core.upstream import UpstreamClient
from console_gate.db.memory import SESSION_FLAGS
from console_gate.schemas.decision import SessionFlags
from console_gate.schemas.dismissal import (
    AcknowledgedInterstitial, AcknowledgementChoice, AcknowledgementResult, DurableField, SessionFlag
)

logger = logging.getLogger(__name__)

GOOGLE_BUSINESS_ENDPOINT = "settings/google-business"

# Request body key on the settings endpoint for each durable field
DURABLE_PAYLOAD_KEYS: Dict[DurableField, str] = {
    DurableField.DISMISSED_PROMPT: "dismissed",
    DurableField.SUCCESS_SHOWN: "successShown",
}

# What each user choice writes: (ephemeral flag, durable field)
ACKNOWLEDGEMENTS: Dict[Tuple[AcknowledgedInterstitial, AcknowledgementChoice], Tuple[Optional[SessionFlag], Optional[DurableField]]] = {
    (AcknowledgedInterstitial.EXPIRATION_ALERT, AcknowledgementChoice.REMIND_LATER): (SessionFlag.EXP_ALERT_SEEN, None),
    (AcknowledgedInterstitial.GROWTH, AcknowledgementChoice.REMIND_LATER): (SessionFlag.GROWTH_ALERT_SEEN, None),
    (AcknowledgedInterstitial.GROWTH, AcknowledgementChoice.DISMISS): (SessionFlag.GROWTH_ALERT_SEEN, DurableField.DISMISSED_PROMPT),
    (AcknowledgedInterstitial.GOOGLE_SUCCESS, AcknowledgementChoice.CLOSE): (None, DurableField.SUCCESS_SHOWN),
}

# Ephemeral flag that keeps the interstitial away for this session if the durable write fails
PERSIST_FALLBACK_FLAGS: Dict[DurableField, SessionFlag] = {
    DurableField.DISMISSED_PROMPT: SessionFlag.GROWTH_ALERT_SEEN,
    DurableField.SUCCESS_SHOWN: SessionFlag.GOOGLE_SUCCESS_SEEN,
}


class SessionFlagStore(ABC):
    @abstractmethod
    def get_flags(self, session_id: str) -> Set[str]:
        pass

    @abstractmethod
    def set_flag(self, session_id: str, flag: str):
        pass

    @abstractmethod
    def clear(self, session_id: str):
        pass

class InMemorySessionFlagStore(SessionFlagStore):
    def __init__(self, storage: Optional[MutableMapping[str, Set[str]]] = None):
        self._storage = SESSION_FLAGS if storage is None else storage

    def get_flags(self, session_id: str) -> Set[str]:
        flags = self._storage.get(session_id)
        if flags is None:
            return set()
        # Writing back keeps a session that is still bootstrapping from idling out
        self._storage[session_id] = flags
        return set(flags)

    def set_flag(self, session_id: str, flag: str):
        self._storage[session_id] = self._storage.get(session_id, set()) | {flag}

    def clear(self, session_id: str):
        self._storage.pop(session_id, None)


class DismissalStore:
    """Ephemeral per-session flags plus the durable dismissal fields on tenant settings."""

    def __init__(self, flag_store: SessionFlagStore):
        self.flag_store = flag_store

    def session_flags(self, session_id: str) -> SessionFlags:
        flags = self.flag_store.get_flags(session_id)
        return SessionFlags(
            exp_alert_seen=SessionFlag.EXP_ALERT_SEEN.value in flags,
            growth_alert_seen=SessionFlag.GROWTH_ALERT_SEEN.value in flags,
            google_success_seen=SessionFlag.GOOGLE_SUCCESS_SEEN.value in flags,
        )

    def mark_seen_this_session(self, session_id: str, flag: SessionFlag):
        self.flag_store.set_flag(session_id, flag.value)
        logger.info(f"Session {session_id}: {flag.value} set")

    def clear_session(self, session_id: str):
        self.flag_store.clear(session_id)

    async def persist_dismissal(self, upstream: UpstreamClient, field: DurableField, value: bool = True):
        body = {DURABLE_PAYLOAD_KEYS[field]: value}
        try:
            await upstream.call(GOOGLE_BUSINESS_ENDPOINT, "PUT", body)
        except SessionExpired:
            raise
        except UpstreamError as e:
            raise DismissalPersistFailure(f"Could not persist {field.value}={value}: {e}")

    async def acknowledge(
        self,
        upstream: UpstreamClient,
        session_id: str,
        interstitial: AcknowledgedInterstitial,
        choice: AcknowledgementChoice,
    ) -> AcknowledgementResult:
        """
        Records the user's answer to an interstitial.
        The ephemeral flag is written first so the interstitial stays away for
        this session even when the durable write fails.
        """
        key = (interstitial, choice)
        if key not in ACKNOWLEDGEMENTS:
            raise ValueError(f"'{choice.value}' is not a valid answer to '{interstitial.value}'")
        flag, durable_field = ACKNOWLEDGEMENTS[key]

        if flag is not None:
            self.mark_seen_this_session(session_id, flag)

        durable = False
        if durable_field is not None:
            try:
                await self.persist_dismissal(upstream, durable_field)
                durable = True
            except DismissalPersistFailure as e:
                logger.error(f"Dismissal Persist Failed: {e}")
                self.mark_seen_this_session(session_id, PERSIST_FALLBACK_FLAGS[durable_field])

        current = self.flag_store.get_flags(session_id)
        return AcknowledgementResult(
            flags=[f for f in SessionFlag if f.value in current],
            durable=durable,
        )


# Global Accessor
dismissal_store = DismissalStore(InMemorySessionFlagStore())
