from abc import ABC, abstractmethod
from typing import List
from console_gate.schemas.audit import AuditLogEntry
import logging

logger = logging.getLogger(__name__)

class AuditRepository(ABC):
    @abstractmethod
    def save(self, entry: AuditLogEntry):
        pass

    @abstractmethod
    def get_all(self) -> List[AuditLogEntry]:
        pass

class InMemoryAuditRepository(AuditRepository):
    def __init__(self):
        self._storage: List[AuditLogEntry] = []

    def save(self, entry: AuditLogEntry):
        # Append-only
        self._storage.append(entry)
        logger.info(f"Audit Logged: {entry.model_dump_json()}")

    def get_all(self) -> List[AuditLogEntry]:
        return list(self._storage)

    def for_session(self, session_id: str) -> List[AuditLogEntry]:
        return [e for e in self._storage if e.session_id == session_id]

# Global Accessor
audit_repo = InMemoryAuditRepository()
