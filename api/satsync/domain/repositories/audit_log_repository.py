"""
Interfaz de la bitacora persistente de sincronizacion.
"""
from abc import ABC, abstractmethod
from typing import List

from satsync.domain.entities.audit_entry import AuditEntry


class IAuditLogRepository(ABC):
    """Bitacora append-only."""

    @abstractmethod
    async def append(self, entry: AuditEntry) -> AuditEntry:
        pass

    @abstractmethod
    async def list_by_subject(self, subject_id: str, limit: int = 100) -> List[AuditEntry]:
        """Entradas del RFC, mas recientes primero."""
        pass

    @abstractmethod
    async def list_by_job(self, job_id: str, limit: int = 100) -> List[AuditEntry]:
        pass
