"""
Bitacora persistente de sincronizacion (tabla sat_audit_log).
"""
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from satsync.domain.entities.audit_entry import AuditEntry
from satsync.domain.repositories.audit_log_repository import IAuditLogRepository
from satsync.infrastructure.database.models import SatAuditLogModel
from satsync.shared.constants.sat_constants import LogLevel, LogType, Stage
from satsync.shared.utils.date_utils import ensure_utc, utc_now


class AuditLogRepository(IAuditLogRepository):

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(self, entry: AuditEntry) -> AuditEntry:
        model = SatAuditLogModel(
            subject_id=entry.subject_id,
            job_id=entry.job_id,
            stage=Stage(entry.stage).value,
            type=LogType(entry.type).value,
            level=LogLevel(entry.level).value,
            message=entry.message,
            details=entry.details or None,
            created_by=entry.created_by,
            created_at=entry.created_at or utc_now(),
        )
        self.db.add(model)
        await self.db.flush()
        return self._to_entity(model)

    async def list_by_subject(self, subject_id: str, limit: int = 100) -> List[AuditEntry]:
        result = await self.db.execute(
            select(SatAuditLogModel)
            .where(SatAuditLogModel.subject_id == subject_id)
            .order_by(SatAuditLogModel.created_at.desc(), SatAuditLogModel.id.desc())
            .limit(limit)
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    async def list_by_job(self, job_id: str, limit: int = 100) -> List[AuditEntry]:
        result = await self.db.execute(
            select(SatAuditLogModel)
            .where(SatAuditLogModel.job_id == job_id)
            .order_by(SatAuditLogModel.created_at.desc(), SatAuditLogModel.id.desc())
            .limit(limit)
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    @staticmethod
    def _to_entity(model: SatAuditLogModel) -> AuditEntry:
        return AuditEntry(
            id=model.id,
            subject_id=model.subject_id,
            job_id=model.job_id,
            stage=Stage(model.stage),
            type=LogType(model.type),
            level=LogLevel(model.level),
            message=model.message,
            details=model.details or {},
            created_by=model.created_by,
            created_at=ensure_utc(model.created_at) if model.created_at else None,
        )
