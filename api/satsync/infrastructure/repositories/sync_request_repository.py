"""
Implementación del repositorio de solicitudes de descarga masiva.
Usa SQLAlchemy para la persistencia.
"""
from typing import List, Optional
from uuid import uuid4

from loguru import logger
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from satsync.domain.entities.sync_request import ImportCounts, StageErrors, SyncRequest
from satsync.domain.repositories.sync_request_repository import ISyncRequestRepository
from satsync.infrastructure.database.models import SatRequestModel
from satsync.shared.constants.sat_constants import Direction
from satsync.shared.exceptions.domain import EntityNotFoundException
from satsync.shared.utils.date_utils import ensure_utc, utc_now


def _aware(value):
    return ensure_utc(value) if value is not None else None


class SyncRequestRepository(ISyncRequestRepository):
    """
    Implementación concreta del repositorio de solicitudes.
    Maneja la persistencia usando SQLAlchemy y PostgreSQL (SQLite en tests).
    """

    def __init__(self, db: AsyncSession):
        """
        Inicializa el repositorio.

        Args:
            db: Sesión de base de datos asíncrona
        """
        self.db = db

    async def create(self, request: SyncRequest) -> SyncRequest:
        now = utc_now()
        model = SatRequestModel(
            id=request.id or str(uuid4()),
            subject_id=request.subject_id,
            direction=request.direction.value,
            date_from=request.date_from,
            date_to=request.date_to,
            created_by=request.created_by,
            schema_version=request.schema_version,
            created_at=now,
            updated_at=now,
        )
        self._apply(model, request)
        self.db.add(model)
        await self.db.flush()

        logger.info(
            f"[sat-sync] Solicitud creada: {model.id} ({request.subject_id}/{request.direction.value} "
            f"{request.date_from}..{request.date_to})"
        )
        return self._to_entity(model)

    async def get_by_id(self, request_id: str) -> Optional[SyncRequest]:
        model = await self.db.get(SatRequestModel, request_id)
        return self._to_entity(model) if model else None

    async def update(self, request: SyncRequest) -> SyncRequest:
        model = await self.db.get(SatRequestModel, request.id)
        if not model:
            raise EntityNotFoundException("SyncRequest", request.id)

        self._apply(model, request)
        model.updated_at = utc_now()
        await self.db.flush()
        return self._to_entity(model)

    async def list_by_subject(
        self,
        subject_id: str,
        direction: Optional[Direction] = None,
        limit: int = 100,
    ) -> List[SyncRequest]:
        query = select(SatRequestModel).where(SatRequestModel.subject_id == subject_id)
        if direction is not None:
            query = query.where(SatRequestModel.direction == Direction(direction).value)
        query = query.order_by(SatRequestModel.created_at.desc(), SatRequestModel.id).limit(limit)
        result = await self.db.execute(query)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def list_unprocessed(self, subject_id: str, direction: Direction) -> List[SyncRequest]:
        result = await self.db.execute(
            select(SatRequestModel)
            .where(
                SatRequestModel.subject_id == subject_id,
                SatRequestModel.direction == Direction(direction).value,
                SatRequestModel.packages_processed.is_(False),
            )
            .order_by(SatRequestModel.created_at)
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    async def acquire_admission_lock(self, subject_id: str, direction: Direction) -> None:
        """
        `pg_advisory_xact_lock` sobre (RFC, tipo); se libera al terminar la
        transaccion que tambien inserta la solicitud.
        """
        if self.db.get_bind().dialect.name != "postgresql":
            return
        key = f"sat-admission:{subject_id}:{Direction(direction).value}"
        await self.db.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {"key": key})
        logger.debug(f"[sat-sync] advisory lock tomado: {key}")

    @staticmethod
    def _apply(model: SatRequestModel, request: SyncRequest) -> None:
        """Copia los campos mutables de la entidad al modelo."""
        model.external_job_id = request.external_job_id
        model.raw_status = request.raw_status
        model.package_ids = list(request.package_ids) if request.package_ids is not None else None
        model.completed = request.completed
        model.packages_downloaded = request.packages_downloaded
        model.packages_processed = request.packages_processed
        model.processed_with_errors = request.processed_with_errors
        model.request_error = request.stage_errors.request_error
        model.verify_error = request.stage_errors.verify_error
        model.download_error = request.stage_errors.download_error
        model.processing_error = request.stage_errors.processing_error
        model.processed_count = request.counts.processed_count
        model.existing_count = request.counts.existing_count
        model.total_errors = request.counts.total_errors
        model.verified_at = request.verified_at
        model.downloaded_at = request.downloaded_at
        model.processed_at = request.processed_at

    @staticmethod
    def _to_entity(model: SatRequestModel) -> SyncRequest:
        """Convierte un modelo de base de datos a entidad de dominio."""
        return SyncRequest(
            id=model.id,
            subject_id=model.subject_id,
            direction=Direction(model.direction),
            date_from=model.date_from,
            date_to=model.date_to,
            external_job_id=model.external_job_id,
            raw_status=model.raw_status,
            package_ids=list(model.package_ids) if model.package_ids is not None else None,
            completed=bool(model.completed),
            packages_downloaded=bool(model.packages_downloaded),
            packages_processed=bool(model.packages_processed),
            processed_with_errors=bool(model.processed_with_errors),
            stage_errors=StageErrors(
                request_error=model.request_error,
                verify_error=model.verify_error,
                download_error=model.download_error,
                processing_error=model.processing_error,
            ),
            counts=ImportCounts(
                processed_count=model.processed_count or 0,
                existing_count=model.existing_count or 0,
                total_errors=model.total_errors or 0,
            ),
            created_at=_aware(model.created_at),
            updated_at=_aware(model.updated_at),
            verified_at=_aware(model.verified_at),
            downloaded_at=_aware(model.downloaded_at),
            processed_at=_aware(model.processed_at),
            created_by=model.created_by,
            schema_version=model.schema_version,
        )
