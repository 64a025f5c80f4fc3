"""
Almacen de marcas de sincronizacion por (RFC, tipo de descarga).
"""
from datetime import date
from typing import Optional

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from satsync.domain.entities.watermark import SyncWatermark
from satsync.domain.repositories.watermark_repository import IWatermarkRepository
from satsync.infrastructure.database.models import SatSyncWatermarkModel
from satsync.shared.constants.sat_constants import Direction
from satsync.shared.utils.date_utils import ensure_utc, utc_now


class WatermarkRepository(IWatermarkRepository):

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, subject_id: str, direction: Direction) -> Optional[SyncWatermark]:
        model = await self.db.get(SatSyncWatermarkModel, (subject_id, Direction(direction).value))
        return self._to_entity(model) if model else None

    async def advance(self, subject_id: str, direction: Direction, covered_to: date) -> SyncWatermark:
        direction = Direction(direction)
        model = await self.db.get(SatSyncWatermarkModel, (subject_id, direction.value))
        if model is None:
            model = SatSyncWatermarkModel(
                subject_id=subject_id,
                direction=direction.value,
                last_synced_date=covered_to,
                updated_at=utc_now(),
            )
            self.db.add(model)
        elif covered_to > model.last_synced_date:
            model.last_synced_date = covered_to
            model.updated_at = utc_now()
        else:
            logger.debug(
                f"[sat-sync] Marca de {subject_id}/{direction.value} ya cubre "
                f"{model.last_synced_date} >= {covered_to}; sin cambios"
            )
            return self._to_entity(model)

        await self.db.flush()
        logger.info(f"[sat-sync] Marca de {subject_id}/{direction.value} avanzada a {covered_to}")
        return self._to_entity(model)

    async def reset(self, subject_id: str, direction: Optional[Direction] = None) -> int:
        statement = delete(SatSyncWatermarkModel).where(SatSyncWatermarkModel.subject_id == subject_id)
        if direction is not None:
            statement = statement.where(SatSyncWatermarkModel.direction == Direction(direction).value)
        result = await self.db.execute(statement)
        logger.warning(f"[sat-sync] Marcas reiniciadas para {subject_id}: {result.rowcount}")
        return result.rowcount or 0

    @staticmethod
    def _to_entity(model: SatSyncWatermarkModel) -> SyncWatermark:
        return SyncWatermark(
            subject_id=model.subject_id,
            direction=Direction(model.direction),
            last_synced_date=model.last_synced_date,
            updated_at=ensure_utc(model.updated_at) if model.updated_at else None,
        )
