"""
Planeacion de ventanas de sincronizacion por RFC y tipo de descarga.

Reglas:
- Primera sincronizacion: desde el 1 de enero del año en curso.
- Siguientes: desde el dia posterior a la ultima fecha cubierta.
- El limite superior siempre es ayer (el SAT no entrega el dia en curso).
- No se planea nada si una solicitud activa ya cubre parte del rango.
"""
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional

from loguru import logger

from satsync.application.services.admission_guard import AdmissionGuard
from satsync.domain.entities.sync_request import DateWindow
from satsync.domain.repositories.watermark_repository import IWatermarkRepository
from satsync.shared.constants.sat_constants import Direction
from satsync.shared.utils.date_utils import add_days, days_between, first_sync_start, yesterday


@dataclass(frozen=True)
class DirectionSyncStatus:
    """Estado de sincronizacion de un tipo de descarga."""

    direction: Direction
    last_synced_date: Optional[date]
    is_first_sync: bool
    days_behind: int
    has_pending_request: bool
    next_window: Optional[DateWindow]


class SyncPlanner:
    """Calcula el rango pendiente de descargar."""

    def __init__(
        self,
        watermarks: IWatermarkRepository,
        guard: AdmissionGuard,
        first_sync_month_day: str = "01-01",
    ):
        self.watermarks = watermarks
        self.guard = guard
        self.first_sync_month_day = first_sync_month_day

    async def _start_date(
        self,
        subject_id: str,
        direction: Direction,
        today: date,
        force_full_sync: bool,
        custom_start_date: Optional[date],
    ) -> date:
        if custom_start_date is not None:
            return custom_start_date
        watermark = await self.watermarks.get(subject_id, direction)
        if force_full_sync or watermark is None:
            return first_sync_start(today, self.first_sync_month_day)
        return add_days(watermark.last_synced_date, 1)

    async def plan(
        self,
        subject_id: str,
        direction: Direction,
        today: date,
        *,
        force_full_sync: bool = False,
        custom_start_date: Optional[date] = None,
    ) -> Optional[DateWindow]:
        """
        Calcula el siguiente rango a solicitar.

        Args:
            subject_id: RFC
            direction: Tipo de descarga
            today: Fecha de referencia
            force_full_sync: Ignora la marca y empieza desde el inicio del año
            custom_start_date: Fecha de inicio explicita (tiene prioridad)

        Returns:
            DateWindow o None si no hay nada que pedir
        """
        direction = Direction(direction)
        start = await self._start_date(subject_id, direction, today, force_full_sync, custom_start_date)
        end = yesterday(today)
        if start > end:
            logger.debug(f"[sat-plan] {subject_id}/{direction.value} al dia (inicio {start} > fin {end})")
            return None

        window = DateWindow(start, end)
        active = await self.guard.active_requests(subject_id, direction)
        blocking = next((r for r in active if window.overlaps(r.date_from, r.date_to)), None)
        if blocking is not None:
            logger.info(
                f"[sat-plan] {subject_id}/{direction.value}: solicitud {blocking.id} en curso "
                f"cubre {blocking.date_from}..{blocking.date_to}; no se planea"
            )
            return None
        return window

    async def sync_status(self, subject_id: str, today: date) -> Dict[Direction, DirectionSyncStatus]:
        """Resumen por tipo de descarga (para la UI y el endpoint sync-status)."""
        result: Dict[Direction, DirectionSyncStatus] = {}
        end = yesterday(today)
        for direction in Direction:
            watermark = await self.watermarks.get(subject_id, direction)
            active = await self.guard.active_requests(subject_id, direction)
            last = watermark.last_synced_date if watermark else None
            if last is None:
                start = first_sync_start(today, self.first_sync_month_day)
                behind = days_between(start, end) + 1 if start <= end else 0
            else:
                behind = days_between(last, end)
            result[direction] = DirectionSyncStatus(
                direction=direction,
                last_synced_date=last,
                is_first_sync=watermark is None,
                days_behind=behind,
                has_pending_request=bool(active),
                next_window=await self.plan(subject_id, direction, today),
            )
        return result
