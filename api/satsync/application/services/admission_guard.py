"""
Control de admision de solicitudes.

El SAT solo permite 2 solicitudes simultaneas por RFC y tipo de descarga;
excederlo bloquea la FIEL del contribuyente entre 24 y 72 horas.
"""
from datetime import date
from typing import List, Optional

from loguru import logger

from satsync.application.services.status_normalizer import normalize_status
from satsync.domain.entities.sync_request import SyncRequest
from satsync.domain.repositories.sync_request_repository import ISyncRequestRepository
from satsync.shared.constants.sat_constants import (
    DEFAULT_MAX_ACTIVE_REQUESTS,
    Direction,
    NormalizedStatus,
)
from satsync.shared.exceptions.sync import PolicyViolation
from satsync.shared.utils.date_utils import windows_overlap


def is_terminal(request: SyncRequest) -> bool:
    """
    Una solicitud deja de contar para la cuota cuando:
    - ya se proceso, o
    - fallo al crearse, o
    - el SAT la rechazo/vencio, o
    - termino sin paquetes (no queda nada por hacer).
    """
    if request.packages_processed:
        return True
    if request.stage_errors.request_error:
        return True
    if normalize_status(request.raw_status, warn=False) == NormalizedStatus.ERROR:
        return True
    return request.completed_without_packages


class AdmissionGuard:
    """
    Cuenta solicitudes activas y decide si se puede crear otra.
    No tiene efectos secundarios; la serializacion la hace quien crea.
    """

    def __init__(self, repository: ISyncRequestRepository, max_active: int = DEFAULT_MAX_ACTIVE_REQUESTS):
        self.repository = repository
        self.max_active = max_active

    async def active_requests(self, subject_id: str, direction: Direction) -> List[SyncRequest]:
        candidates = await self.repository.list_unprocessed(subject_id, direction)
        return [request for request in candidates if not is_terminal(request)]

    async def can_create(self, subject_id: str, direction: Direction) -> bool:
        return len(await self.active_requests(subject_id, direction)) < self.max_active

    async def assert_can_create(
        self,
        subject_id: str,
        direction: Direction,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[SyncRequest]:
        """
        Valida la admision de una nueva solicitud.

        Args:
            subject_id: RFC
            direction: Tipo de descarga
            date_from / date_to: Si se indican, tambien se rechaza un rango que
                se traslape con una solicitud activa

        Returns:
            List[SyncRequest]: Solicitudes activas al momento de decidir

        Raises:
            PolicyViolation: reason="overlapping_window" o "quota_exceeded"
        """
        direction = Direction(direction)
        active = await self.active_requests(subject_id, direction)

        if date_from is not None and date_to is not None:
            overlapping = [
                request for request in active
                if windows_overlap(request.date_from, request.date_to, date_from, date_to)
            ]
            if overlapping:
                logger.warning(
                    f"[sat-admission] {subject_id}/{direction.value} {date_from}..{date_to} se traslapa "
                    f"con la solicitud {overlapping[0].id}"
                )
                raise PolicyViolation(
                    subject_id,
                    direction.value,
                    active_count=len(active),
                    limit=self.max_active,
                    reason="overlapping_window",
                    message=(
                        f"Ya existe una solicitud activa ({overlapping[0].date_from} a "
                        f"{overlapping[0].date_to}) que cubre parte del rango pedido. "
                        "Espera a que se procese antes de crear otra."
                    ),
                )

        if len(active) >= self.max_active:
            logger.warning(
                f"[sat-admission] {subject_id}/{direction.value}: {len(active)} solicitudes activas "
                f"(limite {self.max_active})"
            )
            raise PolicyViolation(
                subject_id,
                direction.value,
                active_count=len(active),
                limit=self.max_active,
            )
        return active
