"""
Creacion de solicitudes de descarga masiva.

La verificacion de cuota y la llamada SolicitaDescarga forman una sola
decision de admision: se serializan por (RFC, tipo) con un lock en proceso
y, en PostgreSQL, con un advisory lock dentro de la misma transaccion.
"""
from datetime import date

from loguru import logger

from satsync.application.interfaces.external_sync_client import ExternalSyncClient
from satsync.application.services.admission_guard import AdmissionGuard
from satsync.application.services.status_normalizer import normalize_status
from satsync.domain.entities.audit_entry import AuditEntry
from satsync.domain.entities.sync_request import SyncRequest
from satsync.domain.repositories.sync_request_repository import ISyncRequestRepository
from satsync.shared.constants.sat_constants import (
    SYSTEM_USER,
    Direction,
    LogLevel,
    LogType,
    NormalizedStatus,
    Stage,
)
from satsync.shared.exceptions.base import AppException
from satsync.shared.exceptions.domain import ValidationException
from satsync.shared.exceptions.sync import PolicyViolation
from satsync.shared.utils.audit_logger import AuditLogger
from satsync.shared.utils.keyed_lock import KeyedLockManager


class RequestStage:
    """Crea solicitudes respetando la cuota del SAT."""

    def __init__(
        self,
        requests: ISyncRequestRepository,
        guard: AdmissionGuard,
        client: ExternalSyncClient,
        audit: AuditLogger,
        locks: KeyedLockManager,
    ):
        self.requests = requests
        self.guard = guard
        self.client = client
        self.audit = audit
        self.locks = locks

    async def create(
        self,
        subject_id: str,
        direction: Direction,
        date_from: date,
        date_to: date,
        created_by: str = SYSTEM_USER,
    ) -> SyncRequest:
        """
        Solicita una descarga al SAT y persiste la solicitud.

        Raises:
            ValidationException: Rango invalido
            PolicyViolation: Cuota local excedida o rango traslapado (sin registro)
            PolicyRejected: El SAT rechazo la solicitud (sin registro)
            TransientNetworkError / SatGatewayError: Falla del gateway (sin registro)
        """
        direction = Direction(direction)
        if date_from > date_to:
            raise ValidationException(
                f"La fecha inicial {date_from} es posterior a la final {date_to}", field="dateFrom"
            )

        async with self.locks.lock((subject_id, direction.value)):
            await self.requests.acquire_admission_lock(subject_id, direction)
            try:
                active = await self.guard.assert_can_create(subject_id, direction, date_from, date_to)
            except PolicyViolation as e:
                self._emit_rejection(subject_id, LogType.REQUEST_BLOCKED, LogLevel.WARNING, e)
                raise

            logger.info(
                f"[sat-request] Solicitando {subject_id}/{direction.value} {date_from}..{date_to} "
                f"({len(active)} activas)"
            )
            try:
                result = await self.client.create_job(subject_id, date_from, date_to, direction)
            except AppException as e:
                self._emit_rejection(subject_id, LogType.REQUEST_CREATION_ERROR, LogLevel.ERROR, e)
                raise

            request = SyncRequest(
                subject_id=subject_id,
                direction=direction,
                date_from=date_from,
                date_to=date_to,
                external_job_id=result.job_id,
                raw_status=result.raw_status,
                created_by=created_by,
            )
            if normalize_status(result.raw_status) == NormalizedStatus.ERROR:
                request.stage_errors.request_error = (
                    result.message or f"El SAT respondio con estado {result.raw_status}"
                )
            saved = await self.requests.create(request)

        if saved.stage_errors.request_error:
            await self.audit.append(
                subject_id,
                Stage.REQUEST,
                LogType.REQUEST_CREATION_ERROR,
                LogLevel.ERROR,
                f"Solicitud rechazada por el SAT: {saved.stage_errors.request_error}",
                job_id=saved.id,
                details={"external_job_id": saved.external_job_id, "raw_status": saved.raw_status},
                created_by=created_by,
            )
        else:
            await self.audit.append(
                subject_id,
                Stage.REQUEST,
                LogType.REQUEST_CREATED,
                LogLevel.SUCCESS,
                f"Solicitud de {'emitidas' if direction == Direction.ISSUED else 'recibidas'} creada "
                f"({date_from.isoformat()} a {date_to.isoformat()})",
                job_id=saved.id,
                details={"external_job_id": saved.external_job_id, "raw_status": saved.raw_status},
                created_by=created_by,
            )
        return saved

    def _emit_rejection(self, subject_id: str, type: LogType, level: LogLevel, error: AppException) -> None:
        self.audit.emit(
            AuditEntry(
                subject_id=subject_id,
                stage=Stage.REQUEST,
                type=type,
                level=level,
                message=error.message,
                details={"error_code": error.error_code, **error.details},
            )
        )
