"""
Etapa de verificacion (VerificaSolicitudDescarga).
"""
from loguru import logger

from satsync.application.interfaces.external_sync_client import ExternalSyncClient
from satsync.application.services.status_normalizer import normalize_status
from satsync.domain.entities.sync_request import SyncRequest
from satsync.domain.repositories.sync_request_repository import ISyncRequestRepository
from satsync.shared.constants.sat_constants import LogLevel, LogType, NormalizedStatus, Stage
from satsync.shared.exceptions.base import AppException
from satsync.shared.exceptions.domain import EntityNotFoundException, InvalidStageTransitionException
from satsync.shared.utils.audit_logger import AuditLogger
from satsync.shared.utils.date_utils import utc_now


class VerificationStage:
    """
    Consulta el estado de una solicitud en el SAT.

    - Terminada sin paquetes -> completed, no hay nada que descargar.
    - Terminada con paquetes -> se guardan los IdsPaquetes.
    - Rechazada / vencida -> verify_error, la solicitud deja de contar para la cuota.
    - Error de red -> verify_error, reintentable.
    """

    def __init__(self, requests: ISyncRequestRepository, client: ExternalSyncClient, audit: AuditLogger):
        self.requests = requests
        self.client = client
        self.audit = audit

    async def run(self, request_id: str) -> SyncRequest:
        request = await self.requests.get_by_id(request_id)
        if request is None:
            raise EntityNotFoundException("SyncRequest", request_id)
        if not request.external_job_id:
            raise InvalidStageTransitionException(request_id, "verify", "la solicitud no tiene IdSolicitud del SAT")

        if request.completed:
            logger.debug(f"[sat-verify] {request_id} ya estaba lista; sin llamada al SAT")
            return request

        await self.audit.append(
            request.subject_id,
            Stage.VERIFICATION,
            LogType.VERIFICATION_STARTED,
            LogLevel.INFO,
            "Verificando solicitud en el SAT",
            job_id=request.id,
            details={"external_job_id": request.external_job_id},
        )

        try:
            result = await self.client.verify_job(request.subject_id, request.external_job_id)
        except AppException as e:
            request.stage_errors.verify_error = e.message
            saved = await self.requests.update(request)
            await self.audit.append(
                request.subject_id,
                Stage.VERIFICATION,
                LogType.VERIFICATION_ERROR,
                LogLevel.ERROR,
                f"Error al verificar la solicitud: {e.message}",
                job_id=request.id,
                details={"error_code": e.error_code},
            )
            return saved

        request.raw_status = result.raw_status
        request.verified_at = utc_now()
        status = normalize_status(result.raw_status)

        if status == NormalizedStatus.READY:
            request.completed = True
            request.package_ids = list(result.package_ids or [])
            request.stage_errors.verify_error = None
            count = len(request.package_ids)
            log_type, level = LogType.VERIFICATION_SUCCESS, LogLevel.SUCCESS
            message = (
                f"Solicitud terminada: {count} paquete(s) disponibles"
                if count
                else "Solicitud terminada sin CFDI en el rango"
            )
        elif status == NormalizedStatus.ERROR:
            request.stage_errors.verify_error = (
                result.error or f"Solicitud rechazada o vencida en el SAT (estado {result.raw_status})"
            )
            log_type, level = LogType.VERIFICATION_REJECTED, LogLevel.ERROR
            message = request.stage_errors.verify_error
        else:
            request.stage_errors.verify_error = result.error
            log_type, level = LogType.VERIFICATION_PENDING, LogLevel.INFO
            message = f"La solicitud sigue en proceso (estado {result.raw_status})"

        saved = await self.requests.update(request)
        await self.audit.append(
            request.subject_id,
            Stage.VERIFICATION,
            log_type,
            level,
            message,
            job_id=request.id,
            details={"raw_status": result.raw_status, "package_ids": request.package_ids},
        )
        return saved
