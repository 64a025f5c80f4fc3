"""
Etapa de descarga de paquetes.
"""
from typing import Optional

from loguru import logger

from satsync.application.interfaces.external_sync_client import ExternalSyncClient
from satsync.domain.entities.package import Package
from satsync.domain.entities.sync_request import SyncRequest
from satsync.domain.repositories.package_repository import IPackageRepository
from satsync.domain.repositories.sync_request_repository import ISyncRequestRepository
from satsync.shared.constants.sat_constants import LogLevel, LogType, Stage
from satsync.shared.exceptions.base import AppException
from satsync.shared.exceptions.domain import EntityNotFoundException, InvalidStageTransitionException
from satsync.shared.utils.audit_logger import AuditLogger
from satsync.shared.utils.date_utils import utc_now


class DownloadStage:
    """
    Descarga cada paquete de una solicitud lista.

    Un paquete que falla no detiene a los demas; los ya guardados no se
    vuelven a pedir en un reintento.
    """

    def __init__(
        self,
        requests: ISyncRequestRepository,
        packages: IPackageRepository,
        client: ExternalSyncClient,
        audit: AuditLogger,
    ):
        self.requests = requests
        self.packages = packages
        self.client = client
        self.audit = audit

    async def run(self, request_id: str) -> SyncRequest:
        request = await self.requests.get_by_id(request_id)
        if request is None:
            raise EntityNotFoundException("SyncRequest", request_id)
        if not request.completed or not request.package_ids:
            raise InvalidStageTransitionException(request_id, "download", "la solicitud no tiene paquetes listos")

        stored = set(await self.packages.list_ids(request.id))
        pending = [pid for pid in request.package_ids if pid not in stored]
        await self.audit.append(
            request.subject_id,
            Stage.DOWNLOAD,
            LogType.DOWNLOAD_STARTED,
            LogLevel.INFO,
            f"Descargando {len(pending)} de {len(request.package_ids)} paquete(s)",
            job_id=request.id,
            details={"pending": pending, "already_stored": sorted(stored)},
        )

        first_error: Optional[str] = None
        failed = []
        for package_id in pending:
            try:
                content = await self.client.fetch_package(request.subject_id, package_id)
            except AppException as e:
                logger.warning(f"[sat-download] Paquete {package_id} fallo: {e.message}")
                failed.append(package_id)
                if first_error is None:
                    first_error = f"Paquete {package_id}: {e.message}"
                continue
            await self.packages.save(Package(package_id=package_id, request_id=request.id, content=content))
            stored.add(package_id)

        if stored:
            request.packages_downloaded = True
            request.downloaded_at = request.downloaded_at or utc_now()
        request.stage_errors.download_error = first_error
        saved = await self.requests.update(request)

        if first_error:
            await self.audit.append(
                request.subject_id,
                Stage.DOWNLOAD,
                LogType.DOWNLOAD_ERROR,
                LogLevel.ERROR if not stored else LogLevel.WARNING,
                f"{len(failed)} paquete(s) no se pudieron descargar; {len(stored)} guardado(s)",
                job_id=request.id,
                details={"failed": failed, "error": first_error},
            )
        else:
            await self.audit.append(
                request.subject_id,
                Stage.DOWNLOAD,
                LogType.DOWNLOAD_SUCCESS,
                LogLevel.SUCCESS,
                f"{len(stored)} paquete(s) descargados",
                job_id=request.id,
            )
        return saved
