"""
Casos de uso de sincronizacion con el SAT.

Fachada que arma repositorios, servicios y etapas sobre una sesion de base
de datos y el contexto compartido. Los endpoints y el script de operacion
solo hablan con esta clase.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from satsync.application.dto.sat_sync_dto import (
    AuditEntryDTO,
    DateWindowDTO,
    DirectionSyncResultDTO,
    DirectionSyncStatusDTO,
    InvoiceEditResponseDTO,
    InvoiceResponseDTO,
    PackageInfoDTO,
    PlanResponseDTO,
    ResetSyncResponseDTO,
    SyncRequestResponseDTO,
    SyncStatusResponseDTO,
    SyncSubjectResponseDTO,
)
from satsync.application.services.admission_guard import AdmissionGuard
from satsync.application.services.invoice_edit_service import InvoiceEditService
from satsync.application.services.sync_planner import DirectionSyncStatus, SyncPlanner
from satsync.application.use_cases.download_stage import DownloadStage
from satsync.application.use_cases.import_stage import ImportStage
from satsync.application.use_cases.request_stage import RequestStage
from satsync.application.use_cases.verification_stage import VerificationStage
from satsync.core.context import SatSyncContext
from satsync.domain.entities.package import Package
from satsync.domain.entities.sync_request import SyncRequest
from satsync.infrastructure.repositories.audit_log_repository import AuditLogRepository
from satsync.infrastructure.repositories.invoice_repository import InvoiceRepository
from satsync.infrastructure.repositories.package_repository import PackageRepository
from satsync.infrastructure.repositories.sync_request_repository import SyncRequestRepository
from satsync.infrastructure.repositories.watermark_repository import WatermarkRepository
from satsync.shared.constants.sat_constants import SYSTEM_USER, Direction, LogLevel, LogType, Stage
from satsync.shared.exceptions.base import AppException
from satsync.shared.exceptions.domain import EntityNotFoundException
from satsync.shared.exceptions.sync import PolicyViolation
from satsync.shared.utils.audit_logger import AuditLogger


def _normalize_rfc(subject_id: str) -> str:
    return subject_id.strip().upper()


class SatSyncUseCases:
    """
    Orquestador del pipeline solicitar -> verificar -> descargar -> procesar.

    Todas las etapas se ejecutan bajo demanda; no hay scheduler interno.
    """

    def __init__(self, db: AsyncSession, context: SatSyncContext):
        self.db = db
        self.context = context

        self.requests = SyncRequestRepository(db)
        self.packages = PackageRepository(db)
        self.invoices = InvoiceRepository(db)
        self.watermarks = WatermarkRepository(db)
        self.audit = AuditLogger(AuditLogRepository(db))

        self.guard = AdmissionGuard(self.requests, max_active=context.max_active_requests)
        self.planner = SyncPlanner(self.watermarks, self.guard, context.first_sync_month_day)
        self.request_stage = RequestStage(self.requests, self.guard, context.client, self.audit, context.locks)
        self.verification_stage = VerificationStage(self.requests, context.client, self.audit)
        self.download_stage = DownloadStage(self.requests, self.packages, context.client, self.audit)
        self.import_stage = ImportStage(
            self.requests,
            self.packages,
            self.invoices,
            self.watermarks,
            context.parser,
            context.archive_reader,
            self.audit,
        )
        self.invoice_edits = InvoiceEditService(self.invoices, self.audit)

    # =========================================================================
    # Planeacion
    # =========================================================================

    async def plan(self, subject_id: str, direction: Direction, today: Optional[date] = None) -> PlanResponseDTO:
        subject_id = _normalize_rfc(subject_id)
        window = await self.planner.plan(subject_id, direction, today or self.context.today())
        return PlanResponseDTO(
            subject_id=subject_id,
            direction=Direction(direction),
            window=DateWindowDTO.from_window(window),
        )

    async def get_sync_status(self, subject_id: str, today: Optional[date] = None) -> SyncStatusResponseDTO:
        subject_id = _normalize_rfc(subject_id)
        today = today or self.context.today()
        statuses = await self.planner.sync_status(subject_id, today)

        def to_dto(status: DirectionSyncStatus) -> DirectionSyncStatusDTO:
            return DirectionSyncStatusDTO(
                direction=status.direction,
                last_synced_date=status.last_synced_date,
                is_first_sync=status.is_first_sync,
                days_behind=status.days_behind,
                has_pending_request=status.has_pending_request,
                next_window=DateWindowDTO.from_window(status.next_window),
            )

        return SyncStatusResponseDTO(
            subject_id=subject_id,
            today=today,
            issued=to_dto(statuses[Direction.ISSUED]),
            received=to_dto(statuses[Direction.RECEIVED]),
        )

    async def reset_sync(self, subject_id: str, direction: Optional[Direction] = None) -> ResetSyncResponseDTO:
        """Borra las marcas: la siguiente sincronizacion empieza desde el inicio del año."""
        subject_id = _normalize_rfc(subject_id)
        removed = await self.watermarks.reset(subject_id, direction)
        await self.audit.append(
            subject_id,
            Stage.SYNC,
            LogType.INFO,
            LogLevel.WARNING,
            "Estado de sincronizacion reiniciado",
            details={"direction": Direction(direction).value if direction else "all", "removed": removed},
        )
        return ResetSyncResponseDTO(subject_id=subject_id, removed_watermarks=removed)

    # =========================================================================
    # Etapas
    # =========================================================================

    async def create_request(
        self,
        subject_id: str,
        direction: Direction,
        date_from: date,
        date_to: date,
        created_by: Optional[str] = None,
    ) -> SyncRequestResponseDTO:
        request = await self.request_stage.create(
            _normalize_rfc(subject_id), direction, date_from, date_to, created_by or SYSTEM_USER
        )
        return SyncRequestResponseDTO.from_entity(request)

    async def verify(self, subject_id: str, request_id: str) -> SyncRequestResponseDTO:
        await self._get_owned(subject_id, request_id)
        return SyncRequestResponseDTO.from_entity(await self.verification_stage.run(request_id))

    async def download(self, subject_id: str, request_id: str) -> SyncRequestResponseDTO:
        await self._get_owned(subject_id, request_id)
        return SyncRequestResponseDTO.from_entity(await self.download_stage.run(request_id))

    async def import_packages(self, subject_id: str, request_id: str) -> SyncRequestResponseDTO:
        await self._get_owned(subject_id, request_id)
        return SyncRequestResponseDTO.from_entity(await self.import_stage.run(request_id))

    # =========================================================================
    # Consulta
    # =========================================================================

    async def get_request(self, subject_id: str, request_id: str) -> SyncRequestResponseDTO:
        return SyncRequestResponseDTO.from_entity(await self._get_owned(subject_id, request_id))

    async def list_requests(
        self, subject_id: str, direction: Optional[Direction] = None, limit: int = 100
    ) -> List[SyncRequestResponseDTO]:
        requests = await self.requests.list_by_subject(_normalize_rfc(subject_id), direction, limit)
        return [SyncRequestResponseDTO.from_entity(request) for request in requests]

    async def list_packages(self, subject_id: str, request_id: str) -> List[PackageInfoDTO]:
        request = await self._get_owned(subject_id, request_id)
        result = []
        for package_id in request.package_ids or []:
            package = await self.packages.get(request.id, package_id)
            result.append(
                PackageInfoDTO(
                    package_id=package_id,
                    downloaded=package is not None,
                    size_bytes=package.size_bytes if package else 0,
                    downloaded_at=package.downloaded_at if package else None,
                )
            )
        return result

    async def get_package(self, subject_id: str, request_id: str, package_id: str) -> Package:
        """
        Bytes crudos de un paquete descargado.

        Raises:
            EntityNotFoundException: Si la solicitud no es del RFC o el paquete no se ha descargado
        """
        request = await self._get_owned(subject_id, request_id)
        package = await self.packages.get(request.id, package_id)
        if package is None:
            raise EntityNotFoundException("Paquete", package_id)
        return package

    async def list_logs(self, subject_id: str, limit: int = 100) -> List[AuditEntryDTO]:
        entries = await self.audit.repository.list_by_subject(_normalize_rfc(subject_id), limit)
        return [AuditEntryDTO.from_entity(entry) for entry in entries]

    async def list_request_logs(self, subject_id: str, request_id: str, limit: int = 100) -> List[AuditEntryDTO]:
        await self._get_owned(subject_id, request_id)
        entries = await self.audit.repository.list_by_job(request_id, limit)
        return [AuditEntryDTO.from_entity(entry) for entry in entries]

    # =========================================================================
    # Sincronizacion completa de un RFC
    # =========================================================================

    async def sync_subject(
        self,
        subject_id: str,
        today: Optional[date] = None,
        *,
        force_full_sync: bool = False,
        custom_start_date: Optional[date] = None,
        created_by: Optional[str] = None,
    ) -> SyncSubjectResponseDTO:
        """
        Planea y crea solicitudes para emitidas y recibidas.

        Un tipo de descarga bloqueado o fallido no impide intentar el otro.
        """
        subject_id = _normalize_rfc(subject_id)
        today = today or self.context.today()
        await self.audit.append(
            subject_id,
            Stage.SYNC,
            LogType.AUTO_SYNC_STARTED,
            LogLevel.INFO,
            "Sincronizacion iniciada" + (" (completa)" if force_full_sync or custom_start_date else ""),
            details={
                "today": today.isoformat(),
                "custom_start_date": custom_start_date.isoformat() if custom_start_date else None,
            },
        )

        results: List[DirectionSyncResultDTO] = []
        for direction in Direction:
            window = await self.planner.plan(
                subject_id,
                direction,
                today,
                force_full_sync=force_full_sync,
                custom_start_date=custom_start_date,
            )
            if window is None:
                message = "Sin rango pendiente o con solicitud en curso"
                await self.audit.append(
                    subject_id, Stage.SYNC, LogType.AUTO_SYNC_SKIPPED, LogLevel.INFO,
                    f"{direction.value}: {message}",
                )
                results.append(DirectionSyncResultDTO(direction=direction, outcome="skipped", message=message))
                continue

            try:
                request = await self.request_stage.create(
                    subject_id, direction, window.date_from, window.date_to, created_by or SYSTEM_USER
                )
            except PolicyViolation as e:
                results.append(DirectionSyncResultDTO(direction=direction, outcome="blocked", message=e.message))
                continue
            except AppException as e:
                logger.error(f"[sat-sync] {subject_id}/{direction.value}: {e.message}")
                results.append(DirectionSyncResultDTO(direction=direction, outcome="failed", message=e.message))
                continue

            results.append(
                DirectionSyncResultDTO(
                    direction=direction,
                    outcome="created",
                    message=f"Solicitud {window.date_from} a {window.date_to} creada",
                    request=SyncRequestResponseDTO.from_entity(request),
                )
            )

        await self.audit.append(
            subject_id,
            Stage.SYNC,
            LogType.AUTO_SYNC_COMPLETED,
            LogLevel.SUCCESS,
            "Sincronizacion completada",
            details={result.direction.value: result.outcome for result in results},
        )
        return SyncSubjectResponseDTO(subject_id=subject_id, results=results)

    # =========================================================================
    # Edicion manual
    # =========================================================================

    async def edit_invoice(
        self,
        subject_id: str,
        uuid: str,
        taxable_isr=None,
        taxable_iva=None,
        *,
        reset_to_computed: bool = False,
        edited_by: Optional[str] = None,
    ) -> InvoiceEditResponseDTO:
        result = await self.invoice_edits.edit_taxable(
            _normalize_rfc(subject_id),
            uuid,
            taxable_isr,
            taxable_iva,
            reset_to_computed=reset_to_computed,
            edited_by=edited_by or SYSTEM_USER,
        )
        return InvoiceEditResponseDTO(
            status=result.status,
            attempts=result.attempts,
            error=result.error,
            invoice=InvoiceResponseDTO.from_entity(result.invoice),
        )

    async def _get_owned(self, subject_id: str, request_id: str) -> SyncRequest:
        request = await self.requests.get_by_id(request_id)
        if request is None or request.subject_id != _normalize_rfc(subject_id):
            raise EntityNotFoundException("SyncRequest", request_id)
        return request
