"""
Etapa de importacion: paquetes -> CFDI.
"""
from dataclasses import dataclass, field
from typing import List, Tuple

from loguru import logger

from satsync.application.interfaces.document_parser import DocumentParser
from satsync.domain.entities.sync_request import ImportCounts, SyncRequest
from satsync.domain.repositories.invoice_repository import IInvoiceRepository
from satsync.domain.repositories.package_repository import IPackageRepository
from satsync.domain.repositories.sync_request_repository import ISyncRequestRepository
from satsync.domain.repositories.watermark_repository import IWatermarkRepository
from satsync.infrastructure.parsing.archive_reader import ArchiveReader
from satsync.shared.constants.sat_constants import LogLevel, LogType, Stage
from satsync.shared.exceptions.domain import EntityNotFoundException, InvalidStageTransitionException
from satsync.shared.exceptions.sync import FatalArchiveError, ParseError
from satsync.shared.utils.audit_logger import AuditLogger
from satsync.shared.utils.date_utils import utc_now

# Errores por documento que se conservan en el detalle de la bitacora
MAX_ERRORS_IN_DETAILS = 20


@dataclass
class _PackageOutcome:
    package_id: str
    counts: ImportCounts
    errors: List[Tuple[str, str]] = field(default_factory=list)


class ImportStage:
    """
    Procesa los paquetes descargados de una solicitud.

    - Cada documento: parsear -> si el UUID existe cuenta como existente,
      si no se guarda y cuenta como procesado. Un XML invalido suma un error.
    - Un paquete ilegible o no descargado suma un error y se omite.
    - Los contadores se recalculan completos en cada corrida.
    - Con errores y nada procesado ni existente -> processing_error.
    - En cualquier otro caso la solicitud queda procesada y la marca avanza.
    """

    def __init__(
        self,
        requests: ISyncRequestRepository,
        packages: IPackageRepository,
        invoices: IInvoiceRepository,
        watermarks: IWatermarkRepository,
        parser: DocumentParser,
        archive_reader: ArchiveReader,
        audit: AuditLogger,
    ):
        self.requests = requests
        self.packages = packages
        self.invoices = invoices
        self.watermarks = watermarks
        self.parser = parser
        self.archive_reader = archive_reader
        self.audit = audit

    async def run(self, request_id: str) -> SyncRequest:
        request = await self.requests.get_by_id(request_id)
        if request is None:
            raise EntityNotFoundException("SyncRequest", request_id)

        if request.completed_without_packages:
            return await self._finish(request, ImportCounts(), [])
        if not request.packages_downloaded:
            raise InvalidStageTransitionException(request_id, "import", "no hay paquetes descargados")

        await self.audit.append(
            request.subject_id,
            Stage.PROCESSING,
            LogType.PROCESSING_STARTED,
            LogLevel.INFO,
            f"Procesando {len(request.package_ids)} paquete(s)",
            job_id=request.id,
        )

        outcomes = [await self._import_package(request, package_id) for package_id in request.package_ids]
        counts = ImportCounts.merge(outcome.counts for outcome in outcomes)
        errors = [error for outcome in outcomes for error in outcome.errors]
        return await self._finish(request, counts, errors)

    async def _finish(
        self, request: SyncRequest, counts: ImportCounts, errors: List[Tuple[str, str]]
    ) -> SyncRequest:
        details = {
            "processed_count": counts.processed_count,
            "existing_count": counts.existing_count,
            "total_errors": counts.total_errors,
        }
        if errors:
            details["errors"] = [
                {"document": name, "error": message} for name, message in errors[:MAX_ERRORS_IN_DETAILS]
            ]

        if counts.total_errors > 0 and counts.processed_count == 0 and counts.existing_count == 0:
            message = f"No se pudo procesar ningun CFDI ({counts.total_errors} error(es))"
            request.mark_processing_failed(counts, message)
            saved = await self.requests.update(request)
            await self.audit.append(
                request.subject_id,
                Stage.PROCESSING,
                LogType.PROCESSING_ERROR,
                LogLevel.ERROR,
                message,
                job_id=request.id,
                details=details,
            )
            return saved

        request.mark_processed(counts, utc_now())
        saved = await self.requests.update(request)
        await self.watermarks.advance(request.subject_id, request.direction, request.date_to)

        if counts.total_errors:
            log_type, level = LogType.PROCESSING_PARTIAL, LogLevel.WARNING
            message = (
                f"Procesado con errores: {counts.processed_count} nuevos, "
                f"{counts.existing_count} existentes, {counts.total_errors} con error"
            )
        else:
            log_type, level = LogType.PROCESSING_SUCCESS, LogLevel.SUCCESS
            message = (
                f"Procesado: {counts.processed_count} nuevos, {counts.existing_count} existentes"
                if request.package_ids
                else "Sin CFDI en el rango; marca de sincronizacion actualizada"
            )
        await self.audit.append(
            request.subject_id, Stage.PROCESSING, log_type, level, message, job_id=request.id, details=details
        )
        logger.info(f"[sat-import] {request.id}: {message}")
        return saved

    async def _import_package(self, request: SyncRequest, package_id: str) -> _PackageOutcome:
        package = await self.packages.get(request.id, package_id)
        if package is None:
            return _PackageOutcome(
                package_id,
                ImportCounts(total_errors=1),
                [(package_id, "paquete no descargado")],
            )

        try:
            documents = self.archive_reader.read_documents(package_id, package.content)
        except FatalArchiveError as e:
            logger.warning(f"[sat-import] {e.message}")
            return _PackageOutcome(package_id, ImportCounts(total_errors=1), [(package_id, e.message)])

        processed = existing = failed = 0
        errors: List[Tuple[str, str]] = []
        for document in documents:
            if document.error:
                failed += 1
                errors.append((document.name, document.error))
                continue
            try:
                invoice = self.parser.parse(document.content, request.subject_id, request.direction, document.name)
            except ParseError as e:
                failed += 1
                errors.append((document.name, e.message))
                continue
            except Exception as e:
                # Un documento nunca aborta el paquete
                logger.opt(exception=e).warning(f"[sat-import] Error inesperado en {document.name}: {e}")
                failed += 1
                errors.append((document.name, f"Error inesperado: {e!r}"))
                continue

            invoice.request_id = request.id
            invoice.package_id = package_id
            if await self.invoices.exists(invoice.subject_id, invoice.uuid):
                existing += 1
            elif await self.invoices.save(invoice):
                processed += 1
            else:
                existing += 1

        logger.debug(
            f"[sat-import] Paquete {package_id}: {processed} nuevos, {existing} existentes, {failed} errores"
        )
        return _PackageOutcome(package_id, ImportCounts(processed, existing, failed), errors)
