"""
DTOs del pipeline de descarga masiva.
Definen la estructura de datos de entrada y salida de la API.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from satsync.application.services.status_aggregator import (
    aggregate_status,
    is_ready_for_download,
    status_display,
)
from satsync.domain.entities.audit_entry import AuditEntry
from satsync.domain.entities.invoice import ParsedInvoice
from satsync.domain.entities.sync_request import DateWindow, SyncRequest
from satsync.shared.constants.sat_constants import Direction, LogLevel, LogType, Stage, StatusLabel


class DateWindowDTO(BaseModel):
    """Rango cerrado de fechas."""

    date_from: date
    date_to: date

    @classmethod
    def from_window(cls, window: Optional[DateWindow]) -> Optional["DateWindowDTO"]:
        if window is None:
            return None
        return cls(date_from=window.date_from, date_to=window.date_to)


class PlanResponseDTO(BaseModel):
    """Siguiente rango a solicitar (None si no hay nada pendiente)."""

    subject_id: str
    direction: Direction
    window: Optional[DateWindowDTO] = None


class DirectionSyncStatusDTO(BaseModel):
    direction: Direction
    last_synced_date: Optional[date] = None
    is_first_sync: bool
    days_behind: int
    has_pending_request: bool
    next_window: Optional[DateWindowDTO] = None


class SyncStatusResponseDTO(BaseModel):
    """Estado de sincronizacion de un RFC por tipo de descarga."""

    subject_id: str
    today: date
    issued: DirectionSyncStatusDTO
    received: DirectionSyncStatusDTO


class CreateRequestDTO(BaseModel):
    """DTO para crear una solicitud de descarga."""

    direction: Direction = Field(..., description="issued (emitidas) o received (recibidas)")
    date_from: date = Field(..., description="Fecha inicial (inclusive)")
    date_to: date = Field(..., description="Fecha final (inclusive)")
    created_by: Optional[str] = Field(None, max_length=255, description="Usuario que solicita")

    @model_validator(mode="after")
    def check_range(self) -> "CreateRequestDTO":
        if self.date_from > self.date_to:
            raise ValueError("date_from no puede ser posterior a date_to")
        return self


class StageErrorsDTO(BaseModel):
    request_error: Optional[str] = None
    verify_error: Optional[str] = None
    download_error: Optional[str] = None
    processing_error: Optional[str] = None


class ImportCountsDTO(BaseModel):
    processed_count: int = 0
    existing_count: int = 0
    total_errors: int = 0


class SyncRequestResponseDTO(BaseModel):
    """Solicitud con su estado derivado."""

    id: str
    subject_id: str
    direction: Direction
    date_from: date
    date_to: date
    external_job_id: Optional[str] = None
    raw_status: str
    package_ids: Optional[List[str]] = None
    completed: bool
    packages_downloaded: bool
    packages_processed: bool
    processed_with_errors: bool
    ready_for_download: bool
    status: StatusLabel
    status_display: str
    stage_errors: StageErrorsDTO
    counts: ImportCountsDTO
    created_by: str
    schema_version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    downloaded_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, request: SyncRequest) -> "SyncRequestResponseDTO":
        label = aggregate_status(request)
        return cls(
            id=request.id,
            subject_id=request.subject_id,
            direction=request.direction,
            date_from=request.date_from,
            date_to=request.date_to,
            external_job_id=request.external_job_id,
            raw_status=request.raw_status,
            package_ids=request.package_ids,
            completed=request.completed,
            packages_downloaded=request.packages_downloaded,
            packages_processed=request.packages_processed,
            processed_with_errors=request.processed_with_errors,
            ready_for_download=is_ready_for_download(request),
            status=label,
            status_display=status_display(label),
            stage_errors=StageErrorsDTO(
                request_error=request.stage_errors.request_error,
                verify_error=request.stage_errors.verify_error,
                download_error=request.stage_errors.download_error,
                processing_error=request.stage_errors.processing_error,
            ),
            counts=ImportCountsDTO(
                processed_count=request.counts.processed_count,
                existing_count=request.counts.existing_count,
                total_errors=request.counts.total_errors,
            ),
            created_by=request.created_by,
            schema_version=request.schema_version,
            created_at=request.created_at,
            updated_at=request.updated_at,
            verified_at=request.verified_at,
            downloaded_at=request.downloaded_at,
            processed_at=request.processed_at,
        )


class PackageInfoDTO(BaseModel):
    """Paquete de una solicitud; `downloaded` indica si los bytes ya estan guardados."""

    package_id: str
    downloaded: bool
    size_bytes: int = 0
    downloaded_at: Optional[datetime] = None


class SyncSubjectRequestDTO(BaseModel):
    """DTO para sincronizar ambos tipos de descarga de un RFC."""

    force_full_sync: bool = Field(False, description="Ignora la ultima fecha sincronizada")
    custom_start_date: Optional[date] = Field(None, description="Fecha de inicio explicita")
    created_by: Optional[str] = Field(None, max_length=255)


class DirectionSyncResultDTO(BaseModel):
    """
    Resultado por tipo de descarga.

    outcome: created | skipped | blocked | failed
    """

    direction: Direction
    outcome: str
    message: str
    request: Optional[SyncRequestResponseDTO] = None


class SyncSubjectResponseDTO(BaseModel):
    subject_id: str
    results: List[DirectionSyncResultDTO]


class ResetSyncResponseDTO(BaseModel):
    subject_id: str
    removed_watermarks: int


class AuditEntryDTO(BaseModel):
    """Entrada de la bitacora."""

    id: Optional[int] = None
    subject_id: str
    job_id: Optional[str] = None
    stage: Stage
    type: LogType
    level: LogLevel
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    created_by: str

    @classmethod
    def from_entity(cls, entry: AuditEntry) -> "AuditEntryDTO":
        return cls(
            id=entry.id,
            subject_id=entry.subject_id,
            job_id=entry.job_id,
            stage=entry.stage,
            type=entry.type,
            level=entry.level,
            message=entry.message,
            details=entry.details,
            created_at=entry.created_at,
            created_by=entry.created_by,
        )


class InvoiceEditDTO(BaseModel):
    """Edicion manual de montos gravados."""

    taxable_isr: Optional[Decimal] = Field(None, ge=0, description="Monto gravado ISR")
    taxable_iva: Optional[Decimal] = Field(None, ge=0, description="Monto gravado IVA")
    reset_to_computed: bool = Field(False, description="Descarta la edicion manual y recalcula")
    edited_by: Optional[str] = Field(None, max_length=255)


class InvoiceResponseDTO(BaseModel):
    uuid: str
    subject_id: str
    direction: Direction
    invoice_type: str
    issued_at: datetime
    issuer_rfc: str
    receiver_rfc: str
    currency: str
    subtotal: Decimal
    total: Decimal
    transferred_iva: Decimal
    taxable_isr: Decimal
    taxable_iva: Decimal
    manually_modified: bool

    @classmethod
    def from_entity(cls, invoice: ParsedInvoice) -> "InvoiceResponseDTO":
        return cls(
            uuid=invoice.uuid,
            subject_id=invoice.subject_id,
            direction=invoice.direction,
            invoice_type=invoice.invoice_type,
            issued_at=invoice.issued_at,
            issuer_rfc=invoice.issuer_rfc,
            receiver_rfc=invoice.receiver_rfc,
            currency=invoice.currency,
            subtotal=invoice.subtotal,
            total=invoice.total,
            transferred_iva=invoice.transferred_iva,
            taxable_isr=invoice.taxable_isr,
            taxable_iva=invoice.taxable_iva,
            manually_modified=invoice.manually_modified,
        )


class InvoiceEditResponseDTO(BaseModel):
    """status: applied | rolled_back"""

    status: str
    attempts: int
    error: Optional[str] = None
    invoice: InvoiceResponseDTO
