"""
Entidad de dominio: SyncRequest (solicitud de descarga masiva).

Una solicitud cubre un rango de fechas para un RFC y un tipo de descarga, y
avanza por las etapas verificar -> descargar -> procesar. Cada etapa escribe
su propio error sin borrar los de las demas.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import reduce
from typing import Iterable, List, Optional

from satsync.shared.constants.sat_constants import (
    CURRENT_SCHEMA_VERSION,
    RAW_STATUS_REQUESTED,
    SYSTEM_USER,
    Direction,
)
from satsync.shared.utils.date_utils import windows_overlap


@dataclass
class StageErrors:
    """Mensajes de error por etapa (texto literal del proveedor o de la excepcion)."""

    request_error: Optional[str] = None
    verify_error: Optional[str] = None
    download_error: Optional[str] = None
    processing_error: Optional[str] = None

    def has_any(self) -> bool:
        return any((self.request_error, self.verify_error, self.download_error, self.processing_error))


@dataclass(frozen=True)
class ImportCounts:
    """Contadores de una importacion. Se combinan con `+`."""

    processed_count: int = 0
    existing_count: int = 0
    total_errors: int = 0

    def __add__(self, other: "ImportCounts") -> "ImportCounts":
        return ImportCounts(
            processed_count=self.processed_count + other.processed_count,
            existing_count=self.existing_count + other.existing_count,
            total_errors=self.total_errors + other.total_errors,
        )

    @classmethod
    def merge(cls, parts: Iterable["ImportCounts"]) -> "ImportCounts":
        return reduce(lambda acc, item: acc + item, parts, cls())


@dataclass
class SyncRequest:
    """
    Solicitud de descarga masiva de CFDI.

    Invariantes:
    - `package_ids` solo lo llena una verificacion exitosa.
    - `packages_downloaded` implica `package_ids` no vacio y paquetes persistidos.
    - `processed_with_errors` solo es True junto con `counts.total_errors > 0`.
    """

    subject_id: str
    direction: Direction
    date_from: date
    date_to: date
    id: Optional[str] = None
    external_job_id: Optional[str] = None
    raw_status: str = RAW_STATUS_REQUESTED
    package_ids: Optional[List[str]] = None
    completed: bool = False
    packages_downloaded: bool = False
    packages_processed: bool = False
    processed_with_errors: bool = False
    stage_errors: StageErrors = field(default_factory=StageErrors)
    counts: ImportCounts = field(default_factory=ImportCounts)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    downloaded_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    created_by: str = SYSTEM_USER
    schema_version: int = CURRENT_SCHEMA_VERSION

    def __post_init__(self):
        """Validaciones después de la inicialización."""
        if not self.subject_id:
            raise ValueError("El RFC de la solicitud no puede estar vacío")
        if self.date_from > self.date_to:
            raise ValueError(
                f"Rango invalido: {self.date_from.isoformat()} > {self.date_to.isoformat()}"
            )
        self.direction = Direction(self.direction)

    @property
    def has_packages(self) -> bool:
        return bool(self.package_ids)

    @property
    def completed_without_packages(self) -> bool:
        """El SAT termino la solicitud y no hay CFDI en el rango."""
        return self.completed and not self.package_ids

    @property
    def was_verified(self) -> bool:
        return self.verified_at is not None

    def mark_processed(self, counts: ImportCounts, processed_at: datetime) -> None:
        """Cierra la importacion; con errores solo si hubo al menos uno."""
        self.counts = counts
        self.packages_processed = True
        self.processed_with_errors = counts.total_errors > 0
        self.stage_errors.processing_error = None
        self.processed_at = processed_at

    def mark_processing_failed(self, counts: ImportCounts, message: str) -> None:
        self.counts = counts
        self.packages_processed = False
        self.processed_with_errors = False
        self.stage_errors.processing_error = message


@dataclass(frozen=True)
class DateWindow:
    """Rango cerrado de fechas [date_from, date_to]."""

    date_from: date
    date_to: date

    def overlaps(self, other_from: date, other_to: date) -> bool:
        return windows_overlap(self.date_from, self.date_to, other_from, other_to)

    @property
    def days(self) -> int:
        return (self.date_to - self.date_from).days + 1
