"""
Estado observable de una solicitud.

Funcion pura: el mismo registro siempre produce la misma etiqueta.
"""
from satsync.application.services.status_normalizer import normalize_status
from satsync.domain.entities.sync_request import SyncRequest
from satsync.shared.constants.sat_constants import (
    STATUS_LABEL_DISPLAY,
    NormalizedStatus,
    StatusLabel,
)


def aggregate_status(request: SyncRequest) -> StatusLabel:
    """
    Deriva una sola etiqueta con precedencia estricta:

    procesado > procesado con errores > error de descarga > descargado >
    sin facturas en el rango > error de etapa > en proceso > solicitado
    """
    if request.packages_processed and not request.processed_with_errors:
        return StatusLabel.PROCESSED
    if request.packages_processed:
        return StatusLabel.PROCESSED_WITH_ERRORS
    if request.stage_errors.download_error:
        return StatusLabel.DOWNLOAD_ERROR
    if request.packages_downloaded:
        return StatusLabel.DOWNLOADED
    if request.completed_without_packages:
        return StatusLabel.NO_INVOICES_IN_RANGE
    if request.stage_errors.has_any():
        return StatusLabel.ERROR
    if normalize_status(request.raw_status, warn=False) == NormalizedStatus.ERROR:
        return StatusLabel.ERROR
    if request.was_verified:
        return StatusLabel.IN_PROGRESS
    return StatusLabel.REQUESTED


def status_display(label: StatusLabel) -> str:
    """Texto en español para la UI."""
    return STATUS_LABEL_DISPLAY[label]


def is_ready_for_download(request: SyncRequest) -> bool:
    return request.completed and request.has_packages and not request.packages_downloaded
