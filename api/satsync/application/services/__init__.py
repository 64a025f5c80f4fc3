"""
Servicios de aplicacion.

Contiene la logica de negocio reutilizable que no pertenece
a un caso de uso especifico.
"""
from satsync.application.services.status_normalizer import normalize_status
from satsync.application.services.admission_guard import AdmissionGuard, is_terminal
from satsync.application.services.sync_planner import SyncPlanner, DirectionSyncStatus
from satsync.application.services.status_aggregator import (
    aggregate_status,
    status_display,
    is_ready_for_download,
)
from satsync.application.services.invoice_edit_service import InvoiceEditService, CommandResult

__all__ = [
    # Estados
    "normalize_status",
    "aggregate_status",
    "status_display",
    "is_ready_for_download",
    # Admision y planeacion
    "AdmissionGuard",
    "is_terminal",
    "SyncPlanner",
    "DirectionSyncStatus",
    # Edicion manual
    "InvoiceEditService",
    "CommandResult",
]
