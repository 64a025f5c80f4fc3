"""
Entidades del dominio.
"""
from satsync.domain.entities.sync_request import SyncRequest, StageErrors, ImportCounts, DateWindow
from satsync.domain.entities.invoice import ParsedInvoice
from satsync.domain.entities.package import Package
from satsync.domain.entities.watermark import SyncWatermark
from satsync.domain.entities.audit_entry import AuditEntry

__all__ = [
    "SyncRequest",
    "StageErrors",
    "ImportCounts",
    "DateWindow",
    "ParsedInvoice",
    "Package",
    "SyncWatermark",
    "AuditEntry",
]
