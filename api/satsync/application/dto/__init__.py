"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sat_sync_dto import (
    DateWindowDTO,
    PlanResponseDTO,
    DirectionSyncStatusDTO,
    SyncStatusResponseDTO,
    CreateRequestDTO,
    SyncRequestResponseDTO,
    SyncSubjectRequestDTO,
    DirectionSyncResultDTO,
    SyncSubjectResponseDTO,
    ResetSyncResponseDTO,
    AuditEntryDTO,
    InvoiceEditDTO,
    InvoiceResponseDTO,
    InvoiceEditResponseDTO,
    PackageInfoDTO,
)

__all__ = [
    "DateWindowDTO",
    "PlanResponseDTO",
    "DirectionSyncStatusDTO",
    "SyncStatusResponseDTO",
    "CreateRequestDTO",
    "SyncRequestResponseDTO",
    "SyncSubjectRequestDTO",
    "DirectionSyncResultDTO",
    "SyncSubjectResponseDTO",
    "ResetSyncResponseDTO",
    "AuditEntryDTO",
    "InvoiceEditDTO",
    "InvoiceResponseDTO",
    "InvoiceEditResponseDTO",
    "PackageInfoDTO",
]
