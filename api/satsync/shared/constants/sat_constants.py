"""
Constantes del dominio de descarga masiva del SAT.
Define tipos de descarga, vocabulario de estados, etiquetas visibles y tipos de log.
"""
from enum import Enum
from typing import Dict, FrozenSet


class Direction(str, Enum):
    """Tipo de descarga: CFDI emitidos o recibidos por el RFC."""
    ISSUED = "issued"
    RECEIVED = "received"


class NormalizedStatus(str, Enum):
    """Estado normalizado de una solicitud en el SAT."""
    PENDING = "pending"
    READY = "ready"
    ERROR = "error"


class StatusLabel(str, Enum):
    """Etiqueta unica observable de una solicitud (ver status_aggregator)."""
    PROCESSED = "processed"
    PROCESSED_WITH_ERRORS = "processed_with_errors"
    DOWNLOAD_ERROR = "download_error"
    DOWNLOADED = "downloaded"
    NO_INVOICES_IN_RANGE = "no_invoices_in_range"
    ERROR = "error"
    IN_PROGRESS = "in_progress"
    REQUESTED = "requested"


STATUS_LABEL_DISPLAY: Dict[StatusLabel, str] = {
    StatusLabel.PROCESSED: "Procesado",
    StatusLabel.PROCESSED_WITH_ERRORS: "Procesado con errores",
    StatusLabel.DOWNLOAD_ERROR: "Error de descarga",
    StatusLabel.DOWNLOADED: "Descargado",
    StatusLabel.NO_INVOICES_IN_RANGE: "Sin facturas en el rango",
    StatusLabel.ERROR: "Error",
    StatusLabel.IN_PROGRESS: "En proceso",
    StatusLabel.REQUESTED: "Solicitado",
}


# Vocabulario de EstadoSolicitud del SAT:
# 1 Aceptada, 2 EnProceso, 3 Terminada, 4 Error, 5 Rechazada, 6 Vencida.
# Se compara en minusculas y sin espacios.
READY_STATUSES: FrozenSet[str] = frozenset({"3", "finished", "terminada"})
PENDING_STATUSES: FrozenSet[str] = frozenset({
    "1", "2", "accepted", "aceptada", "in_progress", "inprogress", "enproceso", "requested",
})
ERROR_STATUSES: FrozenSet[str] = frozenset({
    "4", "5", "6", "error", "rejected", "rechazada", "expired", "vencida", "failed",
})

RAW_STATUS_REQUESTED = "requested"


class Stage(str, Enum):
    """Etapa del pipeline que genera una entrada de auditoria."""
    REQUEST = "request"
    VERIFICATION = "verification"
    DOWNLOAD = "download"
    PROCESSING = "processing"
    SYNC = "sync"
    EDIT = "edit"


class LogType(str, Enum):
    """Tipos de evento registrados en la bitacora de sincronizacion."""
    REQUEST_CREATED = "request_created"
    REQUEST_CREATION_ERROR = "request_creation_error"
    REQUEST_BLOCKED = "request_blocked"
    VERIFICATION_STARTED = "verification_started"
    VERIFICATION_SUCCESS = "verification_success"
    VERIFICATION_PENDING = "verification_pending"
    VERIFICATION_ERROR = "verification_error"
    VERIFICATION_REJECTED = "verification_rejected"
    DOWNLOAD_STARTED = "download_started"
    DOWNLOAD_SUCCESS = "download_success"
    DOWNLOAD_ERROR = "download_error"
    PROCESSING_STARTED = "processing_started"
    PROCESSING_SUCCESS = "processing_success"
    PROCESSING_PARTIAL = "processing_partial"
    PROCESSING_ERROR = "processing_error"
    AUTO_SYNC_STARTED = "auto_sync_started"
    AUTO_SYNC_COMPLETED = "auto_sync_completed"
    AUTO_SYNC_SKIPPED = "auto_sync_skipped"
    INVOICE_EDITED = "invoice_edited"
    INVOICE_EDIT_ROLLED_BACK = "invoice_edit_rolled_back"
    INFO = "info"


class LogLevel(str, Enum):
    """Nivel de severidad de una entrada de auditoria."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# Politica del SAT
DEFAULT_MAX_ACTIVE_REQUESTS = 2
CURRENT_SCHEMA_VERSION = 1

# Formato de fechas que espera el servicio de descarga masiva
SAT_DATE_START_SUFFIX = " 00:00:00"
SAT_DATE_END_SUFFIX = " 23:59:59"

SYSTEM_USER = "system"
