"""
Entidad de dominio: AuditEntry (bitacora de sincronizacion).
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from satsync.shared.constants.sat_constants import SYSTEM_USER, LogLevel, LogType, Stage


@dataclass
class AuditEntry:
    """
    Entrada append-only de la bitacora.
    Se registra una por cada transicion de etapa o error.
    """

    subject_id: str
    stage: Stage
    type: LogType
    level: LogLevel
    message: str
    job_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    created_by: str = SYSTEM_USER
