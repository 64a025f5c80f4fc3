"""
AuditLogger - Bitacora estructurada de sincronizacion con el SAT.

Cada entrada se escribe en dos lugares:
- Tabla `sat_audit_log` (consultable desde la API y la UI)
- Archivo diario `logs/sat_audit/sat_audit_<fecha>.log` via loguru
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from satsync.domain.entities.audit_entry import AuditEntry
from satsync.domain.repositories.audit_log_repository import IAuditLogRepository
from satsync.shared.constants.sat_constants import SYSTEM_USER, LogLevel, LogType, Stage

_LOGURU_LEVELS = {
    LogLevel.INFO: "INFO",
    LogLevel.SUCCESS: "SUCCESS",
    LogLevel.WARNING: "WARNING",
    LogLevel.ERROR: "ERROR",
}


class AuditLogger:
    """
    Gestor de la bitacora de sincronizacion.

    Uso:
        # Al inicio de la app
        AuditLogger.initialize(settings.AUDIT_LOG_DIR)

        # En una etapa
        audit = AuditLogger(AuditLogRepository(db))
        await audit.append(rfc, Stage.DOWNLOAD, LogType.DOWNLOAD_ERROR, LogLevel.ERROR,
                           "Error al descargar paquete", job_id=request.id)
    """

    FILE_TIMESTAMP_FORMAT = "%Y-%m-%d"
    _initialized: bool = False
    _sink_id: Optional[int] = None

    @classmethod
    def initialize(cls, log_dir: str = "logs/sat_audit") -> None:
        """
        Configura el sink de loguru para la bitacora.
        Debe llamarse al inicio de la aplicacion.
        """
        if cls._initialized:
            return

        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime(cls.FILE_TIMESTAMP_FORMAT)

        cls._sink_id = logger.add(
            str(directory / f"sat_audit_{today}.log"),
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[subject_id]} | {message}",
            filter=lambda record: record["extra"].get("context") == "sat_audit",
            rotation="1 day",
            retention="30 days",
            level="DEBUG",
        )
        cls._initialized = True
        logger.info("AuditLogger inicializado")

    @classmethod
    def shutdown(cls) -> None:
        """Retira el sink (tests y cierre de la app)."""
        if cls._sink_id is not None:
            logger.remove(cls._sink_id)
        cls._sink_id = None
        cls._initialized = False

    def __init__(self, repository: IAuditLogRepository):
        self.repository = repository

    async def append(
        self,
        subject_id: str,
        stage: Stage,
        type: LogType,
        level: LogLevel,
        message: str,
        job_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        created_by: str = SYSTEM_USER,
    ) -> AuditEntry:
        """
        Registra una entrada en la bitacora.

        Args:
            subject_id: RFC
            stage: Etapa del pipeline
            type: Tipo de evento
            level: Severidad
            message: Mensaje legible (español)
            job_id: ID de la solicitud, si aplica
            details: Datos adicionales serializables a JSON

        Returns:
            AuditEntry: Entrada persistida
        """
        entry = AuditEntry(
            subject_id=subject_id,
            stage=stage,
            type=type,
            level=level,
            message=message,
            job_id=job_id,
            details=details or {},
            created_by=created_by,
        )
        saved = await self.repository.append(entry)
        self.emit(saved)
        return saved

    @staticmethod
    def emit(entry: AuditEntry) -> None:
        """
        Escribe la entrada solo en el archivo de bitacora.

        Se usa directo para rechazos cuya transaccion se revierte (la tabla
        no conservaria la entrada).
        """
        suffix = f" {json.dumps(entry.details, default=str, ensure_ascii=False)}" if entry.details else ""
        job = f"[{entry.job_id[:8]}] " if entry.job_id else ""
        logger.bind(context="sat_audit", subject_id=entry.subject_id).log(
            _LOGURU_LEVELS[LogLevel(entry.level)],
            f"{job}{LogType(entry.type).value}: {entry.message}{suffix}",
        )


