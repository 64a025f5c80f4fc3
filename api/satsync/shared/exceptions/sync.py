"""
Excepciones del pipeline de sincronizacion con el SAT.

Jerarquia:
- PolicyViolation: la cuota local de solicitudes activas se rechaza antes de crear nada.
- PolicyRejected: el SAT (via gateway) rechazo la solicitud por limite de solicitudes.
- TransientNetworkError: timeout o error de red; la etapa queda reintentable.
- ParseError: un documento individual no se pudo interpretar como CFDI.
- FatalArchiveError: un paquete ZIP no se puede abrir; aborta solo ese paquete.
"""
from typing import Any, Dict, Optional

from satsync.shared.exceptions.base import AppException


class PolicyViolation(AppException):
    """Se alcanzo el limite de solicitudes activas para (RFC, tipo de descarga)."""

    def __init__(
        self,
        subject_id: str,
        direction: str,
        active_count: int,
        limit: int,
        reason: str = "quota_exceeded",
        message: Optional[str] = None,
    ):
        if message is None:
            message = (
                f"Ya hay {active_count} solicitudes activas de tipo '{direction}' para {subject_id}. "
                f"El SAT solo permite {limit} solicitudes simultaneas por tipo. "
                "Espera a que se completen o procesen las solicitudes pendientes."
            )
        super().__init__(
            message=message,
            status_code=409,
            error_code="SAT_POLICY_VIOLATION",
            details={
                "subject_id": subject_id,
                "direction": direction,
                "active_count": active_count,
                "limit": limit,
                "reason": reason,
            },
        )
        self.reason = reason
        self.active_count = active_count


class PolicyRejected(AppException):
    """El servicio del SAT rechazo la solicitud por su propia cuota."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=502,
            error_code="SAT_POLICY_REJECTED",
            details=details,
        )


class TransientNetworkError(AppException):
    """Error transitorio de comunicacion con el gateway del SAT."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=503,
            error_code="SAT_TRANSIENT_ERROR",
            details=details,
        )


class SatGatewayError(AppException):
    """Respuesta invalida o error no recuperable del gateway."""

    def __init__(self, message: str, status_code: int = 502, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code="SAT_GATEWAY_ERROR",
            details=details,
        )


class ParseError(AppException):
    """
    Un documento XML no es un CFDI valido.

    Solo cuenta para totalErrors de la importacion; nunca aborta el paquete.
    """

    def __init__(self, message: str, document_name: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="CFDI_PARSE_ERROR",
            details={"document": document_name} if document_name else None,
        )
        self.document_name = document_name


class FatalArchiveError(AppException):
    """El paquete ZIP esta corrupto o no se puede leer."""

    def __init__(self, package_id: str, message: str):
        super().__init__(
            message=f"Paquete {package_id} ilegible: {message}",
            status_code=422,
            error_code="SAT_ARCHIVE_ERROR",
            details={"package_id": package_id},
        )
        self.package_id = package_id
