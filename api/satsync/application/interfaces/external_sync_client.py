"""
Interfaz del cliente del servicio de descarga masiva del SAT.

Este contrato existe para:
- Mantener Clean Architecture: las etapas no dependen de httpx ni del gateway.
- Facilitar tests unitarios con un cliente falso.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol, Tuple

from satsync.shared.constants.sat_constants import Direction


@dataclass(frozen=True)
class CreateJobResult:
    """Respuesta de SolicitaDescarga."""

    job_id: str
    raw_status: str
    package_ids: Optional[Tuple[str, ...]] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class VerifyJobResult:
    """
    Respuesta de VerificaSolicitudDescarga.

    `raw_status` conserva el vocabulario del proveedor; se normaliza en la etapa.
    """

    raw_status: str
    package_ids: Optional[Tuple[str, ...]] = None
    error: Optional[str] = None


class ExternalSyncClient(Protocol):
    """
    Cliente opaco del SAT.

    Implementaciones:
    - SatGatewayClient (HTTP contra el gateway que firma con la FIEL).
    - RateLimitedSyncClient (decorador con token bucket).
    - Fakes para tests.
    """

    async def create_job(
        self, subject_id: str, date_from: date, date_to: date, direction: Direction
    ) -> CreateJobResult:
        """
        Solicita una descarga.

        Raises:
            PolicyRejected: si el SAT rechaza por limite de solicitudes.
            TransientNetworkError: timeout o error de red.
        """

    async def verify_job(self, subject_id: str, job_id: str) -> VerifyJobResult:
        """
        Raises:
            TransientNetworkError: timeout o error de red.
        """

    async def fetch_package(self, subject_id: str, package_id: str) -> bytes:
        """
        Descarga un paquete ZIP.

        Raises:
            TransientNetworkError: timeout o error de red.
        """
