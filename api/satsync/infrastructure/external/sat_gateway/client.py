"""
Cliente HTTP del gateway de descarga masiva del SAT.

El gateway guarda la FIEL de cada RFC, firma los mensajes SOAP y expone tres
operaciones JSON:
- POST /validarFiel          -> SolicitaDescarga
- POST /verificarSolicitud   -> VerificaSolicitudDescarga
- POST /descargarPaquete     -> Descargar (paquete en base64)

Requisitos cubiertos:
- httpx async con timeout configurable
- rate-limit/backoff (429, 5xx) respetando Retry-After
- timeouts y errores de red como TransientNetworkError
- rechazo por cuota del SAT como PolicyRejected
"""

from __future__ import annotations

import asyncio
import base64
import binascii
from datetime import date
from typing import Any, Awaitable, Callable, Optional

import httpx
from loguru import logger

from satsync.application.interfaces.external_sync_client import CreateJobResult, VerifyJobResult
from satsync.shared.constants.sat_constants import (
    SAT_DATE_END_SUFFIX,
    SAT_DATE_START_SUFFIX,
    Direction,
)
from satsync.shared.exceptions.sync import PolicyRejected, SatGatewayError, TransientNetworkError

# CodEstatus del SAT que indican limite de solicitudes
# 5002: se agotaron las solicitudes de por vida para el rango
# 5005: solicitud duplicada (ya existe una vigente con los mismos parametros)
QUOTA_STATUS_CODES = frozenset({"5002", "5005"})


def format_sat_range(date_from: date, date_to: date) -> tuple[str, str]:
    """Convierte un rango cerrado de fechas al formato que espera el SAT."""
    return (
        f"{date_from.isoformat()}{SAT_DATE_START_SUFFIX}",
        f"{date_to.isoformat()}{SAT_DATE_END_SUFFIX}",
    )


class SatGatewayClient:
    """
    Implementacion HTTP de ExternalSyncClient.

    Importante:
    - No interpreta el vocabulario de estados: regresa `raw_status` tal cual.
    - Una instancia mantiene un `httpx.AsyncClient`; cerrar con `aclose()`.
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        *,
        timeout_s: float = 60.0,
        max_retries: int = 3,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._sleep = sleep or asyncio.sleep

    async def aclose(self) -> None:
        await self._client.aclose()

    async def create_job(
        self, subject_id: str, date_from: date, date_to: date, direction: Direction
    ) -> CreateJobResult:
        start, end = format_sat_range(date_from, date_to)
        data = await self._post_json(
            "/validarFiel",
            {
                "rfc": subject_id,
                "from": start,
                "to": end,
                "downloadType": Direction(direction).value,
            },
        )

        if not data.get("success"):
            message = data.get("message") or data.get("error") or "Error desconocido"
            code = str(data.get("code") or data.get("codEstatus") or "")
            if code in QUOTA_STATUS_CODES:
                raise PolicyRejected(
                    f"El SAT rechazo la solicitud: {message}",
                    details={"code": code, "rfc": subject_id},
                )
            raise SatGatewayError(
                f"Error al validar la FIEL: {message}",
                details={"code": code or None, "rfc": subject_id},
            )

        job_id = data.get("requestId")
        if not job_id:
            raise SatGatewayError("FIEL valida pero no se genero solicitud de descarga")

        package_ids = data.get("packageIds") or None
        logger.info(f"[sat-gateway] Solicitud {job_id} generada para {subject_id} ({start} - {end})")
        return CreateJobResult(
            job_id=str(job_id),
            raw_status=str(data.get("status") or "requested"),
            package_ids=tuple(package_ids) if package_ids else None,
            message=data.get("message"),
        )

    async def verify_job(self, subject_id: str, job_id: str) -> VerifyJobResult:
        data = await self._post_json("/verificarSolicitud", {"rfc": subject_id, "requestId": job_id})

        package_ids = data.get("packageIds")
        if not data.get("success"):
            return VerifyJobResult(
                raw_status=str(data.get("status") or "error"),
                package_ids=None,
                error=data.get("error") or data.get("message") or "Error desconocido",
            )
        return VerifyJobResult(
            raw_status=str(data.get("status") or ""),
            package_ids=tuple(package_ids) if package_ids is not None else None,
            error=data.get("error"),
        )

    async def fetch_package(self, subject_id: str, package_id: str) -> bytes:
        data = await self._post_json("/descargarPaquete", {"rfc": subject_id, "packageId": package_id})

        if not data.get("success"):
            message = data.get("message") or data.get("error") or "Error desconocido"
            raise SatGatewayError(f"Error al descargar el paquete {package_id}: {message}")

        try:
            content = base64.b64decode(data.get("content") or "", validate=True)
        except (binascii.Error, ValueError) as e:
            raise SatGatewayError(f"Paquete {package_id} con contenido base64 invalido") from e
        if not content:
            raise SatGatewayError(f"Paquete {package_id} vacio")
        return content

    async def _post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        POST con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial.
        - 5xx: exponencial con jitter proporcional.
        - 4xx (no 429): error inmediato (config/auth mal).
        - Timeout / error de red: TransientNetworkError sin reintentar aqui;
          la etapa queda reintentable.
        """
        for attempt in range(self._max_retries + 1):
            try:
                resp = await self._client.post(path, json=payload)
            except httpx.TimeoutException as e:
                logger.warning(f"[sat-gateway] Timeout en {path}: {e}")
                raise TransientNetworkError(f"Timeout al llamar {path}", details={"path": path}) from e
            except httpx.TransportError as e:
                logger.warning(f"[sat-gateway] Error de red en {path}: {e}")
                raise TransientNetworkError(
                    f"Error de red al llamar {path}: {e}", details={"path": path}
                ) from e

            if 200 <= resp.status_code < 300:
                try:
                    return resp.json()
                except ValueError as e:
                    raise SatGatewayError(f"Respuesta no JSON de {path}") from e

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise TransientNetworkError(
                        f"Gateway SAT error {resp.status_code} tras {attempt} reintentos",
                        details={"path": path, "status_code": resp.status_code},
                    )

                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        sleep_s = float(retry_after)
                    except ValueError:
                        sleep_s = self._min_backoff_s
                else:
                    base = min(self._max_backoff_s, self._min_backoff_s * (2 ** attempt))
                    sleep_s = base + (0.15 * base)

                logger.warning(
                    f"[sat-gateway] {path} respondio {resp.status_code}; reintento {attempt + 1} en {sleep_s:.2f}s"
                )
                await self._sleep(sleep_s)
                continue

            # Errores no recuperables
            raise SatGatewayError(
                f"Gateway SAT fallo {resp.status_code}: {resp.text}",
                details={"path": path, "status_code": resp.status_code},
            )

        raise TransientNetworkError(f"Gateway SAT sin respuesta valida en {path}")
