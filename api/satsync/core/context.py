"""
Contexto de sincronizacion con el SAT.

Se construye una sola vez al arrancar (app o script) y se pasa
explicitamente a cada caso de uso: cliente del gateway con rate limit,
parser, lector de paquetes, debouncer y locks de admision.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from loguru import logger

from satsync.application.interfaces.document_parser import DocumentParser
from satsync.application.interfaces.external_sync_client import ExternalSyncClient
from satsync.core.config import Settings
from satsync.infrastructure.external.sat_gateway import RateLimitedSyncClient, SatGatewayClient
from satsync.infrastructure.parsing import ArchiveReader, CfdiParser
from satsync.shared.constants.sat_constants import DEFAULT_MAX_ACTIVE_REQUESTS
from satsync.shared.utils.debounce import TrailingDebouncer
from satsync.shared.utils.keyed_lock import KeyedLockManager
from satsync.shared.utils.rate_limiter import TokenBucketRateLimiter


@dataclass
class SatSyncContext:
    """Dependencias de larga vida del pipeline."""

    client: ExternalSyncClient
    parser: DocumentParser
    archive_reader: ArchiveReader
    debouncer: TrailingDebouncer
    locks: KeyedLockManager = field(default_factory=KeyedLockManager)
    max_active_requests: int = DEFAULT_MAX_ACTIVE_REQUESTS
    first_sync_month_day: str = "01-01"
    today: Callable[[], date] = date.today

    async def aclose(self) -> None:
        """Libera el cliente HTTP y cancela ejecuciones pendientes."""
        await self.debouncer.close()
        close = getattr(self.client, "aclose", None)
        if close is not None:
            await close()


def build_context(settings: Settings) -> SatSyncContext:
    """
    Construye el contexto a partir de la configuracion.

    Args:
        settings: Configuracion de la aplicacion

    Returns:
        SatSyncContext: Contexto listo para usarse
    """
    gateway = SatGatewayClient(
        settings.SAT_GATEWAY_URL,
        settings.SAT_GATEWAY_TOKEN,
        timeout_s=settings.SAT_TIMEOUT_SECONDS,
        max_retries=settings.SAT_MAX_RETRIES,
    )
    limiter = TokenBucketRateLimiter(rate=settings.SAT_RATE_PER_SECOND, burst=settings.SAT_RATE_BURST)
    logger.info(
        f"[sat-sync] Gateway {settings.SAT_GATEWAY_URL} (rate {settings.SAT_RATE_PER_SECOND}/s, "
        f"burst {settings.SAT_RATE_BURST}, max activas {settings.SAT_MAX_ACTIVE_REQUESTS})"
    )
    return SatSyncContext(
        client=RateLimitedSyncClient(gateway, limiter),
        parser=CfdiParser(),
        archive_reader=ArchiveReader(),
        debouncer=TrailingDebouncer(delay=settings.SAT_SYNC_DEBOUNCE_SECONDS),
        max_active_requests=settings.SAT_MAX_ACTIVE_REQUESTS,
        first_sync_month_day=settings.SAT_FIRST_SYNC_MONTH_DAY,
    )
