"""
Reintentos con backoff exponencial para operaciones async.
"""
import asyncio
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class RetryConfig:
    """
    Configuracion de reintentos.

    - max_attempts: intentos totales (incluye el primero)
    - base_delay / max_delay: segundos
    - backoff_factor: multiplicador por intento
    - jitter: agrega +/-25% aleatorio al delay
    - exceptions: tipos que disparan un reintento
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 10.0
    backoff_factor: float = 2.0
    jitter: bool = True
    exceptions: Tuple[Type[BaseException], ...] = field(default_factory=lambda: (Exception,))

    def get_delay(self, attempt: int) -> float:
        """Delay para el intento `attempt` (1-based)."""
        delay = min(self.base_delay * (self.backoff_factor ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.75, 1.25)
        return delay


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig,
    *,
    label: str = "operacion",
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    Ejecuta `operation` reintentando ante las excepciones configuradas.

    Raises:
        La ultima excepcion si se agotan los intentos.
    """
    sleep = sleep or asyncio.sleep
    attempt = 1
    while True:
        try:
            return await operation()
        except config.exceptions as e:
            if attempt >= config.max_attempts:
                logger.error(f"[retry] {label} fallo tras {attempt} intentos: {e}")
                raise
            delay = config.get_delay(attempt)
            logger.warning(f"[retry] {label} intento {attempt} fallo ({e}); reintentando en {delay:.2f}s")
            await sleep(delay)
            attempt += 1
