"""
Rate limiter de tipo token bucket para las llamadas al SAT.

Reemplaza los `sleep` fijos entre llamadas: los loops de negocio no saben
nada del ritmo, solo piden un token antes de cada llamada externa.
Reloj y sleep son inyectables para tests deterministas.
"""
import asyncio
import time
from typing import Awaitable, Callable, Optional

from loguru import logger


class TokenBucketRateLimiter:
    """
    Token bucket async.

    Args:
        rate: tokens repuestos por segundo
        burst: capacidad maxima del bucket
        clock: funcion monotona que regresa segundos
        sleep: corrutina de espera
    """

    def __init__(
        self,
        rate: float,
        burst: int = 1,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        if rate <= 0:
            raise ValueError("rate debe ser mayor a 0")
        if burst < 1:
            raise ValueError("burst debe ser al menos 1")
        self.rate = rate
        self.burst = burst
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._tokens = float(burst)
        self._last = self._clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(now - self._last, 0.0)
        self._tokens = min(self.burst, self._tokens + elapsed * self.rate)
        self._last = now

    @property
    def available_tokens(self) -> float:
        self._refill()
        return self._tokens

    async def acquire(self) -> float:
        """
        Espera hasta obtener un token.

        Returns:
            Segundos esperados en total.
        """
        waited = 0.0
        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= 1:
                    self._tokens -= 1
                    if waited:
                        logger.debug(f"[rate-limit] token obtenido tras {waited:.2f}s")
                    return waited
                delay = (1 - self._tokens) / self.rate
                waited += delay
                await self._sleep(delay)
