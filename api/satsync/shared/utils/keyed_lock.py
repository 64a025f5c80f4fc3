"""
Locks async por llave.

Serializa la decision de admision (conteo de solicitudes activas + creacion)
por (RFC, tipo de descarga) dentro del proceso. Entre procesos se complementa
con `pg_advisory_xact_lock` en el repositorio.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable

from loguru import logger


# Timeout por defecto para adquirir un lock (en segundos)
DEFAULT_LOCK_TIMEOUT = 30.0


class LockTimeoutError(Exception):
    """Excepcion lanzada cuando no se puede adquirir el lock dentro del timeout."""

    def __init__(self, key: Hashable, timeout: float):
        self.key = key
        self.timeout = timeout
        super().__init__(f"Timeout ({timeout}s) adquiriendo lock para: {key}")


class KeyedLockManager:
    """
    Gestor de `asyncio.Lock` por llave.

    A diferencia de un lock global, dos RFC distintos no se bloquean entre si.
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}

    def _get_or_create_lock(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def lock(self, key: Hashable, timeout: float = DEFAULT_LOCK_TIMEOUT) -> AsyncIterator[None]:
        """
        Context manager async para adquirir el lock de una llave.

        Raises:
            LockTimeoutError: Si no se adquiere dentro de `timeout`.
        """
        lock = self._get_or_create_lock(key)
        if timeout and timeout > 0:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Timeout adquiriendo lock para {key} (timeout: {timeout}s)")
                raise LockTimeoutError(key, timeout)
        else:
            await lock.acquire()
        try:
            yield
        finally:
            lock.release()

    def remove_lock(self, key: Hashable) -> bool:
        """Elimina el lock de una llave si no esta en uso."""
        lock = self._locks.get(key)
        if lock is None or lock.locked():
            return False
        del self._locks[key]
        return True

    def get_active_locks_count(self) -> int:
        """Retorna el numero de locks registrados (para monitoreo)."""
        return len(self._locks)
