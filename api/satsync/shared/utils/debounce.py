"""
Debounce de flanco final (trailing edge), single-flight y cancelable.

Varios disparos para la misma llave dentro de la ventana se combinan en una
sola ejecucion, que ocurre `delay` segundos despues del ultimo disparo.
Todos los llamadores combinados reciben el mismo resultado.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

from loguru import logger


@dataclass
class _Pending:
    future: asyncio.Future
    action: Callable[[], Awaitable[Any]]
    timer: Optional[asyncio.TimerHandle] = None
    generation: int = 0
    callers: int = field(default=0)


class TrailingDebouncer:
    """
    Debouncer por llave.

    Uso:
        debouncer = TrailingDebouncer(delay=2.0)
        result = await debouncer.trigger(rfc, lambda: sync(rfc))

    - Mientras la accion de una llave corre, un nuevo disparo abre una nueva
      ventana (no hay dos ejecuciones simultaneas por llave).
    - `cancel(key)` cancela la ejecucion pendiente; los llamadores reciben
      `asyncio.CancelledError`.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self._pending: Dict[Hashable, _Pending] = {}
        self._running: Dict[Hashable, asyncio.Task] = {}

    async def trigger(self, key: Hashable, action: Callable[[], Awaitable[Any]]) -> Any:
        """Programa `action` para `key` y espera su resultado compartido."""
        loop = asyncio.get_running_loop()
        pending = self._pending.get(key)
        if pending is None:
            pending = _Pending(future=loop.create_future(), action=action)
            self._pending[key] = pending
        else:
            pending.action = action
            if pending.timer is not None:
                pending.timer.cancel()
        pending.callers += 1
        pending.generation += 1
        pending.timer = loop.call_later(self.delay, self._fire, key, pending.generation)
        return await asyncio.shield(pending.future)

    def _fire(self, key: Hashable, generation: int) -> None:
        pending = self._pending.get(key)
        if pending is None or pending.generation != generation:
            return
        running = self._running.get(key)
        if running is not None and not running.done():
            # Single-flight: esperar a que termine la ejecucion actual
            pending.timer = asyncio.get_running_loop().call_later(
                self.delay, self._fire, key, generation
            )
            return
        del self._pending[key]
        logger.debug(f"[debounce] ejecutando {key} ({pending.callers} disparos combinados)")
        self._running[key] = asyncio.get_running_loop().create_task(self._run(key, pending))

    async def _run(self, key: Hashable, pending: _Pending) -> None:
        try:
            result = await pending.action()
        except asyncio.CancelledError:
            if not pending.future.done():
                pending.future.cancel()
            raise
        except Exception as e:
            if not pending.future.done():
                pending.future.set_exception(e)
        else:
            if not pending.future.done():
                pending.future.set_result(result)
        finally:
            if self._running.get(key) is asyncio.current_task():
                del self._running[key]

    def cancel(self, key: Hashable) -> bool:
        """
        Cancela la ejecucion pendiente de `key`.

        Returns:
            True si habia algo pendiente.
        """
        pending = self._pending.pop(key, None)
        if pending is None:
            return False
        if pending.timer is not None:
            pending.timer.cancel()
        if not pending.future.done():
            pending.future.cancel()
        logger.info(f"[debounce] ejecucion pendiente cancelada para {key}")
        return True

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    async def close(self) -> None:
        """Cancela todo lo pendiente y espera las ejecuciones en curso."""
        for key in list(self._pending):
            self.cancel(key)
        running = [task for task in self._running.values() if not task.done()]
        if running:
            await asyncio.gather(*running, return_exceptions=True)
