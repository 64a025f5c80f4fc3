"""
Tests unitarios para keyed_lock.py.

Verifica que KeyedLockManager serializa por llave y respeta el timeout.
"""
from __future__ import annotations

import asyncio
from typing import List

import pytest

from satsync.shared.utils.keyed_lock import KeyedLockManager, LockTimeoutError


@pytest.fixture
def locks() -> KeyedLockManager:
    return KeyedLockManager()


class TestLockTimeoutError:

    def test_exception_message_contains_key_and_timeout(self) -> None:
        """Verifica que el mensaje contiene la llave y el timeout."""
        error = LockTimeoutError(("RFC123", "issued"), 30.0)

        assert "RFC123" in str(error)
        assert "30.0" in str(error)
        assert error.timeout == 30.0


class TestKeyedLockManager:

    @pytest.mark.asyncio
    async def test_lock_creates_lock_for_key(self, locks) -> None:
        async with locks.lock("k1"):
            assert locks.get_active_locks_count() == 1

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self, locks) -> None:
        """Verifica que dos tareas con la misma llave no se intercalan."""
        events: List[str] = []

        async def worker(name: str) -> None:
            async with locks.lock(("RFC123", "issued")):
                events.append(f"{name}-start")
                await asyncio.sleep(0.02)
                events.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )

    @pytest.mark.asyncio
    async def test_different_keys_run_in_parallel(self, locks) -> None:
        """Verifica que llaves distintas no se bloquean entre si."""
        inside = asyncio.Event()

        async def holder() -> None:
            async with locks.lock(("RFC123", "issued")):
                inside.set()
                await asyncio.sleep(0.1)

        task = asyncio.ensure_future(holder())
        await inside.wait()
        async with locks.lock(("RFC123", "received"), timeout=0.05):
            pass
        await task

    @pytest.mark.asyncio
    async def test_timeout_raises(self, locks) -> None:
        """Verifica que lanza LockTimeoutError si el lock no se libera a tiempo."""
        inside = asyncio.Event()

        async def holder() -> None:
            async with locks.lock("k"):
                inside.set()
                await asyncio.sleep(0.2)

        task = asyncio.ensure_future(holder())
        await inside.wait()
        with pytest.raises(LockTimeoutError):
            async with locks.lock("k", timeout=0.02):
                pass
        await task

    @pytest.mark.asyncio
    async def test_lock_released_after_exception(self, locks) -> None:
        with pytest.raises(ValueError):
            async with locks.lock("k"):
                raise ValueError("boom")

        async with locks.lock("k", timeout=0.05):
            pass

    @pytest.mark.asyncio
    async def test_remove_lock(self, locks) -> None:
        async with locks.lock("k"):
            assert locks.remove_lock("k") is False
        assert locks.remove_lock("k") is True
        assert locks.remove_lock("k") is False
