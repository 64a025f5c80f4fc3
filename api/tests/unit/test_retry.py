"""
Tests para retry_async.
"""
import pytest

from satsync.shared.utils.retry import RetryConfig, retry_async


async def _no_sleep(_seconds: float) -> None:
    return None


class TestRetryAsync:

    @pytest.mark.asyncio
    async def test_retries_until_success(self) -> None:
        calls = 0

        async def flaky():
            nonlocal calls
            calls += 1
            if calls < 3:
                raise ConnectionError("intermitente")
            return "ok"

        config = RetryConfig(max_attempts=3, jitter=False, exceptions=(ConnectionError,))
        assert await retry_async(flaky, config, sleep=_no_sleep) == "ok"
        assert calls == 3

    @pytest.mark.asyncio
    async def test_reraises_last_error(self) -> None:
        """Verifica que al agotar los intentos se propaga la ultima excepcion."""
        calls = 0

        async def always_fails():
            nonlocal calls
            calls += 1
            raise ConnectionError(f"intento {calls}")

        config = RetryConfig(max_attempts=2, jitter=False, exceptions=(ConnectionError,))
        with pytest.raises(ConnectionError, match="intento 2"):
            await retry_async(always_fails, config, sleep=_no_sleep)

    @pytest.mark.asyncio
    async def test_other_exceptions_are_not_retried(self) -> None:
        calls = 0

        async def bad():
            nonlocal calls
            calls += 1
            raise ValueError("no reintentable")

        config = RetryConfig(max_attempts=5, exceptions=(ConnectionError,))
        with pytest.raises(ValueError):
            await retry_async(bad, config, sleep=_no_sleep)
        assert calls == 1

    def test_delay_is_capped(self) -> None:
        config = RetryConfig(base_delay=1.0, max_delay=3.0, backoff_factor=2.0, jitter=False)
        assert [config.get_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 3.0, 3.0]
