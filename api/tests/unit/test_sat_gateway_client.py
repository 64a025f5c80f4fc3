"""
Tests para SatGatewayClient con httpx.MockTransport (sin red).
"""
import base64
import json
from datetime import date
from typing import List

import httpx
import pytest

from satsync.infrastructure.external.sat_gateway import SatGatewayClient, format_sat_range
from satsync.shared.constants.sat_constants import Direction
from satsync.shared.exceptions.sync import PolicyRejected, SatGatewayError, TransientNetworkError


class Recorder:
    """Transport que responde con una lista de respuestas en orden."""

    def __init__(self, responses) -> None:
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _client(recorder: Recorder, sleeps=None, **kwargs) -> SatGatewayClient:
    async def fake_sleep(seconds: float) -> None:
        if sleeps is not None:
            sleeps.append(seconds)

    return SatGatewayClient(
        "http://gateway.test",
        "secret",
        transport=httpx.MockTransport(recorder),
        sleep=fake_sleep,
        **kwargs,
    )


def test_format_sat_range_uses_full_days():
    assert format_sat_range(date(2025, 1, 1), date(2025, 6, 9)) == (
        "2025-01-01 00:00:00",
        "2025-06-09 23:59:59",
    )


class TestCreateJob:

    @pytest.mark.asyncio
    async def test_sends_expected_payload(self) -> None:
        """Verifica el cuerpo y headers de /validarFiel."""
        recorder = Recorder([
            httpx.Response(200, json={"success": True, "requestId": "abc-123", "status": "1"}),
        ])
        client = _client(recorder)

        result = await client.create_job("RFC123", date(2025, 1, 1), date(2025, 6, 9), Direction.ISSUED)
        await client.aclose()

        request = recorder.requests[0]
        assert request.url.path == "/validarFiel"
        assert request.headers["Authorization"] == "Bearer secret"
        assert json.loads(request.content) == {
            "rfc": "RFC123",
            "from": "2025-01-01 00:00:00",
            "to": "2025-06-09 23:59:59",
            "downloadType": "issued",
        }
        assert result.job_id == "abc-123"
        assert result.raw_status == "1"
        assert result.package_ids is None

    @pytest.mark.asyncio
    async def test_quota_code_raises_policy_rejected(self) -> None:
        recorder = Recorder([
            httpx.Response(200, json={"success": False, "message": "Se agoto", "code": 5002}),
        ])
        client = _client(recorder)

        with pytest.raises(PolicyRejected) as exc_info:
            await client.create_job("RFC123", date(2025, 1, 1), date(2025, 1, 31), Direction.RECEIVED)
        await client.aclose()

        assert exc_info.value.details["code"] == "5002"

    @pytest.mark.asyncio
    async def test_other_failure_is_gateway_error(self) -> None:
        recorder = Recorder([
            httpx.Response(200, json={"success": False, "message": "FIEL vencida", "code": 300}),
        ])
        client = _client(recorder)

        with pytest.raises(SatGatewayError, match="FIEL vencida"):
            await client.create_job("RFC123", date(2025, 1, 1), date(2025, 1, 31), Direction.RECEIVED)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_success_without_request_id(self) -> None:
        recorder = Recorder([httpx.Response(200, json={"success": True})])
        client = _client(recorder)

        with pytest.raises(SatGatewayError):
            await client.create_job("RFC123", date(2025, 1, 1), date(2025, 1, 31), Direction.RECEIVED)
        await client.aclose()


class TestBackoff:

    @pytest.mark.asyncio
    async def test_retries_429_honoring_retry_after(self) -> None:
        """Verifica que 429 se reintenta usando Retry-After."""
        sleeps = []
        recorder = Recorder([
            httpx.Response(429, headers={"Retry-After": "7"}),
            httpx.Response(200, json={"success": True, "status": "3", "packageIds": ["P1"]}),
        ])
        client = _client(recorder, sleeps)

        result = await client.verify_job("RFC123", "job-1")
        await client.aclose()

        assert sleeps == [7.0]
        assert result.raw_status == "3"
        assert result.package_ids == ("P1",)

    @pytest.mark.asyncio
    async def test_5xx_exhausts_retries(self) -> None:
        """Verifica que 5xx persistente termina en TransientNetworkError."""
        sleeps = []
        recorder = Recorder([httpx.Response(503) for _ in range(3)])
        client = _client(recorder, sleeps, max_retries=2)

        with pytest.raises(TransientNetworkError):
            await client.verify_job("RFC123", "job-1")
        await client.aclose()

        assert len(recorder.requests) == 3
        assert len(sleeps) == 2
        assert sleeps[0] < sleeps[1]

    @pytest.mark.asyncio
    async def test_4xx_is_not_retried(self) -> None:
        recorder = Recorder([httpx.Response(401, text="unauthorized")])
        client = _client(recorder)

        with pytest.raises(SatGatewayError) as exc_info:
            await client.verify_job("RFC123", "job-1")
        await client.aclose()

        assert exc_info.value.details["status_code"] == 401
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self) -> None:
        recorder = Recorder([httpx.ReadTimeout("lento")])
        client = _client(recorder)

        with pytest.raises(TransientNetworkError):
            await client.verify_job("RFC123", "job-1")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self) -> None:
        recorder = Recorder([httpx.ConnectError("sin red")])
        client = _client(recorder)

        with pytest.raises(TransientNetworkError):
            await client.fetch_package("RFC123", "P1")
        await client.aclose()


class TestVerifyAndFetch:

    @pytest.mark.asyncio
    async def test_verify_failure_keeps_provider_status(self) -> None:
        """Verifica que success=false se reporta como resultado, no como excepcion."""
        recorder = Recorder([
            httpx.Response(200, json={"success": False, "status": "5", "error": "Solicitud rechazada"}),
        ])
        client = _client(recorder)

        result = await client.verify_job("RFC123", "job-1")
        await client.aclose()

        assert result.raw_status == "5"
        assert result.error == "Solicitud rechazada"
        assert result.package_ids is None

    @pytest.mark.asyncio
    async def test_fetch_decodes_base64(self) -> None:
        payload = b"PK\x03\x04contenido"
        recorder = Recorder([
            httpx.Response(200, json={"success": True, "content": base64.b64encode(payload).decode()}),
        ])
        client = _client(recorder)

        content = await client.fetch_package("RFC123", "P1")
        await client.aclose()

        assert content == payload
        assert json.loads(recorder.requests[0].content) == {"rfc": "RFC123", "packageId": "P1"}

    @pytest.mark.asyncio
    async def test_fetch_invalid_base64(self) -> None:
        recorder = Recorder([httpx.Response(200, json={"success": True, "content": "%%%"})])
        client = _client(recorder)

        with pytest.raises(SatGatewayError):
            await client.fetch_package("RFC123", "P1")
        await client.aclose()
