"""
Tests para la creacion de solicitudes y el control de cuota.
"""
from datetime import date

import pytest

from satsync.application.interfaces.external_sync_client import CreateJobResult
from satsync.application.use_cases.sat_sync_use_cases import SatSyncUseCases
from satsync.shared.constants.sat_constants import Direction, LogType, StatusLabel
from satsync.shared.exceptions.domain import ValidationException
from satsync.shared.exceptions.sync import PolicyRejected, PolicyViolation, TransientNetworkError

RFC = "RFC123"


@pytest.fixture
def use_cases(db_session, sat_context) -> SatSyncUseCases:
    return SatSyncUseCases(db_session, sat_context)


class TestCreateRequest:

    @pytest.mark.asyncio
    async def test_creates_request_with_external_job(self, use_cases, fake_client) -> None:
        """Verifica que se persiste la solicitud con el IdSolicitud del SAT."""
        request = await use_cases.create_request(RFC, Direction.ISSUED, date(2025, 1, 1), date(2025, 6, 9))

        assert request.external_job_id == "job-1"
        assert request.status == StatusLabel.REQUESTED
        assert request.package_ids is None
        assert request.completed is False
        assert fake_client.create_calls == [(RFC, date(2025, 1, 1), date(2025, 6, 9), Direction.ISSUED)]

        logs = await use_cases.list_request_logs(RFC, request.id)
        assert [log.type for log in logs] == [LogType.REQUEST_CREATED]

    @pytest.mark.asyncio
    async def test_back_to_back_same_window_is_blocked(self, use_cases, fake_client) -> None:
        """Verifica que un segundo create inmediato para el mismo rango falla con PolicyViolation."""
        await use_cases.create_request(RFC, Direction.ISSUED, date(2025, 1, 1), date(2025, 6, 9))

        with pytest.raises(PolicyViolation) as exc_info:
            await use_cases.create_request(RFC, Direction.ISSUED, date(2025, 1, 1), date(2025, 6, 9))

        assert exc_info.value.reason == "overlapping_window"
        assert exc_info.value.status_code == 409
        assert len(fake_client.create_calls) == 1
        assert len(await use_cases.list_requests(RFC)) == 1

    @pytest.mark.asyncio
    async def test_quota_of_two_active_requests(self, use_cases, fake_client) -> None:
        """Verifica que la tercera solicitud activa se rechaza sin llamar al SAT."""
        await use_cases.create_request(RFC, Direction.RECEIVED, date(2025, 1, 1), date(2025, 1, 31))
        await use_cases.create_request(RFC, Direction.RECEIVED, date(2025, 2, 1), date(2025, 2, 28))

        with pytest.raises(PolicyViolation) as exc_info:
            await use_cases.create_request(RFC, Direction.RECEIVED, date(2025, 3, 1), date(2025, 3, 31))

        assert exc_info.value.reason == "quota_exceeded"
        assert exc_info.value.details["active_count"] == 2
        assert exc_info.value.details["limit"] == 2
        assert len(fake_client.create_calls) == 2

    @pytest.mark.asyncio
    async def test_quota_is_per_direction(self, use_cases) -> None:
        """Verifica que emitidas y recibidas tienen cuotas independientes."""
        await use_cases.create_request(RFC, Direction.RECEIVED, date(2025, 1, 1), date(2025, 1, 31))
        await use_cases.create_request(RFC, Direction.RECEIVED, date(2025, 2, 1), date(2025, 2, 28))

        issued = await use_cases.create_request(RFC, Direction.ISSUED, date(2025, 1, 1), date(2025, 1, 31))

        assert issued.direction == Direction.ISSUED

    @pytest.mark.asyncio
    async def test_rejected_by_provider_creates_no_record(self, use_cases, fake_client) -> None:
        """Verifica que PolicyRejected se propaga y no deja registro."""
        fake_client.create_results = [PolicyRejected("El SAT rechazo la solicitud", {"code": "5002"})]

        with pytest.raises(PolicyRejected):
            await use_cases.create_request(RFC, Direction.ISSUED, date(2025, 1, 1), date(2025, 1, 31))

        assert await use_cases.list_requests(RFC) == []

    @pytest.mark.asyncio
    async def test_network_error_creates_no_record(self, use_cases, fake_client) -> None:
        fake_client.create_results = [TransientNetworkError("timeout")]

        with pytest.raises(TransientNetworkError):
            await use_cases.create_request(RFC, Direction.ISSUED, date(2025, 1, 1), date(2025, 1, 31))

        assert await use_cases.list_requests(RFC) == []

    @pytest.mark.asyncio
    async def test_error_status_on_creation_is_terminal(self, use_cases, fake_client) -> None:
        """Verifica que un estado de error al crear marca request_error y libera la cuota."""
        fake_client.create_results = [
            CreateJobResult(job_id="job-x", raw_status="5", message="No se encontro informacion"),
            CreateJobResult(job_id="job-y", raw_status="1"),
        ]

        failed = await use_cases.create_request(RFC, Direction.ISSUED, date(2025, 1, 1), date(2025, 1, 31))

        assert failed.stage_errors.request_error == "No se encontro informacion"
        assert failed.status == StatusLabel.ERROR
        # La solicitud fallida no bloquea el mismo rango
        retry = await use_cases.create_request(RFC, Direction.ISSUED, date(2025, 1, 1), date(2025, 1, 31))
        assert retry.external_job_id == "job-y"

    @pytest.mark.asyncio
    async def test_invalid_range(self, use_cases) -> None:
        with pytest.raises(ValidationException):
            await use_cases.create_request(RFC, Direction.ISSUED, date(2025, 2, 1), date(2025, 1, 1))

    @pytest.mark.asyncio
    async def test_rfc_is_normalized(self, use_cases) -> None:
        request = await use_cases.create_request(" rfc123 ", Direction.ISSUED, date(2025, 1, 1), date(2025, 1, 2))

        assert request.subject_id == RFC
