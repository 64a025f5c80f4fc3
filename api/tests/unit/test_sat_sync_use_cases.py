"""
Tests para la sincronizacion completa de un RFC (sync_subject).
"""
from datetime import date

import pytest

from satsync.application.use_cases.sat_sync_use_cases import SatSyncUseCases
from satsync.shared.constants.sat_constants import Direction, LogType
from satsync.shared.exceptions.domain import EntityNotFoundException
from satsync.shared.exceptions.sync import TransientNetworkError

RFC = "RFC123"
TODAY = date(2025, 6, 10)


@pytest.fixture
def use_cases(db_session, sat_context) -> SatSyncUseCases:
    return SatSyncUseCases(db_session, sat_context)


def _outcomes(response) -> dict:
    return {result.direction: result.outcome for result in response.results}


class TestSyncSubject:

    @pytest.mark.asyncio
    async def test_first_sync_creates_both_directions(self, use_cases, fake_client) -> None:
        """Verifica que la primera sincronizacion pide del 1 de enero a ayer para ambos tipos."""
        response = await use_cases.sync_subject(RFC, TODAY)

        assert _outcomes(response) == {Direction.ISSUED: "created", Direction.RECEIVED: "created"}
        assert sorted(call[3].value for call in fake_client.create_calls) == ["issued", "received"]
        for call in fake_client.create_calls:
            assert call[1:3] == (date(2025, 1, 1), date(2025, 6, 9))

        logs = await use_cases.list_logs(RFC)
        types = [log.type for log in logs]
        assert LogType.AUTO_SYNC_STARTED in types
        assert LogType.AUTO_SYNC_COMPLETED in types

    @pytest.mark.asyncio
    async def test_second_sync_is_skipped_while_requests_are_active(self, use_cases, fake_client) -> None:
        """Verifica que no se crean solicitudes traslapadas con las que siguen en curso."""
        await use_cases.sync_subject(RFC, TODAY)

        response = await use_cases.sync_subject(RFC, TODAY)

        assert _outcomes(response) == {Direction.ISSUED: "skipped", Direction.RECEIVED: "skipped"}
        assert len(fake_client.create_calls) == 2

    @pytest.mark.asyncio
    async def test_quota_blocks_one_direction_only(self, use_cases, fake_client) -> None:
        """Verifica que una cuota llena en recibidas no impide sincronizar emitidas."""
        await use_cases.create_request(RFC, Direction.RECEIVED, date(2024, 1, 1), date(2024, 1, 31))
        await use_cases.create_request(RFC, Direction.RECEIVED, date(2024, 2, 1), date(2024, 2, 29))

        response = await use_cases.sync_subject(RFC, TODAY)

        assert _outcomes(response) == {Direction.ISSUED: "created", Direction.RECEIVED: "blocked"}

    @pytest.mark.asyncio
    async def test_network_failure_is_reported_per_direction(self, use_cases, fake_client) -> None:
        fake_client.create_results = [TransientNetworkError("timeout")]

        response = await use_cases.sync_subject(RFC, TODAY)

        assert _outcomes(response) == {Direction.ISSUED: "failed", Direction.RECEIVED: "failed"}
        assert await use_cases.list_requests(RFC) == []

    @pytest.mark.asyncio
    async def test_custom_start_date(self, use_cases, fake_client) -> None:
        response = await use_cases.sync_subject(RFC, TODAY, custom_start_date=date(2025, 5, 1))

        issued = next(r for r in response.results if r.direction == Direction.ISSUED)
        assert issued.request.date_from == date(2025, 5, 1)
        assert issued.request.date_to == date(2025, 6, 9)

    @pytest.mark.asyncio
    async def test_up_to_date_subject_is_skipped(self, use_cases, fake_client) -> None:
        """Verifica que con la marca en ayer no hay nada que pedir."""
        await use_cases.watermarks.advance(RFC, Direction.ISSUED, date(2025, 6, 9))
        await use_cases.watermarks.advance(RFC, Direction.RECEIVED, date(2025, 6, 9))

        response = await use_cases.sync_subject(RFC, TODAY)

        assert _outcomes(response) == {Direction.ISSUED: "skipped", Direction.RECEIVED: "skipped"}
        assert fake_client.create_calls == []


class TestRequestOwnership:

    @pytest.mark.asyncio
    async def test_request_of_another_subject_is_not_found(self, use_cases) -> None:
        request = await use_cases.create_request(RFC, Direction.ISSUED, date(2025, 1, 1), date(2025, 1, 31))

        with pytest.raises(EntityNotFoundException):
            await use_cases.get_request("OTRO010101AAA", request.id)
