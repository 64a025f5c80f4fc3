"""
Tests de los endpoints HTTP de sincronizacion con el SAT.
"""
from datetime import datetime
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from main import create_application
from satsync.application.interfaces.external_sync_client import VerifyJobResult
from satsync.api.v1.dependencies.sat_deps import get_sat_context
from satsync.domain.entities.invoice import ParsedInvoice
from satsync.infrastructure.database.session import get_db
from satsync.infrastructure.repositories.invoice_repository import InvoiceRepository
from satsync.shared.constants.sat_constants import Direction
from satsync.shared.exceptions.sync import TransientNetworkError

RFC = "RFC123"
BASE = f"/api/v1/sat/{RFC}"


@pytest.fixture
async def client(db_session, sat_context):
    app = create_application()

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sat_context] = lambda: sat_context

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


class TestSatSyncEndpoints:

    @pytest.mark.asyncio
    async def test_health(self, client) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_create_request(self, client) -> None:
        response = await client.post(
            f"{BASE}/requests",
            json={"direction": "issued", "date_from": "2025-01-01", "date_to": "2025-01-31"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["subject_id"] == RFC
        assert body["external_job_id"] == "job-1"
        assert body["status"] == "requested"

    @pytest.mark.asyncio
    async def test_overlapping_request_returns_409(self, client) -> None:
        """Verifica que la violacion de cuota se responde con el formato de error de la API."""
        payload = {"direction": "received", "date_from": "2025-01-01", "date_to": "2025-01-31"}
        await client.post(f"{BASE}/requests", json=payload)

        response = await client.post(f"{BASE}/requests", json=payload)

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "SAT_POLICY_VIOLATION"
        assert body["details"]["reason"] == "overlapping_window"

    @pytest.mark.asyncio
    async def test_invalid_range_returns_422(self, client) -> None:
        response = await client.post(
            f"{BASE}/requests",
            json={"direction": "issued", "date_from": "2025-02-01", "date_to": "2025-01-01"},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_request_of_another_rfc_returns_404(self, client) -> None:
        created = await client.post(
            f"{BASE}/requests",
            json={"direction": "issued", "date_from": "2025-01-01", "date_to": "2025-01-31"},
        )

        response = await client.get(f"/api/v1/sat/OTRO010101AAA/requests/{created.json()['id']}")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_sync_status(self, client) -> None:
        response = await client.get(f"{BASE}/sync-status")

        assert response.status_code == 200
        body = response.json()
        assert body["issued"]["is_first_sync"] is True
        assert body["received"]["next_window"] == {"date_from": "2025-01-01", "date_to": "2025-06-09"}

    @pytest.mark.asyncio
    async def test_sync_creates_both_directions(self, client) -> None:
        response = await client.post(f"{BASE}/sync")

        assert response.status_code == 202
        outcomes = {r["direction"]: r["outcome"] for r in response.json()["results"]}
        assert outcomes == {"issued": "created", "received": "created"}

    @pytest.mark.asyncio
    async def test_edit_invoice(self, client, db_session) -> None:
        """Verifica que el PATCH marca la factura como modificada manualmente."""
        await InvoiceRepository(db_session).save(
            ParsedInvoice(
                uuid="aaaaaaaa-0000-4000-8000-000000000001",
                subject_id=RFC,
                direction=Direction.RECEIVED,
                issuer_rfc="XAXX010101000",
                receiver_rfc=RFC,
                issued_at=datetime(2025, 3, 15, 10, 30),
                invoice_type="I",
                subtotal=Decimal("1000.00"),
                total=Decimal("1160.00"),
                transferred_iva=Decimal("160.00"),
            )
        )

        response = await client.patch(
            f"{BASE}/invoices/AAAAAAAA-0000-4000-8000-000000000001",
            json={"taxable_isr": "800.00"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "applied"
        assert body["invoice"]["manually_modified"] is True
        assert Decimal(body["invoice"]["taxable_isr"]) == Decimal("800.00")

    @pytest.mark.asyncio
    async def test_edit_unknown_invoice_returns_404(self, client) -> None:
        response = await client.patch(f"{BASE}/invoices/no-existe", json={"taxable_iva": "1"})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_and_fetch_packages(self, client, fake_client) -> None:
        """Verifica que se listan los paquetes y se puede bajar el ZIP crudo de uno descargado."""
        created = await client.post(
            f"{BASE}/requests",
            json={"direction": "received", "date_from": "2025-01-01", "date_to": "2025-01-31"},
        )
        request_id = created.json()["id"]
        fake_client.verify_results = [VerifyJobResult(raw_status="3", package_ids=("P1", "P2"))]
        fake_client.packages = {"P1": b"PK-zip-1", "P2": TransientNetworkError("timeout")}
        await client.post(f"{BASE}/requests/{request_id}/verify")
        await client.post(f"{BASE}/requests/{request_id}/download")

        listed = await client.get(f"{BASE}/requests/{request_id}/packages")

        assert listed.status_code == 200
        assert [(p["package_id"], p["downloaded"], p["size_bytes"]) for p in listed.json()] == [
            ("P1", True, 8),
            ("P2", False, 0),
        ]

        fetched = await client.get(f"{BASE}/requests/{request_id}/packages/P1")
        assert fetched.status_code == 200
        assert fetched.headers["content-type"] == "application/zip"
        assert fetched.content == b"PK-zip-1"

        missing = await client.get(f"{BASE}/requests/{request_id}/packages/P2")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_packages_of_another_rfc_return_404(self, client) -> None:
        created = await client.post(
            f"{BASE}/requests",
            json={"direction": "issued", "date_from": "2025-01-01", "date_to": "2025-01-31"},
        )

        response = await client.get(f"/api/v1/sat/OTRO010101AAA/requests/{created.json()['id']}/packages")

        assert response.status_code == 404
