"""
Tests para InvoiceEditService (comando con reintento y rollback compensatorio).
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from satsync.application.services.invoice_edit_service import (
    APPLIED,
    ROLLED_BACK,
    InvoiceEditService,
)
from satsync.domain.entities.invoice import ParsedInvoice
from satsync.shared.constants.sat_constants import Direction, LogType
from satsync.shared.exceptions.domain import EntityNotFoundException, ValidationException
from satsync.shared.utils.retry import RetryConfig

RFC = "RFC123"
UUID = "AAAAAAAA-0000-4000-8000-000000000001"


def _invoice(**overrides) -> ParsedInvoice:
    values = dict(
        uuid=UUID,
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
    values.update(overrides)
    return ParsedInvoice(**values)


class FakeInvoiceRepository:
    """Repositorio en memoria; `failures` veces lanza OperationalError al editar."""

    def __init__(self, invoice: ParsedInvoice, failures: int = 0) -> None:
        self.store: Dict[str, ParsedInvoice] = {invoice.uuid: invoice}
        self.failures = failures
        self.updates: List[tuple] = []

    async def get_by_uuid(self, subject_id, uuid):
        return self.store.get(uuid.upper())

    async def update_taxable(self, subject_id, uuid, taxable_isr, taxable_iva, manually_modified):
        self.updates.append((taxable_isr, taxable_iva, manually_modified))
        if self.failures > 0:
            self.failures -= 1
            raise OperationalError("UPDATE cfdi_invoices", {}, Exception("database is locked"))
        current = self.store[uuid]
        current.taxable_isr = taxable_isr
        current.taxable_iva = taxable_iva
        current.manually_modified = manually_modified
        return current


@pytest.fixture
def audit():
    mock = MagicMock()
    mock.append = AsyncMock()
    return mock


def _service(repository, audit, attempts: int = 3) -> InvoiceEditService:
    return InvoiceEditService(
        repository,
        audit,
        retry_config=RetryConfig(max_attempts=attempts, base_delay=0, jitter=False, exceptions=(OperationalError,)),
    )


class TestInvoiceEditService:

    @pytest.mark.asyncio
    async def test_applies_edit_and_marks_manual(self, audit) -> None:
        repository = FakeInvoiceRepository(_invoice())

        result = await _service(repository, audit).edit_taxable(RFC, UUID, taxable_isr=Decimal("900"))

        assert result.status == APPLIED
        assert result.applied is True
        assert result.invoice.taxable_isr == Decimal("900")
        assert result.invoice.taxable_iva == Decimal("160.00")
        assert result.invoice.manually_modified is True
        assert audit.append.await_args.args[2] == LogType.INVOICE_EDITED

    @pytest.mark.asyncio
    async def test_retries_transient_failure(self, audit) -> None:
        """Verifica que un OperationalError transitorio se reintenta y la edicion se aplica."""
        repository = FakeInvoiceRepository(_invoice(), failures=2)

        result = await _service(repository, audit).edit_taxable(RFC, UUID, taxable_iva=Decimal("0"))

        assert result.status == APPLIED
        assert result.attempts == 3

    @pytest.mark.asyncio
    async def test_rolls_back_after_exhausting_retries(self, audit) -> None:
        """Verifica que al agotar los reintentos se restauran los valores originales."""
        repository = FakeInvoiceRepository(_invoice(), failures=2)

        result = await _service(repository, audit, attempts=2).edit_taxable(
            RFC, UUID, taxable_isr=Decimal("1"), taxable_iva=Decimal("2")
        )

        assert result.status == ROLLED_BACK
        assert result.applied is False
        assert result.attempts == 2
        assert result.error
        assert result.invoice.taxable_isr == Decimal("1000.00")
        assert result.invoice.taxable_iva == Decimal("160.00")
        assert result.invoice.manually_modified is False
        assert repository.updates[-1] == (Decimal("1000.00"), Decimal("160.00"), False)
        assert audit.append.await_args.args[2] == LogType.INVOICE_EDIT_ROLLED_BACK

    @pytest.mark.asyncio
    async def test_reset_to_computed(self, audit) -> None:
        """Verifica que reset_to_computed recalcula y quita la marca manual."""
        invoice = _invoice(taxable_isr=Decimal("5"), taxable_iva=Decimal("1"), manually_modified=True)
        repository = FakeInvoiceRepository(invoice)

        result = await _service(repository, audit).edit_taxable(RFC, UUID, reset_to_computed=True)

        assert result.invoice.taxable_isr == Decimal("1000.00")
        assert result.invoice.taxable_iva == Decimal("160.00")
        assert result.invoice.manually_modified is False

    @pytest.mark.asyncio
    async def test_requires_a_value(self, audit) -> None:
        repository = FakeInvoiceRepository(_invoice())

        with pytest.raises(ValidationException):
            await _service(repository, audit).edit_taxable(RFC, UUID)

    @pytest.mark.asyncio
    async def test_rejects_negative_values(self, audit) -> None:
        repository = FakeInvoiceRepository(_invoice())

        with pytest.raises(ValidationException):
            await _service(repository, audit).edit_taxable(RFC, UUID, taxable_isr=Decimal("-1"))

    @pytest.mark.asyncio
    async def test_unknown_invoice(self, audit) -> None:
        repository = FakeInvoiceRepository(_invoice())

        with pytest.raises(EntityNotFoundException):
            await _service(repository, audit).edit_taxable(RFC, "no-existe", taxable_isr=Decimal("1"))
