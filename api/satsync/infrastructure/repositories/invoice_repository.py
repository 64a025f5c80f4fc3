"""
Almacen idempotente de CFDI (deduplicacion por UUID).
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from satsync.domain.entities.invoice import ParsedInvoice
from satsync.domain.repositories.invoice_repository import IInvoiceRepository
from satsync.infrastructure.database.models import CfdiInvoiceModel
from satsync.shared.constants.sat_constants import Direction
from satsync.shared.exceptions.domain import EntityNotFoundException
from satsync.shared.utils.date_utils import ensure_utc, utc_now

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class InvoiceRepository(IInvoiceRepository):
    """
    Repositorio de CFDI.

    `save` usa INSERT ... ON CONFLICT DO NOTHING sobre (subject_id, uuid):
    dos importaciones concurrentes del mismo UUID nunca duplican ni fallan.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists(self, subject_id: str, uuid: str) -> bool:
        result = await self.db.execute(
            select(func.count())
            .select_from(CfdiInvoiceModel)
            .where(
                CfdiInvoiceModel.subject_id == subject_id,
                CfdiInvoiceModel.uuid == uuid.strip().upper(),
            )
        )
        return (result.scalar_one() or 0) > 0

    async def save(self, invoice: ParsedInvoice) -> bool:
        dialect = self.db.get_bind().dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            if await self.exists(invoice.subject_id, invoice.uuid):
                return False
            self.db.add(CfdiInvoiceModel(**self._to_row(invoice)))
            await self.db.flush()
            return True

        statement = (
            insert(CfdiInvoiceModel)
            .values(**self._to_row(invoice))
            .on_conflict_do_nothing(index_elements=["subject_id", "uuid"])
        )
        result = await self.db.execute(statement)
        inserted = (result.rowcount or 0) > 0
        if not inserted:
            logger.debug(f"[sat-import] CFDI {invoice.uuid} ya existia para {invoice.subject_id}")
        return inserted

    async def get_by_uuid(self, subject_id: str, uuid: str) -> Optional[ParsedInvoice]:
        model = await self._get_model(subject_id, uuid)
        return self._to_entity(model) if model else None

    async def update_taxable(
        self,
        subject_id: str,
        uuid: str,
        taxable_isr: Decimal,
        taxable_iva: Decimal,
        manually_modified: bool,
    ) -> ParsedInvoice:
        model = await self._get_model(subject_id, uuid)
        if not model:
            raise EntityNotFoundException("CFDI", uuid)

        model.taxable_isr = taxable_isr
        model.taxable_iva = taxable_iva
        model.manually_modified = manually_modified
        model.updated_at = utc_now()
        await self.db.flush()
        return self._to_entity(model)

    async def list_by_request(self, request_id: str) -> List[ParsedInvoice]:
        result = await self.db.execute(
            select(CfdiInvoiceModel)
            .where(CfdiInvoiceModel.request_id == request_id)
            .order_by(CfdiInvoiceModel.issued_at, CfdiInvoiceModel.uuid)
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    async def _get_model(self, subject_id: str, uuid: str) -> Optional[CfdiInvoiceModel]:
        result = await self.db.execute(
            select(CfdiInvoiceModel).where(
                CfdiInvoiceModel.subject_id == subject_id,
                CfdiInvoiceModel.uuid == uuid.strip().upper(),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _to_row(invoice: ParsedInvoice) -> Dict[str, Any]:
        now = utc_now()
        return {
            "subject_id": invoice.subject_id,
            "uuid": invoice.uuid,
            "direction": invoice.direction.value,
            "version": invoice.version,
            "invoice_type": invoice.invoice_type,
            "issued_at": invoice.issued_at,
            "issuer_rfc": invoice.issuer_rfc,
            "issuer_name": invoice.issuer_name,
            "receiver_rfc": invoice.receiver_rfc,
            "receiver_name": invoice.receiver_name,
            "currency": invoice.currency,
            "exchange_rate": invoice.exchange_rate,
            "subtotal": invoice.subtotal,
            "discount": invoice.discount,
            "total": invoice.total,
            "transferred_iva": invoice.transferred_iva,
            "transferred_ieps": invoice.transferred_ieps,
            "withheld_iva": invoice.withheld_iva,
            "withheld_isr": invoice.withheld_isr,
            "iva_base_16": invoice.iva_base_16,
            "iva_base_8": invoice.iva_base_8,
            "iva_base_0": invoice.iva_base_0,
            "iva_exempt": invoice.iva_exempt,
            "payment_method": invoice.payment_method,
            "payment_form": invoice.payment_form,
            "cfdi_use": invoice.cfdi_use,
            "taxable_isr": invoice.taxable_isr,
            "taxable_iva": invoice.taxable_iva,
            "manually_modified": invoice.manually_modified,
            "request_id": invoice.request_id,
            "package_id": invoice.package_id,
            "xml": invoice.xml,
            "extra": invoice.extra or None,
            "created_at": now,
            "updated_at": now,
        }

    @staticmethod
    def _to_entity(model: CfdiInvoiceModel) -> ParsedInvoice:
        """Convierte un modelo de base de datos a entidad de dominio."""

        def money(value) -> Decimal:
            return Decimal(str(value)) if value is not None else Decimal("0")

        return ParsedInvoice(
            uuid=model.uuid,
            subject_id=model.subject_id,
            direction=Direction(model.direction),
            version=model.version,
            invoice_type=model.invoice_type,
            issued_at=model.issued_at,
            issuer_rfc=model.issuer_rfc,
            issuer_name=model.issuer_name,
            receiver_rfc=model.receiver_rfc,
            receiver_name=model.receiver_name,
            currency=model.currency,
            exchange_rate=Decimal(str(model.exchange_rate)) if model.exchange_rate is not None else None,
            subtotal=money(model.subtotal),
            discount=money(model.discount),
            total=money(model.total),
            transferred_iva=money(model.transferred_iva),
            transferred_ieps=money(model.transferred_ieps),
            withheld_iva=money(model.withheld_iva),
            withheld_isr=money(model.withheld_isr),
            iva_base_16=money(model.iva_base_16),
            iva_base_8=money(model.iva_base_8),
            iva_base_0=money(model.iva_base_0),
            iva_exempt=money(model.iva_exempt),
            payment_method=model.payment_method,
            payment_form=model.payment_form,
            cfdi_use=model.cfdi_use,
            taxable_isr=money(model.taxable_isr),
            taxable_iva=money(model.taxable_iva),
            manually_modified=bool(model.manually_modified),
            request_id=model.request_id,
            package_id=model.package_id,
            xml=model.xml,
            extra=model.extra or {},
            created_at=ensure_utc(model.created_at) if model.created_at else None,
            updated_at=ensure_utc(model.updated_at) if model.updated_at else None,
        )
