"""
Edicion de montos gravados por el contador.

Flujo comando/resultado: la edicion se aplica con reintentos y, si no se
puede persistir, se restauran los valores originales. El llamador siempre
recibe un CommandResult explicito (applied | rolled_back).
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from loguru import logger
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from satsync.domain.entities.invoice import ParsedInvoice
from satsync.domain.repositories.invoice_repository import IInvoiceRepository
from satsync.shared.constants.sat_constants import SYSTEM_USER, LogLevel, LogType, Stage
from satsync.shared.exceptions.domain import EntityNotFoundException, ValidationException
from satsync.shared.utils.audit_logger import AuditLogger
from satsync.shared.utils.retry import RetryConfig, retry_async

APPLIED = "applied"
ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class CommandResult:
    """Resultado de un comando de edicion."""

    status: str
    invoice: ParsedInvoice
    attempts: int = 1
    error: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.status == APPLIED


class InvoiceEditService:
    """
    Aplica ediciones manuales sobre CFDI ya importados.

    Una edicion manual marca `manually_modified=True`; a partir de ahi la
    importacion nunca recalcula los montos de ese CFDI.
    """

    def __init__(
        self,
        invoices: IInvoiceRepository,
        audit: AuditLogger,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.invoices = invoices
        self.audit = audit
        self.retry_config = retry_config or RetryConfig(
            max_attempts=3, base_delay=0.2, max_delay=2.0, exceptions=(OperationalError,)
        )

    async def edit_taxable(
        self,
        subject_id: str,
        uuid: str,
        taxable_isr: Optional[Decimal] = None,
        taxable_iva: Optional[Decimal] = None,
        *,
        reset_to_computed: bool = False,
        edited_by: str = SYSTEM_USER,
    ) -> CommandResult:
        """
        Edita los montos gravados de un CFDI.

        Args:
            subject_id: RFC
            uuid: Folio fiscal
            taxable_isr / taxable_iva: Nuevos valores (None conserva el actual)
            reset_to_computed: Descarta la edicion manual y recalcula
            edited_by: Usuario que edita

        Returns:
            CommandResult: applied o rolled_back

        Raises:
            EntityNotFoundException: Si el CFDI no existe
            ValidationException: Si los montos son negativos o no hay cambios
        """
        original = await self.invoices.get_by_uuid(subject_id, uuid)
        if original is None:
            raise EntityNotFoundException("CFDI", uuid)

        if reset_to_computed:
            new_isr, new_iva = original.compute_taxable()
            manually_modified = False
        else:
            if taxable_isr is None and taxable_iva is None:
                raise ValidationException("Debe indicarse taxableIsr o taxableIva", field="taxableIsr")
            new_isr = original.taxable_isr if taxable_isr is None else Decimal(taxable_isr)
            new_iva = original.taxable_iva if taxable_iva is None else Decimal(taxable_iva)
            manually_modified = True
        if new_isr < 0 or new_iva < 0:
            raise ValidationException("Los montos gravados no pueden ser negativos")

        attempts = 0

        async def apply() -> ParsedInvoice:
            nonlocal attempts
            attempts += 1
            return await self.invoices.update_taxable(
                subject_id, original.uuid, new_isr, new_iva, manually_modified
            )

        try:
            updated = await retry_async(apply, self.retry_config, label=f"edicion CFDI {original.uuid}")
        except SQLAlchemyError as e:
            logger.error(f"[sat-edit] No se pudo aplicar la edicion de {original.uuid}: {e}")
            restored = await self.invoices.update_taxable(
                subject_id,
                original.uuid,
                original.taxable_isr,
                original.taxable_iva,
                original.manually_modified,
            )
            await self.audit.append(
                subject_id,
                Stage.EDIT,
                LogType.INVOICE_EDIT_ROLLED_BACK,
                LogLevel.ERROR,
                f"Edicion del CFDI {original.uuid} revertida: {e}",
                details={"uuid": original.uuid, "attempts": attempts},
                created_by=edited_by,
            )
            return CommandResult(status=ROLLED_BACK, invoice=restored, attempts=attempts, error=str(e))

        await self.audit.append(
            subject_id,
            Stage.EDIT,
            LogType.INVOICE_EDITED,
            LogLevel.SUCCESS,
            f"CFDI {original.uuid} editado",
            details={
                "uuid": original.uuid,
                "before": {"taxable_isr": str(original.taxable_isr), "taxable_iva": str(original.taxable_iva)},
                "after": {"taxable_isr": str(updated.taxable_isr), "taxable_iva": str(updated.taxable_iva)},
                "manually_modified": updated.manually_modified,
            },
            created_by=edited_by,
        )
        logger.info(f"[sat-edit] CFDI {original.uuid} editado por {edited_by} ({attempts} intento(s))")
        return CommandResult(status=APPLIED, invoice=updated, attempts=attempts)
