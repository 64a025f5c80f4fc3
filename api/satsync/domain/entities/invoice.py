"""
Entidad de dominio: ParsedInvoice (CFDI interpretado).
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional, Tuple

from satsync.shared.constants.sat_constants import Direction

ZERO = Decimal("0")
CENT = Decimal("0.01")
IVA_GENERAL_RATE = Decimal("0.16")


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class ParsedInvoice:
    """
    CFDI interpretado y listo para guardarse.

    `uuid` (folio fiscal del timbre) es la llave natural, unica por RFC.
    Los campos derivados `taxable_isr` / `taxable_iva` se recalculan en cada
    importacion salvo que `manually_modified` sea True.
    """

    uuid: str
    subject_id: str
    direction: Direction
    issuer_rfc: str
    receiver_rfc: str
    issued_at: datetime
    invoice_type: str
    subtotal: Decimal
    total: Decimal
    issuer_name: Optional[str] = None
    receiver_name: Optional[str] = None
    version: str = "4.0"
    currency: str = "MXN"
    exchange_rate: Optional[Decimal] = None
    discount: Decimal = ZERO
    transferred_iva: Decimal = ZERO
    transferred_ieps: Decimal = ZERO
    withheld_iva: Decimal = ZERO
    withheld_isr: Decimal = ZERO
    iva_base_16: Decimal = ZERO
    iva_base_8: Decimal = ZERO
    iva_base_0: Decimal = ZERO
    iva_exempt: Decimal = ZERO
    payment_method: Optional[str] = None
    payment_form: Optional[str] = None
    cfdi_use: Optional[str] = None
    taxable_isr: Optional[Decimal] = None
    taxable_iva: Optional[Decimal] = None
    manually_modified: bool = False
    request_id: Optional[str] = None
    package_id: Optional[str] = None
    xml: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.uuid = self.uuid.strip().upper()
        self.direction = Direction(self.direction)
        if self.taxable_isr is None or self.taxable_iva is None:
            self.taxable_isr, self.taxable_iva = self.compute_taxable()

    @property
    def fiscal_year(self) -> int:
        return self.issued_at.year

    def compute_taxable(self) -> Tuple[Decimal, Decimal]:
        """
        Calcula los montos gravados por omision.

        - Emitidos (ingresos): ISR = subtotal, IVA = IVA trasladado.
        - Recibidos (gastos): sin IVA el gravado ISR es el total; con IVA se
          reconstruye la base al 16%. Usos de CFDI "D*" (deducciones
          personales) no se consideran gasto del periodo.
        """
        if self.direction == Direction.ISSUED:
            return self.subtotal, self.transferred_iva
        if self.cfdi_use and self.cfdi_use.upper().startswith("D"):
            return ZERO, ZERO
        if self.transferred_iva == ZERO:
            return self.total, ZERO
        isr = _round(self.transferred_iva / IVA_GENERAL_RATE)
        return isr, _round(isr * IVA_GENERAL_RATE)
