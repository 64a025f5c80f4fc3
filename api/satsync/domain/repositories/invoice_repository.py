"""
Interfaz del almacen de CFDI (deduplicacion por UUID).
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional

from satsync.domain.entities.invoice import ParsedInvoice


class IInvoiceRepository(ABC):
    """
    Almacen idempotente de CFDI.
    La llave natural es (RFC, UUID); guardar un UUID existente no hace nada.
    """

    @abstractmethod
    async def exists(self, subject_id: str, uuid: str) -> bool:
        pass

    @abstractmethod
    async def save(self, invoice: ParsedInvoice) -> bool:
        """
        Guarda el CFDI si no existe.

        Returns:
            bool: True si se inserto, False si ya existia
        """
        pass

    @abstractmethod
    async def get_by_uuid(self, subject_id: str, uuid: str) -> Optional[ParsedInvoice]:
        pass

    @abstractmethod
    async def update_taxable(
        self,
        subject_id: str,
        uuid: str,
        taxable_isr: Decimal,
        taxable_iva: Decimal,
        manually_modified: bool,
    ) -> ParsedInvoice:
        """
        Actualiza los montos gravados de un CFDI.

        Raises:
            EntityNotFoundException: Si el CFDI no existe
        """
        pass

    @abstractmethod
    async def list_by_request(self, request_id: str) -> List[ParsedInvoice]:
        pass
