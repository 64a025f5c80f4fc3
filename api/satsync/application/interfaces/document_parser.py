"""
Interfaz del parser de documentos fiscales.
"""

from __future__ import annotations

from typing import Optional, Protocol

from satsync.domain.entities.invoice import ParsedInvoice
from satsync.shared.constants.sat_constants import Direction


class DocumentParser(Protocol):
    """Convierte un documento crudo en un CFDI interpretado."""

    def parse(
        self,
        raw: bytes,
        subject_id: str,
        direction: Direction,
        document_name: Optional[str] = None,
    ) -> ParsedInvoice:
        """
        Raises:
            ParseError: si el documento no es un CFDI valido.
        """
