"""
Interfaz del almacen de marcas de sincronizacion.
"""
from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from satsync.domain.entities.watermark import SyncWatermark
from satsync.shared.constants.sat_constants import Direction


class IWatermarkRepository(ABC):
    """Ultima fecha cubierta por (RFC, tipo de descarga)."""

    @abstractmethod
    async def get(self, subject_id: str, direction: Direction) -> Optional[SyncWatermark]:
        pass

    @abstractmethod
    async def advance(self, subject_id: str, direction: Direction, covered_to: date) -> SyncWatermark:
        """
        Mueve la marca hacia adelante; nunca retrocede.

        Returns:
            SyncWatermark: Marca resultante
        """
        pass

    @abstractmethod
    async def reset(self, subject_id: str, direction: Optional[Direction] = None) -> int:
        """
        Elimina las marcas del RFC (una o ambas direcciones).

        Returns:
            int: Marcas eliminadas
        """
        pass
