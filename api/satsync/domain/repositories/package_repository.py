"""
Interfaz del almacen de paquetes ZIP descargados.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from satsync.domain.entities.package import Package


class IPackageRepository(ABC):
    """Paquetes por (solicitud, package_id). Se escriben una sola vez."""

    @abstractmethod
    async def save(self, package: Package) -> Package:
        pass

    @abstractmethod
    async def get(self, request_id: str, package_id: str) -> Optional[Package]:
        pass

    @abstractmethod
    async def list_ids(self, request_id: str) -> List[str]:
        """IDs de paquetes ya persistidos para la solicitud."""
        pass
