"""
Interfaz del repositorio de solicitudes de descarga masiva.
Define el contrato que debe cumplir cualquier implementación.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from satsync.domain.entities.sync_request import SyncRequest
from satsync.shared.constants.sat_constants import Direction


class ISyncRequestRepository(ABC):
    """
    Interfaz del repositorio de solicitudes.
    Las solicitudes nunca se borran automaticamente.
    """

    @abstractmethod
    async def create(self, request: SyncRequest) -> SyncRequest:
        """
        Persiste una nueva solicitud.

        Args:
            request: Solicitud a crear (sin ID)

        Returns:
            SyncRequest: Solicitud creada con ID y timestamps asignados
        """
        pass

    @abstractmethod
    async def get_by_id(self, request_id: str) -> Optional[SyncRequest]:
        """
        Obtiene una solicitud por su ID.

        Returns:
            Optional[SyncRequest]: Solicitud encontrada o None
        """
        pass

    @abstractmethod
    async def update(self, request: SyncRequest) -> SyncRequest:
        """
        Escribe de vuelta todos los campos mutables de la solicitud.

        Raises:
            EntityNotFoundException: Si la solicitud no existe
        """
        pass

    @abstractmethod
    async def list_by_subject(
        self,
        subject_id: str,
        direction: Optional[Direction] = None,
        limit: int = 100,
    ) -> List[SyncRequest]:
        """
        Lista las solicitudes de un RFC, mas recientes primero.

        Args:
            subject_id: RFC
            direction: Filtro opcional por tipo de descarga
            limit: Número máximo de registros
        """
        pass

    @abstractmethod
    async def list_unprocessed(self, subject_id: str, direction: Direction) -> List[SyncRequest]:
        """Solicitudes del RFC y tipo que aun no se marcan como procesadas."""
        pass

    @abstractmethod
    async def acquire_admission_lock(self, subject_id: str, direction: Direction) -> None:
        """
        Serializa la decision de admision entre procesos dentro de la
        transaccion actual (no-op en motores sin advisory locks).
        """
        pass
