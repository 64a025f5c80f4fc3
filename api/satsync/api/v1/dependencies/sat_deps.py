"""
Dependencias para inyeccion del pipeline de sincronizacion.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from satsync.application.use_cases.sat_sync_use_cases import SatSyncUseCases
from satsync.core.context import SatSyncContext
from satsync.infrastructure.database.session import get_db


def get_sat_context(request: Request) -> SatSyncContext:
    """
    Contexto compartido creado en el arranque de la aplicacion.

    Returns:
        SatSyncContext: Cliente del gateway, parser, debouncer y locks
    """
    return request.app.state.sat_context


async def get_sat_use_cases(
    db: AsyncSession = Depends(get_db),
    context: SatSyncContext = Depends(get_sat_context),
) -> SatSyncUseCases:
    """
    Dependencia para obtener los casos de uso de sincronizacion.

    Args:
        db: Sesion de base de datos
        context: Contexto de sincronizacion

    Returns:
        SatSyncUseCases: Instancia de casos de uso
    """
    return SatSyncUseCases(db, context)
