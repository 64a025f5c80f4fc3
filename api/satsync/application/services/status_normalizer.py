"""
Normalizacion del vocabulario de estados del SAT.

El proveedor y el gateway mezclan codigos ("3"), ingles ("Finished") y
español ("Terminada"). Todos se reducen a {pending, ready, error}.
"""
from typing import Optional

from loguru import logger

from satsync.shared.constants.sat_constants import (
    ERROR_STATUSES,
    PENDING_STATUSES,
    READY_STATUSES,
    NormalizedStatus,
)


def normalize_status(raw_status: Optional[str], *, warn: bool = True) -> NormalizedStatus:
    """
    Reduce un estado crudo a su clase de equivalencia.

    Args:
        raw_status: Estado tal como lo reporta el proveedor
        warn: Si True, registra un warning para valores desconocidos

    Returns:
        NormalizedStatus: Desconocidos se tratan como PENDING
    """
    value = (raw_status or "").strip().lower().replace(" ", "")
    if value in READY_STATUSES:
        return NormalizedStatus.READY
    if value in ERROR_STATUSES:
        return NormalizedStatus.ERROR
    if value in PENDING_STATUSES:
        return NormalizedStatus.PENDING
    if warn:
        logger.warning(f"[sat-sync] Estado desconocido del SAT: {raw_status!r}; se trata como pendiente")
    return NormalizedStatus.PENDING
