"""
Excepciones de la aplicacion.
"""
from satsync.shared.exceptions.base import AppException
from satsync.shared.exceptions.domain import (
    DomainException,
    EntityNotFoundException,
    ValidationException,
    InvalidStageTransitionException,
)
from satsync.shared.exceptions.sync import (
    PolicyViolation,
    PolicyRejected,
    TransientNetworkError,
    SatGatewayError,
    ParseError,
    FatalArchiveError,
)


__all__ = [
    "AppException",
    "DomainException",
    "EntityNotFoundException",
    "ValidationException",
    "InvalidStageTransitionException",
    "PolicyViolation",
    "PolicyRejected",
    "TransientNetworkError",
    "SatGatewayError",
    "ParseError",
    "FatalArchiveError",
]
