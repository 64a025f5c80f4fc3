"""
Configuración de base de datos.

Importa todos los modelos para que se registren con Base
antes de crear las tablas.
"""
from satsync.infrastructure.database.models import (
    SatRequestModel,
    SatPackageModel,
    CfdiInvoiceModel,
    SatSyncWatermarkModel,
    SatAuditLogModel,
)
