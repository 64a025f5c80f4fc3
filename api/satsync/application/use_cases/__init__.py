"""
Casos de uso de la aplicacion.
"""
from .request_stage import RequestStage
from .verification_stage import VerificationStage
from .download_stage import DownloadStage
from .import_stage import ImportStage
from .sat_sync_use_cases import SatSyncUseCases

__all__ = ["RequestStage", "VerificationStage", "DownloadStage", "ImportStage", "SatSyncUseCases"]
