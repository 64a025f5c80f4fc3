"""
Almacen de paquetes ZIP descargados del SAT.
"""
from typing import List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from satsync.domain.entities.package import Package
from satsync.domain.repositories.package_repository import IPackageRepository
from satsync.infrastructure.database.models import SatPackageModel
from satsync.shared.utils.date_utils import ensure_utc, utc_now


class PackageRepository(IPackageRepository):

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save(self, package: Package) -> Package:
        """Guarda el paquete; si ya existe para la solicitud, regresa el existente."""
        existing = await self._get_model(package.request_id, package.package_id)
        if existing:
            return self._to_entity(existing)

        model = SatPackageModel(
            request_id=package.request_id,
            package_id=package.package_id,
            content=package.content,
            size_bytes=package.size_bytes,
            downloaded_at=package.downloaded_at or utc_now(),
        )
        self.db.add(model)
        await self.db.flush()
        logger.info(f"[sat-download] Paquete {package.package_id} guardado ({package.size_bytes} bytes)")
        return self._to_entity(model)

    async def get(self, request_id: str, package_id: str) -> Optional[Package]:
        model = await self._get_model(request_id, package_id)
        return self._to_entity(model) if model else None

    async def list_ids(self, request_id: str) -> List[str]:
        result = await self.db.execute(
            select(SatPackageModel.package_id)
            .where(SatPackageModel.request_id == request_id)
            .order_by(SatPackageModel.id)
        )
        return list(result.scalars().all())

    async def _get_model(self, request_id: str, package_id: str) -> Optional[SatPackageModel]:
        result = await self.db.execute(
            select(SatPackageModel).where(
                SatPackageModel.request_id == request_id,
                SatPackageModel.package_id == package_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _to_entity(model: SatPackageModel) -> Package:
        return Package(
            package_id=model.package_id,
            request_id=model.request_id,
            content=bytes(model.content),
            downloaded_at=ensure_utc(model.downloaded_at) if model.downloaded_at else None,
        )
