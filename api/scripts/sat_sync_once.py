"""
CLI: una pasada completa del pipeline de descarga masiva.

Para cada RFC:
  1. Planea y crea solicitudes (emitidas y recibidas).
  2. Verifica las solicitudes abiertas.
  3. Descarga los paquetes de las solicitudes listas.
  4. Procesa los paquetes descargados.

Uso recomendado:
  - Ejecutar como job (cron/systemd timer), no desde el request/response del API.
  - Una solicitud recien creada casi nunca esta lista; la siguiente pasada la avanza.

Ejecución:
  python scripts/sat_sync_once.py AAA010101AAA
  python scripts/sat_sync_once.py AAA010101AAA BBB020202BBB --no-create
  python scripts/sat_sync_once.py AAA010101AAA --full
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

load_dotenv(_API_ROOT / ".env", override=False)

from satsync.application.services.status_normalizer import normalize_status
from satsync.application.use_cases.sat_sync_use_cases import SatSyncUseCases
from satsync.core.config import settings
from satsync.core.context import SatSyncContext, build_context
from satsync.domain.entities.sync_request import SyncRequest
from satsync.infrastructure.database.session import AsyncSessionLocal, close_db, init_db
from satsync.shared.constants.sat_constants import Direction, NormalizedStatus
from satsync.shared.exceptions.base import AppException
from satsync.shared.utils.audit_logger import AuditLogger


async def _advance(use_cases: SatSyncUseCases, request: SyncRequest) -> None:
    """Ejecuta la siguiente etapa que le toque a la solicitud."""
    rfc = request.subject_id
    if not request.completed:
        if not request.external_job_id:
            return
        if normalize_status(request.raw_status, warn=False) == NormalizedStatus.ERROR:
            return
        request_dto = await use_cases.verify(rfc, request.id)
        if not request_dto.completed:
            return
        request = await use_cases.requests.get_by_id(request.id)

    if request.has_packages and not request.packages_downloaded:
        await use_cases.download(rfc, request.id)
        request = await use_cases.requests.get_by_id(request.id)

    if request.packages_downloaded or request.completed_without_packages:
        await use_cases.import_packages(rfc, request.id)


async def _run_subject(context: SatSyncContext, rfc: str, create: bool, full: bool) -> None:
    if create:
        async with AsyncSessionLocal() as session:
            use_cases = SatSyncUseCases(session, context)
            try:
                result = await use_cases.sync_subject(rfc, force_full_sync=full)
            except Exception:
                await session.rollback()
                raise
            await session.commit()
        for item in result.results:
            logger.info(f"[sat-sync] {rfc}/{item.direction.value}: {item.outcome} - {item.message}")

    for direction in Direction:
        async with AsyncSessionLocal() as session:
            use_cases = SatSyncUseCases(session, context)
            pending = await use_cases.requests.list_unprocessed(rfc.upper(), direction)
            for request in pending:
                try:
                    await _advance(use_cases, request)
                    await session.commit()
                except AppException as e:
                    await session.rollback()
                    logger.warning(f"[sat-sync] {rfc} solicitud {request.id}: {e.message}")


async def main_async(args: argparse.Namespace) -> int:
    AuditLogger.initialize(settings.AUDIT_LOG_DIR)
    await init_db()
    context = build_context(settings)
    failures = 0
    try:
        for rfc in args.rfc:
            try:
                await _run_subject(context, rfc, create=not args.no_create, full=args.full)
            except AppException as e:
                failures += 1
                logger.error(f"[sat-sync] {rfc}: {e.message}")
    finally:
        await context.aclose()
        AuditLogger.shutdown()
        await close_db()
    return 1 if failures else 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Pasada del pipeline de descarga masiva del SAT")
    parser.add_argument("rfc", nargs="+", help="RFC(s) a sincronizar")
    parser.add_argument(
        "--no-create",
        action="store_true",
        help="Solo avanza solicitudes existentes (no crea nuevas).",
    )
    parser.add_argument(
        "--full",
        action="store_true",
        help="Ignora la ultima fecha sincronizada y solicita desde el inicio del año.",
    )
    args = parser.parse_args()
    return asyncio.run(main_async(args))


if __name__ == "__main__":
    raise SystemExit(main())
