"""
Configuración de fixtures para pytest.
"""
import io
import zipfile
from datetime import date
from typing import AsyncGenerator, Dict, List, Optional, Sequence, Tuple

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from satsync.application.interfaces.external_sync_client import CreateJobResult, VerifyJobResult
from satsync.core.context import SatSyncContext
from satsync.infrastructure.database import models  # noqa: F401
from satsync.infrastructure.database.session import Base
from satsync.infrastructure.parsing import ArchiveReader, CfdiParser
from satsync.shared.constants.sat_constants import Direction
from satsync.shared.utils.debounce import TrailingDebouncer


# URL de base de datos de prueba
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SUBJECT_RFC = "RFC123"
OTHER_RFC = "XAXX010101000"


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Fixture que proporciona una sesión de base de datos para tests.
    Crea una base de datos en memoria para cada test.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


class FakeSyncClient:
    """
    Cliente del SAT en memoria.

    - `create_results` / `verify_results`: respuestas en cola (la ultima se repite).
    - Un elemento que sea excepcion se lanza en lugar de responder.
    - `packages`: contenido por package_id; si el valor es excepcion se lanza.
    """

    def __init__(self) -> None:
        self.create_results: List[object] = []
        self.verify_results: List[object] = []
        self.packages: Dict[str, object] = {}
        self.create_calls: List[Tuple[str, date, date, Direction]] = []
        self.verify_calls: List[Tuple[str, str]] = []
        self.fetch_calls: List[Tuple[str, str]] = []
        self._job_counter = 0

    @staticmethod
    def _next(queue: List[object]) -> object:
        return queue.pop(0) if len(queue) > 1 else queue[0]

    async def create_job(self, subject_id, date_from, date_to, direction) -> CreateJobResult:
        self.create_calls.append((subject_id, date_from, date_to, Direction(direction)))
        if not self.create_results:
            self._job_counter += 1
            return CreateJobResult(job_id=f"job-{self._job_counter}", raw_status="requested")
        result = self._next(self.create_results)
        if isinstance(result, Exception):
            raise result
        return result

    async def verify_job(self, subject_id, job_id) -> VerifyJobResult:
        self.verify_calls.append((subject_id, job_id))
        result = self._next(self.verify_results)
        if isinstance(result, Exception):
            raise result
        return result

    async def fetch_package(self, subject_id, package_id) -> bytes:
        self.fetch_calls.append((subject_id, package_id))
        content = self.packages[package_id]
        if isinstance(content, Exception):
            raise content
        return content


@pytest.fixture
def fake_client() -> FakeSyncClient:
    return FakeSyncClient()


@pytest.fixture
async def sat_context(fake_client) -> AsyncGenerator[SatSyncContext, None]:
    """Contexto con cliente falso y fecha fija (2025-06-10)."""
    context = SatSyncContext(
        client=fake_client,
        parser=CfdiParser(),
        archive_reader=ArchiveReader(),
        debouncer=TrailingDebouncer(delay=0.01),
        today=lambda: date(2025, 6, 10),
    )
    yield context
    await context.aclose()


def build_cfdi(
    uuid: str,
    issuer_rfc: str = OTHER_RFC,
    receiver_rfc: str = SUBJECT_RFC,
    subtotal: str = "1000.00",
    total: str = "1160.00",
    iva: Optional[str] = "160.00",
    fecha: str = "2025-03-15T10:30:00",
    uso_cfdi: str = "G03",
    tipo: str = "I",
) -> bytes:
    """CFDI 4.0 minimo con timbre."""
    impuestos = ""
    if iva is not None:
        impuestos = (
            f'<cfdi:Impuestos TotalImpuestosTrasladados="{iva}">'
            "<cfdi:Traslados>"
            f'<cfdi:Traslado Base="{subtotal}" Impuesto="002" TipoFactor="Tasa" '
            f'TasaOCuota="0.160000" Importe="{iva}"/>'
            "</cfdi:Traslados>"
            "</cfdi:Impuestos>"
        )
    xml = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<cfdi:Comprobante xmlns:cfdi="http://www.sat.gob.mx/cfd/4" '
        'xmlns:tfd="http://www.sat.gob.mx/TimbreFiscalDigital" '
        f'Version="4.0" Fecha="{fecha}" SubTotal="{subtotal}" Total="{total}" '
        f'Moneda="MXN" TipoDeComprobante="{tipo}" MetodoPago="PUE" FormaPago="03">'
        f'<cfdi:Emisor Rfc="{issuer_rfc}" Nombre="EMISOR SA DE CV"/>'
        f'<cfdi:Receptor Rfc="{receiver_rfc}" Nombre="RECEPTOR" UsoCFDI="{uso_cfdi}"/>'
        f"{impuestos}"
        "<cfdi:Complemento>"
        f'<tfd:TimbreFiscalDigital Version="1.1" UUID="{uuid}"/>'
        "</cfdi:Complemento>"
        "</cfdi:Comprobante>"
    )
    return xml.encode("utf-8")


def build_zip(documents: Sequence[Tuple[str, bytes]]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in documents:
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def make_cfdi():
    """Fabrica de XML de CFDI."""
    return build_cfdi


@pytest.fixture
def make_zip():
    """Fabrica de paquetes ZIP a partir de (nombre, bytes)."""
    return build_zip
