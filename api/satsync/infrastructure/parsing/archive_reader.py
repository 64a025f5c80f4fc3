"""
Lectura de paquetes ZIP del SAT.

Un paquete contiene un XML por CFDI. Un ZIP ilegible aborta solo ese paquete
(FatalArchiveError); un miembro ilegible se reporta como documento con error.
"""
import io
import zipfile
import zlib
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger

from satsync.shared.exceptions.sync import FatalArchiveError


@dataclass(frozen=True)
class ArchiveDocument:
    """Documento candidato dentro de un paquete."""

    name: str
    content: Optional[bytes] = None
    error: Optional[str] = None


class ArchiveReader:
    """Enumera los XML de un paquete ZIP en orden determinista."""

    def __init__(self, extension: str = ".xml"):
        self.extension = extension.lower()

    def read_documents(self, package_id: str, content: bytes) -> List[ArchiveDocument]:
        """
        Extrae los documentos XML del paquete.

        Raises:
            FatalArchiveError: Si el ZIP no se puede abrir.
        """
        if not content:
            raise FatalArchiveError(package_id, "paquete vacio")
        try:
            archive = zipfile.ZipFile(io.BytesIO(content))
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            raise FatalArchiveError(package_id, str(e)) from e

        documents: List[ArchiveDocument] = []
        with archive:
            names = sorted(
                info.filename
                for info in archive.infolist()
                if not info.is_dir() and info.filename.lower().endswith(self.extension)
            )
            for name in names:
                try:
                    documents.append(ArchiveDocument(name=name, content=archive.read(name)))
                except (zipfile.BadZipFile, zlib.error, RuntimeError, EOFError) as e:
                    logger.warning(f"[sat-import] No se pudo leer {name} del paquete {package_id}: {e}")
                    documents.append(ArchiveDocument(name=name, error=str(e)))

        logger.debug(f"[sat-import] Paquete {package_id}: {len(documents)} documentos XML")
        return documents
