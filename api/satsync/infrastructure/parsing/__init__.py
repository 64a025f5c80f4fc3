"""
Lectura de paquetes y parseo de CFDI.
"""
from satsync.infrastructure.parsing.archive_reader import ArchiveReader, ArchiveDocument
from satsync.infrastructure.parsing.cfdi_parser import CfdiParser


__all__ = ["ArchiveReader", "ArchiveDocument", "CfdiParser"]
