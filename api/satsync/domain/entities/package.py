"""
Entidad de dominio: Package (paquete ZIP descargado del SAT).
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Package:
    """Paquete de una solicitud. `content` son los bytes crudos del ZIP."""

    package_id: str
    request_id: str
    content: bytes
    downloaded_at: Optional[datetime] = None

    @property
    def size_bytes(self) -> int:
        return len(self.content)
