"""
Entidad de dominio: SyncWatermark (ultima fecha cubierta por RFC y tipo).
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from satsync.shared.constants.sat_constants import Direction


@dataclass
class SyncWatermark:
    subject_id: str
    direction: Direction
    last_synced_date: date
    updated_at: Optional[datetime] = None
