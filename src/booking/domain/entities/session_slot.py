from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from src.booking.domain.enums import SlotStatus

# Текущая версия формата слота: один канонический момент UTC + исходные локальные строки
SLOT_VERSION = 2

@dataclass
class SessionSlot:
    id: int
    subscription_id: int
    user_id: int
    starts_at_utc: datetime
    local_date: str
    local_time: str
    country: str
    timezone: str
    status: SlotStatus
    notes: Optional[str] = None
    slot_version: int = SLOT_VERSION
