from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from src.booking.domain.entities.session_slot import SessionSlot
from src.booking.domain.enums import SlotStatus, SubscriptionStatus, PaymentStatus

@dataclass
class Subscription:
    id: int
    user_id: int
    user_email: str
    user_country: str
    plan_id: Optional[int]
    plan_name: str
    plan_price: float
    plan_currency: str
    start_date: datetime
    end_date: datetime
    total_sessions: int
    sessions_per_week: int
    status: SubscriptionStatus
    payment_status: PaymentStatus
    created_at: datetime
    sessions: list[SessionSlot] = field(default_factory=list)
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def sessions_completed(self) -> int:
        return sum(1 for s in self.sessions if s.status == SlotStatus.COMPLETED)

    @property
    def sessions_remaining(self) -> int:
        return sum(1 for s in self.sessions if s.status in (SlotStatus.SCHEDULED, SlotStatus.MISSED))

    def next_session(self, now: Optional[datetime] = None) -> Optional[SessionSlot]:
        now = now or datetime.now(timezone.utc)
        upcoming = [
            s for s in self.sessions
            if s.status == SlotStatus.SCHEDULED and s.starts_at_utc > now
        ]
        return min(upcoming, key=lambda s: s.starts_at_utc) if upcoming else None
