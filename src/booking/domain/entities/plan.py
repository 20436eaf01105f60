from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from src.booking.domain.value_objects import PlanQuota

@dataclass
class SubscriptionPlan:
    id: int
    name: str
    sessions_per_month: int
    sessions_per_week: int
    price: float
    currency: str
    duration: int
    is_active: bool
    created_at: datetime
    description: Optional[str] = None
    features: list[str] = field(default_factory=list)
    created_by: Optional[int] = None
    updated_at: Optional[datetime] = None

    @property
    def price_per_session(self) -> float:
        return self.price / self.sessions_per_month

    @property
    def quota(self) -> PlanQuota:
        return PlanQuota(
            sessions_per_month=self.sessions_per_month,
            sessions_per_week=self.sessions_per_week,
        )
