from typing import Protocol
from src.booking.domain.contracts.repositories import (
    UserRepo, PlanRepo, SubscriptionRepo, SessionSlotRepo
)

class UoW(Protocol):
    users: UserRepo
    plans: PlanRepo
    subscriptions: SubscriptionRepo
    slots: SessionSlotRepo

    def commit(self) -> None: ...
    def rollback(self) -> None: ...
