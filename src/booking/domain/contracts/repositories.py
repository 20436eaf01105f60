from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from src.booking.domain.entities.user import User
from src.booking.domain.entities.plan import SubscriptionPlan
from src.booking.domain.entities.subscription import Subscription
from src.booking.domain.entities.session_slot import SessionSlot
from src.booking.domain.value_objects import AuthCredentials, UtcSlot


class UserRepo(Protocol):
    def get_by_id(self, user_id: int) -> Optional[User]: ...
    def get_by_email(self, email: str) -> Optional[User]: ...
    def get_by_phone(self, phone: str) -> Optional[User]: ...
    def get_auth_credentials(self, email: str) -> Optional[AuthCredentials]: ...
    def create(self, email: str, role: str, **fields: Any) -> User: ...
    def set_password_hash(self, user_id: int, password_hash: str) -> None: ...
    def set_active(self, user_id: int, is_active: bool) -> Optional[User]: ...
    def admin_exists(self) -> bool: ...
    def list(self, page: int, limit: int, role: Optional[str] = None) -> tuple[list[User], int]: ...
    def delete(self, user_id: int) -> bool: ...


class PlanRepo(Protocol):
    def get_by_id(self, plan_id: int) -> Optional[SubscriptionPlan]: ...
    def get_by_name(self, name: str) -> Optional[SubscriptionPlan]: ...
    def create(self, **fields: Any) -> SubscriptionPlan: ...
    def update(self, plan_id: int, **fields: Any) -> Optional[SubscriptionPlan]: ...
    def delete(self, plan_id: int) -> bool: ...
    def list(self, page: int, limit: int, is_active: Optional[bool] = None) -> tuple[list[SubscriptionPlan], int]: ...
    def list_active(self) -> list[SubscriptionPlan]: ...


class SubscriptionRepo(Protocol):
    def create(
        self,
        slots: Sequence[UtcSlot],
        slot_notes: Sequence[Optional[str]] = (),
        **fields: Any,
    ) -> Subscription: ...
    def get_by_id(self, subscription_id: int) -> Optional[Subscription]: ...
    def get_live_for_plan(self, user_id: int, plan_id: int) -> Optional[Subscription]: ...
    def list_by_user(self, user_id: int) -> list[Subscription]: ...
    def list(self, page: int, limit: int, **filters: Any) -> tuple[list[Subscription], int]: ...
    def update(self, subscription_id: int, **fields: Any) -> Optional[Subscription]: ...
    def delete(self, subscription_id: int) -> bool: ...
    def stats(self) -> dict[str, Any]: ...


class SessionSlotRepo(Protocol):
    def list_booked_instants(self, date_from: datetime, date_to: datetime) -> list[datetime]: ...
    def list_user_instants(self, user_id: int, date_from: datetime, date_to: datetime) -> list[datetime]: ...
    def list_upcoming(self, now: datetime) -> list[SessionSlot]: ...
    def get(self, subscription_id: int, slot_id: int) -> Optional[SessionSlot]: ...
    def update(self, slot_id: int, **fields: Any) -> SessionSlot: ...
    def cancel_scheduled(self, subscription_id: int) -> int: ...
