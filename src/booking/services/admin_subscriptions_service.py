import logging
from datetime import datetime, timezone
from typing import Any, Optional

from src.booking.domain.contracts.uow import UoW
from src.booking.domain.entities.subscription import Subscription
from src.booking.domain.enums import SlotStatus, PaymentStatus, SLOT_TRANSITIONS, RELEASING_SUBSCRIPTION_STATUSES
from src.booking.domain.errors import NotFound

logger = logging.getLogger(__name__)


class AdminSubscriptionsService:
    def __init__(self, uow: UoW):
        self.uow = uow

    def list_subscriptions(
        self,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        user_email: Optional[str] = None,
        plan_name: Optional[str] = None,
    ):
        return self.uow.subscriptions.list(
            page=page, limit=limit,
            status=status, user_email=user_email, plan_name=plan_name,
        )

    def stats(self) -> dict[str, Any]:
        return self.uow.subscriptions.stats()

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        return self.uow.subscriptions.get_by_id(subscription_id)

    def delete_subscription(self, subscription_id: int) -> None:
        try:
            if not self.uow.subscriptions.delete(subscription_id):
                raise NotFound("Subscription not found.")
            self.uow.commit()
        except Exception:
            self.uow.rollback()
            raise
        logger.info("subscription %s deleted", subscription_id)

    def update_status(
        self,
        subscription_id: int,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Subscription:
        fields: dict[str, Any] = {}
        if status is not None:
            fields["status"] = str(status)
        if payment_status is not None:
            fields["payment_status"] = str(payment_status)
            if payment_status == PaymentStatus.PAID:
                fields["payment_confirmed_at"] = datetime.now(timezone.utc)
        if notes is not None:
            fields["notes"] = notes
        if not fields:
            raise ValueError("Nothing to update.")

        try:
            if not self.uow.subscriptions.get_by_id(subscription_id):
                raise NotFound("Subscription not found.")

            released = 0
            if status is not None and status in RELEASING_SUBSCRIPTION_STATUSES:
                # иначе частичный уникальный индекс держал бы время после отмены
                released = self.uow.slots.cancel_scheduled(subscription_id)

            sub = self.uow.subscriptions.update(subscription_id, **fields)
            self.uow.commit()
        except Exception:
            self.uow.rollback()
            raise

        logger.info("subscription %s updated: %s, slots released=%s", subscription_id, sorted(fields), released)
        return sub

    def update_session(
        self,
        subscription_id: int,
        slot_id: int,
        status: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Subscription:
        """Слоты не переносятся: меняются только статус (scheduled -> ...) и заметки."""
        try:
            slot = self.uow.slots.get(subscription_id, slot_id)
            if not slot:
                raise NotFound("Session not found.")

            fields: dict[str, Any] = {}
            if status is not None and status != slot.status:
                target = SlotStatus(status)
                if target not in SLOT_TRANSITIONS.get(slot.status, set()):
                    raise ValueError(f"Cannot change session status from {slot.status} to {target}.")
                fields["status"] = target.value
            if notes is not None:
                fields["notes"] = notes

            if fields:
                self.uow.slots.update(slot_id, **fields)
                self.uow.commit()

        except Exception:
            self.uow.rollback()
            raise

        sub = self.uow.subscriptions.get_by_id(subscription_id)
        logger.info("session %s of subscription %s updated: %s", slot_id, subscription_id, sorted(fields))
        return sub
