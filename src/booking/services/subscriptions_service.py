import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError

from src.booking.core.settings import settings
from src.booking.domain.contracts.uow import UoW
from src.booking.domain.entities.subscription import Subscription
from src.booking.domain.entities.session_slot import SessionSlot
from src.booking.domain.enums import SubscriptionStatus, PaymentStatus
from src.booking.domain.errors import NotFound, Conflict, PastTime, SlotConflict, BatchRejected
from src.booking.domain.services.availability import generate_available_slots
from src.booking.domain.services.batch_validation import validate_batch, convert_batch
from src.booking.domain.services.timezones import DATE_FORMAT, local_midnight_utc, as_utc
from src.booking.domain.value_objects import DateRange, SessionRequest

logger = logging.getLogger(__name__)

MAX_AVAILABILITY_DAYS = 62


class SubscriptionsService:
    def __init__(self, uow: UoW):
        self.uow = uow
        self.buffer_minutes = settings.SLOT_BUFFER_MINUTES

    def create_subscription(
        self,
        user_id: int,
        plan_id: int,
        start_date: str,
        sessions: Sequence[SessionRequest],
        user_country: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Subscription:
        """
        Подписка на план вместе со всеми сессиями одним пакетом.

        Окно подписки: [полночь start_date в зоне пользователя, + plan.duration дней].
        Любое нарушение отклоняет пакет целиком (BatchRejected), ничего не пишется.
        """
        now = as_utc(now or datetime.now(timezone.utc))

        try:
            user = self.uow.users.get_by_id(user_id)
            if not user:
                raise NotFound("User not found.")

            plan = self.uow.plans.get_by_id(plan_id)
            if not plan:
                raise NotFound("Subscription plan not found.")
            if not plan.is_active:
                raise ValueError("Subscription plan is not active.")

            if self.uow.subscriptions.get_live_for_plan(user_id, plan_id):
                raise Conflict("You already have an active subscription to this plan.")

            country = user_country or user.country
            start = local_midnight_utc(start_date, country)
            if start + timedelta(days=1) <= now:
                raise PastTime("Start date cannot be in the past", ["start_date"])
            end = start + timedelta(days=plan.duration)
            window = DateRange(start=start, end=end)

            # недели на краях окна тоже считаем целиком
            margin = timedelta(days=7)
            buffer = timedelta(minutes=self.buffer_minutes)
            booked = self.uow.slots.list_booked_instants(start - buffer, end + buffer)
            existing = self.uow.slots.list_user_instants(user_id, start - margin, end + margin)

            violations = validate_batch(
                sessions,
                plan.quota,
                window,
                country=country,
                now=now,
                booked=booked,
                existing=existing,
                buffer_minutes=self.buffer_minutes,
            )
            if violations:
                logger.warning(
                    "batch rejected user=%s plan=%s codes=%s",
                    user_id, plan_id, [v.code for v in violations],
                )
                raise BatchRejected(violations)

            slots = convert_batch(sessions, country)
            sub = self.uow.subscriptions.create(
                slots,
                slot_notes=[s.notes for s in sessions],
                user_id=user_id,
                user_email=user.email,
                user_country=country or "",
                plan_id=plan.id,
                plan_name=plan.name,
                plan_price=plan.price,
                plan_currency=plan.currency,
                start_date=start,
                end_date=end,
                total_sessions=plan.sessions_per_month,
                sessions_per_week=plan.sessions_per_week,
                status=SubscriptionStatus.CONFIRMED.value,
                payment_status=PaymentStatus.PENDING.value,
                notes=notes,
            )
            self.uow.commit()

        except IntegrityError as e:
            # параллельная бронь успела занять слот
            self.uow.rollback()
            logger.warning("slot taken concurrently user=%s plan=%s: %s", user_id, plan_id, e.orig)
            raise SlotConflict("Time slot was booked by another request", ["sessions"]) from e

        except Exception:
            self.uow.rollback()
            raise

        logger.info(
            "subscription created id=%s user=%s plan=%s sessions=%s",
            sub.id, user_id, plan_id, len(sub.sessions),
        )
        return sub

    def list_for_user(self, user_id: int) -> list[Subscription]:
        return self.uow.subscriptions.list_by_user(user_id)

    def booked_sessions(self, now: Optional[datetime] = None) -> list[SessionSlot]:
        return self.uow.slots.list_upcoming(as_utc(now or datetime.now(timezone.utc)))

    def available_slots(
        self,
        start_date: str,
        end_date: str,
        country: Optional[str],
        now: Optional[datetime] = None,
    ) -> list[dict]:
        now = as_utc(now or datetime.now(timezone.utc))
        buffer = timedelta(minutes=self.buffer_minutes)
        date_from = local_midnight_utc(start_date, country) - buffer
        date_to = local_midnight_utc(end_date, country) + timedelta(days=1) + buffer
        span = datetime.strptime(end_date, DATE_FORMAT) - datetime.strptime(start_date, DATE_FORMAT)
        if span.days > MAX_AVAILABILITY_DAYS:
            raise ValueError(f"Date range cannot exceed {MAX_AVAILABILITY_DAYS} days.")

        slots = generate_available_slots(
            start_date,
            end_date,
            country,
            self.uow.slots.list_booked_instants(date_from, date_to),
            day_start_hour=settings.BOOKING_DAY_START_HOUR,
            day_end_hour=settings.BOOKING_DAY_END_HOUR,
            step_minutes=settings.SLOT_STEP_MINUTES,
            buffer_minutes=self.buffer_minutes,
        )
        return [s for s in slots if s["starts_at_utc"] > now]
