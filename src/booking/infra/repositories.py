from __future__ import annotations

from typing import Optional, Sequence, Any
from datetime import datetime

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func

from src.booking.infra.models import (
    UserORM, SubscriptionPlanORM, SubscriptionORM, SessionSlotORM,
)

from src.booking.domain.enums import (
    UserRole, SlotStatus, SubscriptionStatus, PaymentStatus,
    LIVE_SUBSCRIPTION_STATUSES, HOLDING_SLOT_STATUSES,
)
from src.booking.domain.value_objects import AuthCredentials, UtcSlot
from src.booking.domain.entities.user import User
from src.booking.domain.entities.plan import SubscriptionPlan
from src.booking.domain.entities.subscription import Subscription
from src.booking.domain.entities.session_slot import SessionSlot


_LIVE = [s.value for s in LIVE_SUBSCRIPTION_STATUSES]
_HOLDING = [s.value for s in HOLDING_SLOT_STATUSES]


# mappers ORM -> Domain
def _user_dom(u: UserORM) -> User:
    return User(
        id=int(u.id),
        email=str(u.email),
        role=UserRole(str(u.role)),
        email_verified=bool(u.email_verified),
        is_active=bool(u.is_active),
        created_at=u.created_at,
        first_name=u.first_name,
        last_name=u.last_name,
        phone=u.phone,
        gender=u.gender,
        country=u.country,
        timezone=u.timezone,
        updated_at=u.updated_at,
    )


def _plan_dom(p: SubscriptionPlanORM) -> SubscriptionPlan:
    return SubscriptionPlan(
        id=int(p.id),
        name=str(p.name),
        description=p.description,
        sessions_per_month=int(p.sessions_per_month),
        sessions_per_week=int(p.sessions_per_week),
        price=float(p.price),
        currency=str(p.currency),
        duration=int(p.duration),
        features=list(p.features or []),
        is_active=bool(p.is_active),
        created_by=int(p.created_by) if p.created_by is not None else None,
        created_at=p.created_at,
        updated_at=p.updated_at,
    )


def _slot_dom(s: SessionSlotORM) -> SessionSlot:
    return SessionSlot(
        id=int(s.id),
        subscription_id=int(s.subscription_id),
        user_id=int(s.user_id),
        starts_at_utc=s.starts_at_utc,
        local_date=str(s.local_date),
        local_time=str(s.local_time),
        country=str(s.country),
        timezone=str(s.timezone),
        status=SlotStatus(str(s.status)),
        notes=s.notes,
        slot_version=int(s.slot_version or 2),
    )


def _sub_dom(s: SubscriptionORM) -> Subscription:
    return Subscription(
        id=int(s.id),
        user_id=int(s.user_id),
        user_email=str(s.user_email),
        user_country=str(s.user_country),
        plan_id=int(s.plan_id) if s.plan_id is not None else None,
        plan_name=str(s.plan_name),
        plan_price=float(s.plan_price),
        plan_currency=str(s.plan_currency),
        start_date=s.start_date,
        end_date=s.end_date,
        total_sessions=int(s.total_sessions),
        sessions_per_week=int(s.sessions_per_week),
        status=SubscriptionStatus(str(s.status)),
        payment_status=PaymentStatus(str(s.payment_status)),
        notes=s.notes,
        created_at=s.created_at,
        updated_at=s.updated_at,
        sessions=[_slot_dom(x) for x in s.slots],
    )


def _page(q, page: int, limit: int):
    return q.offset(max(page - 1, 0) * limit).limit(limit)


# repos
class SqlUserRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> Optional[User]:
        u = self.db.query(UserORM).filter(UserORM.id == user_id).first()
        return _user_dom(u) if u else None

    def get_by_email(self, email: str) -> Optional[User]:
        u = self.db.query(UserORM).filter(UserORM.email == email).first()
        return _user_dom(u) if u else None

    def get_by_phone(self, phone: str) -> Optional[User]:
        u = self.db.query(UserORM).filter(UserORM.phone == phone).first()
        return _user_dom(u) if u else None

    def get_auth_credentials(self, email: str) -> Optional[AuthCredentials]:
        u = self.db.query(UserORM).filter(UserORM.email == email).first()
        if not u or not u.password_hash:
            return None
        return AuthCredentials(user_id=int(u.id), password_hash=str(u.password_hash))

    def create(self, email: str, role: str, **fields: Any) -> User:
        u = UserORM(email=email, role=str(role), is_active=True, **fields)
        self.db.add(u)
        self.db.flush()
        return _user_dom(u)

    def set_password_hash(self, user_id: int, password_hash: str) -> None:
        u = self.db.query(UserORM).filter(UserORM.id == user_id).first()
        if not u:
            raise ValueError("User not found")
        u.password_hash = password_hash
        self.db.flush()

    def set_active(self, user_id: int, is_active: bool) -> Optional[User]:
        u = self.db.query(UserORM).filter(UserORM.id == user_id).first()
        if not u:
            return None
        u.is_active = bool(is_active)
        self.db.flush()
        return _user_dom(u)

    def admin_exists(self) -> bool:
        q = self.db.query(UserORM.id).filter(UserORM.role == UserRole.ADMIN.value)
        return self.db.query(q.exists()).scalar()

    def list(self, page: int, limit: int, role: Optional[str] = None) -> tuple[list[User], int]:
        q = self.db.query(UserORM)
        if role:
            q = q.filter(UserORM.role == role)
        total = q.count()
        rows = _page(q.order_by(UserORM.created_at.desc(), UserORM.id.desc()), page, limit).all()
        return [_user_dom(u) for u in rows], int(total)

    def delete(self, user_id: int) -> bool:
        u = self.db.query(UserORM).filter(UserORM.id == user_id).first()
        if not u:
            return False
        self.db.delete(u)
        self.db.flush()
        return True


class SqlPlanRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, plan_id: int) -> Optional[SubscriptionPlan]:
        p = self.db.query(SubscriptionPlanORM).filter(SubscriptionPlanORM.id == plan_id).first()
        return _plan_dom(p) if p else None

    def get_by_name(self, name: str) -> Optional[SubscriptionPlan]:
        p = self.db.query(SubscriptionPlanORM).filter(SubscriptionPlanORM.name == name).first()
        return _plan_dom(p) if p else None

    def create(self, **fields: Any) -> SubscriptionPlan:
        p = SubscriptionPlanORM(**fields)
        self.db.add(p)
        self.db.flush()
        return _plan_dom(p)

    def update(self, plan_id: int, **fields: Any) -> Optional[SubscriptionPlan]:
        p = self.db.query(SubscriptionPlanORM).filter(SubscriptionPlanORM.id == plan_id).first()
        if not p:
            return None
        for k, v in fields.items():
            setattr(p, k, v)
        self.db.flush()
        return _plan_dom(p)

    def delete(self, plan_id: int) -> bool:
        p = self.db.query(SubscriptionPlanORM).filter(SubscriptionPlanORM.id == plan_id).first()
        if not p:
            return False
        self.db.delete(p)
        self.db.flush()
        return True

    def list(self, page: int, limit: int, is_active: Optional[bool] = None) -> tuple[list[SubscriptionPlan], int]:
        q = self.db.query(SubscriptionPlanORM)
        if is_active is not None:
            q = q.filter(SubscriptionPlanORM.is_active.is_(bool(is_active)))
        total = q.count()
        rows = _page(
            q.order_by(SubscriptionPlanORM.created_at.desc(), SubscriptionPlanORM.id.desc()),
            page, limit,
        ).all()
        return [_plan_dom(p) for p in rows], int(total)

    def list_active(self) -> list[SubscriptionPlan]:
        rows = (
            self.db.query(SubscriptionPlanORM)
            .filter(SubscriptionPlanORM.is_active.is_(True))
            .order_by(SubscriptionPlanORM.price.asc())
            .all()
        )
        return [_plan_dom(p) for p in rows]


class SqlSubscriptionRepo:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(SubscriptionORM).options(selectinload(SubscriptionORM.slots))

    def create(
        self,
        slots: Sequence[UtcSlot],
        slot_notes: Sequence[Optional[str]] = (),
        **fields: Any,
    ) -> Subscription:
        sub = SubscriptionORM(**fields)
        notes = list(slot_notes) + [None] * (len(slots) - len(slot_notes))
        for slot, note in sorted(zip(slots, notes), key=lambda x: x[0].starts_at_utc):
            sub.slots.append(
                SessionSlotORM(
                    user_id=fields["user_id"],
                    starts_at_utc=slot.starts_at_utc,
                    local_date=slot.local_date,
                    local_time=slot.local_time,
                    country=slot.country,
                    timezone=slot.timezone,
                    status=SlotStatus.SCHEDULED.value,
                    notes=note,
                )
            )
        self.db.add(sub)
        self.db.flush()
        return _sub_dom(sub)

    def get_by_id(self, subscription_id: int) -> Optional[Subscription]:
        s = self._query().filter(SubscriptionORM.id == subscription_id).first()
        return _sub_dom(s) if s else None

    def get_live_for_plan(self, user_id: int, plan_id: int) -> Optional[Subscription]:
        s = (
            self._query()
            .filter(
                SubscriptionORM.user_id == user_id,
                SubscriptionORM.plan_id == plan_id,
                SubscriptionORM.status.in_(_LIVE),
            )
            .first()
        )
        return _sub_dom(s) if s else None

    def list_by_user(self, user_id: int) -> list[Subscription]:
        rows = (
            self._query()
            .filter(SubscriptionORM.user_id == user_id)
            .order_by(SubscriptionORM.created_at.desc(), SubscriptionORM.id.desc())
            .all()
        )
        return [_sub_dom(s) for s in rows]

    def list(
        self,
        page: int,
        limit: int,
        status: Optional[str] = None,
        user_email: Optional[str] = None,
        plan_name: Optional[str] = None,
    ) -> tuple[list[Subscription], int]:
        q = self._query()
        if status:
            q = q.filter(SubscriptionORM.status == status)
        if user_email:
            q = q.filter(func.lower(SubscriptionORM.user_email).like(f"%{user_email.strip().lower()}%"))
        if plan_name:
            q = q.filter(func.lower(SubscriptionORM.plan_name).like(f"%{plan_name.strip().lower()}%"))
        total = q.count()
        rows = _page(q.order_by(SubscriptionORM.created_at.desc(), SubscriptionORM.id.desc()), page, limit).all()
        return [_sub_dom(s) for s in rows], int(total)

    def update(self, subscription_id: int, **fields: Any) -> Optional[Subscription]:
        s = self._query().filter(SubscriptionORM.id == subscription_id).first()
        if not s:
            return None
        for k, v in fields.items():
            setattr(s, k, v)
        self.db.flush()
        return _sub_dom(s)

    def delete(self, subscription_id: int) -> bool:
        s = self.db.query(SubscriptionORM).filter(SubscriptionORM.id == subscription_id).first()
        if not s:
            return False
        self.db.delete(s)
        self.db.flush()
        return True

    def stats(self) -> dict[str, Any]:
        total = self.db.query(func.count(SubscriptionORM.id)).scalar() or 0

        by_status = (
            self.db.query(SubscriptionORM.status, func.count(SubscriptionORM.id))
            .group_by(SubscriptionORM.status)
            .all()
        )
        by_payment = (
            self.db.query(
                SubscriptionORM.payment_status,
                func.count(SubscriptionORM.id),
                func.sum(SubscriptionORM.plan_price),
            )
            .group_by(SubscriptionORM.payment_status)
            .all()
        )
        by_plan = (
            self.db.query(
                SubscriptionORM.plan_name,
                func.count(SubscriptionORM.id),
                func.sum(SubscriptionORM.plan_price),
            )
            .group_by(SubscriptionORM.plan_name)
            .order_by(func.count(SubscriptionORM.id).desc())
            .all()
        )
        return {
            "total_subscriptions": int(total),
            "status_breakdown": [{"status": s, "count": int(c)} for s, c in by_status],
            "payment_breakdown": [
                {"payment_status": s, "count": int(c), "total_revenue": float(r or 0)}
                for s, c, r in by_payment
            ],
            "popular_plans": [
                {"plan_name": n, "count": int(c), "total_revenue": float(r or 0)}
                for n, c, r in by_plan
            ],
        }


class SqlSessionSlotRepo:
    def __init__(self, db: Session):
        self.db = db

    def _live_holding(self):
        return (
            self.db.query(SessionSlotORM)
            .join(SubscriptionORM, SubscriptionORM.id == SessionSlotORM.subscription_id)
            .filter(
                SubscriptionORM.status.in_(_LIVE),
                SessionSlotORM.status.in_(_HOLDING),
            )
        )

    def list_booked_instants(self, date_from: datetime, date_to: datetime) -> list[datetime]:
        """Все занятые моменты в системе (живые подписки, не отменённые слоты)."""
        rows = (
            self._live_holding()
            .filter(
                SessionSlotORM.starts_at_utc >= date_from,
                SessionSlotORM.starts_at_utc <= date_to,
            )
            .with_entities(SessionSlotORM.starts_at_utc)
            .all()
        )
        return [r[0] for r in rows]

    def list_user_instants(self, user_id: int, date_from: datetime, date_to: datetime) -> list[datetime]:
        rows = (
            self._live_holding()
            .filter(
                SessionSlotORM.user_id == user_id,
                SessionSlotORM.starts_at_utc >= date_from,
                SessionSlotORM.starts_at_utc <= date_to,
            )
            .with_entities(SessionSlotORM.starts_at_utc)
            .all()
        )
        return [r[0] for r in rows]

    def list_upcoming(self, now: datetime) -> list[SessionSlot]:
        rows = (
            self._live_holding()
            .filter(SessionSlotORM.starts_at_utc >= now)
            .order_by(SessionSlotORM.starts_at_utc.asc())
            .all()
        )
        return [_slot_dom(s) for s in rows]

    def get(self, subscription_id: int, slot_id: int) -> Optional[SessionSlot]:
        s = (
            self.db.query(SessionSlotORM)
            .filter(
                SessionSlotORM.id == slot_id,
                SessionSlotORM.subscription_id == subscription_id,
            )
            .first()
        )
        return _slot_dom(s) if s else None

    def update(self, slot_id: int, **fields: Any) -> SessionSlot:
        s = self.db.query(SessionSlotORM).filter(SessionSlotORM.id == slot_id).first()
        if not s:
            raise ValueError("Session not found")
        for k, v in fields.items():
            setattr(s, k, v)
        self.db.flush()
        return _slot_dom(s)

    def cancel_scheduled(self, subscription_id: int) -> int:
        """Снимает с подписки все ещё не проведённые слоты, освобождая время в индексе."""
        rows = (
            self.db.query(SessionSlotORM)
            .filter(
                SessionSlotORM.subscription_id == subscription_id,
                SessionSlotORM.status == SlotStatus.SCHEDULED.value,
            )
            .all()
        )
        for s in rows:
            s.status = SlotStatus.CANCELLED.value
        self.db.flush()
        return len(rows)
