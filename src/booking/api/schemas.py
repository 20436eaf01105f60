from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from src.booking.domain.enums import Currency, Gender, SubscriptionStatus, PaymentStatus, SlotStatus
from src.booking.domain.entities.subscription import Subscription
from src.booking.domain.entities.session_slot import SessionSlot
from src.booking.domain.services.timezones import from_utc, timezone_for_country


def _normalize_email(v: str) -> str:
    v = (v or "").strip().lower()
    local, _, domain = v.partition("@")
    if not local or "." not in domain:
        raise ValueError("Please provide a valid email address")
    return v


# Auth
class EmailRequest(BaseModel):
    email: str

    normalize_email = field_validator("email")(_normalize_email)


class VerifyOtpRequest(EmailRequest):
    otp: str = Field(..., pattern=r"^\d{6}$", description="6-значный код из письма")


class CompleteRegistrationRequest(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    phone: str = Field(..., pattern=r"^\+?[0-9]{7,15}$")
    gender: Gender
    country: str = Field(..., min_length=2, max_length=100)


class AdminRegisterRequest(EmailRequest):
    password: str = Field(..., min_length=6)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)


class AdminLoginRequest(EmailRequest):
    password: str


class ResetPasswordRequest(EmailRequest):
    otp: str = Field(..., pattern=r"^\d{6}$")
    password: str = Field(..., min_length=6)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    country: Optional[str] = None
    timezone: Optional[str] = None
    email_verified: bool
    is_active: bool
    created_at: datetime


class AuthTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: Optional[UserResponse] = None


class VerifyOtpResponse(AuthTokenResponse):
    # login | registration
    kind: str
    requires_registration: bool = False


class MessageResponse(BaseModel):
    message: str


class UserActiveRequest(BaseModel):
    is_active: bool


class UsersPageResponse(BaseModel):
    items: list[UserResponse]
    total: int
    page: int
    limit: int


# Plans
class PlanCreateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    sessions_per_month: int = Field(..., ge=1, le=100)
    sessions_per_week: int = Field(..., ge=1, le=7)
    price: float = Field(..., ge=0, le=100000)
    currency: Currency = Currency.EGP
    duration: int = Field(30, ge=1, le=365, description="Длительность подписки в днях")
    features: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Plan name must be 2-100 characters")
        return v

    @field_validator("features")
    @classmethod
    def _features(cls, v: list[str]) -> list[str]:
        out = [f.strip() for f in v]
        if any(not f or len(f) > 100 for f in out):
            raise ValueError("Each feature must be 1-100 characters")
        return out

    @model_validator(mode="after")
    def _week_le_month(self):
        if self.sessions_per_week > self.sessions_per_month:
            raise ValueError("Sessions per week cannot exceed sessions per month")
        return self


class PlanUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    sessions_per_month: Optional[int] = Field(None, ge=1, le=100)
    sessions_per_week: Optional[int] = Field(None, ge=1, le=7)
    price: Optional[float] = Field(None, ge=0, le=100000)
    currency: Optional[Currency] = None
    duration: Optional[int] = Field(None, ge=1, le=365)
    features: Optional[list[str]] = None
    is_active: Optional[bool] = None


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    sessions_per_month: int
    sessions_per_week: int
    price: float
    price_per_session: float
    currency: str
    duration: int
    features: list[str] = Field(default_factory=list)
    is_active: bool
    created_at: datetime


class PlansPageResponse(BaseModel):
    items: list[PlanResponse]
    total: int
    page: int
    limit: int


# Subscriptions
class SessionIn(BaseModel):
    date: str = Field(..., description="YYYY-MM-DD, локальная дата пользователя")
    time: str = Field(..., description="HH:MM, локальное время пользователя")
    notes: Optional[str] = Field(None, max_length=500)


class CreateSubscriptionRequest(BaseModel):
    subscription_plan_id: int
    start_date: str = Field(..., description="YYYY-MM-DD")
    sessions: list[SessionIn] = Field(..., min_length=1)
    user_country: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)


class SubscriptionStatusRequest(BaseModel):
    status: Optional[SubscriptionStatus] = None
    payment_status: Optional[PaymentStatus] = None
    notes: Optional[str] = Field(None, max_length=1000)


class SessionUpdateRequest(BaseModel):
    status: Optional[SlotStatus] = None
    notes: Optional[str] = Field(None, max_length=500)


class SessionResponse(BaseModel):
    id: int
    subscription_id: int
    starts_at_utc: datetime
    # в зоне отображения
    date: str
    time: str
    timezone: str
    formatted: str
    # как вводил пользователь
    local_date: str
    local_time: str
    country: str
    status: str
    notes: Optional[str] = None


class SubscriptionResponse(BaseModel):
    id: int
    user_id: int
    user_email: str
    user_country: str
    plan_id: Optional[int] = None
    plan_name: str
    plan_price: float
    plan_currency: str
    start_date: datetime
    end_date: datetime
    total_sessions: int
    sessions_per_week: int
    sessions_completed: int
    sessions_remaining: int
    status: str
    payment_status: str
    notes: Optional[str] = None
    display_timezone: str
    next_session: Optional[SessionResponse] = None
    sessions: list[SessionResponse]
    created_at: datetime


class SubscriptionsPageResponse(BaseModel):
    items: list[SubscriptionResponse]
    total: int
    page: int
    limit: int


class AvailableSlotResponse(BaseModel):
    date: str
    time: str
    starts_at_utc: datetime
    timezone: str
    formatted: str


class CountryResponse(BaseModel):
    country: str
    timezone: str


def session_to_response(s: SessionSlot, display_country: Optional[str] = None) -> SessionResponse:
    """Сессия в зоне display_country (по умолчанию в зоне, где её бронировали)."""
    local = from_utc(s.starts_at_utc, display_country if display_country else s.country)
    return SessionResponse(
        id=s.id,
        subscription_id=s.subscription_id,
        starts_at_utc=s.starts_at_utc,
        date=local.date,
        time=local.time,
        timezone=local.timezone,
        formatted=local.formatted,
        local_date=s.local_date,
        local_time=s.local_time,
        country=s.country,
        status=str(s.status),
        notes=s.notes,
    )


def subscription_to_response(sub: Subscription, display_country: Optional[str] = None) -> SubscriptionResponse:
    country = display_country or sub.user_country
    nxt = sub.next_session()
    return SubscriptionResponse(
        id=sub.id,
        user_id=sub.user_id,
        user_email=sub.user_email,
        user_country=sub.user_country,
        plan_id=sub.plan_id,
        plan_name=sub.plan_name,
        plan_price=sub.plan_price,
        plan_currency=sub.plan_currency,
        start_date=sub.start_date,
        end_date=sub.end_date,
        total_sessions=sub.total_sessions,
        sessions_per_week=sub.sessions_per_week,
        sessions_completed=sub.sessions_completed,
        sessions_remaining=sub.sessions_remaining,
        status=str(sub.status),
        payment_status=str(sub.payment_status),
        notes=sub.notes,
        display_timezone=timezone_for_country(country),
        next_session=session_to_response(nxt, country) if nxt else None,
        sessions=[session_to_response(s, country) for s in sub.sessions],
        created_at=sub.created_at,
    )


def page_payload(items: list[Any], total: int, page: int, limit: int) -> dict[str, Any]:
    return {"items": items, "total": total, "page": page, "limit": limit}
