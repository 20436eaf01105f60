from enum import StrEnum

class UserRole(StrEnum):
    USER = "User"
    ADMIN = "Admin"

class Gender(StrEnum):
    MALE = "Male"
    FEMALE = "Female"

class Currency(StrEnum):
    EGP = "EGP"
    USD = "USD"
    EUR = "EUR"

class SubscriptionStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"

class SlotStatus(StrEnum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    MISSED = "missed"

class OtpPurpose(StrEnum):
    REGISTRATION = "registration"
    LOGIN = "login"
    PASSWORD_RESET = "password_reset"


# Подписки, чьи слоты считаются занятыми
LIVE_SUBSCRIPTION_STATUSES = (SubscriptionStatus.CONFIRMED, SubscriptionStatus.ACTIVE)

# Слоты, которые держат время пользователя
HOLDING_SLOT_STATUSES = (SlotStatus.SCHEDULED, SlotStatus.COMPLETED)

# Единственные допустимые переходы статуса слота
SLOT_TRANSITIONS = {
    SlotStatus.SCHEDULED: {SlotStatus.COMPLETED, SlotStatus.CANCELLED, SlotStatus.MISSED},
}

# Подписка в этих статусах снимает свои запланированные слоты
RELEASING_SUBSCRIPTION_STATUSES = (
    SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED, SubscriptionStatus.COMPLETED,
)
