from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError("Invalid date range.")

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


@dataclass(frozen=True)
class SessionRequest:
    """Сессия в том виде, как её прислал клиент: локальные дата и время."""
    date: str
    time: str
    notes: Optional[str] = None


@dataclass(frozen=True)
class UtcSlot:
    """
    Результат перевода локального времени в UTC.
    Исходные строки сохраняются для отображения и не пересчитываются из UTC.
    """
    starts_at_utc: datetime
    timezone: str
    local_date: str
    local_time: str
    country: str


@dataclass(frozen=True)
class LocalTime:
    date: str
    time: str
    timezone: str
    formatted: str


@dataclass(frozen=True)
class PlanQuota:
    sessions_per_month: int
    sessions_per_week: int


@dataclass(frozen=True)
class CalendarEvent:
    starts_at: datetime
    duration_minutes: int = 30
    notes: Optional[str] = None


@dataclass(frozen=True)
class MailAttachment:
    filename: str
    content: str
    content_type: str


@dataclass(frozen=True)
class MailMessage:
    to: str
    subject: str
    html: str
    text: str
    attachments: tuple[MailAttachment, ...] = ()


@dataclass(frozen=True)
class AuthCredentials:
    user_id: int
    password_hash: str
