"""
Сборка писем: OTP и подтверждение подписки (с календарём .ics).

Письма только собираются здесь; отправляет воркер по очереди.
"""
import logging
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from src.booking.core.settings import settings
from src.booking.domain.enums import OtpPurpose
from src.booking.domain.entities.subscription import Subscription
from src.booking.domain.services.calendar_export import build_calendar
from src.booking.domain.services.timezones import DATE_FORMAT, timezone_for_country, to_local
from src.booking.domain.value_objects import CalendarEvent, MailAttachment, MailMessage

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

CALENDAR_FILENAME = "sessions.ics"
CALENDAR_CONTENT_TYPE = "text/calendar; method=PUBLISH"

_OTP_COPY = {
    OtpPurpose.REGISTRATION: (
        "Verify your email",
        "To complete your registration, please verify your email address using the code below.",
    ),
    OtpPurpose.LOGIN: (
        "Your login code",
        "Use the code below to sign in to your account.",
    ),
    OtpPurpose.PASSWORD_RESET: (
        "Reset your password",
        "Use the code below to reset your admin password.",
    ),
}


def render(template_name: str, **ctx: Any) -> str:
    return env.get_template(template_name).render(**ctx)


def otp_email(to: str, otp: str, purpose: OtpPurpose, name: Optional[str] = None) -> MailMessage:
    title, intro = _OTP_COPY[purpose]
    ctx = {
        "title": title,
        "intro": intro,
        "otp": otp,
        "name": name or "User",
        "ttl_minutes": settings.OTP_TTL_SECONDS // 60,
    }
    return MailMessage(
        to=to,
        subject=title,
        html=render("otp.html", **ctx),
        text=render("otp.txt", **ctx),
    )


def subscription_calendar(sub: Subscription, organizer_email: str) -> Optional[str]:
    """ICS для подписки или None, если собрать не удалось (бронирование не валим)."""
    try:
        events = [
            CalendarEvent(
                starts_at=s.starts_at_utc,
                duration_minutes=settings.SESSION_DURATION_MINUTES,
                notes=s.notes,
            )
            for s in sub.sessions
        ]
        return build_calendar(
            subscription_id=sub.id,
            organizer_email=organizer_email,
            attendee_email=sub.user_email,
            events=events,
            summary=sub.plan_name,
        )
    except Exception:
        logger.exception("calendar build failed for subscription %s", sub.id)
        return None


def subscription_confirmed_email(sub: Subscription, name: Optional[str] = None) -> MailMessage:
    tz_name = timezone_for_country(sub.user_country)
    calendar = subscription_calendar(sub, settings.EMAIL_FROM)

    ctx = {
        "name": name or sub.user_email.split("@")[0],
        "plan_name": sub.plan_name,
        "price": sub.plan_price,
        "currency": sub.plan_currency,
        "start_date": to_local(sub.start_date, tz_name).strftime(DATE_FORMAT),
        "end_date": to_local(sub.end_date, tz_name).strftime(DATE_FORMAT),
        "timezone": tz_name,
        "sessions": [
            {"date": s.local_date, "time": s.local_time, "notes": s.notes}
            for s in sub.sessions
        ],
        "has_calendar": calendar is not None,
    }
    attachments: tuple[MailAttachment, ...] = ()
    if calendar is not None:
        attachments = (MailAttachment(CALENDAR_FILENAME, calendar, CALENDAR_CONTENT_TYPE),)

    return MailMessage(
        to=sub.user_email,
        subject=f"Subscription confirmed: {sub.plan_name}",
        html=render("subscription_confirmed.html", **ctx),
        text=render("subscription_confirmed.txt", **ctx),
        attachments=attachments,
    )


# очередь <-> MailMessage
def to_payload(msg: MailMessage, attempt: int = 1) -> dict[str, Any]:
    return {
        "to": msg.to,
        "subject": msg.subject,
        "html": msg.html,
        "text": msg.text,
        "attachments": [
            {"filename": a.filename, "content": a.content, "content_type": a.content_type}
            for a in msg.attachments
        ],
        "attempt": attempt,
    }


def from_payload(payload: dict[str, Any]) -> MailMessage:
    return MailMessage(
        to=payload["to"],
        subject=payload["subject"],
        html=payload.get("html") or "",
        text=payload.get("text") or "",
        attachments=tuple(MailAttachment(**a) for a in payload.get("attachments") or []),
    )
