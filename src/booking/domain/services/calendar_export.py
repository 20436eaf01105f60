from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from src.booking.domain.services.timezones import as_utc
from src.booking.domain.value_objects import CalendarEvent


PRODID = "-//Appointment Booking System//EN"
DEFAULT_DURATION_MINUTES = 30
MAX_LINE_OCTETS = 75


def format_ics_date(dt: datetime) -> str:
    return as_utc(dt).strftime("%Y%m%dT%H%M%SZ")


def quote_param(value: Any) -> str:
    """Значение параметра (CN=...) в DQUOTE; кавычки и управляющие символы выбрасываем."""
    text = "" if value is None else str(value)
    text = "".join(ch for ch in text if ch == "\t" or (ch != '"' and ch.isprintable()))
    return f'"{text}"'


def fold_line(line: str, limit: int = MAX_LINE_OCTETS) -> str:
    """
    Перенос строки по 75 октетов (RFC 5545, 3.1): продолжение начинается с пробела.
    Многобайтовые символы UTF-8 не разрываются.
    """
    if len(line.encode("utf-8")) <= limit:
        return line

    parts: list[str] = []
    current, size = "", 0
    # у строк продолжения один октет занимает ведущий пробел
    budget = limit
    for ch in line:
        n = len(ch.encode("utf-8"))
        if size + n > budget:
            parts.append(current)
            current, size = "", 0
            budget = limit - 1
        current += ch
        size += n
    parts.append(current)
    return "\r\n ".join(parts)


def escape_ics_text(value: Any) -> str:
    """
    Экранирование TEXT по RFC 5545. Никогда не падает:
    всё, что не строка, приводится через str(), None -> "".
    """
    if value is None:
        return ""
    try:
        text = value if isinstance(value, str) else str(value)
    except Exception:
        return ""
    return (
        text.replace("\\", "\\\\")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace(",", "\\,")
        .replace(";", "\\;")
    )


def event_uid(subscription_id: Any, starts_at: datetime, index: int) -> str:
    epoch_ms = int(as_utc(starts_at).timestamp() * 1000)
    return f"{subscription_id}-{epoch_ms}-{index}@appointments"


def build_calendar(
    subscription_id: Any,
    organizer_email: str,
    attendee_email: str,
    events: Sequence[CalendarEvent],
    summary: str = "Session",
    now: Optional[datetime] = None,
) -> str:
    """
    iCalendar-документ: один VEVENT на сессию, время в UTC.
    UID стабилен для одной и той же подписки, поэтому повторная генерация
    не плодит дубликатов в календаре получателя.
    """
    dtstamp = format_ics_date(now or datetime.now(timezone.utc))
    lines = [
        "BEGIN:VCALENDAR",
        f"PRODID:{PRODID}",
        "VERSION:2.0",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]

    for i, ev in enumerate(events):
        start = as_utc(ev.starts_at)
        duration = ev.duration_minutes if ev.duration_minutes and ev.duration_minutes > 0 else DEFAULT_DURATION_MINUTES
        end = start + timedelta(minutes=duration)

        lines.extend([
            "BEGIN:VEVENT",
            f"UID:{event_uid(subscription_id, start, i)}",
            f"DTSTAMP:{dtstamp}",
            f"DTSTART:{format_ics_date(start)}",
            f"DTEND:{format_ics_date(end)}",
            f"SUMMARY:Session {i + 1} - {escape_ics_text(summary)}",
            f"DESCRIPTION:{escape_ics_text(ev.notes)}",
            f"ORGANIZER:MAILTO:{organizer_email}",
            f"ATTENDEE;CN={quote_param(attendee_email)};ROLE=REQ-PARTICIPANT:MAILTO:{attendee_email}",
            "STATUS:CONFIRMED",
            "END:VEVENT",
        ])

    lines.append("END:VCALENDAR")
    return "\r\n".join(fold_line(line) for line in lines)
