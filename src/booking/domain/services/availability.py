from datetime import datetime, timedelta
from typing import Iterable, Optional

from src.booking.domain.services.timezones import (
    DATE_FORMAT, DISPLAY_FORMATS, TIME_FORMAT,
    as_utc, timezone_for_country, to_utc,
)
from src.booking.domain.errors import InvalidDateTime


DEFAULT_BUFFER_MINUTES = 30


def is_available(
    candidate: datetime,
    booked: Iterable[datetime],
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES,
) -> bool:
    """
    Слот свободен, если ни один занятый момент не ближе buffer_minutes.
    Сравниваем не точное совпадение, а окно: так не проходят «почти одинаковые» времена.
    """
    c = as_utc(candidate)
    buffer = timedelta(minutes=buffer_minutes)
    return not any(abs(c - as_utc(b)) < buffer for b in booked)


def first_collision(
    candidate: datetime,
    booked: Iterable[datetime],
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES,
) -> Optional[datetime]:
    c = as_utc(candidate)
    buffer = timedelta(minutes=buffer_minutes)
    for b in booked:
        if abs(c - as_utc(b)) < buffer:
            return b
    return None


def generate_available_slots(
    start_date: str,
    end_date: str,
    country: Optional[str],
    booked: Iterable[datetime],
    day_start_hour: int = 7,
    day_end_hour: int = 19,
    step_minutes: int = 30,
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES,
) -> list[dict]:
    """
    Свободные слоты по дням [start_date, end_date] в рабочие часы страны.
    Несуществующие локальные времена (переход на летнее время) пропускаются.
    """
    first = datetime.strptime(start_date, DATE_FORMAT).date()
    last = datetime.strptime(end_date, DATE_FORMAT).date()
    if last < first:
        raise ValueError("end_date must not be before start_date")

    booked = [as_utc(b) for b in booked]
    tz_name = timezone_for_country(country)
    slots: list[dict] = []

    day = first
    while day <= last:
        minute_of_day = day_start_hour * 60
        while minute_of_day < day_end_hour * 60:
            d = day.strftime(DATE_FORMAT)
            t = f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"
            minute_of_day += step_minutes
            try:
                slot = to_utc(d, t, country)
            except InvalidDateTime:
                continue

            if not is_available(slot.starts_at_utc, booked, buffer_minutes):
                continue

            local = datetime.strptime(f"{d} {t}", f"{DATE_FORMAT} {TIME_FORMAT}")
            slots.append({
                "date": d,
                "time": t,
                "starts_at_utc": slot.starts_at_utc,
                "timezone": tz_name,
                "formatted": local.strftime(DISPLAY_FORMATS["short"]),
            })
        day += timedelta(days=1)

    return slots
