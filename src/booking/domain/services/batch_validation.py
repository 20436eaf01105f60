"""
Проверка пакета сессий при создании подписки.

Пакет принимается только целиком: любое нарушение отклоняет все сессии.
Порядок проверок:
    1. количество сессий == sessions_per_month плана (иначе дальше не смотрим);
    2. по каждой сессии: разбор даты/времени, будущее время, окно подписки,
       коллизия с предыдущими сессиями пакета, коллизия с занятыми слотами;
    3. недельный лимит по ISO-неделям (понедельник 00:00 по локальному времени).
"""
from collections import Counter
from datetime import datetime
from typing import Optional, Sequence

from src.booking.domain.errors import (
    SchedulingError, InvalidDateTime, PastTime, OutOfWindow,
    WeeklyCapExceeded, DuplicateInBatch, SlotConflict, PlanMismatch,
)
from src.booking.domain.services.availability import DEFAULT_BUFFER_MINUTES, first_collision
from src.booking.domain.services.timezones import as_utc, timezone_for_country, to_local, to_utc
from src.booking.domain.value_objects import DateRange, PlanQuota, SessionRequest, UtcSlot


def week_key(instant: datetime, tz_name: str) -> tuple[int, int]:
    """ISO-неделя (год, номер) момента в заданной зоне."""
    iso = to_local(instant, tz_name).isocalendar()
    return iso[0], iso[1]


def convert_batch(sessions: Sequence[SessionRequest], country: Optional[str]) -> list[UtcSlot]:
    return [to_utc(s.date, s.time, country) for s in sessions]


def validate_batch(
    sessions: Sequence[SessionRequest],
    plan: PlanQuota,
    window: DateRange,
    *,
    country: Optional[str],
    now: datetime,
    booked: Sequence[datetime] = (),
    existing: Sequence[datetime] = (),
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES,
) -> list[SchedulingError]:
    """
    Возвращает список нарушений; пустой список значит, что пакет можно сохранять.

    booked   – занятые моменты, с которыми новые сессии не должны пересекаться;
    existing – уже запланированные/проведённые сессии пользователя,
               которые учитываются в недельном лимите.
    """
    if len(sessions) != plan.sessions_per_month:
        return [
            PlanMismatch(
                f"You must schedule exactly {plan.sessions_per_month} sessions for this plan "
                f"(got {len(sessions)})",
                ["sessions"],
            )
        ]

    now = as_utc(now)
    tz_name = timezone_for_country(country)
    violations: list[SchedulingError] = []
    accepted: list[datetime] = []
    weekly: Counter = Counter(week_key(e, tz_name) for e in existing)
    new_weeks: set[tuple[int, int]] = set()

    for i, s in enumerate(sessions):
        field = f"sessions[{i}]"
        label = f"Session {i + 1} ({s.date} {s.time})"

        try:
            slot = to_utc(s.date, s.time, country)
        except InvalidDateTime as e:
            violations.append(InvalidDateTime(f"{label}: {e.message}", [field]))
            continue

        instant = slot.starts_at_utc

        if instant <= now:
            violations.append(PastTime(f"{label}: cannot book a session in the past", [field]))
            continue

        if not window.contains(instant):
            violations.append(
                OutOfWindow(f"{label}: session must be within the subscription window", [field])
            )
            continue

        if first_collision(instant, accepted, buffer_minutes) is not None:
            violations.append(
                DuplicateInBatch(
                    f"{label}: collides with another session of this request "
                    f"(minimum spacing {buffer_minutes} minutes)",
                    [field],
                )
            )
            continue

        if first_collision(instant, booked, buffer_minutes) is not None:
            violations.append(SlotConflict(f"{label}: time slot is already booked", [field]))
            continue

        accepted.append(instant)
        wk = week_key(instant, tz_name)
        weekly[wk] += 1
        new_weeks.add(wk)

    for wk in sorted(new_weeks):
        if weekly[wk] > plan.sessions_per_week:
            year, num = wk
            violations.append(
                WeeklyCapExceeded(
                    f"Cannot schedule more than {plan.sessions_per_week} sessions per week "
                    f"(week {num} of {year} has {weekly[wk]})",
                    ["sessions"],
                )
            )

    return violations
