"""
Перевод времени между локальной зоной пользователя и UTC.

В БД всё хранится в UTC. Пользователь вводит дату и время в своей зоне,
зона определяется по стране из статической таблицы.
"""
from datetime import datetime, timezone
from typing import Optional

import pytz

from src.booking.domain.errors import InvalidDateTime
from src.booking.domain.value_objects import LocalTime, UtcSlot


DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

COUNTRY_TIMEZONES: dict[str, str] = {
    # Middle East & Gulf
    "Saudi Arabia": "Asia/Riyadh",
    "UAE": "Asia/Dubai",
    "United Arab Emirates": "Asia/Dubai",
    "Kuwait": "Asia/Kuwait",
    "Qatar": "Asia/Qatar",
    "Bahrain": "Asia/Bahrain",
    "Oman": "Asia/Muscat",
    "Jordan": "Asia/Amman",
    "Lebanon": "Asia/Beirut",
    "Syria": "Asia/Damascus",
    "Iraq": "Asia/Baghdad",
    "Iran": "Asia/Tehran",
    "Turkey": "Europe/Istanbul",
    "Yemen": "Asia/Aden",
    "Palestine": "Asia/Gaza",
    # North Africa
    "Egypt": "Africa/Cairo",
    "Libya": "Africa/Tripoli",
    "Tunisia": "Africa/Tunis",
    "Algeria": "Africa/Algiers",
    "Morocco": "Africa/Casablanca",
    "Sudan": "Africa/Khartoum",
    # Europe
    "United Kingdom": "Europe/London",
    "UK": "Europe/London",
    "France": "Europe/Paris",
    "Germany": "Europe/Berlin",
    "Italy": "Europe/Rome",
    "Spain": "Europe/Madrid",
    "Netherlands": "Europe/Amsterdam",
    "Belgium": "Europe/Brussels",
    "Switzerland": "Europe/Zurich",
    "Austria": "Europe/Vienna",
    "Sweden": "Europe/Stockholm",
    "Norway": "Europe/Oslo",
    "Denmark": "Europe/Copenhagen",
    "Finland": "Europe/Helsinki",
    "Poland": "Europe/Warsaw",
    "Czech Republic": "Europe/Prague",
    "Hungary": "Europe/Budapest",
    "Romania": "Europe/Bucharest",
    "Bulgaria": "Europe/Sofia",
    "Greece": "Europe/Athens",
    "Portugal": "Europe/Lisbon",
    "Ireland": "Europe/Dublin",
    "Croatia": "Europe/Zagreb",
    "Serbia": "Europe/Belgrade",
    "Slovenia": "Europe/Ljubljana",
    "Slovakia": "Europe/Bratislava",
    "Estonia": "Europe/Tallinn",
    "Latvia": "Europe/Riga",
    "Lithuania": "Europe/Vilnius",
    "Ukraine": "Europe/Kiev",
    "Belarus": "Europe/Minsk",
    "Moldova": "Europe/Chisinau",
    "Russia": "Europe/Moscow",
    # North America
    "United States": "America/New_York",
    "USA": "America/New_York",
    "US": "America/New_York",
    "Canada": "America/Toronto",
    "Mexico": "America/Mexico_City",
    # South America
    "Brazil": "America/Sao_Paulo",
    "Argentina": "America/Buenos_Aires",
    "Chile": "America/Santiago",
    "Colombia": "America/Bogota",
    "Peru": "America/Lima",
    "Venezuela": "America/Caracas",
    "Ecuador": "America/Guayaquil",
    "Bolivia": "America/La_Paz",
    "Paraguay": "America/Asuncion",
    "Uruguay": "America/Montevideo",
    # Asia Pacific
    "China": "Asia/Shanghai",
    "Japan": "Asia/Tokyo",
    "South Korea": "Asia/Seoul",
    "India": "Asia/Kolkata",
    "Pakistan": "Asia/Karachi",
    "Bangladesh": "Asia/Dhaka",
    "Sri Lanka": "Asia/Colombo",
    "Nepal": "Asia/Kathmandu",
    "Thailand": "Asia/Bangkok",
    "Vietnam": "Asia/Ho_Chi_Minh",
    "Malaysia": "Asia/Kuala_Lumpur",
    "Singapore": "Asia/Singapore",
    "Indonesia": "Asia/Jakarta",
    "Philippines": "Asia/Manila",
    "Myanmar": "Asia/Yangon",
    "Cambodia": "Asia/Phnom_Penh",
    "Laos": "Asia/Vientiane",
    "Mongolia": "Asia/Ulaanbaatar",
    "Kazakhstan": "Asia/Almaty",
    "Uzbekistan": "Asia/Tashkent",
    "Turkmenistan": "Asia/Ashgabat",
    "Kyrgyzstan": "Asia/Bishkek",
    "Tajikistan": "Asia/Dushanbe",
    "Afghanistan": "Asia/Kabul",
    # Oceania
    "Australia": "Australia/Sydney",
    "New Zealand": "Pacific/Auckland",
    "Fiji": "Pacific/Fiji",
    # Africa
    "South Africa": "Africa/Johannesburg",
    "Nigeria": "Africa/Lagos",
    "Kenya": "Africa/Nairobi",
    "Ethiopia": "Africa/Addis_Ababa",
    "Ghana": "Africa/Accra",
    "Tanzania": "Africa/Dar_es_Salaam",
    "Uganda": "Africa/Kampala",
    "Rwanda": "Africa/Kigali",
    "Zambia": "Africa/Lusaka",
    "Zimbabwe": "Africa/Harare",
    "Botswana": "Africa/Gaborone",
    "Namibia": "Africa/Windhoek",
    "Madagascar": "Indian/Antananarivo",
    "Mauritius": "Indian/Mauritius",
    "Seychelles": "Indian/Mahe",
}

_LOWER_INDEX = {name.lower(): tz for name, tz in COUNTRY_TIMEZONES.items()}

DISPLAY_FORMATS = {
    "short": "%d/%m/%Y %H:%M",
    "long": "%A, %d %B %Y at %H:%M",
    "time-only": "%H:%M",
    "date-only": "%d/%m/%Y",
}


def timezone_for_country(country: Optional[str]) -> str:
    """Неизвестная или пустая страна -> UTC, без ошибки."""
    if not country:
        return "UTC"
    if country in COUNTRY_TIMEZONES:
        return COUNTRY_TIMEZONES[country]
    return _LOWER_INDEX.get(country.strip().lower(), "UTC")


def is_supported_country(country: Optional[str]) -> bool:
    if not country:
        return False
    return country.strip().lower() in _LOWER_INDEX


def all_countries() -> list[dict[str, str]]:
    return sorted(
        ({"country": name, "timezone": tz} for name, tz in COUNTRY_TIMEZONES.items()),
        key=lambda c: c["country"],
    )


def search_countries(term: Optional[str]) -> list[dict[str, str]]:
    if not term:
        return all_countries()
    t = term.strip().lower()
    return [c for c in all_countries() if t in c["country"].lower()]


def as_utc(instant: datetime) -> datetime:
    # naive datetime считаем UTC
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_utc(date: str, time: str, country: Optional[str]) -> UtcSlot:
    """
    Локальные дата (YYYY-MM-DD) и время (HH:MM) в стране -> момент UTC.

    Несуществующее локальное время (переход на летнее время) -> InvalidDateTime.
    Неоднозначное время (обратный переход) трактуется как зимнее.
    """
    tz_name = timezone_for_country(country)
    try:
        naive = datetime.strptime(f"{date} {time}", f"{DATE_FORMAT} {TIME_FORMAT}")
    except (TypeError, ValueError) as e:
        raise InvalidDateTime(f"Invalid date/time: {date} {time}") from e

    tz = pytz.timezone(tz_name)
    try:
        local = tz.localize(naive, is_dst=None)
    except pytz.exceptions.NonExistentTimeError as e:
        raise InvalidDateTime(f"Local time {date} {time} does not exist in {tz_name}") from e
    except pytz.exceptions.AmbiguousTimeError:
        local = tz.localize(naive, is_dst=False)

    return UtcSlot(
        starts_at_utc=local.astimezone(timezone.utc),
        timezone=tz_name,
        local_date=date,
        local_time=time,
        country=(country or "").strip(),
    )


def to_local(instant: datetime, tz_name: str) -> datetime:
    return as_utc(instant).astimezone(pytz.timezone(tz_name))


def from_utc(instant: datetime, country: Optional[str]) -> LocalTime:
    tz_name = timezone_for_country(country)
    local = to_local(instant, tz_name)
    return LocalTime(
        date=local.strftime(DATE_FORMAT),
        time=local.strftime(TIME_FORMAT),
        timezone=tz_name,
        formatted=local.strftime(DISPLAY_FORMATS["short"]),
    )


def format_for_display(instant: datetime, country: Optional[str], style: str = "short") -> str:
    local = to_local(instant, timezone_for_country(country))
    return local.strftime(DISPLAY_FORMATS.get(style, DISPLAY_FORMATS["short"]))


def local_midnight_utc(date: str, country: Optional[str]) -> datetime:
    """
    Начало локальных суток в UTC (для границ окна подписки).
    Если полночь выпадает на переход на летнее время (Египет, Ливан, Чили...),
    сутки начинаются с первого существующего момента.
    """
    tz_name = timezone_for_country(country)
    try:
        naive = datetime.strptime(date, DATE_FORMAT)
    except (TypeError, ValueError) as e:
        raise InvalidDateTime(f"Invalid date: {date}") from e

    tz = pytz.timezone(tz_name)
    try:
        local = tz.localize(naive, is_dst=None)
    except pytz.exceptions.NonExistentTimeError:
        # 00:00 по зимнему смещению = момент перехода
        local = tz.normalize(tz.localize(naive, is_dst=False))
    except pytz.exceptions.AmbiguousTimeError:
        local = tz.localize(naive, is_dst=True)
    return local.astimezone(timezone.utc)
