from datetime import datetime, timezone

import pytest

from src.booking.domain.errors import InvalidDateTime
from src.booking.domain.services.timezones import (
    timezone_for_country, to_utc, from_utc, format_for_display,
    search_countries, is_supported_country, local_midnight_utc,
)


def test_country_lookup_is_case_insensitive_and_falls_back_to_utc():
    assert timezone_for_country("Egypt") == "Africa/Cairo"
    assert timezone_for_country("  japan ") == "Asia/Tokyo"
    assert timezone_for_country("Atlantis") == "UTC"
    assert timezone_for_country(None) == "UTC"
    assert timezone_for_country("") == "UTC"


def test_to_utc_fixed_offset_zone():
    slot = to_utc("2025-02-03", "10:00", "Japan")
    assert slot.starts_at_utc == datetime(2025, 2, 3, 1, 0, tzinfo=timezone.utc)
    assert slot.timezone == "Asia/Tokyo"
    assert (slot.local_date, slot.local_time, slot.country) == ("2025-02-03", "10:00", "Japan")


def test_to_utc_unknown_country_is_utc():
    slot = to_utc("2025-02-03", "10:00", "Atlantis")
    assert slot.starts_at_utc == datetime(2025, 2, 3, 10, 0, tzinfo=timezone.utc)
    assert slot.timezone == "UTC"


def test_to_utc_respects_dst():
    winter = to_utc("2025-01-15", "12:00", "United Kingdom")
    summer = to_utc("2025-07-15", "12:00", "United Kingdom")
    assert winter.starts_at_utc.hour == 12
    assert summer.starts_at_utc.hour == 11


@pytest.mark.parametrize("date, time", [
    ("2025-02-30", "10:00"),
    ("2025-02-03", "25:00"),
    ("03/02/2025", "10:00"),
    ("2025-02-03", ""),
])
def test_to_utc_rejects_garbage(date, time):
    with pytest.raises(InvalidDateTime):
        to_utc(date, time, "Japan")


def test_to_utc_rejects_time_in_dst_gap():
    # 2025-03-30 01:30 в Лондоне не существует
    with pytest.raises(InvalidDateTime):
        to_utc("2025-03-30", "01:30", "United Kingdom")


def test_ambiguous_time_resolves_to_standard_time():
    # 2025-10-26 01:30 в Лондоне бывает дважды; берём GMT
    slot = to_utc("2025-10-26", "01:30", "United Kingdom")
    assert slot.starts_at_utc == datetime(2025, 10, 26, 1, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize("country, date, time", [
    ("Japan", "2025-02-03", "10:00"),
    ("India", "2025-06-01", "07:30"),
    ("United States", "2025-07-04", "18:30"),
    ("Australia", "2025-12-24", "09:00"),
    ("Atlantis", "2025-02-03", "23:30"),
])
def test_round_trip_preserves_local_date_and_time(country, date, time):
    local = from_utc(to_utc(date, time, country).starts_at_utc, country)
    assert (local.date, local.time) == (date, time)


def test_from_utc_renders_in_other_zone():
    instant = to_utc("2025-02-03", "10:00", "Japan").starts_at_utc
    local = from_utc(instant, "India")
    assert (local.date, local.time, local.timezone) == ("2025-02-03", "06:30", "Asia/Kolkata")


def test_format_for_display_styles():
    instant = datetime(2025, 2, 3, 1, 0, tzinfo=timezone.utc)
    assert format_for_display(instant, "Japan", "short") == "03/02/2025 10:00"
    assert format_for_display(instant, "Japan", "time-only") == "10:00"
    assert format_for_display(instant, "Japan", "date-only") == "03/02/2025"
    assert format_for_display(instant, "Japan", "nonsense") == "03/02/2025 10:00"


def test_local_midnight_utc():
    assert local_midnight_utc("2025-02-01", "Japan") == datetime(2025, 1, 31, 15, 0, tzinfo=timezone.utc)


def test_local_midnight_in_dst_gap_starts_at_transition():
    # в Египте летнее время включается в полночь: 00:00 2026-04-24 не существует
    with pytest.raises(InvalidDateTime):
        to_utc("2026-04-24", "00:00", "Egypt")

    start = local_midnight_utc("2026-04-24", "Egypt")
    assert start == datetime(2026, 4, 23, 22, 0, tzinfo=timezone.utc)
    local = from_utc(start, "Egypt")
    assert (local.date, local.time) == ("2026-04-24", "01:00")


def test_local_midnight_rejects_bad_date():
    with pytest.raises(InvalidDateTime):
        local_midnight_utc("2026-02-30", "Egypt")


def test_search_countries():
    found = search_countries("united")
    names = [c["country"] for c in found]
    assert "United Kingdom" in names and "United States" in names
    assert names == sorted(names)
    assert is_supported_country("egypt")
    assert not is_supported_country("Atlantis")
