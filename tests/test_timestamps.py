"""Tests for the timestamp normalizer."""

from datetime import datetime, timedelta, timezone

import pytest

from whiteriver.models import HourlyValue, Metric, RawReading
from whiteriver.services.timestamps import (
    canonical_to_local,
    display_date,
    display_time,
    format_instant,
    normalize_readings,
    parse_instant,
    synthetic_source_timestamp,
    to_canonical_hour,
)

BASE = datetime(2025, 6, 10, 15, 0, tzinfo=timezone.utc)
CDT = -5


# ── parse_instant ─────────────────────────────────────────────────────────────

def test_parse_epoch_milliseconds():
    ms = int(BASE.timestamp() * 1000)
    assert parse_instant(ms) == BASE


def test_parse_epoch_milliseconds_as_string():
    ms = int(BASE.timestamp() * 1000)
    assert parse_instant(str(ms)) == BASE


def test_parse_compact_date_string_is_a_date():
    assert parse_instant("20250610") == datetime(2025, 6, 10, tzinfo=timezone.utc)


def test_parse_iso_with_z():
    assert parse_instant("2025-06-10T15:00:00Z") == BASE


def test_parse_iso_with_offset_is_converted_to_utc():
    result = parse_instant("2025-06-10T10:00:00-05:00")
    assert result == BASE
    assert result.utcoffset() == timedelta(0)


def test_parse_naive_datetime_taken_as_utc():
    assert parse_instant(datetime(2025, 6, 10, 15, 0)) == BASE


@pytest.mark.parametrize("raw", [None, "", "   ", "not a date", True, float("nan"), [1, 2]])
def test_parse_unparseable_returns_none(raw):
    assert parse_instant(raw) is None


def test_format_millisecond_z_format():
    dt = datetime(2025, 6, 10, 15, 0, 0, 123456, tzinfo=timezone.utc)
    assert format_instant(dt) == "2025-06-10T15:00:00.123Z"


def test_format_converts_offsets_to_utc():
    local = BASE.astimezone(timezone(timedelta(hours=-5)))
    assert format_instant(local) == "2025-06-10T15:00:00.000Z"


# ── Canonical hours ───────────────────────────────────────────────────────────

def test_same_local_hour_collides():
    a = to_canonical_hour(BASE + timedelta(minutes=5), CDT)
    b = to_canonical_hour(BASE + timedelta(minutes=55), CDT)
    assert a == b


def test_next_hour_differs():
    a = to_canonical_hour(BASE + timedelta(minutes=59), CDT)
    b = to_canonical_hour(BASE + timedelta(hours=1), CDT)
    assert b == a + 1


def test_sources_in_different_zones_agree():
    utc = parse_instant("2025-06-10T15:10:00Z")
    local = parse_instant("2025-06-10T10:40:00-05:00")
    assert to_canonical_hour(utc, CDT) == to_canonical_hour(local, CDT)


def test_canonical_hour_round_trips_to_local_start_of_hour():
    hour = to_canonical_hour(BASE + timedelta(minutes=42), CDT)
    local = canonical_to_local(hour, CDT)
    assert local == BASE
    assert local.utcoffset() == timedelta(hours=-5)


def test_display_values_are_local():
    hour = to_canonical_hour(BASE, CDT)
    assert display_date(hour, CDT) == "10.06.2025"
    assert display_time(hour, CDT) == "10:00"


def test_display_crosses_midnight():
    hour = to_canonical_hour(datetime(2025, 6, 10, 3, 30, tzinfo=timezone.utc), CDT)
    assert display_date(hour, CDT) == "09.06.2025"
    assert display_time(hour, CDT) == "22:00"


def test_synthetic_timestamp_is_start_of_hour():
    hour = to_canonical_hour(BASE + timedelta(minutes=40), CDT)
    assert synthetic_source_timestamp(hour, CDT) == "2025-06-10T15:00:00.000Z"


# ── normalize_readings ────────────────────────────────────────────────────────

def _reading(minutes: int, value: float | None) -> RawReading:
    return RawReading(metric=Metric.water_level, instant=BASE + timedelta(minutes=minutes), value=value)


def test_normalize_one_entry_per_hour():
    series = normalize_readings([_reading(0, 576.7), _reading(60, 576.8), _reading(120, 576.9)], CDT)
    assert len(series) == 3


def test_normalize_latest_reading_in_hour_wins():
    series = normalize_readings([_reading(50, 576.9), _reading(10, 576.1)], CDT)
    (value,) = series.values()
    assert value.value == pytest.approx(576.9)
    assert value.source_instant == BASE + timedelta(minutes=50)


def test_normalize_keeps_source_instant():
    series = normalize_readings([_reading(20, 576.7)], CDT)
    hour = to_canonical_hour(BASE, CDT)
    assert series[hour] == HourlyValue(value=576.7, source_instant=BASE + timedelta(minutes=20))


def test_normalize_drops_missing_and_non_finite_values():
    series = normalize_readings(
        [_reading(0, None), _reading(60, float("inf")), _reading(120, 1.0)],
        CDT,
    )
    assert len(series) == 1


def test_normalize_empty_input():
    assert normalize_readings([], CDT) == {}
