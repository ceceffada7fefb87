"""Timestamp normalization: bucket provider instants into canonical local hours."""

import logging
import math
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

import pandas as pd
import pytz

from whiteriver.models import CanonicalHour, HourlyValue, MetricSeries, RawReading

logger = logging.getLogger(__name__)

_SECONDS_PER_HOUR = 3600
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
# Epoch milliseconds have 12+ digits for any instant after March 1973; shorter
# digit strings are compact dates such as "20250610".
_MIN_EPOCH_MS_DIGITS = 12


def parse_instant(raw: object) -> datetime | None:
    """Parse a provider timestamp into an aware UTC datetime.

    Accepts epoch milliseconds (int, float, or digit string), ISO-8601 strings
    (naive strings are taken as UTC), and datetime objects. Returns None for
    anything that cannot be parsed.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, datetime):
        if raw.tzinfo is None:
            return raw.replace(tzinfo=timezone.utc)
        return raw.astimezone(timezone.utc)

    if isinstance(raw, (int, float)):
        return _from_epoch_ms(raw)

    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        digits = text.lstrip("-")
        if digits.isdigit() and len(digits) >= _MIN_EPOCH_MS_DIGITS:
            return _from_epoch_ms(int(text))
        ts = pd.to_datetime(text, utc=True, errors="coerce")
        if pd.isna(ts):
            return None
        return ts.to_pydatetime()

    return None


def _from_epoch_ms(value: float) -> datetime | None:
    if not math.isfinite(value):
        return None
    try:
        return _EPOCH + timedelta(milliseconds=value)
    except OverflowError:
        return None


def format_instant(instant: datetime) -> str:
    """Render an instant as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` (UTC, millisecond precision)."""
    utc = instant.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def to_canonical_hour(instant: datetime, utc_offset_hours: int) -> CanonicalHour:
    """Return the local clock hour containing *instant*.

    Any two instants inside the same local hour map to the same key.
    """
    seconds = (instant - _EPOCH).total_seconds() + utc_offset_hours * _SECONDS_PER_HOUR
    return CanonicalHour(math.floor(seconds / _SECONDS_PER_HOUR))


def canonical_to_local(hour: CanonicalHour, utc_offset_hours: int) -> datetime:
    """Start of the canonical hour as an aware datetime in the dam's fixed offset."""
    tz = pytz.FixedOffset(utc_offset_hours * 60)
    utc_start = _EPOCH + timedelta(hours=hour - utc_offset_hours)
    return utc_start.astimezone(tz)


def synthetic_source_timestamp(hour: CanonicalHour, utc_offset_hours: int) -> str:
    """Stand-in source timestamp for a record no provider instant survived for."""
    return format_instant(canonical_to_local(hour, utc_offset_hours))


def display_date(hour: CanonicalHour, utc_offset_hours: int) -> str:
    return canonical_to_local(hour, utc_offset_hours).strftime("%d.%m.%Y")


def display_time(hour: CanonicalHour, utc_offset_hours: int) -> str:
    return canonical_to_local(hour, utc_offset_hours).strftime("%H:00")


def normalize_readings(
    readings: Iterable[RawReading],
    utc_offset_hours: int,
) -> MetricSeries:
    """Place raw readings of one metric on canonical hours.

    Readings without a value or with a non-finite value are dropped. When
    several readings fall in the same hour the latest instant wins; its own
    source instant is kept for output.
    """
    series: MetricSeries = {}
    dropped = 0
    for reading in readings:
        if reading.value is None or not math.isfinite(reading.value):
            dropped += 1
            continue
        hour = to_canonical_hour(reading.instant, utc_offset_hours)
        current = series.get(hour)
        if current is not None and current.source_instant is not None:
            if current.source_instant > reading.instant:
                continue
        series[hour] = HourlyValue(
            value=float(reading.value),
            source_instant=reading.instant,
            source=reading.source,
        )

    if dropped:
        logger.debug("Dropped %d readings without a usable value", dropped)
    return series
