"""Tests for forward-fill and incremental-delta gap filling."""

from datetime import datetime, timezone

import pytest

from whiteriver.models import CanonicalHour, HourlyValue
from whiteriver.services.gapfill import forward_fill, incremental_delta, union_hours

T0 = datetime(2025, 6, 10, 15, 0, tzinfo=timezone.utc)


def _series(**values: float) -> dict:
    """Build a series from h<N>=value keywords, N being the canonical hour."""
    return {
        CanonicalHour(int(k[1:])): HourlyValue(value=v, source_instant=T0)
        for k, v in values.items()
    }


HOURS = [CanonicalHour(h) for h in range(6)]


# ── union_hours ───────────────────────────────────────────────────────────────

def test_union_hours_sorted():
    a = _series(h3=1.0, h1=1.0)
    b = _series(h2=1.0, h3=2.0)
    assert union_hours([a, b]) == [1, 2, 3]


def test_union_hours_empty():
    assert union_hours([]) == []


# ── forward_fill ──────────────────────────────────────────────────────────────

def test_forward_fill_uses_last_known_value():
    result = forward_fill(_series(h1=5.0, h4=7.0), HOURS)
    assert [result[h].value for h in (1, 2, 3, 4, 5)] == [5.0, 5.0, 5.0, 7.0, 7.0]


def test_forward_fill_leading_hours_stay_absent():
    result = forward_fill(_series(h1=5.0), HOURS)
    assert 0 not in result


def test_forward_fill_marks_filled_entries():
    result = forward_fill(_series(h1=5.0, h4=7.0), HOURS)
    assert result[2].filled is True
    assert result[2].source_instant is None
    assert result[1].filled is False
    assert result[1].source_instant == T0


def test_forward_fill_empty_series():
    assert forward_fill({}, HOURS) == {}


# ── incremental_delta ─────────────────────────────────────────────────────────

def test_delta_first_reading_is_zero():
    result = incremental_delta(_series(h1=3.4, h2=3.5), HOURS)
    assert result[1].value == 0.0


def test_delta_consecutive_differences():
    result = incremental_delta(_series(h1=1.0, h2=1.5, h5=2.0), HOURS)
    assert result[2].value == pytest.approx(0.5)
    # hours 3 and 4 are forward-filled at 1.5, so no rain there
    assert result[3].value == 0.0
    assert result[4].value == 0.0
    assert result[5].value == pytest.approx(0.5)


def test_delta_counter_reset_clamped_to_zero():
    result = incremental_delta(_series(h1=4.0, h2=0.1, h3=0.3), HOURS)
    assert result[2].value == 0.0
    assert result[3].value == pytest.approx(0.2)


def test_delta_never_negative():
    result = incremental_delta(_series(h0=9.0, h1=2.0, h2=8.0, h3=1.0, h4=1.0, h5=0.5), HOURS)
    assert all(v.value >= 0 for v in result.values())


def test_delta_hours_before_first_reading_absent():
    result = incremental_delta(_series(h3=1.0), HOURS)
    assert sorted(result) == [3, 4, 5]


def test_delta_filled_flag_survives():
    result = incremental_delta(_series(h1=1.0, h3=1.2), HOURS)
    assert result[2].filled is True
    assert result[3].filled is False


def test_delta_empty_series():
    assert incremental_delta({}, HOURS) == {}
