"""Tests for record assembly and multi-source reconciliation."""

from datetime import datetime, timedelta, timezone

from whiteriver.models import HourlyValue, Metric
from whiteriver.services.assembler import assemble_records, combine_series
from whiteriver.services.hydrology import live_storage
from whiteriver.services.timestamps import normalize_readings, to_canonical_hour

BASE = datetime(2025, 6, 10, 15, 0, tzinfo=timezone.utc)


def _series(dam, raw: dict) -> dict:
    return {metric: normalize_readings(rs, dam.utc_offset_hours) for metric, rs in raw.items()}


def _two_hours(dam, readings):
    return _series(
        dam,
        {
            Metric.water_level: readings(Metric.water_level, (0, 576.79), (1, 576.80)),
            Metric.inflow: readings(Metric.inflow, (0, 3000), (1, 3100.4)),
            Metric.total_outflow: readings(Metric.total_outflow, (0, 2449)),
            Metric.spillway: readings(Metric.spillway, (0, 0)),
            Metric.power_generation: readings(Metric.power_generation, (0, 37)),
            Metric.precipitation: readings(Metric.precipitation, (0, 10.00), (1, 10.12)),
        },
    )


# ── assemble_records ──────────────────────────────────────────────────────────

def test_records_newest_first(norfork, readings):
    records = assemble_records(norfork, _two_hours(norfork, readings), 72)
    assert [r.timestamp for r in records] == [
        "2025-06-10T16:00:00.000Z",
        "2025-06-10T15:00:00.000Z",
    ]


def test_formatted_fields(norfork, readings):
    older = assemble_records(norfork, _two_hours(norfork, readings), 72)[1]
    assert older.date == "10.06.2025"
    assert older.time == "10:00"
    assert older.water_level == "576.79"
    assert older.storage_percentage == "96.50%"
    assert older.live_storage == f"{round(live_storage(576.79, norfork)):,}"
    assert older.inflow == "3000"
    assert older.power_house_discharge == "2449"
    assert older.spillway_release == "0"
    assert older.total_outflow == "2449"
    assert older.power_generation == "37"
    assert older.net_flow == 551
    assert older.turbine_efficiency == "0.015"
    assert older.lake_water_temp == "72°F"
    assert older.data_source == "USACE CDA API (Official)"
    assert older.has_synthetic_timestamp is None


def test_missing_metrics_default_to_zero(norfork, readings):
    newer = assemble_records(norfork, _two_hours(norfork, readings), 72)[0]
    assert newer.inflow == "3100"
    assert newer.total_outflow == "0"
    assert newer.power_generation == "0"
    assert newer.turbine_efficiency == "0.000"
    assert newer.net_flow == 3100


def test_rainfall_is_hourly_increment(norfork, readings):
    newer, older = assemble_records(norfork, _two_hours(norfork, readings), 72)
    assert older.rainfall == "0.00"
    assert newer.rainfall == "0.12"


def test_forward_filled_rainfall_flag(norfork, readings):
    series = _series(
        norfork,
        {
            Metric.water_level: readings(Metric.water_level, (0, 576.0), (1, 576.1)),
            Metric.precipitation: readings(Metric.precipitation, (0, 4.2)),
        },
    )
    newer, older = assemble_records(norfork, series)
    assert newer.has_forward_filled_rainfall is True
    assert newer.rainfall == "0.00"
    assert older.has_forward_filled_rainfall is False


def test_hours_without_water_level_are_dropped(norfork, readings):
    series = _series(
        norfork,
        {
            Metric.water_level: readings(Metric.water_level, (0, 576.0), (1, 0.0)),
            Metric.inflow: readings(Metric.inflow, (0, 10), (1, 10), (2, 10)),
        },
    )
    records = assemble_records(norfork, series)
    assert len(records) == 1
    assert records[0].timestamp == "2025-06-10T15:00:00.000Z"


def test_missing_lake_temperature_uses_sentinel(norfork, readings):
    series = _series(norfork, {Metric.water_level: readings(Metric.water_level, (0, 576.0))})
    (record,) = assemble_records(norfork, series, None)
    assert record.lake_water_temp == "0°F"


def test_no_data(norfork):
    assert assemble_records(norfork, {}) == []


def test_spillway_above_total_outflow(norfork, readings):
    series = _series(
        norfork,
        {
            Metric.water_level: readings(Metric.water_level, (0, 580.5)),
            Metric.total_outflow: readings(Metric.total_outflow, (0, 100)),
            Metric.spillway: readings(Metric.spillway, (0, 300)),
        },
    )
    (record,) = assemble_records(norfork, series)
    assert record.power_house_discharge == "0"
    assert record.total_outflow == "300"
    assert int(record.total_outflow) >= int(record.spillway_release)


# ── Source timestamp ──────────────────────────────────────────────────────────

def test_water_level_instant_preferred(norfork, readings):
    series = _series(
        norfork,
        {
            Metric.water_level: readings(Metric.water_level, (0.25, 576.0)),
            Metric.inflow: readings(Metric.inflow, (0.5, 10)),
        },
    )
    (record,) = assemble_records(norfork, series)
    assert record.timestamp == "2025-06-10T15:15:00.000Z"


def test_timestamp_falls_back_to_next_metric(norfork, readings):
    hour = to_canonical_hour(BASE, norfork.utc_offset_hours)
    series = {
        Metric.water_level: {hour: HourlyValue(value=576.0, source_instant=None)},
        Metric.inflow: normalize_readings(
            readings(Metric.inflow, (0.5, 10)), norfork.utc_offset_hours
        ),
    }
    (record,) = assemble_records(norfork, series)
    assert record.timestamp == "2025-06-10T15:30:00.000Z"
    assert record.has_synthetic_timestamp is None


def test_synthetic_timestamp_as_last_resort(norfork):
    hour = to_canonical_hour(BASE + timedelta(minutes=30), norfork.utc_offset_hours)
    series = {Metric.water_level: {hour: HourlyValue(value=576.0, source_instant=None)}}
    (record,) = assemble_records(norfork, series)
    assert record.timestamp == "2025-06-10T15:00:00.000Z"
    assert record.has_synthetic_timestamp is True


# ── combine_series ────────────────────────────────────────────────────────────

def test_primary_wins_where_both_report():
    primary = {1: HourlyValue(value=1.0, source_instant=BASE, source="A")}
    fallback = {
        1: HourlyValue(value=9.0, source_instant=BASE, source="B"),
        2: HourlyValue(value=2.0, source_instant=BASE, source="B"),
    }
    combined = combine_series(primary, fallback)
    assert combined[1].source == "A"
    assert combined[2].source == "B"


def test_data_source_label_lists_providers(norfork):
    hour = to_canonical_hour(BASE, norfork.utc_offset_hours)
    series = {
        Metric.water_level: {hour: HourlyValue(value=576.0, source_instant=BASE, source="A")},
        Metric.total_outflow: {hour: HourlyValue(value=50.0, source_instant=BASE, source="B")},
    }
    (record,) = assemble_records(norfork, series)
    assert record.data_source == "A + B"
