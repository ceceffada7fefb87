"""Record assembly: join per-metric hourly series into newest-first DamRecords."""

import logging
import math
from collections.abc import Mapping

from whiteriver.models import (
    TIMESTAMP_PRIORITY,
    CanonicalHour,
    DamRecord,
    DamSpec,
    Metric,
    MetricSeries,
)
from whiteriver.services.gapfill import incremental_delta, union_hours
from whiteriver.services.hydrology import derive
from whiteriver.services.timestamps import (
    display_date,
    display_time,
    format_instant,
    synthetic_source_timestamp,
)

logger = logging.getLogger(__name__)

DEFAULT_DATA_SOURCE = "USACE CDA API (Official)"
LAKE_TEMP_SOURCE = "SeaTemperature.net (Estimated)"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def combine_series(primary: MetricSeries, *fallbacks: MetricSeries) -> MetricSeries:
    """Merge several providers' series for one metric; earlier arguments win per hour."""
    combined: MetricSeries = {}
    for series in reversed((primary, *fallbacks)):
        combined.update(series)
    return combined


def _value(series: MetricSeries, hour: CanonicalHour, default: float = 0.0) -> float:
    hv = series.get(hour)
    return hv.value if hv is not None else default


def _source_label(series: Mapping[Metric, MetricSeries], hour: CanonicalHour) -> str:
    labels: list[str] = []
    for metric in TIMESTAMP_PRIORITY:
        hv = series.get(metric, {}).get(hour)
        if hv is not None and hv.source and hv.source not in labels:
            labels.append(hv.source)
    return " + ".join(labels) if labels else DEFAULT_DATA_SOURCE


def assemble_records(
    spec: DamSpec,
    series: Mapping[Metric, MetricSeries],
    lake_temperature_f: int | None = None,
) -> list[DamRecord]:
    """Build one record per hour that has a usable water level, newest first.

    Hours without a water level (or with a level <= 0) are skipped; every
    other metric defaults to 0 when missing. Precipitation arrives as a
    cumulative counter and is converted to hourly rainfall.
    """
    hours = union_hours(series.values())
    if not hours:
        return []

    offset = spec.utc_offset_hours
    levels = series.get(Metric.water_level, {})
    precipitation = series.get(Metric.precipitation, {})
    rainfall = incremental_delta(precipitation, hours)
    temperature = f"{lake_temperature_f}°F" if lake_temperature_f else "0°F"

    records: list[DamRecord] = []
    skipped = 0
    for hour in reversed(hours):
        level = levels.get(hour)
        if level is None or level.value <= 0:
            skipped += 1
            continue

        inflow = _value(series.get(Metric.inflow, {}), hour)
        spillway = _value(series.get(Metric.spillway, {}), hour)
        generation = _value(series.get(Metric.power_generation, {}), hour)
        measured = series.get(Metric.storage, {}).get(hour)

        derived = derive(
            spec,
            level.value,
            inflow=inflow,
            total_outflow=_value(series.get(Metric.total_outflow, {}), hour),
            spillway_release=spillway,
            generation=generation,
            measured_storage=measured.value if measured is not None else None,
        )

        source_timestamp, synthetic = _source_timestamp(series, hour, offset)
        rain = rainfall.get(hour)

        fields = {
            "date": display_date(hour, offset),
            "time": display_time(hour, offset),
            "waterLevel": f"{level.value:.2f}",
            "liveStorage": f"{_round_half_up(derived.live_storage):,}",
            "storagePercentage": f"{derived.storage_percentage:.2f}%",
            "inflow": str(_round_half_up(inflow)),
            "powerHouseDischarge": str(_round_half_up(derived.turbine_flow)),
            "spillwayRelease": str(_round_half_up(spillway)),
            "totalOutflow": str(_round_half_up(derived.total_outflow)),
            "powerGeneration": str(_round_half_up(generation)),
            "rainfall": f"{rain.value if rain is not None else 0.0:.2f}",
            "dataSource": _source_label(series, hour),
            "timestamp": source_timestamp,
            "netFlow": _round_half_up(derived.net_flow),
            "turbineEfficiency": f"{derived.turbine_efficiency:.3f}",
            "hasForwardFilledRainfall": rain is not None and rain.filled,
            "lakeWaterTemp": temperature,
            "lakeWaterTempSource": LAKE_TEMP_SOURCE,
        }
        if synthetic:
            fields["hasSyntheticTimestamp"] = True
        records.append(DamRecord.model_validate(fields))

    if skipped:
        logger.debug("%s: skipped %d hours without a water level", spec.name, skipped)
    return records


def _source_timestamp(
    series: Mapping[Metric, MetricSeries], hour: CanonicalHour, offset: int
) -> tuple[str, bool]:
    """Provider instant for *hour*, preferring water level; synthesized as a last resort."""
    for metric in TIMESTAMP_PRIORITY:
        hv = series.get(metric, {}).get(hour)
        if hv is not None and hv.source_instant is not None:
            return format_instant(hv.source_instant), False
    return synthetic_source_timestamp(hour, offset), True
