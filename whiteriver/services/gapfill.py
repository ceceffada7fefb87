"""Gap filling over canonical hours: forward-fill and incremental deltas."""

import logging
from collections.abc import Iterable

import pandas as pd

from whiteriver.models import CanonicalHour, HourlyValue, MetricSeries

logger = logging.getLogger(__name__)


def union_hours(series: Iterable[MetricSeries]) -> list[CanonicalHour]:
    """Every hour reported by any metric, oldest first."""
    hours: set[CanonicalHour] = set()
    for s in series:
        hours.update(s.keys())
    return sorted(hours)


def _to_frame(series: MetricSeries, hours: list[CanonicalHour]) -> pd.Series:
    observed = pd.Series(
        {hour: hv.value for hour, hv in series.items()}, dtype="float64"
    )
    index = pd.Index(sorted(set(hours) | set(series.keys())), name="hour")
    return observed.reindex(index)


def forward_fill(series: MetricSeries, hours: list[CanonicalHour]) -> MetricSeries:
    """Carry the last known value into every later hour of *hours* lacking one.

    Hours before the first reading stay absent (not zero). Observed values keep
    their original entries, filled ones are marked ``filled=True`` with no
    source instant.
    """
    if not series:
        return {}

    filled = _to_frame(series, hours).ffill()

    result: MetricSeries = {}
    fill_count = 0
    for hour, value in filled.items():
        if pd.isna(value):
            continue
        hour = CanonicalHour(int(hour))
        observed = series.get(hour)
        if observed is not None:
            result[hour] = observed
        else:
            result[hour] = HourlyValue(value=float(value), source_instant=None, filled=True)
            fill_count += 1

    if fill_count:
        logger.debug("Forward-filled %d hours", fill_count)
    return result


def incremental_delta(series: MetricSeries, hours: list[CanonicalHour]) -> MetricSeries:
    """Turn a cumulative counter into per-hour increments.

    The counter is forward-filled first. The first available reading has no
    baseline and yields exactly 0; negative steps (counter reset or noise)
    are clamped to 0. Each increment keeps the source entry of the cumulative
    value it was computed from.
    """
    filled = forward_fill(series, hours)
    if not filled:
        return {}

    ordered = sorted(filled)
    cumulative = pd.Series([filled[h].value for h in ordered], index=ordered, dtype="float64")
    deltas = cumulative.diff().fillna(0.0).clip(lower=0.0)

    result: MetricSeries = {}
    for hour, delta in deltas.items():
        hour = CanonicalHour(int(hour))
        base = filled[hour]
        result[hour] = HourlyValue(
            value=float(delta),
            source_instant=base.source_instant,
            source=base.source,
            filled=base.filled,
        )
    return result
