"""USACE Corps Water Management System (CWMS) Data API time series.

Each metric is its own named time series; the response carries
``values: [[epoch_ms, value, quality], ...]`` in UTC.
"""

import logging

from whiteriver.models import DamSpec, Metric, RawReading
from whiteriver.sources.base import PerMetricAdapter, safe_float, time_window
from whiteriver.sources.http import get_with_retries
from whiteriver.services.timestamps import format_instant, parse_instant

logger = logging.getLogger(__name__)


def parse_cda_values(payload: dict, metric: Metric, label: str = "") -> list[RawReading]:
    """Turn a CDA payload into readings, dropping rows with bad timestamps."""
    values = payload.get("values")
    if not isinstance(values, list):
        logger.warning("CDA payload for %s has no values", metric.value)
        return []

    readings: list[RawReading] = []
    for row in values:
        if not isinstance(row, (list, tuple)) or len(row) < 2:
            continue
        instant = parse_instant(row[0])
        if instant is None:
            continue
        readings.append(
            RawReading(metric=metric, instant=instant, value=safe_float(row[1]), source=label)
        )
    return readings


class UsaceCdaAdapter(PerMetricAdapter):
    label = "USACE CDA API (Official)"

    def metrics(self, dam: DamSpec) -> list[Metric]:
        return list(dam.usace_series)

    async def fetch_metric(self, dam: DamSpec, metric: Metric) -> list[RawReading]:
        begin, end = time_window(self.settings.lookback_days)
        params = {
            "name": dam.usace_series[metric],
            "begin": format_instant(begin),
            "end": format_instant(end),
        }
        resp = await get_with_retries(
            self.client,
            self.settings.usace_api_base,
            params=params,
            retries=self.settings.request_retries,
        )
        return parse_cda_values(resp.json(), metric, self.label)
