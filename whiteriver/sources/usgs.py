"""USGS NWIS instantaneous values for the river gauge below a dam.

Used as a fallback source of total outflow (discharge, cfs) for hours the
USACE API did not report.
"""

import logging
from typing import Any

from whiteriver.models import DamSpec, Metric, RawReading
from whiteriver.sources.base import SourceAdapter, safe_float
from whiteriver.sources.http import get_with_retries
from whiteriver.services.timestamps import parse_instant

logger = logging.getLogger(__name__)

PCODE_DISCHARGE_CFS = "00060"

_PCODE_METRICS: dict[str, Metric] = {PCODE_DISCHARGE_CFS: Metric.total_outflow}


def extract_readings(payload: dict[str, Any], label: str = "") -> dict[Metric, list[RawReading]]:
    """Pull readings out of an NWIS IV JSON payload, keyed by metric."""
    out: dict[Metric, list[RawReading]] = {}
    for ts in payload.get("value", {}).get("timeSeries", []):
        codes = ts.get("variable", {}).get("variableCode", [])
        pcode = codes[0].get("value") if codes else None
        metric = _PCODE_METRICS.get(pcode)
        if metric is None:
            continue

        no_data = safe_float(ts.get("variable", {}).get("noDataValue"))
        readings = out.setdefault(metric, [])
        for block in ts.get("values", []):
            for row in block.get("value", []):
                instant = parse_instant(row.get("dateTime"))
                if instant is None:
                    continue
                value = safe_float(row.get("value"))
                if value is not None and no_data is not None and value == no_data:
                    value = None
                readings.append(RawReading(metric=metric, instant=instant, value=value, source=label))
    return out


class UsgsGaugeAdapter(SourceAdapter):
    label = "USGS NWIS"

    def metrics(self, dam: DamSpec) -> list[Metric]:
        return list(_PCODE_METRICS.values()) if dam.usgs_site else []

    async def fetch_metrics(
        self, dam: DamSpec, metrics: list[Metric]
    ) -> dict[Metric, list[RawReading]]:
        params = {
            "format": "json",
            "sites": dam.usgs_site,
            "parameterCd": ",".join(_PCODE_METRICS),
            "siteStatus": "all",
            "period": f"P{self.settings.lookback_days}D",
        }
        resp = await get_with_retries(
            self.client,
            self.settings.usgs_iv_url,
            params=params,
            retries=self.settings.request_retries,
        )
        found = extract_readings(resp.json(), self.label)
        logger.info(
            "%s: %s site %s → %d points",
            self.label,
            dam.name,
            dam.usgs_site,
            sum(len(v) for v in found.values()),
        )
        return {m: found.get(m, []) for m in metrics}
