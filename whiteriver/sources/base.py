"""Source adapter contract.

An adapter turns one provider's payload into RawReadings per metric. It never
raises for a provider failure: a broken source is reported as an empty
series so the rest of the dam's data still flows.
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from whiteriver.config import Settings
from whiteriver.models import DamSpec, Metric, RawReading

logger = logging.getLogger(__name__)

# Payload shapes that count as "source unavailable" rather than a bug
PAYLOAD_ERRORS = (ValueError, KeyError, TypeError, IndexError)


def safe_float(raw: Any) -> float | None:
    """Parse a provider number ("1,277.81", 2848, "M") into a finite float or None."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(str(raw).replace(",", "").strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def time_window(lookback_days: int, now: datetime | None = None) -> tuple[datetime, datetime]:
    end = now if now is not None else datetime.now(timezone.utc)
    return end - timedelta(days=lookback_days), end


class SourceAdapter(ABC):
    """Base class for providers that publish time series for a dam."""

    #: Label written to each record's ``dataSource``
    label: str = ""

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self.client = client
        self.settings = settings

    @abstractmethod
    def metrics(self, dam: DamSpec) -> list[Metric]:
        """Metrics this provider can supply for *dam* (may be empty)."""

    @abstractmethod
    async def fetch_metrics(
        self, dam: DamSpec, metrics: list[Metric]
    ) -> dict[Metric, list[RawReading]]:
        """Fetch *metrics*; may raise httpx or payload errors."""

    async def fetch(self, dam: DamSpec) -> dict[Metric, list[RawReading]]:
        """Fetch every supported metric, degrading failures to empty series."""
        metrics = self.metrics(dam)
        if not metrics:
            return {}
        try:
            return await self.fetch_metrics(dam, metrics)
        except (httpx.HTTPError, *PAYLOAD_ERRORS) as exc:
            logger.warning("%s unavailable for %s: %s", self.label, dam.name, exc)
            return {m: [] for m in metrics}


class PerMetricAdapter(SourceAdapter):
    """Adapter whose provider serves one metric per request; requests run concurrently."""

    @abstractmethod
    async def fetch_metric(self, dam: DamSpec, metric: Metric) -> list[RawReading]:
        """Fetch one metric; may raise httpx or payload errors."""

    async def _fetch_one(self, dam: DamSpec, metric: Metric) -> list[RawReading]:
        try:
            readings = await self.fetch_metric(dam, metric)
        except (httpx.HTTPError, *PAYLOAD_ERRORS) as exc:
            logger.warning(
                "%s: %s %s unavailable: %s", self.label, dam.name, metric.value, exc
            )
            return []
        logger.info("%s: %s %s → %d points", self.label, dam.name, metric.value, len(readings))
        return readings

    async def fetch_metrics(
        self, dam: DamSpec, metrics: list[Metric]
    ) -> dict[Metric, list[RawReading]]:
        results = await asyncio.gather(*(self._fetch_one(dam, m) for m in metrics))
        return dict(zip(metrics, results))
