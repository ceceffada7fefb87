from dataclasses import dataclass
from datetime import datetime
from typing import NewType

from whiteriver.models.dam import Metric

# Whole hours since 1970-01-01T00:00 on the dam's local (fixed-offset) clock.
# Join key across every metric of one dam.
CanonicalHour = NewType("CanonicalHour", int)


@dataclass(frozen=True)
class RawReading:
    """One (metric, instant, value) triple exactly as an adapter produced it."""

    metric: Metric
    instant: datetime
    value: float | None
    source: str = ""


@dataclass(frozen=True)
class HourlyValue:
    """A reading placed on its canonical hour.

    ``source_instant`` is the provider's own timestamp and is kept verbatim;
    it is None only for values produced by gap filling.
    """

    value: float
    source_instant: datetime | None
    source: str = ""
    filled: bool = False


MetricSeries = dict[CanonicalHour, HourlyValue]
