# Typed models shared by the sources, services and pipeline.
from whiteriver.models.dam import TIMESTAMP_PRIORITY, DamSpec, Metric
from whiteriver.models.record import (
    PLACEHOLDER_VALUES,
    DamHistory,
    DamRecord,
    LiveSnapshot,
    is_informative,
    is_more_complete,
)
from whiteriver.models.series import CanonicalHour, HourlyValue, MetricSeries, RawReading

__all__ = [
    "CanonicalHour",
    "DamHistory",
    "DamRecord",
    "DamSpec",
    "HourlyValue",
    "LiveSnapshot",
    "Metric",
    "MetricSeries",
    "PLACEHOLDER_VALUES",
    "RawReading",
    "TIMESTAMP_PRIORITY",
    "is_informative",
    "is_more_complete",
]
