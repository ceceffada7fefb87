# Source adapters, listed in reconciliation priority: for any hour reported by
# several providers the earlier adapter's value is kept.
import httpx

from whiteriver.config import Settings
from whiteriver.sources.base import SourceAdapter
from whiteriver.sources.lake_temperature import fetch_lake_temperature
from whiteriver.sources.reports import ReportTableAdapter
from whiteriver.sources.usace import UsaceCdaAdapter
from whiteriver.sources.usgs import UsgsGaugeAdapter


def default_adapters(client: httpx.AsyncClient, settings: Settings) -> list[SourceAdapter]:
    return [
        UsaceCdaAdapter(client, settings),
        ReportTableAdapter(client, settings),
        UsgsGaugeAdapter(client, settings),
    ]


__all__ = [
    "ReportTableAdapter",
    "SourceAdapter",
    "UsaceCdaAdapter",
    "UsgsGaugeAdapter",
    "default_adapters",
    "fetch_lake_temperature",
]
