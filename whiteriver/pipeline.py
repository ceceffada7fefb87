"""One scheduled collection run.

Per dam:  fetching → normalizing → assembling → merging → saved
                                                        ↘ failed (isolated to that dam)
After every dam has finished, live.json is rewritten once for the whole fleet.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import httpx

from whiteriver.config import Settings
from whiteriver.models import DamHistory, DamRecord, DamSpec, Metric, MetricSeries, RawReading
from whiteriver.services.assembler import assemble_records, combine_series
from whiteriver.services.history import (
    HistoryFileError,
    MergeResult,
    history_path,
    load_history,
    merge_into_history,
    save_history,
)
from whiteriver.services.snapshot import SnapshotError, publish_snapshot
from whiteriver.services.summary import generate_run_summary, log_run_summary
from whiteriver.services.timestamps import normalize_readings
from whiteriver.sources import SourceAdapter, default_adapters, fetch_lake_temperature
from whiteriver.sources.http import build_client

logger = logging.getLogger(__name__)


@dataclass
class DamOutcome:
    dam: DamSpec
    records: list[DamRecord] = field(default_factory=list)
    history: DamHistory | None = None
    merge: MergeResult | None = None
    saved: bool = False
    error: str | None = None

    @property
    def refreshed(self) -> bool:
        """Produced at least one valid record and its history is intact."""
        return self.error is None and bool(self.records) and self.history is not None


@dataclass
class RunReport:
    outcomes: list[DamOutcome] = field(default_factory=list)
    snapshot_written: bool = False
    snapshot_error: str | None = None

    @property
    def failed_files(self) -> list[str]:
        failed = [f"{o.dam.name}: {o.error}" for o in self.outcomes if o.error]
        if self.snapshot_error:
            failed.append(f"live snapshot: {self.snapshot_error}")
        return failed


# ── Stage helpers ──────────────────────────────────────────────────────────────

async def _stage_fetching(
    client: httpx.AsyncClient,
    settings: Settings,
    adapters: Sequence[SourceAdapter],
    dam: DamSpec,
) -> tuple[list[dict[Metric, list[RawReading]]], int | None]:
    """Fan out to every adapter and the lake-temperature page, then join."""
    logger.info("Fetching %s", dam.name)
    *per_adapter, temperature = await asyncio.gather(
        *(adapter.fetch(dam) for adapter in adapters),
        fetch_lake_temperature(client, settings, dam),
    )
    return per_adapter, temperature


def reconcile_sources(
    dam: DamSpec, per_adapter: Sequence[dict[Metric, list[RawReading]]]
) -> dict[Metric, MetricSeries]:
    """Normalize every provider's readings and merge them per metric.

    *per_adapter* is in priority order; an earlier provider keeps its value
    for any hour a later one also reported.
    """
    series: dict[Metric, MetricSeries] = {}
    for metric in Metric:
        normalized = [
            normalize_readings(readings.get(metric, []), dam.utc_offset_hours)
            for readings in per_adapter
        ]
        normalized = [s for s in normalized if s]
        if normalized:
            series[metric] = combine_series(*normalized)
    return series


def _stage_merging(
    settings: Settings, dam: DamSpec, records: list[DamRecord]
) -> tuple[DamHistory, MergeResult, bool]:
    path = history_path(settings.history_dir, dam.name)
    existing = load_history(path)
    history, result = merge_into_history(existing, dam, records)
    if result.changed:
        logger.info(
            "%s: added %d new hourly records, updated %d existing",
            dam.name,
            result.added,
            result.updated,
        )
        save_history(path, history)
        return history, result, True

    logger.info("%s: all hourly data already exists and is complete", dam.name)
    return history, result, False


async def process_dam(
    client: httpx.AsyncClient,
    settings: Settings,
    adapters: Sequence[SourceAdapter],
    dam: DamSpec,
) -> DamOutcome:
    """Run every stage for one dam; any failure stays inside its outcome."""
    outcome = DamOutcome(dam=dam)
    try:
        per_adapter, temperature = await _stage_fetching(client, settings, adapters, dam)
        series = reconcile_sources(dam, per_adapter)
        outcome.records = assemble_records(dam, series, temperature)

        summary = generate_run_summary(dam.name, outcome.records, settings.lookback_days * 24)
        log_run_summary(summary)
        if not outcome.records:
            logger.warning("%s: no valid hourly records; history left untouched", dam.name)
            return outcome

        outcome.history, outcome.merge, outcome.saved = _stage_merging(settings, dam, outcome.records)

    except HistoryFileError as exc:
        logger.error("%s", exc)
        outcome.error = str(exc)
    except Exception as exc:
        logger.exception("Processing %s failed: %s", dam.name, exc)
        outcome.error = str(exc)
    return outcome


# ── Entry point ────────────────────────────────────────────────────────────────

async def run_pipeline(
    settings: Settings,
    dams: Sequence[DamSpec],
    transport: httpx.AsyncBaseTransport | None = None,
    now: datetime | None = None,
) -> RunReport:
    """Collect, merge and publish every dam once.

    Raises:
        OSError: If the history directory cannot be created. Nothing can be
            persisted in that case.
    """
    Path(settings.history_dir).mkdir(parents=True, exist_ok=True)
    logger.info("Processing %d dams: %s", len(dams), ", ".join(d.name for d in dams))

    async with build_client(settings, transport) as client:
        adapters = default_adapters(client, settings)
        if settings.process_dams_concurrently:
            outcomes = list(
                await asyncio.gather(*(process_dam(client, settings, adapters, d) for d in dams))
            )
        else:
            outcomes = [await process_dam(client, settings, adapters, d) for d in dams]

    report = RunReport(outcomes=outcomes)
    refreshed = [o.history for o in outcomes if o.refreshed]
    if refreshed:
        try:
            publish_snapshot(
                Path(settings.live_file), refreshed, [d.id for d in dams], now=now
            )
            report.snapshot_written = True
        except SnapshotError as exc:
            logger.error("%s", exc)
            report.snapshot_error = str(exc)
    else:
        logger.warning("No dam produced new records; live snapshot left untouched")

    for o in outcomes:
        status = "failed" if o.error else ("updated" if o.saved else "unchanged")
        logger.info("- %s: %d hourly records (%s)", o.dam.name, len(o.records), status)
    return report
