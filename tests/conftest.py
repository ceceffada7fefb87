"""Shared pytest fixtures for the White River collector test suite."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from whiteriver.catalog import WHITE_RIVER_DAMS
from whiteriver.config import Settings
from whiteriver.models import DamRecord, DamSpec, Metric, RawReading

BASE = datetime(2025, 6, 10, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def norfork() -> DamSpec:
    """Norfork from the built-in catalog, with network-only extras switched off."""
    return WHITE_RIVER_DAMS[0].model_copy(
        update={"usgs_site": None, "lake_temperature_url": None}
    )


@pytest.fixture
def beaver() -> DamSpec:
    dam = next(d for d in WHITE_RIVER_DAMS if d.key == "beaverlake")
    return dam.model_copy(update={"usgs_site": None, "lake_temperature_url": None})


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings writing into a temp dir, with no retries so failures are immediate."""
    return Settings(
        history_dir=str(tmp_path / "historic_data"),
        live_file=str(tmp_path / "live.json"),
        request_retries=0,
        _env_file=None,
    )


@pytest.fixture
def readings() -> Callable[..., list[RawReading]]:
    """Build readings for one metric from (hours after BASE, value) pairs."""

    def _build(metric: Metric, *points: tuple[float, float | None]) -> list[RawReading]:
        return [
            RawReading(metric=metric, instant=BASE + timedelta(hours=h), value=v)
            for h, v in points
        ]

    return _build


@pytest.fixture
def make_record() -> Callable[..., DamRecord]:
    """A fully populated record for *timestamp*; keyword overrides use JSON names."""

    def _build(timestamp: str | int, **overrides) -> DamRecord:
        fields = {
            "date": "10.06.2025",
            "time": "10:00",
            "waterLevel": "576.79",
            "liveStorage": "2,489,776",
            "storagePercentage": "96.50%",
            "inflow": "3000",
            "powerHouseDischarge": "2449",
            "spillwayRelease": "0",
            "totalOutflow": "2449",
            "powerGeneration": "37",
            "rainfall": "0.12",
            "dataSource": "USACE CDA API (Official)",
            "timestamp": timestamp,
            "netFlow": 551,
            "turbineEfficiency": "0.015",
            "hasForwardFilledRainfall": False,
            "lakeWaterTemp": "72°F",
            "lakeWaterTempSource": "SeaTemperature.net (Estimated)",
        }
        fields.update(overrides)
        return DamRecord.model_validate(fields)

    return _build
