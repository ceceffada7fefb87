import enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Metric(str, enum.Enum):
    water_level = "water_level"
    inflow = "inflow"
    total_outflow = "total_outflow"
    spillway = "spillway"
    storage = "storage"
    power_generation = "power_generation"
    precipitation = "precipitation"


# Order in which a record borrows its source timestamp when several metrics
# reported the same hour.
TIMESTAMP_PRIORITY: tuple[Metric, ...] = (
    Metric.water_level,
    Metric.inflow,
    Metric.total_outflow,
    Metric.spillway,
    Metric.power_generation,
    Metric.storage,
    Metric.precipitation,
)


class DamSpec(BaseModel):
    """Static description of one monitored dam.

    Elevations are feet MSL, volumes acre-feet, surface area acres. Instances
    are built once from the catalog and never mutated during a run.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    name: str
    official_name: str
    latitude: float
    longitude: float

    # ── Characteristic elevations ─────────────────────────────────────────────
    max_water_level: float
    full_pool_level: float
    flood_pool_level: float
    dead_storage_level: float
    rule_level: float

    # ── Alert thresholds ──────────────────────────────────────────────────────
    watch_level: float
    action_level: float
    flood_level: float

    # ── Storage curve calibration ─────────────────────────────────────────────
    live_storage_at_frl: int
    live_storage_at_flood_pool: int
    storage_curve_exponent: float = 2.2
    surface_area: int

    # Fixed local operating offset used to bucket readings into hours
    utc_offset_hours: int = -5

    # ── Sources ───────────────────────────────────────────────────────────────
    usace_series: dict[Metric, str] = Field(default_factory=dict)
    usgs_site: str | None = None
    report_url: str | None = None
    lake_temperature_url: str | None = None

    @model_validator(mode="after")
    def check_elevations(self) -> "DamSpec":
        if self.flood_pool_level <= self.dead_storage_level:
            raise ValueError(
                f"{self.name}: flood pool level must be above dead storage level"
            )
        if self.max_water_level < self.flood_pool_level:
            raise ValueError(
                f"{self.name}: maximum water level must not be below flood pool level"
            )
        if self.storage_curve_exponent <= 0:
            raise ValueError(f"{self.name}: storage curve exponent must be positive")
        return self

    def header_fields(self) -> dict:
        """Dam-level fields repeated at the top of every history/live entry."""
        return {
            "id": self.id,
            "name": self.name,
            "officialName": self.official_name,
            "MWL": f"{self.max_water_level:.2f}",
            "FRL": f"{self.full_pool_level:.2f}",
            "liveStorageAtFRL": f"{self.live_storage_at_frl:,}",
            "ruleLevel": f"{self.rule_level:.2f}",
            "blueLevel": f"{self.watch_level:.2f}",
            "orangeLevel": f"{self.action_level:.2f}",
            "redLevel": f"{self.flood_level:.2f}",
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
