from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Persisted values that mean "nothing was reported" rather than real data.
# The lake-temperature sentinel is written when the page could not be read.
PLACEHOLDER_VALUES: frozenset[str] = frozenset({"", "0", "N/A", "0°F"})

# Provenance flags say how a value was obtained; they are not data themselves.
PROVENANCE_FIELDS: frozenset[str] = frozenset({"hasForwardFilledRainfall", "hasSyntheticTimestamp"})


def is_informative(value: Any) -> bool:
    """True when *value* carries real data (not null, empty, zero, or a placeholder)."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip() not in PLACEHOLDER_VALUES
    return bool(value)


class DamRecord(BaseModel):
    """One hourly row of a dam's history, in its persisted (string-formatted) shape.

    Unknown keys written by older revisions of the collector are kept as extras
    so a rewrite never drops them.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    date: str | None = None
    time: str | None = None
    water_level: str | None = None
    live_storage: str | None = None
    storage_percentage: str | None = None
    inflow: str | None = None
    power_house_discharge: str | None = None
    spillway_release: str | None = None
    total_outflow: str | None = None
    power_generation: str | None = None
    rainfall: str | None = None
    data_source: str | None = None
    # Provider instant; merge key. Older files hold epoch milliseconds.
    timestamp: str | int | None = None
    net_flow: int | None = None
    turbine_efficiency: str | None = None
    has_forward_filled_rainfall: bool | None = None
    lake_water_temp: str | None = None
    lake_water_temp_source: str | None = None
    has_synthetic_timestamp: bool | None = None

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)

    def informative_field_count(self) -> int:
        """Fields carrying real data. A forward-filled rainfall value is a
        carried-over estimate, so it does not count against a real reading.
        """
        values = self.to_json_dict()
        for key in PROVENANCE_FIELDS:
            values.pop(key, None)
        if self.has_forward_filled_rainfall:
            values.pop("rainfall", None)
        return sum(1 for v in values.values() if is_informative(v))


def is_more_complete(candidate: DamRecord, existing: DamRecord) -> bool:
    """Completeness-wins rule: strictly more informative fields replaces."""
    return candidate.informative_field_count() > existing.informative_field_count()


class DamHistory(BaseModel):
    """Full per-dam history file: dam header fields plus newest-first records."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    name: str
    official_name: str | None = Field(default=None, alias="officialName")
    mwl: str | None = Field(default=None, alias="MWL")
    frl: str | None = Field(default=None, alias="FRL")
    live_storage_at_frl: str | None = Field(default=None, alias="liveStorageAtFRL")
    rule_level: str | None = Field(default=None, alias="ruleLevel")
    blue_level: str | None = Field(default=None, alias="blueLevel")
    orange_level: str | None = Field(default=None, alias="orangeLevel")
    red_level: str | None = Field(default=None, alias="redLevel")
    latitude: float | None = None
    longitude: float | None = None
    data: list[DamRecord] = Field(default_factory=list)

    def to_json_dict(self) -> dict[str, Any]:
        out = self.model_dump(by_alias=True, exclude_unset=True, exclude={"data"})
        out["data"] = [r.to_json_dict() for r in self.data]
        return out


class LiveSnapshot(BaseModel):
    """Contents of live.json: newest record of every dam, keyed by dam id."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    last_update: str | None = Field(default=None, alias="lastUpdate")
    dams: list[DamHistory] = Field(default_factory=list)

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "lastUpdate": self.last_update,
            "dams": [d.to_json_dict() for d in self.dams],
        }
