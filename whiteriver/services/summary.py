"""Per-dam run summary: coverage and ranges of the records assembled this run."""

import logging

import numpy as np
import pandas as pd

from whiteriver.models import DamRecord

logger = logging.getLogger(__name__)

_NUMERIC_FIELDS = {
    "water_level": "waterLevel",
    "storage_percentage": "storagePercentage",
    "spillway_release": "spillwayRelease",
    "rainfall": "rainfall",
}


def _to_frame(records: list[DamRecord]) -> pd.DataFrame:
    rows = [r.to_json_dict() for r in records]
    df = pd.DataFrame(rows)
    for column, key in _NUMERIC_FIELDS.items():
        raw = df[key] if key in df.columns else pd.Series([None] * len(df))
        cleaned = raw.map(lambda v: None if v is None else str(v).replace(",", "").rstrip("%"))
        df[column] = pd.to_numeric(cleaned, errors="coerce")
    df["ts"] = pd.to_datetime(df.get("timestamp"), utc=True, errors="coerce", format="mixed")
    return df


def generate_run_summary(dam_name: str, records: list[DamRecord], window_hours: int) -> dict:
    """Summarize one dam's freshly assembled records.

    Args:
        dam_name: Display name, stored in the summary.
        records: Records assembled this run (any order).
        window_hours: Length of the requested fetch window, used for coverage.

    Returns:
        A JSON-serialisable dict; ``passed`` is False when nothing usable came back.
    """
    if not records:
        return {"dam": dam_name, "total_records": 0, "passed": False, "error": "No data"}

    df = _to_frame(records)
    levels = df["water_level"].dropna()
    storage = df["storage_percentage"].dropna()
    spill = df["spillway_release"].fillna(0.0)

    coverage_percent = round(min(len(df) / max(window_hours, 1), 1.0) * 100, 2)
    ts = df["ts"].dropna()

    return {
        "dam": dam_name,
        "total_records": len(df),
        "date_range": {
            "start": ts.min().isoformat() if not ts.empty else None,
            "end": ts.max().isoformat() if not ts.empty else None,
        },
        "coverage_percent": coverage_percent,
        "water_level": {
            "min_ft": round(float(levels.min()), 2) if not levels.empty else None,
            "max_ft": round(float(levels.max()), 2) if not levels.empty else None,
            "median_ft": round(float(np.median(levels)), 2) if not levels.empty else None,
        },
        "storage_percent": {
            "min": round(float(storage.min()), 2) if not storage.empty else None,
            "max": round(float(storage.max()), 2) if not storage.empty else None,
        },
        "spillway_release_detected": bool((spill > 0).any()),
        "total_rainfall_in": round(float(df["rainfall"].fillna(0.0).sum()), 2),
        "synthetic_timestamps": sum(1 for r in records if r.has_synthetic_timestamp),
        "passed": not levels.empty,
    }


def log_run_summary(summary: dict) -> None:
    if not summary.get("passed"):
        logger.warning("%s: no valid records this run", summary["dam"])
        return
    logger.info(
        "%s: %d records, coverage %.1f%%, water level %s-%s ft, storage %s-%s%%",
        summary["dam"],
        summary["total_records"],
        summary["coverage_percent"],
        summary["water_level"]["min_ft"],
        summary["water_level"]["max_ft"],
        summary["storage_percent"]["min"],
        summary["storage_percent"]["max"],
    )
    if summary["spillway_release_detected"]:
        logger.warning("%s: spillway releases detected in data range", summary["dam"])
