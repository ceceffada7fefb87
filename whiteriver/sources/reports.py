"""HTML tabular project reports.

District report pages publish an hourly table per project. Column layout and
header wording vary between pages, so columns are found by header keywords.
Times in the table are local project time.
"""

import logging
from datetime import timedelta, timezone

import pandas as pd
from bs4 import BeautifulSoup

from whiteriver.models import DamSpec, Metric, RawReading
from whiteriver.sources.base import SourceAdapter, safe_float
from whiteriver.sources.http import get_with_retries

logger = logging.getLogger(__name__)

# Header fragments used for column detection (lowercase)
_DATE_HINTS = ("date", "datetime", "day")
_TIME_HINTS = ("time", "hour", "hr")
_METRIC_HINTS: dict[Metric, tuple[str, ...]] = {
    Metric.water_level: ("pool elev", "elevation", "headwater", "elev"),
    Metric.inflow: ("inflow",),
    Metric.spillway: ("spill", "tainter", "gate"),
    Metric.total_outflow: ("outflow", "total release", "release"),
    Metric.power_generation: ("generation", "mwh", "power"),
}
# Rain columns on report pages are hourly amounts, while precipitation is
# carried as a cumulative counter; they are not read from reports.


def _detect_column(columns: list[str], hints: tuple[str, ...]) -> str | None:
    """Column matching the earliest hint that matches anything; hints are in priority order."""
    for hint in hints:
        for col in columns:
            if hint in col.lower():
                return col
    return None


def _largest_table(soup: BeautifulSoup) -> list[list[str]]:
    best: list[list[str]] = []
    for table in soup.find_all("table"):
        rows = [
            [cell.get_text(" ", strip=True) for cell in tr.find_all(["th", "td"])]
            for tr in table.find_all("tr")
        ]
        rows = [r for r in rows if any(r)]
        if len(rows) > len(best):
            best = rows
    return best


def parse_report_table(html: str, utc_offset_hours: int, label: str = "") -> dict[Metric, list[RawReading]]:
    """Extract hourly readings from the largest table on a report page.

    Raises:
        ValueError: If no table with a date column and at least one known
            metric column is present.
    """
    rows = _largest_table(BeautifulSoup(html, "html.parser"))
    if len(rows) < 2:
        raise ValueError("Report page has no data table")

    header, body = rows[0], rows[1:]
    header = [h if header.count(h) == 1 else f"{h} #{i}" for i, h in enumerate(header)]
    width = len(header)
    df = pd.DataFrame([r[:width] + [""] * (width - len(r)) for r in body], columns=header)
    cols = list(df.columns)

    date_col = _detect_column(cols, _DATE_HINTS)
    if date_col is None:
        raise ValueError(f"Cannot detect date column in {cols!r}")
    time_col = _detect_column([c for c in cols if c != date_col], _TIME_HINTS)

    claimed = {date_col, time_col}
    metric_cols: dict[Metric, str] = {}
    for metric, hints in _METRIC_HINTS.items():
        col = _detect_column([c for c in cols if c not in claimed], hints)
        if col is not None:
            metric_cols[metric] = col
            claimed.add(col)
    if not metric_cols:
        raise ValueError(f"Cannot detect any metric column in {cols!r}")

    stamp = df[date_col] if time_col is None else df[date_col] + " " + df[time_col]
    local = pd.to_datetime(stamp, errors="coerce", format="mixed")
    tz = timezone(timedelta(hours=utc_offset_hours))

    out: dict[Metric, list[RawReading]] = {m: [] for m in metric_cols}
    for i, ts in enumerate(local):
        if pd.isna(ts):
            continue
        instant = ts.to_pydatetime().replace(tzinfo=tz).astimezone(timezone.utc)
        for metric, col in metric_cols.items():
            out[metric].append(
                RawReading(metric=metric, instant=instant, value=safe_float(df[col].iloc[i]), source=label)
            )

    logger.debug("Report columns: %s", {m.value: c for m, c in metric_cols.items()})
    return out


class ReportTableAdapter(SourceAdapter):
    label = "USACE Tabular Report"

    def metrics(self, dam: DamSpec) -> list[Metric]:
        return list(_METRIC_HINTS) if dam.report_url else []

    async def fetch_metrics(
        self, dam: DamSpec, metrics: list[Metric]
    ) -> dict[Metric, list[RawReading]]:
        resp = await get_with_retries(
            self.client, dam.report_url, retries=self.settings.request_retries
        )
        found = parse_report_table(resp.text, dam.utc_offset_hours, self.label)
        logger.info(
            "%s: %s → %d rows",
            self.label,
            dam.name,
            max((len(v) for v in found.values()), default=0),
        )
        return {m: found.get(m, []) for m in metrics}
