"""Per-dam history files and the completeness-wins merge.

A history file holds the dam header fields plus ``data``, newest source
timestamp first. Records are keyed by their provider timestamp, not the
canonical hour, so two distinct sub-hourly reports are never collapsed.
"""

import json
import logging
import os
import re
import tempfile
from bisect import bisect_left
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from whiteriver.models import DamHistory, DamRecord, DamSpec, is_more_complete
from whiteriver.services.timestamps import parse_instant

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')

# Sort key: parseable timestamps newest first, unparseable ones last
_SortKey = tuple[int, int]


class HistoryFileError(RuntimeError):
    """A history file could not be read, parsed, or written."""


@dataclass
class MergeResult:
    added: int = 0
    updated: int = 0

    @property
    def changed(self) -> bool:
        return self.added > 0 or self.updated > 0


# ── File store ─────────────────────────────────────────────────────────────────

def history_path(history_dir: str | Path, dam_name: str) -> Path:
    """``<history_dir>/<sanitized display name>.json``; spaces are kept."""
    safe = _UNSAFE_FILENAME_CHARS.sub("_", dam_name).strip().strip(".")
    if not safe:
        raise ValueError(f"Dam name {dam_name!r} cannot be used as a file name")
    return Path(history_dir) / f"{safe}.json"


def load_history(path: Path) -> DamHistory | None:
    """Read a history file; None if it does not exist yet.

    Raises:
        HistoryFileError: If the file exists but cannot be read or parsed.
    """
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return DamHistory.model_validate(payload)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise HistoryFileError(f"Cannot load history file {path}: {exc}") from exc


def write_json_atomic(path: Path, payload: dict) -> None:
    """Write *payload* through a temp file so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=4, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def save_history(path: Path, history: DamHistory) -> None:
    """Raises HistoryFileError if the file cannot be written."""
    try:
        write_json_atomic(path, history.to_json_dict())
    except OSError as exc:
        raise HistoryFileError(f"Cannot write history file {path}: {exc}") from exc
    logger.info("Saved %d records to %s", len(history.data), path)


# ── Merge ──────────────────────────────────────────────────────────────────────

def _sort_key(record: DamRecord) -> _SortKey:
    instant = parse_instant(record.timestamp)
    if instant is None:
        return (1, 0)
    return (0, -round(instant.timestamp() * 1000))


def _apply_header(history: DamHistory, spec: DamSpec) -> None:
    by_alias = {f.alias or name: name for name, f in DamHistory.model_fields.items()}
    for alias, value in spec.header_fields().items():
        setattr(history, by_alias[alias], value)


def new_history(spec: DamSpec) -> DamHistory:
    return DamHistory.model_validate({**spec.header_fields(), "data": []})


def merge_records(history: DamHistory, records: Iterable[DamRecord]) -> MergeResult:
    """Merge *records* into *history* in place.

    - unknown timestamp  → inserted at its newest-first position
    - known timestamp, candidate strictly more complete → replaced in place
    - otherwise → left untouched

    Re-applying the same records is a no-op.
    """
    keys = [_sort_key(r) for r in history.data]
    if keys != sorted(keys):
        logger.warning("History for %s was out of order; re-sorting", history.name)
        history.data.sort(key=_sort_key)
        keys.sort()

    result = MergeResult()
    for record in records:
        key = _sort_key(record)
        if key[0] == 1:
            logger.warning("Skipping record with unparseable timestamp %r", record.timestamp)
            continue

        pos = bisect_left(keys, key)
        if pos < len(keys) and keys[pos] == key:
            if is_more_complete(record, history.data[pos]):
                logger.debug("Replacing %s %s with a more complete record", record.date, record.time)
                history.data[pos] = record
                result.updated += 1
        else:
            keys.insert(pos, key)
            history.data.insert(pos, record)
            result.added += 1

    return result


def merge_into_history(
    existing: DamHistory | None,
    spec: DamSpec,
    records: list[DamRecord],
) -> tuple[DamHistory, MergeResult]:
    """Merge a run's records for one dam, creating the history on first fetch.

    Dam header fields are refreshed from *spec* whenever anything changed.
    """
    history = existing if existing is not None else new_history(spec)
    result = merge_records(history, records)
    if result.changed:
        _apply_header(history, spec)
    return history, result
