"""live.json: the newest record of every dam, rewritten once per run."""

import json
import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from whiteriver.models import DamHistory, LiveSnapshot
from whiteriver.services.history import write_json_atomic
from whiteriver.services.timestamps import format_instant

logger = logging.getLogger(__name__)


class SnapshotError(RuntimeError):
    """live.json could not be read or written."""


def _entry_key(entry: DamHistory) -> str:
    return entry.id if entry.id is not None else entry.name


def load_snapshot(path: Path) -> LiveSnapshot:
    """Read live.json; an empty snapshot if the file does not exist yet.

    Raises:
        SnapshotError: If the file exists but cannot be parsed. Callers must
            not overwrite it in that case, or every other dam's entry is lost.
    """
    if not path.exists():
        return LiveSnapshot()
    try:
        return LiveSnapshot.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise SnapshotError(f"Cannot load snapshot {path}: {exc}") from exc


def latest_entry(history: DamHistory) -> DamHistory:
    """Header fields of *history* with only its newest record."""
    header = history.to_json_dict()
    header["data"] = [r.to_json_dict() for r in history.data[:1]]
    return DamHistory.model_validate(header)


def build_snapshot(
    existing: LiveSnapshot,
    refreshed: Sequence[DamHistory],
    dam_order: Sequence[str] = (),
    now: datetime | None = None,
) -> LiveSnapshot:
    """Replace the entries of *refreshed* dams and keep everyone else's.

    Entries are ordered by *dam_order* (dam ids), then any dams only present
    in the previous snapshot, in their previous order.
    """
    entries: dict[str, DamHistory] = {_entry_key(e): e for e in existing.dams}
    for history in refreshed:
        if not history.data:
            continue
        entries[_entry_key(history)] = latest_entry(history)

    ordered = [entries.pop(dam_id) for dam_id in dam_order if dam_id in entries]
    ordered.extend(entries.values())

    stamp = now if now is not None else datetime.now(timezone.utc)
    return LiveSnapshot.model_validate(
        {"lastUpdate": format_instant(stamp), "dams": [e.to_json_dict() for e in ordered]}
    )


def publish_snapshot(
    path: Path,
    refreshed: Sequence[DamHistory],
    dam_order: Sequence[str] = (),
    now: datetime | None = None,
) -> LiveSnapshot:
    """Single read-modify-write of live.json for the whole fleet.

    Raises:
        SnapshotError: If the previous snapshot is unreadable or the write fails.
    """
    snapshot = build_snapshot(load_snapshot(path), refreshed, dam_order, now)
    try:
        write_json_atomic(path, snapshot.to_json_dict())
    except OSError as exc:
        raise SnapshotError(f"Cannot write snapshot {path}: {exc}") from exc
    logger.info("Live snapshot saved to %s (%d dams)", path, len(snapshot.dams))
    return snapshot
