"""
Recommendation overlays — user edits on top of the loaded CSV.

Two layers:
  - the base snapshot, loaded fresh every load cycle (never mutated)
  - a persistent map of recommendation id -> partial patch

The patch map is the only durable state. merge_recommendations() is a pure
function of (base, patches), so a reload always shows the user's edits even
though the CSV still holds the original values.
"""

from __future__ import annotations

import json
import time
from datetime import date
from typing import Any

import structlog

from dashboard.state import RECOMMENDATION_UPDATES_KEY, ClientStateStore
from ingest.csv_parser import format_csv
from ingest.records import ACTION_STATUSES, SEVERITIES, STATUSES, RecommendationRecord

logger = structlog.get_logger()

Patch = dict[str, Any]

USER_ACTION_SOURCE = "user_created_action"

CSV_COLUMNS = [
    "id",
    "source",
    "name",
    "type",
    "severity",
    "status",
    "action_status",
    "start_date",
    "completion_date",
    "created_date",
]


class RecommendationOverlayStore:
    def __init__(self, state: ClientStateStore):
        self.state = state

    def get_updates(self) -> dict[str, Patch]:
        raw = self.state.get_item(RECOMMENDATION_UPDATES_KEY)
        if not raw:
            return {}
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("recommendation_updates_corrupt")
            return {}
        if not isinstance(payload, dict):
            return {}
        return {str(k): v for k, v in payload.items() if isinstance(v, dict)}

    def save_update(self, recommendation_id: str, patch: Patch) -> Patch:
        """Merge a patch into the stored one for this id (last write wins per field)."""
        updates = self.get_updates()
        merged = {**updates.get(recommendation_id, {}), **patch}
        updates[recommendation_id] = merged
        self.state.set_item(RECOMMENDATION_UPDATES_KEY, json.dumps(updates))
        logger.info("recommendation_update_saved", recommendation_id=recommendation_id, fields=sorted(patch))
        return merged

    def clear(self) -> None:
        self.state.remove_item(RECOMMENDATION_UPDATES_KEY)


def merge_recommendations(
    base: list[RecommendationRecord],
    updates: dict[str, Patch],
) -> list[RecommendationRecord]:
    """
    Overlay stored patches onto a freshly loaded base snapshot.

    User-created actions whose id is not in the base are appended after the
    base records, in patch order. Edits to recommendations the current base
    does not hold stay stored but are not shown.
    """
    base_ids = {rec.id for rec in base}
    merged = [rec.with_patch(updates[rec.id]) if rec.id in updates else rec for rec in base]

    for recommendation_id, patch in updates.items():
        if recommendation_id in base_ids or patch.get("source") != USER_ACTION_SOURCE:
            continue
        try:
            merged.append(RecommendationRecord.from_dict({**patch, "id": recommendation_id}))
        except (KeyError, TypeError) as e:
            logger.warning("recommendation_overlay_skipped", recommendation_id=recommendation_id, error=str(e))

    return merged


def recommendations_to_csv(records: list[RecommendationRecord]) -> str:
    """Merged records in the recommendations.csv column layout."""
    rows = [CSV_COLUMNS]
    for rec in records:
        values = rec.to_dict()
        rows.append([values[column] or "" for column in CSV_COLUMNS])
    return format_csv(rows)


# ── User operations ──────────────────────────────────────────────────────


def _today(today: date | None) -> str:
    return (today or date.today()).isoformat()


def accept(rec: RecommendationRecord, today: date | None = None) -> RecommendationRecord:
    """Accepting schedules the action starting today."""
    return rec.with_patch({"status": "accepted", "action_status": "scheduled", "start_date": _today(today)})


def reject(rec: RecommendationRecord) -> RecommendationRecord:
    return rec.with_patch({"status": "rejected"})


def update_action_status(
    rec: RecommendationRecord,
    status: str,
    action_status: str | None = None,
    start_date: str | None = None,
    completion_date: str | None = None,
) -> RecommendationRecord:
    if status not in STATUSES:
        raise ValueError(f"Unknown status '{status}'. Known: {list(STATUSES)}")
    if action_status is not None and action_status not in ACTION_STATUSES:
        raise ValueError(f"Unknown action status '{action_status}'. Known: {list(ACTION_STATUSES)}")
    return rec.with_patch(
        {
            "status": status,
            "action_status": action_status,
            "start_date": start_date or None,
            "completion_date": completion_date or None,
        }
    )


def create_action(
    name: str,
    action_type: str,
    severity: str,
    today: date | None = None,
    now_ms: int | None = None,
) -> RecommendationRecord:
    """A user-created action starts accepted, in the "created" stage."""
    if severity not in SEVERITIES:
        raise ValueError(f"Unknown severity '{severity}'. Known: {list(SEVERITIES)}")
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return RecommendationRecord(
        id=f"ACT-{stamp}",
        source=USER_ACTION_SOURCE,
        name=name,
        type=action_type,
        severity=severity,
        status="accepted",
        action_status="created",
        created_date=_today(today),
    )
