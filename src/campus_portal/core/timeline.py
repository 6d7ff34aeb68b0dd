from __future__ import annotations

from datetime import datetime
from typing import Any

from campus_portal.types import CANONICAL_STAGES, TimelineStage


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def stage_state(stage: str, *, history: list[dict], current_stage: str, status: str) -> str:
    entry = next((item for item in history if item.get("stage") == stage), None)
    if entry is not None:
        if entry.get("status") == "completed":
            return "completed"
        if entry.get("status") == "pending":
            return "current"

    if current_stage == stage:
        return "current"
    if status == "rejected":
        return "rejected"
    return "pending"


def derive_timeline(application: Any) -> list[TimelineStage]:
    """Read-only view of the canonical stages for display; never mutates history."""
    history = list(application.stage_history or [])
    items: list[TimelineStage] = []
    for stage in CANONICAL_STAGES:
        entry = next((item for item in history if item.get("stage") == stage), None)
        items.append(
            TimelineStage(
                stage=stage,
                state=stage_state(
                    stage,
                    history=history,
                    current_stage=application.current_stage,
                    status=application.status,
                ),
                timestamp=_parse_timestamp(entry.get("timestamp")) if entry else None,
            )
        )
    return items
