# backend/efiledb/apps/efiling/sla.py

"""
Turnaround (TAT) clock for files that have left their creator's team.

The deadline is set on every external mark from the SLA matrix. The clock
pauses while a file sits with the CEO; on resume the paused duration is
added to the deadline.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from efiledb.apps.workflow import roles
from efiledb.utils.timestamps import as_utc, utcnow

from . import models

logger = logging.getLogger(__name__)

DEFAULT_SLA_HOURS = int(os.getenv("EFILING_DEFAULT_SLA_HOURS", "24"))
CEO_PAUSE_REASON = "CEO_REVIEW"


def get_sla_hours(db: Session, from_role_code: Optional[str], to_role_code: Optional[str]) -> int:
    entries = (
        db.query(models.SlaMatrixEntry)
        .filter(models.SlaMatrixEntry.is_active.is_(True))
        .order_by(models.SlaMatrixEntry.sort_order.asc(), models.SlaMatrixEntry.id.asc())
        .all()
    )
    for entry in entries:
        if roles.role_pattern_matches(from_role_code, entry.from_role_code) and roles.role_pattern_matches(
            to_role_code, entry.to_role_code
        ):
            return int(entry.sla_hours)
    return DEFAULT_SLA_HOURS


def start_clock(file: models.EfilingFile, *, hours: int, now: Optional[datetime] = None) -> None:
    now = now or utcnow()
    file.sla_deadline = now + timedelta(hours=hours)
    if not file.sla_paused:
        file.sla_status = models.SlaStatus.ACTIVE


def pause(
    db: Session,
    file: models.EfilingFile,
    *,
    paused_by: Optional[str],
    reason: str = CEO_PAUSE_REASON,
    now: Optional[datetime] = None,
) -> bool:
    """Pause the clock. Returns False when it was already paused."""
    if file.sla_paused:
        return False
    now = now or utcnow()
    file.sla_paused = True
    file.sla_paused_at = now
    file.sla_status = models.SlaStatus.PAUSED
    file.sla_pause_count = (file.sla_pause_count or 0) + 1
    db.add(
        models.SlaPauseHistory(
            file_id=file.id,
            paused_at=now,
            pause_reason=reason,
            paused_by_user_id=paused_by,
        )
    )
    db.add(file)
    return True


def resume(db: Session, file: models.EfilingFile, *, now: Optional[datetime] = None) -> float:
    """
    Resume a paused clock and return the paused duration in hours.

    The deadline is pushed back by the same duration.
    """
    if not file.sla_paused:
        return 0.0
    now = now or utcnow()
    paused_at = as_utc(file.sla_paused_at) or now
    paused_hours = max((now - paused_at).total_seconds() / 3600.0, 0.0)

    if file.sla_deadline is not None:
        file.sla_deadline = as_utc(file.sla_deadline) + timedelta(hours=paused_hours)
    file.sla_accumulated_hours = (file.sla_accumulated_hours or 0.0) + paused_hours
    file.sla_paused = False
    file.sla_paused_at = None
    file.sla_status = models.SlaStatus.ACTIVE if file.sla_deadline is not None else None

    history = (
        db.query(models.SlaPauseHistory)
        .filter(
            models.SlaPauseHistory.file_id == file.id,
            models.SlaPauseHistory.resumed_at.is_(None),
        )
        .order_by(models.SlaPauseHistory.paused_at.desc())
        .first()
    )
    if history is not None:
        history.resumed_at = now
        history.duration_hours = round(paused_hours, 2)
        db.add(history)
    else:
        logger.warning("SLA resumed without open pause record", extra={"file_id": file.id})
    db.add(file)
    return paused_hours


def effective_sla(file: models.EfilingFile, *, now: Optional[datetime] = None) -> dict:
    """Read-only view of the clock as the file list shows it."""
    now = now or utcnow()
    view = {
        "status": "PENDING",
        "deadline": as_utc(file.sla_deadline),
        "remaining_hours": None,
        "paused_at": None,
        "accumulated_hours": round(file.sla_accumulated_hours or 0.0, 2),
        "pause_count": file.sla_pause_count or 0,
    }

    if file.status == models.FileStatus.COMPLETED:
        view["status"] = "COMPLETED"
        return view
    if file.is_within_team and file.workflow_state == models.WorkflowState.TEAM_INTERNAL.value:
        view["status"] = "TEAM_INTERNAL"
        view["deadline"] = None
        return view
    if file.sla_paused:
        view["status"] = "PAUSED"
        view["paused_at"] = as_utc(file.sla_paused_at)
        return view
    if file.sla_deadline is None:
        return view

    remaining = (as_utc(file.sla_deadline) - now).total_seconds() / 3600.0
    view["remaining_hours"] = round(remaining, 2)
    view["status"] = "BREACHED" if remaining < 0 else "ACTIVE"
    return view


def refresh_status(file: models.EfilingFile, *, now: Optional[datetime] = None) -> None:
    """Flag an overdue running clock as BREACHED."""
    if file.sla_paused or file.sla_deadline is None:
        return
    if file.sla_status in (models.SlaStatus.COMPLETED, models.SlaStatus.PAUSED):
        return
    now = now or utcnow()
    if as_utc(file.sla_deadline) < now:
        file.sla_status = models.SlaStatus.BREACHED
