from __future__ import annotations

from datetime import datetime, timedelta, timezone

from efiledb.apps.efiling import models, sla

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _matrix(db_session, *rows):
    for order, (from_code, to_code, hours) in enumerate(rows):
        db_session.add(
            models.SlaMatrixEntry(
                from_role_code=from_code,
                to_role_code=to_code,
                sla_hours=hours,
                sort_order=order,
            )
        )
    db_session.commit()


def _external(file):
    file.workflow.current_state = models.WorkflowState.EXTERNAL
    file.workflow.is_within_team = False


def test_sla_hours_first_matching_pattern_wins(db_session):
    _matrix(db_session, ("XEN", "SE*", 48), ("*", "CEO", 72), ("*", "*", 12))

    assert sla.get_sla_hours(db_session, "XEN", "SE_WATER") == 48
    assert sla.get_sla_hours(db_session, "SE", "CEO") == 72
    assert sla.get_sla_hours(db_session, "AEE", "XEN") == 12


def test_sla_hours_default_without_matrix(db_session):
    assert sla.get_sla_hours(db_session, "XEN", "SE") == sla.DEFAULT_SLA_HOURS


def test_pause_and_resume_extend_deadline(db_session, make_user, make_file):
    creator = make_user("XEN")
    file = make_file(creator)
    _external(file)
    sla.start_clock(file, hours=24, now=T0)

    assert sla.pause(db_session, file, paused_by=creator.id, now=T0 + timedelta(hours=2)) is True
    assert sla.pause(db_session, file, paused_by=creator.id) is False
    db_session.commit()

    paused_hours = sla.resume(db_session, file, now=T0 + timedelta(hours=8))
    db_session.commit()

    assert paused_hours == 6.0
    assert file.sla_deadline == T0 + timedelta(hours=30)
    assert file.sla_accumulated_hours == 6.0
    assert file.sla_status == models.SlaStatus.ACTIVE
    history = db_session.query(models.SlaPauseHistory).filter_by(file_id=file.id).one()
    assert history.duration_hours == 6.0
    assert history.pause_reason == sla.CEO_PAUSE_REASON


def test_effective_sla_states(db_session, make_user, make_file):
    creator = make_user("XEN")
    file = make_file(creator)

    assert sla.effective_sla(file, now=T0)["status"] == "TEAM_INTERNAL"

    _external(file)
    sla.start_clock(file, hours=24, now=T0)
    active = sla.effective_sla(file, now=T0 + timedelta(hours=4))
    assert active["status"] == "ACTIVE"
    assert active["remaining_hours"] == 20.0

    breached = sla.effective_sla(file, now=T0 + timedelta(hours=30))
    assert breached["status"] == "BREACHED"
    assert breached["remaining_hours"] == -6.0

    sla.refresh_status(file, now=T0 + timedelta(hours=30))
    assert file.sla_status == models.SlaStatus.BREACHED

    sla.pause(db_session, file, paused_by=None, now=T0 + timedelta(hours=1))
    assert sla.effective_sla(file, now=T0 + timedelta(hours=2))["status"] == "PAUSED"

    file.status = models.FileStatus.COMPLETED
    assert sla.effective_sla(file)["status"] == "COMPLETED"
