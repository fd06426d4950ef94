import os
import sys
import datetime
import sqlite3
from unittest import mock

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import SessionRepository
from models import SessionStatus
from seed_sample_data import seed
from session_service import SessionService

UTC = datetime.timezone.utc
NOW = datetime.datetime(2024, 5, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def service(tmp_path):
    db_path = str(tmp_path / "sessions.db")
    seed(db_path)
    return SessionService(db_path)


def _template_id(service, name):
    return next(t.id for t in service.templates.fetch_all_templates() if t.name == name)


def _log(service, session, reps, weight):
    for item in session.movements:
        for s in item.sets:
            service.update_set(s.id, reps=reps, weight=weight, completed=True)


def test_create_from_template_persists_expansion(service):
    session = service.create_session(_template_id(service, "PULL"), NOW)

    assert session.id is not None
    assert session.display_title == "PULL"
    assert [m.ordering_index for m in session.movements] == [1, 2]
    stored = service.sessions.fetch(session.id)
    assert [len(m.sets) for m in stored.movements] == [3, 3]
    assert all(m.variant is not None for m in stored.movements)


def test_unknown_template_raises(service):
    with pytest.raises(ValueError):
        service.create_session(999, NOW)


def test_finish_flags_records_across_sessions(service):
    legs = _template_id(service, "LEGS")

    first = service.create_session(legs, NOW - datetime.timedelta(days=4))
    _log(service, first, 5, 100.0)
    first = service.finish_session(first.id, NOW - datetime.timedelta(days=4, hours=-1))
    assert first.status == SessionStatus.COMPLETED
    assert first.duration_seconds == 3600
    assert first.personal_record_count == 1

    variant = first.movements[0].variant
    second = service.duplicate_session(first.id, NOW - datetime.timedelta(days=2))
    assert second.movements[0].variant.id == variant.id
    _log(service, second, 3, 105.0)
    assert service.finish_session(second.id, NOW - datetime.timedelta(days=2)).personal_record_count == 1

    third = service.duplicate_session(second.id, NOW)
    _log(service, third, 5, 100.0)
    assert service.finish_session(third.id, NOW).personal_record_count == 0

    stored = service.sessions.fetch(second.id)
    assert stored.movements[0].sets[0].is_pr


def test_finish_twice_is_rejected(service):
    session = service.create_session(None, NOW)
    service.finish_session(session.id, NOW)
    with pytest.raises(ValueError):
        service.finish_session(session.id, NOW)
    with pytest.raises(ValueError):
        service.cancel_session(session.id, NOW)


def test_failed_finish_keeps_session_in_progress(service):
    session = service.create_session(_template_id(service, "LEGS"), NOW)
    _log(service, session, 5, 100.0)
    with mock.patch.object(
        SessionRepository, "save_finish", side_effect=sqlite3.OperationalError("locked")
    ):
        with pytest.raises(sqlite3.OperationalError):
            service.finish_session(session.id, NOW)
    stored = service.sessions.fetch(session.id)
    assert stored.status == SessionStatus.IN_PROGRESS
    assert not any(s.is_pr for s in stored.movements[0].sets)


def test_cancelled_session_is_ignored_by_records(service):
    legs = _template_id(service, "LEGS")
    heavy = service.create_session(legs, NOW - datetime.timedelta(days=1))
    _log(service, heavy, 5, 200.0)
    service.cancel_session(heavy.id, NOW - datetime.timedelta(days=1))

    session = service.create_session(legs, NOW)
    _log(service, session, 5, 100.0)
    assert service.finish_session(session.id, NOW).personal_record_count == 1


def test_add_movement_and_edit_sets(service):
    session = service.create_session(None, NOW)
    squat = service.movements.find_by_name("Squat")
    item = service.add_movement(session.id, squat.id, now=NOW)

    assert item.ordering_index == 1
    assert len(item.sets) == 4
    set_id = service.add_set(item.id, reps=5, weight=60.0, now=NOW)
    assert service.sets.fetch_detail(set_id)["set_index"] == 5

    service.remove_set(item.sets[0].id)
    stored = service.sessions.fetch(session.id)
    assert [s.set_index for s in stored.movements[0].sets] == [1, 2, 3, 4]

    other = next(v for v in squat.variants if v.id != item.variant.id)
    service.select_variant(item.id, other.id)
    assert service.sessions.fetch(session.id).movements[0].variant.id == other.id


def test_edits_rejected_after_finish(service):
    session = service.create_session(_template_id(service, "LEGS"), NOW)
    service.finish_session(session.id, NOW)
    item = session.movements[0]
    with pytest.raises(ValueError):
        service.add_set(item.id, reps=5, weight=50.0)
    with pytest.raises(ValueError):
        service.update_set(item.sets[0].id, reps=3)
    with pytest.raises(ValueError):
        service.add_movement(session.id, item.movement.id)
