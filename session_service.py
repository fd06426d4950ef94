from __future__ import annotations
import datetime
import logging
from typing import List, Optional

from algorithms.math_tools import MathTools
from config import DEFAULT_DB_PATH
from db import (
    MovementRepository,
    SessionRepository,
    SetRepository,
    TemplateRepository,
)
from models import (
    SessionMovement,
    SessionStatus,
    WorkoutSession,
    utcnow,
)
from record_service import PersonalRecordService
from session_builder import SessionBuilder

logger = logging.getLogger(__name__)


class SessionService:
    """Run the workout session lifecycle against the SQLite store."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self.sessions = SessionRepository(db_path)
        self.templates = TemplateRepository(db_path)
        self.movements = MovementRepository(db_path)
        self.sets = SetRepository(db_path)
        self.records = PersonalRecordService()

    def history(self) -> List[WorkoutSession]:
        return self.sessions.fetch_all_sessions(status=SessionStatus.COMPLETED)

    def _builder(self) -> SessionBuilder:
        return SessionBuilder(self.history())

    def _in_progress(self, session_id: int) -> WorkoutSession:
        session = self.sessions.fetch(session_id)
        if session.status != SessionStatus.IN_PROGRESS:
            raise ValueError("session is not in progress")
        return session

    def _in_progress_for_movement(self, session_movement_id: int) -> WorkoutSession:
        return self._in_progress(
            self.sessions.fetch_session_id_for_movement(session_movement_id)
        )

    def create_session(
        self,
        template_id: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> WorkoutSession:
        """Start a session from a template, or an empty one without it."""
        template = self.templates.fetch(template_id) if template_id is not None else None
        session = self._builder().create_session(template, now)
        self.sessions.insert(session)
        logger.info(
            "created session %s with %d movements", session.id, len(session.movements)
        )
        return session

    def duplicate_session(
        self, session_id: int, now: Optional[datetime.datetime] = None
    ) -> WorkoutSession:
        source = self.sessions.fetch(session_id)
        session = self._builder().duplicate_session(source, now)
        self.sessions.insert(session)
        logger.info("duplicated session %s into %s", session_id, session.id)
        return session

    def add_movement(
        self,
        session_id: int,
        movement_id: int,
        target_sets: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> SessionMovement:
        session = self._in_progress(session_id)
        movement = self.movements.fetch(movement_id)
        item = self._builder().add_movement(session, movement, target_sets, now)
        self.sessions.insert_movement(session_id, item)
        logger.info("added %s to session %s", movement.name, session_id)
        return item

    def select_variant(
        self, session_movement_id: int, variant_id: Optional[int]
    ) -> None:
        self._in_progress_for_movement(session_movement_id)
        self.sessions.select_variant(session_movement_id, variant_id)

    def add_set(
        self,
        session_movement_id: int,
        reps: int = 0,
        weight: float = 0.0,
        warmup: bool = False,
        now: Optional[datetime.datetime] = None,
    ) -> int:
        self._in_progress_for_movement(session_movement_id)
        return self.sets.add(session_movement_id, reps, weight, warmup, now or utcnow())

    def update_set(
        self,
        set_id: int,
        reps: Optional[int] = None,
        weight: Optional[float] = None,
        warmup: Optional[bool] = None,
        completed: Optional[bool] = None,
    ) -> None:
        detail = self.sets.fetch_detail(set_id)
        self._in_progress_for_movement(detail["session_movement_id"])
        self.sets.update(set_id, reps, weight, warmup, completed)

    def remove_set(self, set_id: int) -> None:
        detail = self.sets.fetch_detail(set_id)
        self._in_progress_for_movement(detail["session_movement_id"])
        self.sets.remove(set_id)

    def finish_session(
        self, session_id: int, now: Optional[datetime.datetime] = None
    ) -> WorkoutSession:
        """Complete a session and flag its personal records.

        The status change and all record flags are written in one
        transaction; the returned session reflects the stored state.
        """
        session = self._in_progress(session_id)
        end = now or utcnow()
        flags = self.records.evaluate(session, self.history())
        duration = MathTools.duration_seconds(session.start_time, end)
        self.sessions.save_finish(
            session_id, end, duration, [(s.id, is_pr) for s, is_pr in flags]
        )
        count = self.records.apply(flags)
        session.status = SessionStatus.COMPLETED
        session.end_time = end
        session.duration_seconds = duration
        logger.info("finished session %s with %d personal records", session_id, count)
        return session

    def cancel_session(
        self, session_id: int, now: Optional[datetime.datetime] = None
    ) -> WorkoutSession:
        session = self._in_progress(session_id)
        end = now or utcnow()
        self.sessions.save_cancel(session_id, end)
        session.status = SessionStatus.CANCELLED
        session.end_time = end
        logger.info("cancelled session %s", session_id)
        return session
