from __future__ import annotations
import datetime
import logging
from typing import Iterable, List, Optional

from algorithms.math_tools import MathTools
from models import (
    Movement,
    MovementVariant,
    PerformedSet,
    SessionMovement,
    SessionStatus,
    WorkoutSession,
    WorkoutTemplate,
    utcnow,
)
from recommendation_service import least_recently_used_variant

logger = logging.getLogger(__name__)


class SessionBuilder:
    """Expand templates and earlier sessions into new in-progress sessions.

    The builder only creates unsaved records; persisting them is left to the
    session repository.
    """

    def __init__(self, history: Iterable[WorkoutSession] = ()) -> None:
        self.history = list(history)

    def recommend(self, movement: Movement) -> Optional[MovementVariant]:
        return least_recently_used_variant(movement, self.history)

    @staticmethod
    def empty_sets(count: int, now: datetime.datetime) -> List[PerformedSet]:
        return [
            PerformedSet(set_index=i, reps=0, weight=0.0, timestamp=now)
            for i in range(1, count + 1)
        ]

    def build_movement(
        self,
        movement: Movement,
        target_sets: int,
        ordering_index: int,
        now: datetime.datetime,
        variant: Optional[MovementVariant] = None,
        recommend: bool = True,
    ) -> SessionMovement:
        if variant is None and recommend:
            variant = self.recommend(movement)
        count = MathTools.at_least_one(target_sets)
        return SessionMovement(
            movement=movement,
            variant=variant,
            ordering_index=ordering_index,
            target_set_count=count,
            sets=self.empty_sets(count, now),
        )

    def create_session(
        self,
        template: Optional[WorkoutTemplate] = None,
        now: Optional[datetime.datetime] = None,
    ) -> WorkoutSession:
        now = now or utcnow()
        session = WorkoutSession(
            template_id=template.id if template else None,
            template_name=template.name if template else None,
            start_time=now,
            status=SessionStatus.IN_PROGRESS,
        )
        if template is None:
            return session
        ordering_index = 0
        for item in template.sorted_items:
            movement = item.movement
            if movement is None:
                logger.debug("skipping template item %s without movement", item.id)
                continue
            target = (
                item.target_sets
                if item.target_sets is not None
                else movement.default_set_count
            )
            for _ in range(MathTools.at_least_one(item.quantity)):
                ordering_index += 1
                session.movements.append(
                    self.build_movement(
                        movement,
                        target,
                        ordering_index,
                        now,
                        variant=item.preferred_variant,
                    )
                )
        return session

    def duplicate_session(
        self, source: WorkoutSession, now: Optional[datetime.datetime] = None
    ) -> WorkoutSession:
        now = now or utcnow()
        session = WorkoutSession(
            template_id=source.template_id,
            template_name=source.template_name,
            start_time=now,
            status=SessionStatus.IN_PROGRESS,
        )
        ordering_index = 0
        for item in source.ordered_movements:
            if item.movement is None:
                logger.debug("skipping session movement %s without movement", item.id)
                continue
            ordering_index += 1
            session.movements.append(
                self.build_movement(
                    item.movement,
                    item.target_set_count,
                    ordering_index,
                    now,
                    variant=item.variant,
                    recommend=False,
                )
            )
        return session

    def add_movement(
        self,
        session: WorkoutSession,
        movement: Movement,
        target_sets: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> SessionMovement:
        """Append ``movement`` to ``session`` and return the new entry."""
        now = now or utcnow()
        next_index = max((m.ordering_index for m in session.movements), default=0) + 1
        target = target_sets if target_sets is not None else movement.default_set_count
        item = self.build_movement(movement, target, next_index, now)
        item.session_id = session.id
        session.movements.append(item)
        return item
