from __future__ import annotations
import datetime
import logging
from typing import Iterable, Optional

from models import (
    Movement,
    MovementVariant,
    SessionStatus,
    WorkoutSession,
    entity_key,
)

logger = logging.getLogger(__name__)

BEGINNING_OF_TIME = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)


def last_used_at(
    variant: MovementVariant, history: Iterable[WorkoutSession]
) -> Optional[datetime.datetime]:
    """Return when ``variant`` was last used in a completed session."""
    key = entity_key(variant)
    latest: Optional[datetime.datetime] = None
    for session in history:
        if session.status != SessionStatus.COMPLETED:
            continue
        for item in session.movements:
            if item.variant is None or entity_key(item.variant) != key:
                continue
            used = session.last_activity
            if latest is None or used > latest:
                latest = used
    return latest


def least_recently_used_variant(
    movement: Movement, history: Iterable[WorkoutSession]
) -> Optional[MovementVariant]:
    """Pick the variant of ``movement`` exercised least recently.

    Variants never used in a completed session win over any used one. Ties
    go to the first variant in case-insensitive name order.
    """
    variants = movement.sorted_variants
    if not variants:
        return None
    sessions = list(history)
    best: Optional[MovementVariant] = None
    oldest: Optional[datetime.datetime] = None
    for variant in variants:
        used = last_used_at(variant, sessions) or BEGINNING_OF_TIME
        if oldest is None or used < oldest:
            oldest = used
            best = variant
    return best


class RecommendationService:
    """Recommend equipment variants based on logged history."""

    def __init__(self, session_repo=None) -> None:
        self.sessions = session_repo

    def recommend_variant(
        self,
        movement: Movement,
        history: Iterable[WorkoutSession] | None = None,
    ) -> Optional[MovementVariant]:
        """Return the least recently used variant of ``movement``.

        ``history`` defaults to every completed session in the store.
        """
        if history is None:
            if self.sessions is None:
                history = []
            else:
                history = self.sessions.fetch_all_sessions(
                    status=SessionStatus.COMPLETED
                )
        choice = least_recently_used_variant(movement, history)
        logger.debug(
            "recommended variant %s for movement %s",
            choice.name if choice else None,
            movement.name,
        )
        return choice
