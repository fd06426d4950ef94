from __future__ import annotations
import logging
from typing import Iterable, List, Tuple

from models import PerformedSet, SessionStatus, WorkoutSession, entity_key

logger = logging.getLogger(__name__)


class PersonalRecordService:
    """Detect new best weights per equipment variant."""

    @staticmethod
    def best_weights(
        session: WorkoutSession, history: Iterable[WorkoutSession]
    ) -> dict[tuple, float]:
        """Return the heaviest working-set weight per variant in other completed sessions."""
        own = entity_key(session)
        best: dict[tuple, float] = {}
        for other in history:
            if other is session or entity_key(other) == own:
                continue
            if other.status != SessionStatus.COMPLETED:
                continue
            for item in other.movements:
                if item.variant is None:
                    continue
                key = entity_key(item.variant)
                for s in item.sets:
                    if not s.is_working:
                        continue
                    if s.weight > best.get(key, 0.0):
                        best[key] = s.weight
        return best

    @classmethod
    def evaluate(
        cls, session: WorkoutSession, history: Iterable[WorkoutSession]
    ) -> List[Tuple[PerformedSet, bool]]:
        """Return ``(set, is_pr)`` for every set of ``session`` without mutating it.

        Sets are visited by movement order then set index; a set is a record
        when its weight strictly exceeds the running best for its variant.
        """
        best = cls.best_weights(session, history)
        flags: List[Tuple[PerformedSet, bool]] = []
        for item in session.ordered_movements:
            key = entity_key(item.variant) if item.variant is not None else None
            for s in item.ordered_sets:
                if key is None or not s.is_working:
                    flags.append((s, False))
                    continue
                if s.weight > best.get(key, 0.0):
                    best[key] = s.weight
                    flags.append((s, True))
                else:
                    flags.append((s, False))
        return flags

    @staticmethod
    def apply(flags: Iterable[Tuple[PerformedSet, bool]]) -> int:
        """Write ``flags`` onto their sets and return the number of records."""
        count = 0
        for s, is_pr in flags:
            s.is_pr = is_pr
            count += int(is_pr)
        return count

    @classmethod
    def finalize_session(
        cls, session: WorkoutSession, history: Iterable[WorkoutSession]
    ) -> int:
        """Flag the personal records of ``session`` in place."""
        count = cls.apply(cls.evaluate(session, history))
        logger.debug("session %s has %d personal records", session.id, count)
        return count
