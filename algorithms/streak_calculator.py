import datetime
from typing import Iterable

from models import SessionStatus, WorkoutSession


class StreakCalculator:
    """Count consecutive training weeks."""

    WEEK = datetime.timedelta(days=7)

    @staticmethod
    def week_start(now: datetime.datetime, first_weekday: int = 0) -> datetime.datetime:
        """Return local midnight of the first day of the week containing ``now``.

        ``first_weekday`` follows :mod:`datetime` numbering (0 = Monday).
        """
        if not 0 <= first_weekday <= 6:
            raise ValueError("first_weekday must be between 0 and 6")
        today = now.date()
        offset = (today.weekday() - first_weekday) % 7
        start_day = today - datetime.timedelta(days=offset)
        return datetime.datetime.combine(start_day, datetime.time.min, tzinfo=now.tzinfo)

    @classmethod
    def weekly_streak(
        cls,
        sessions: Iterable[WorkoutSession],
        now: datetime.datetime,
        first_weekday: int = 0,
    ) -> int:
        """Return the number of consecutive weeks, ending with the current one,
        that contain at least one completed session."""
        starts = [
            s.start_time for s in sessions if s.status == SessionStatus.COMPLETED
        ]
        if not starts:
            return 0
        streak = 0
        start = cls.week_start(now, first_weekday)
        while True:
            end = start + cls.WEEK
            if not any(start <= t < end for t in starts):
                break
            streak += 1
            start = start - cls.WEEK
        return streak
