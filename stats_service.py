from __future__ import annotations
import datetime
from typing import Dict, Iterable, List, Optional

from algorithms.math_tools import MathTools
from algorithms.streak_calculator import StreakCalculator
from models import (
    ExerciseChartPoint,
    ExerciseHistoryEntry,
    ExerciseHistorySummary,
    ExerciseRecord,
    ExerciseSetLogEntry,
    Movement,
    MovementVariant,
    MuscleGroupStat,
    PerformedSet,
    ProfileStats,
    SessionStatus,
    StrengthTrend,
    WorkoutSession,
    entity_key,
    utcnow,
)


class StatisticsService:
    """Compute workout statistics for reporting.

    Every method works on the session collection handed to it and a reference
    time ``now``; nothing is cached between calls.
    """

    VOLUME_WINDOW = datetime.timedelta(days=7)
    RECENT_WINDOW = datetime.timedelta(days=14)
    TREND_HORIZON = datetime.timedelta(weeks=8)
    TREND_OFFSET = datetime.timedelta(weeks=4)
    TOP_MUSCLE_GROUPS = 5

    def __init__(self, first_weekday: int = 0) -> None:
        self.first_weekday = first_weekday

    @staticmethod
    def _completed(sessions: Iterable[WorkoutSession]) -> List[WorkoutSession]:
        return [s for s in sessions if s.status == SessionStatus.COMPLETED]

    @staticmethod
    def _working_sets(sessions: Iterable[WorkoutSession]) -> List[tuple]:
        """Return ``(movement, set)`` pairs for all working sets."""
        rows = []
        for session in sessions:
            for item in session.ordered_movements:
                for s in item.working_sets:
                    rows.append((item.movement, s))
        return rows

    @staticmethod
    def _day(ts: datetime.datetime, now: datetime.datetime) -> datetime.date:
        if ts.tzinfo is not None and now.tzinfo is not None:
            ts = ts.astimezone(now.tzinfo)
        return ts.date()

    @staticmethod
    def _category(movement: Optional[Movement]) -> str:
        raw = movement.category.strip() if movement is not None else ""
        return raw or "Other"

    def muscle_group_counts(
        self, sets: Iterable[tuple[Optional[Movement], PerformedSet]]
    ) -> List[MuscleGroupStat]:
        counts: Dict[str, int] = {}
        for movement, _s in sets:
            category = self._category(movement)
            counts[category] = counts.get(category, 0) + 1
        ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        return [
            MuscleGroupStat(name=name, set_count=count)
            for name, count in ranked[: self.TOP_MUSCLE_GROUPS]
        ]

    def profile_stats(
        self,
        sessions: Iterable[WorkoutSession],
        now: Optional[datetime.datetime] = None,
    ) -> ProfileStats:
        """Return volume, workout count, muscle groups and trend for the last 7 days.

        The window is ``now - 7 days <= start_time <= now``; sessions dated after
        ``now`` are not counted.
        """
        now = now or utcnow()
        completed = self._completed(sessions)
        cutoff = now - self.VOLUME_WINDOW
        recent = [s for s in completed if cutoff <= s.start_time <= now]
        working = self._working_sets(recent)
        total_volume = MathTools.volume((s.reps, s.weight) for _m, s in working)
        return ProfileStats(
            total_volume=total_volume,
            workout_count=len(recent),
            strength_trend=self.strength_trend(completed, now),
            muscle_group_sets=self.muscle_group_counts(working),
        )

    @staticmethod
    def benchmark_key(movement_name: str) -> Optional[str]:
        """Map a movement name onto one of the benchmark lifts."""
        name = movement_name.lower()
        if "bench" in name:
            return "Bench"
        if "squat" in name:
            return "Squat"
        if "deadlift" in name:
            return "Deadlift"
        if "overhead press" in name or "shoulder press" in name or "ohp" in name:
            return "OHP"
        return None

    def average_benchmark_e1rm(
        self,
        sessions: Iterable[WorkoutSession],
        start: datetime.datetime,
        end: datetime.datetime,
    ) -> Optional[float]:
        best_by_lift: Dict[str, float] = {}
        for session in sessions:
            if not start <= session.start_time <= end:
                continue
            for item in session.movements:
                if item.movement is None:
                    continue
                lift = self.benchmark_key(item.movement.name)
                if lift is None:
                    continue
                values = [
                    MathTools.estimated_1rm(s.weight, s.reps) for s in item.working_sets
                ]
                if not values:
                    continue
                best_by_lift[lift] = max(best_by_lift.get(lift, 0.0), max(values))
        if not best_by_lift:
            return None
        return sum(best_by_lift.values()) / len(best_by_lift)

    def strength_trend(
        self,
        sessions: Iterable[WorkoutSession],
        now: Optional[datetime.datetime] = None,
    ) -> Optional[StrengthTrend]:
        """Compare benchmark e1RM of the last week with the same week a month earlier."""
        now = now or utcnow()
        horizon = now - self.TREND_HORIZON
        recent = [
            s for s in self._completed(sessions) if s.start_time >= horizon
        ]
        current = self.average_benchmark_e1rm(recent, now - self.VOLUME_WINDOW, now)
        past_end = now - self.TREND_OFFSET
        past = self.average_benchmark_e1rm(recent, past_end - self.VOLUME_WINDOW, past_end)
        if current is None or past is None or past <= 0:
            return None
        return StrengthTrend(percent_change=(current - past) / past)

    @staticmethod
    def _matches(item, movement: Movement, variant: Optional[MovementVariant]) -> bool:
        if item.movement is None or entity_key(item.movement) != entity_key(movement):
            return False
        if variant is None:
            return True
        return item.variant is not None and entity_key(item.variant) == entity_key(variant)

    def exercise_history(
        self,
        movement: Movement,
        variant: Optional[MovementVariant],
        sessions: Iterable[WorkoutSession],
        now: Optional[datetime.datetime] = None,
    ) -> ExerciseHistorySummary:
        """Return chart series, records and the set log for one movement.

        Sessions are visited oldest first so that equal records keep the
        earliest date.
        """
        now = now or utcnow()
        recent_cutoff = now - self.RECENT_WINDOW
        best_by_day: Dict[datetime.date, float] = {}
        volume_points: List[ExerciseChartPoint] = []
        all_time_pr: Optional[ExerciseRecord] = None
        best_e1rm: Optional[ExerciseRecord] = None
        recent_weights: List[float] = []
        logs: List[ExerciseSetLogEntry] = []

        ordered = sorted(self._completed(sessions), key=lambda s: s.start_time)
        for session in ordered:
            when = session.start_time
            working = [
                s
                for item in session.ordered_movements
                if self._matches(item, movement, variant)
                for s in item.working_sets
            ]
            if not working:
                continue

            day = self._day(when, now)
            heaviest = max(s.weight for s in working)
            best_by_day[day] = max(best_by_day.get(day, heaviest), heaviest)
            volume_points.append(
                ExerciseChartPoint(
                    date=when,
                    value=MathTools.volume((s.reps, s.weight) for s in working),
                )
            )

            for s in working:
                logs.append(
                    ExerciseSetLogEntry(
                        date=when,
                        workout_name=session.display_title,
                        set_index=s.set_index,
                        reps=s.reps,
                        weight=s.weight,
                    )
                )
                if all_time_pr is None or s.weight > all_time_pr.value:
                    all_time_pr = ExerciseRecord(value=s.weight, date=when)
                e1rm = MathTools.estimated_1rm(s.weight, s.reps)
                if best_e1rm is None or e1rm > best_e1rm.value:
                    best_e1rm = ExerciseRecord(value=e1rm, date=when)
                if recent_cutoff <= when <= now:
                    recent_weights.append(s.weight)

        tz = now.tzinfo
        best_series = [
            ExerciseChartPoint(
                date=datetime.datetime.combine(day, datetime.time.min, tzinfo=tz),
                value=value,
            )
            for day, value in sorted(best_by_day.items())
        ]
        return ExerciseHistorySummary(
            best_set_series=best_series,
            volume_series=sorted(volume_points, key=lambda p: p.date),
            all_time_pr=all_time_pr,
            best_e1rm=best_e1rm,
            recent_average_weight=MathTools.mean(recent_weights),
            set_logs=sorted(logs, key=lambda e: e.date, reverse=True),
        )

    def exercise_history_entries(
        self, sessions: Iterable[WorkoutSession]
    ) -> List[ExerciseHistoryEntry]:
        """Return each movement/variant pair that has logged working sets."""
        entries: Dict[str, ExerciseHistoryEntry] = {}
        for session in self._completed(sessions):
            for item in session.movements:
                if item.movement is None or not item.working_sets:
                    continue
                variant_part = (
                    str(item.variant.id) if item.variant is not None else "none"
                )
                key = f"{item.movement.id}-{variant_part}"
                if key not in entries:
                    entries[key] = ExerciseHistoryEntry(
                        key=key, movement=item.movement, variant=item.variant
                    )
        return sorted(entries.values(), key=lambda e: e.display_name.lower())

    def weekly_streak(
        self,
        sessions: Iterable[WorkoutSession],
        now: Optional[datetime.datetime] = None,
    ) -> int:
        """Return consecutive weeks with a completed session up to this week."""
        now = now or utcnow()
        return StreakCalculator.weekly_streak(sessions, now, self.first_weekday)
