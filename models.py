from __future__ import annotations
import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def entity_key(record: BaseModel) -> tuple:
    """Return a hashable identity for ``record``.

    Persisted records are keyed by their database id; records that have not
    been stored yet fall back to object identity.
    """
    rid = getattr(record, "id", None)
    if rid is not None:
        return (type(record).__name__, rid)
    return (type(record).__name__, "obj", id(record))


class ResistanceType(str, Enum):
    """How the logged weight of a variant is measured."""

    PER_UNIT = "per_unit"
    TOTAL = "total"
    STACK = "stack"
    BODYWEIGHT = "bodyweight"
    ASSISTED = "assisted"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MovementVariant(BaseModel):
    id: Optional[int] = None
    movement_id: Optional[int] = None
    name: str
    resistance_type: ResistanceType = ResistanceType.TOTAL
    unit: Optional[str] = None
    increment: Optional[float] = None
    notes: Optional[str] = None


class Movement(BaseModel):
    id: Optional[int] = None
    name: str
    category: str = ""
    notes: Optional[str] = None
    default_set_count: int = 3
    variants: List[MovementVariant] = Field(default_factory=list)

    @property
    def sorted_variants(self) -> List[MovementVariant]:
        """Variants ordered by case-insensitive name."""
        return sorted(self.variants, key=lambda v: v.name.lower())


class TemplateItem(BaseModel):
    id: Optional[int] = None
    template_id: Optional[int] = None
    movement: Optional[Movement] = None
    preferred_variant: Optional[MovementVariant] = None
    quantity: int = 1
    target_sets: Optional[int] = None
    ordering_index: int = 0


class WorkoutTemplate(BaseModel):
    id: Optional[int] = None
    name: str
    notes: Optional[str] = None
    created_at: datetime.datetime = Field(default_factory=utcnow)
    items: List[TemplateItem] = Field(default_factory=list)

    @property
    def sorted_items(self) -> List[TemplateItem]:
        return sorted(self.items, key=lambda i: i.ordering_index)


class PerformedSet(BaseModel):
    id: Optional[int] = None
    session_movement_id: Optional[int] = None
    set_index: int
    reps: int = 0
    weight: float = 0.0
    is_warmup: bool = False
    is_pr: bool = False
    is_completed: bool = False
    timestamp: datetime.datetime = Field(default_factory=utcnow)

    @property
    def is_working(self) -> bool:
        """A set counts towards analytics only with reps and outside warmup."""
        return self.reps > 0 and not self.is_warmup


class SessionMovement(BaseModel):
    id: Optional[int] = None
    session_id: Optional[int] = None
    movement: Optional[Movement] = None
    variant: Optional[MovementVariant] = None
    ordering_index: int = 0
    target_set_count: int = 3
    notes: Optional[str] = None
    sets: List[PerformedSet] = Field(default_factory=list)

    @property
    def ordered_sets(self) -> List[PerformedSet]:
        return sorted(self.sets, key=lambda s: s.set_index)

    @property
    def working_sets(self) -> List[PerformedSet]:
        return [s for s in self.ordered_sets if s.is_working]

    @property
    def best_set(self) -> Optional[PerformedSet]:
        if not self.sets:
            return None
        return max(self.ordered_sets, key=lambda s: (s.weight, s.reps))


class WorkoutSession(BaseModel):
    id: Optional[int] = None
    template_id: Optional[int] = None
    template_name: Optional[str] = None
    start_time: datetime.datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime.datetime] = None
    duration_seconds: int = 0
    status: SessionStatus = SessionStatus.IN_PROGRESS
    movements: List[SessionMovement] = Field(default_factory=list)

    @property
    def ordered_movements(self) -> List[SessionMovement]:
        return sorted(self.movements, key=lambda m: m.ordering_index)

    @property
    def personal_record_count(self) -> int:
        return sum(1 for m in self.movements for s in m.sets if s.is_pr)

    @property
    def display_title(self) -> str:
        return self.template_name or "Custom Workout"

    @property
    def last_activity(self) -> datetime.datetime:
        """Latest of start and end time, used for recency ordering."""
        if self.end_time is not None and self.end_time > self.start_time:
            return self.end_time
        return self.start_time


class MuscleGroupStat(BaseModel):
    name: str
    set_count: int


class StrengthTrend(BaseModel):
    percent_change: float

    @property
    def is_up(self) -> bool:
        return self.percent_change >= 0


class ProfileStats(BaseModel):
    total_volume: float
    workout_count: int
    strength_trend: Optional[StrengthTrend] = None
    muscle_group_sets: List[MuscleGroupStat] = Field(default_factory=list)


class ExerciseRecord(BaseModel):
    value: float
    date: datetime.datetime


class ExerciseChartPoint(BaseModel):
    date: datetime.datetime
    value: float


class ExerciseSetLogEntry(BaseModel):
    date: datetime.datetime
    workout_name: str
    set_index: int
    reps: int
    weight: float


class ExerciseHistoryEntry(BaseModel):
    key: str
    movement: Movement
    variant: Optional[MovementVariant] = None

    @property
    def display_name(self) -> str:
        if self.variant is not None:
            return f"{self.variant.name} {self.movement.name}"
        return self.movement.name


class ExerciseHistorySummary(BaseModel):
    best_set_series: List[ExerciseChartPoint] = Field(default_factory=list)
    volume_series: List[ExerciseChartPoint] = Field(default_factory=list)
    all_time_pr: Optional[ExerciseRecord] = None
    best_e1rm: Optional[ExerciseRecord] = None
    recent_average_weight: Optional[float] = None
    set_logs: List[ExerciseSetLogEntry] = Field(default_factory=list)
