import os
import sys
import datetime

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from models import (
    Movement,
    MovementVariant,
    PerformedSet,
    SessionMovement,
    SessionStatus,
    WorkoutSession,
)
from recommendation_service import (
    RecommendationService,
    last_used_at,
    least_recently_used_variant,
)

UTC = datetime.timezone.utc
NOW = datetime.datetime(2024, 5, 15, 12, 0, tzinfo=UTC)


def _session(variant, days_ago, status=SessionStatus.COMPLETED, sid=None):
    start = NOW - datetime.timedelta(days=days_ago)
    return WorkoutSession(
        id=sid,
        start_time=start,
        end_time=start + datetime.timedelta(hours=1),
        status=status,
        movements=[
            SessionMovement(
                variant=variant,
                sets=[PerformedSet(set_index=1, reps=5, weight=50.0)],
            )
        ],
    )


def _movement(*names):
    return Movement(
        id=1,
        name="Lat Pulldown",
        variants=[MovementVariant(id=i, movement_id=1, name=n) for i, n in enumerate(names, 1)],
    )


def test_never_used_variant_is_recommended():
    movement = _movement("X", "Y")
    x, y = movement.variants
    history = [_session(x, 10, sid=1)]
    assert least_recently_used_variant(movement, history) is y


def test_oldest_use_wins_among_used_variants():
    movement = _movement("Close Grip", "Wide Grip")
    close, wide = movement.variants
    history = [_session(close, 2, sid=1), _session(wide, 9, sid=2)]
    assert least_recently_used_variant(movement, history) is wide


def test_ties_go_to_first_name_case_insensitively():
    movement = _movement("wide grip", "Close Grip")
    assert least_recently_used_variant(movement, []).name == "Close Grip"


def test_no_variants_yields_none():
    assert least_recently_used_variant(Movement(name="Plank"), []) is None


def test_unfinished_sessions_do_not_count_as_use():
    movement = _movement("X", "Y")
    x, y = movement.variants
    history = [
        _session(x, 20, sid=1),
        _session(y, 1, status=SessionStatus.IN_PROGRESS, sid=2),
        _session(y, 1, status=SessionStatus.CANCELLED, sid=3),
    ]
    assert least_recently_used_variant(movement, history) is y


def test_last_used_at_takes_end_time():
    movement = _movement("X")
    x = movement.variants[0]
    history = [_session(x, 3, sid=1), _session(x, 5, sid=2)]
    expected = NOW - datetime.timedelta(days=3) + datetime.timedelta(hours=1)
    assert last_used_at(x, history) == expected


def test_recommendation_is_a_member_of_the_movement():
    movement = _movement("A", "B", "C")
    history = [_session(v, i + 1, sid=i + 1) for i, v in enumerate(movement.variants)]
    choice = RecommendationService().recommend_variant(movement, history)
    assert choice in movement.variants
    assert choice.name == "C"


def test_service_reads_history_from_repository():
    movement = _movement("X", "Y")
    x, y = movement.variants

    class FakeSessions:
        def __init__(self):
            self.calls = []

        def fetch_all_sessions(self, status=None):
            self.calls.append(status)
            return [_session(y, 1, sid=1)]

    repo = FakeSessions()
    service = RecommendationService(repo)
    assert service.recommend_variant(movement) is x
    assert repo.calls == [SessionStatus.COMPLETED]
