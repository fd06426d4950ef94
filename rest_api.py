import datetime
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException

from config import APP_VERSION, DEFAULT_DB_PATH, DEFAULT_SETTINGS_PATH
from db import (
    MovementRepository,
    SettingsRepository,
    TemplateRepository,
    VariantRepository,
)
from models import SessionStatus, WorkoutSession
from recommendation_service import RecommendationService
from session_service import SessionService
from stats_service import StatisticsService


def _http_error(e: ValueError) -> HTTPException:
    status = 404 if "not found" in str(e) else 400
    return HTTPException(status_code=status, detail=str(e))


class WorkoutAPI:
    """Provides REST endpoints for session logging and analytics."""

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        yaml_path: str = DEFAULT_SETTINGS_PATH,
    ) -> None:
        self.db_path = db_path
        self.settings = SettingsRepository(db_path, yaml_path)
        self.movements = MovementRepository(db_path)
        self.variants = VariantRepository(db_path)
        self.templates = TemplateRepository(db_path)
        self.session_service = SessionService(db_path)
        self.sessions = self.session_service.sessions
        self.recommender = RecommendationService(self.sessions)
        self.app = FastAPI(
            title="Workout API",
            description="REST API for workout sessions, records and statistics",
            version=APP_VERSION,
        )
        self._setup_routes()

    @property
    def statistics(self) -> StatisticsService:
        return StatisticsService(first_weekday=self.settings.get_int("week_start", 0))

    def _now(self, now: Optional[str] = None) -> datetime.datetime:
        """Parse an ISO timestamp, defaulting to the current time.

        Naive values are read in the configured timezone.
        """
        tz = self.settings.schema().tzinfo
        if now is None:
            return datetime.datetime.now(tz)
        try:
            parsed = datetime.datetime.fromisoformat(now)
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid timestamp")
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=tz)
        return parsed

    @staticmethod
    def _session_payload(session: WorkoutSession) -> dict:
        data = session.model_dump(mode="json")
        data["display_title"] = session.display_title
        data["personal_record_count"] = session.personal_record_count
        return data

    def _setup_routes(self) -> None:
        movements_router = APIRouter(prefix="/movements", tags=["Movements"])
        templates_router = APIRouter(prefix="/templates", tags=["Templates"])
        sessions_router = APIRouter(prefix="/sessions", tags=["Sessions"])
        sets_router = APIRouter(tags=["Sets"])
        stats_router = APIRouter(prefix="/stats", tags=["Statistics"])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            self.movements.fetch_all("SELECT 1;")
            return {"status": "ok"}

        @movements_router.get("")
        def list_movements():
            return self.movements.fetch_all_movements()

        @movements_router.post("")
        def add_movement(
            name: str,
            category: str = "",
            default_set_count: int = None,
            notes: str = None,
        ):
            count = (
                default_set_count
                if default_set_count is not None
                else self.settings.get_int("default_set_count", 3)
            )
            try:
                mid = self.movements.add(name, category, count, notes)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"id": mid}

        @movements_router.get("/{movement_id}")
        def get_movement(movement_id: int):
            try:
                return self.movements.fetch(movement_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @movements_router.put("/{movement_id}")
        def update_movement(
            movement_id: int,
            category: str = None,
            default_set_count: int = None,
            notes: str = None,
        ):
            try:
                self.movements.update(movement_id, category, default_set_count, notes)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "updated"}

        @movements_router.delete("/{movement_id}")
        def delete_movement(movement_id: int):
            try:
                self.movements.delete(movement_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "deleted"}

        @movements_router.post("/{movement_id}/variants")
        def add_variant(
            movement_id: int,
            name: str,
            resistance_type: str = "total",
            unit: str = None,
            increment: float = None,
            notes: str = None,
        ):
            try:
                vid = self.variants.add(
                    movement_id, name, resistance_type, unit, increment, notes
                )
            except ValueError as e:
                raise _http_error(e)
            return {"id": vid}

        @movements_router.delete("/variants/{variant_id}")
        def delete_variant(variant_id: int):
            self.variants.remove(variant_id)
            return {"status": "deleted"}

        @movements_router.get("/{movement_id}/recommended_variant")
        def recommended_variant(movement_id: int):
            try:
                movement = self.movements.fetch(movement_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"variant": self.recommender.recommend_variant(movement)}

        @templates_router.get("")
        def list_templates():
            return self.templates.fetch_all_templates()

        @templates_router.post("")
        def create_template(name: str, notes: str = None):
            return {"id": self.templates.create(name, notes)}

        @templates_router.get("/{template_id}")
        def get_template(template_id: int):
            try:
                return self.templates.fetch(template_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @templates_router.post("/{template_id}/items")
        def add_template_item(
            template_id: int,
            movement_id: int,
            variant_id: int = None,
            quantity: int = 1,
            target_sets: int = None,
        ):
            try:
                self.templates.fetch(template_id)
                self.movements.fetch(movement_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            try:
                iid = self.templates.add_item(
                    template_id, movement_id, variant_id, quantity, target_sets
                )
            except ValueError as e:
                raise _http_error(e)
            return {"id": iid}

        @templates_router.delete("/items/{item_id}")
        def delete_template_item(item_id: int):
            self.templates.remove_item(item_id)
            return {"status": "deleted"}

        @templates_router.delete("/{template_id}")
        def delete_template(template_id: int):
            try:
                self.templates.delete(template_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "deleted"}

        @sessions_router.post("")
        def create_session(template_id: int = None, now: str = None):
            try:
                session = self.session_service.create_session(
                    template_id, self._now(now)
                )
            except ValueError as e:
                raise _http_error(e)
            return self._session_payload(session)

        @sessions_router.get("")
        def list_sessions(status: str = None):
            try:
                wanted = SessionStatus(status) if status is not None else None
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return [
                self._session_payload(s)
                for s in self.sessions.fetch_all_sessions(status=wanted)
            ]

        @sessions_router.get("/{session_id}")
        def get_session(session_id: int):
            try:
                return self._session_payload(self.sessions.fetch(session_id))
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @sessions_router.delete("/{session_id}")
        def delete_session(session_id: int):
            try:
                self.sessions.delete(session_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"status": "deleted"}

        @sessions_router.post("/{session_id}/duplicate")
        def duplicate_session(session_id: int, now: str = None):
            try:
                session = self.session_service.duplicate_session(
                    session_id, self._now(now)
                )
            except ValueError as e:
                raise _http_error(e)
            return self._session_payload(session)

        @sessions_router.post("/{session_id}/movements")
        def add_session_movement(
            session_id: int, movement_id: int, target_sets: int = None
        ):
            try:
                item = self.session_service.add_movement(
                    session_id, movement_id, target_sets, self._now()
                )
            except ValueError as e:
                raise _http_error(e)
            return item.model_dump(mode="json")

        @sessions_router.post("/{session_id}/finish")
        def finish_session(session_id: int, now: str = None):
            try:
                session = self.session_service.finish_session(
                    session_id, self._now(now)
                )
            except ValueError as e:
                raise _http_error(e)
            return self._session_payload(session)

        @sessions_router.post("/{session_id}/cancel")
        def cancel_session(session_id: int, now: str = None):
            try:
                session = self.session_service.cancel_session(
                    session_id, self._now(now)
                )
            except ValueError as e:
                raise _http_error(e)
            return self._session_payload(session)

        @sets_router.put("/session_movements/{session_movement_id}/variant")
        def select_variant(session_movement_id: int, variant_id: int = None):
            try:
                self.session_service.select_variant(session_movement_id, variant_id)
            except ValueError as e:
                raise _http_error(e)
            return {"status": "updated"}

        @sets_router.post("/session_movements/{session_movement_id}/sets")
        def add_set(
            session_movement_id: int,
            reps: int = 0,
            weight: float = 0.0,
            warmup: bool = False,
        ):
            try:
                sid = self.session_service.add_set(
                    session_movement_id, reps, weight, warmup, self._now()
                )
            except ValueError as e:
                raise _http_error(e)
            return {"id": sid}

        @sets_router.get("/session_movements/{session_movement_id}/sets")
        def list_sets(session_movement_id: int):
            return self.session_service.sets.fetch_for_movement(session_movement_id)

        @sets_router.get("/sets/{set_id}")
        def get_set(set_id: int):
            try:
                return self.session_service.sets.fetch_detail(set_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @sets_router.put("/sets/{set_id}")
        def update_set(
            set_id: int,
            reps: int = None,
            weight: float = None,
            warmup: bool = None,
            completed: bool = None,
        ):
            try:
                self.session_service.update_set(set_id, reps, weight, warmup, completed)
            except ValueError as e:
                raise _http_error(e)
            return {"status": "updated"}

        @sets_router.delete("/sets/{set_id}")
        def delete_set(set_id: int):
            try:
                self.session_service.remove_set(set_id)
            except ValueError as e:
                raise _http_error(e)
            return {"status": "deleted"}

        @stats_router.get("/profile")
        def profile_stats(now: str = None):
            return self.statistics.profile_stats(
                self.sessions.fetch_all_sessions(), self._now(now)
            )

        @stats_router.get("/exercise_history")
        def exercise_history(movement_id: int, variant_id: int = None, now: str = None):
            try:
                movement = self.movements.fetch(movement_id)
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            variant = None
            if variant_id is not None:
                variant = next(
                    (v for v in movement.variants if v.id == variant_id), None
                )
                if variant is None:
                    raise HTTPException(status_code=404, detail="variant not found")
            return self.statistics.exercise_history(
                movement, variant, self.sessions.fetch_all_sessions(), self._now(now)
            )

        @stats_router.get("/exercise_history/entries")
        def exercise_history_entries():
            entries = self.statistics.exercise_history_entries(
                self.sessions.fetch_all_sessions()
            )
            return [
                {**e.model_dump(mode="json"), "display_name": e.display_name}
                for e in entries
            ]

        @stats_router.get("/weekly_streak")
        def weekly_streak(now: str = None):
            streak = self.statistics.weekly_streak(
                self.sessions.fetch_all_sessions(), self._now(now)
            )
            return {"weeks": streak}

        @self.app.get("/settings/general")
        def get_general_settings():
            return self.settings.all_settings()

        @self.app.post("/settings/general")
        def update_general_settings(
            week_start: int = None,
            timezone: str = None,
            default_set_count: int = None,
        ):
            try:
                if week_start is not None:
                    self.settings.set_int("week_start", week_start)
                if timezone is not None:
                    self.settings.set_text("timezone", timezone)
                if default_set_count is not None:
                    self.settings.set_int("default_set_count", default_set_count)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"status": "updated"}

        self.app.include_router(movements_router)
        self.app.include_router(templates_router)
        self.app.include_router(sessions_router)
        self.app.include_router(sets_router)
        self.app.include_router(stats_router)


api = WorkoutAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
