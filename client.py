import requests
from typing import Optional


class WorkoutClient:
    """Simple REST client for the workout API."""

    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 10) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, **params):
        resp = requests.get(
            f"{self.base_url}{path}",
            params={k: v for k, v in params.items() if v is not None},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def _post(self, path: str, **params):
        resp = requests.post(
            f"{self.base_url}{path}",
            params={k: v for k, v in params.items() if v is not None},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def health(self) -> dict:
        return self._get("/health")

    def list_movements(self):
        return self._get("/movements")

    def recommended_variant(self, movement_id: int) -> Optional[dict]:
        return self._get(f"/movements/{movement_id}/recommended_variant")["variant"]

    def create_session(self, template_id: Optional[int] = None, now: Optional[str] = None) -> dict:
        return self._post("/sessions", template_id=template_id, now=now)

    def list_sessions(self, status: Optional[str] = None):
        return self._get("/sessions", status=status)

    def duplicate_session(self, session_id: int) -> dict:
        return self._post(f"/sessions/{session_id}/duplicate")

    def add_movement(self, session_id: int, movement_id: int, target_sets: Optional[int] = None) -> dict:
        return self._post(
            f"/sessions/{session_id}/movements",
            movement_id=movement_id,
            target_sets=target_sets,
        )

    def add_set(self, session_movement_id: int, reps: int, weight: float, warmup: bool = False) -> int:
        return self._post(
            f"/session_movements/{session_movement_id}/sets",
            reps=reps,
            weight=weight,
            warmup=warmup,
        )["id"]

    def finish_session(self, session_id: int, now: Optional[str] = None) -> dict:
        return self._post(f"/sessions/{session_id}/finish", now=now)

    def cancel_session(self, session_id: int) -> dict:
        return self._post(f"/sessions/{session_id}/cancel")

    def profile_stats(self, now: Optional[str] = None) -> dict:
        return self._get("/stats/profile", now=now)

    def weekly_streak(self, now: Optional[str] = None) -> int:
        return self._get("/stats/weekly_streak", now=now)["weeks"]
