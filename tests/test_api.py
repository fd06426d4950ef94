import os
import sys
import unittest
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from rest_api import WorkoutAPI
from seed_sample_data import seed


class APITestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_workout.db"
        self.yaml_path = "test_settings.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.api = WorkoutAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.client = TestClient(self.api.app)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def _movement_id(self, name: str) -> int:
        movements = self.client.get("/movements").json()
        return next(m["id"] for m in movements if m["name"] == name)

    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_full_workflow(self) -> None:
        response = self.client.post(
            "/movements", params={"name": "Bench Press", "category": "Chest"}
        )
        self.assertEqual(response.status_code, 200)
        mid = response.json()["id"]
        for name in ("Barbell", "Dumbbell"):
            response = self.client.post(
                f"/movements/{mid}/variants", params={"name": name}
            )
            self.assertEqual(response.status_code, 200)

        response = self.client.post("/templates", params={"name": "PUSH"})
        tid = response.json()["id"]
        response = self.client.post(
            f"/templates/{tid}/items",
            params={"movement_id": mid, "quantity": 2, "target_sets": 4},
        )
        self.assertEqual(response.status_code, 200)

        response = self.client.post(
            "/sessions",
            params={"template_id": tid, "now": "2024-05-13T18:00:00+00:00"},
        )
        self.assertEqual(response.status_code, 200)
        session = response.json()
        self.assertEqual(session["status"], "in_progress")
        self.assertEqual(session["display_title"], "PUSH")
        self.assertEqual(len(session["movements"]), 2)
        self.assertEqual(
            [s["set_index"] for s in session["movements"][0]["sets"]], [1, 2, 3, 4]
        )

        first_set = session["movements"][0]["sets"][0]["id"]
        response = self.client.put(
            f"/sets/{first_set}", params={"reps": 10, "weight": 50.0}
        )
        self.assertEqual(response.status_code, 200)

        response = self.client.post(
            f"/sessions/{session['id']}/finish",
            params={"now": "2024-05-13T19:00:00+00:00"},
        )
        self.assertEqual(response.status_code, 200)
        finished = response.json()
        self.assertEqual(finished["status"], "completed")
        self.assertEqual(finished["duration_seconds"], 3600)
        self.assertEqual(finished["personal_record_count"], 1)

        response = self.client.post(f"/sessions/{session['id']}/finish")
        self.assertEqual(response.status_code, 400)

        response = self.client.get(
            "/stats/profile", params={"now": "2024-05-15T12:00:00+00:00"}
        )
        profile = response.json()
        self.assertEqual(profile["total_volume"], 500.0)
        self.assertEqual(profile["workout_count"], 1)
        self.assertEqual(profile["muscle_group_sets"], [{"name": "Chest", "set_count": 1}])
        self.assertIsNone(profile["strength_trend"])

        response = self.client.get(
            "/stats/weekly_streak", params={"now": "2024-05-15T12:00:00+00:00"}
        )
        self.assertEqual(response.json(), {"weeks": 1})

        response = self.client.get("/stats/exercise_history/entries")
        entries = response.json()
        self.assertEqual(len(entries), 1)
        self.assertTrue(entries[0]["display_name"].endswith("Bench Press"))

        response = self.client.get(
            "/stats/exercise_history",
            params={"movement_id": mid, "now": "2024-05-15T12:00:00+00:00"},
        )
        history = response.json()
        self.assertEqual(history["all_time_pr"]["value"], 50.0)
        self.assertAlmostEqual(history["best_e1rm"]["value"], 50.0 * (1 + 10 / 30))
        self.assertEqual(history["recent_average_weight"], 50.0)

        response = self.client.get(f"/movements/{mid}/recommended_variant")
        used = session["movements"][0]["variant"]["name"]
        self.assertNotEqual(response.json()["variant"]["name"], used)

    def test_session_lifecycle_endpoints(self) -> None:
        seed(self.db_path)
        squat = self._movement_id("Squat")
        response = self.client.post("/sessions")
        sid = response.json()["id"]

        response = self.client.post(
            f"/sessions/{sid}/movements", params={"movement_id": squat}
        )
        self.assertEqual(response.status_code, 200)
        item = response.json()
        self.assertEqual(len(item["sets"]), 4)

        response = self.client.post(
            f"/session_movements/{item['id']}/sets", params={"reps": 5, "weight": 80}
        )
        set_id = response.json()["id"]
        self.assertEqual(self.client.get(f"/sets/{set_id}").json()["set_index"], 5)

        response = self.client.delete(f"/sets/{item['sets'][0]['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(f"/sets/{set_id}").json()["set_index"], 4)

        response = self.client.put(f"/sets/{set_id}", params={"reps": -1})
        self.assertEqual(response.status_code, 400)

        response = self.client.post(f"/sessions/{sid}/duplicate")
        copy = response.json()
        self.assertNotEqual(copy["id"], sid)
        self.assertEqual(len(copy["movements"][0]["sets"]), 4)

        response = self.client.post(f"/sessions/{sid}/cancel")
        self.assertEqual(response.json()["status"], "cancelled")

        response = self.client.get("/sessions", params={"status": "in_progress"})
        self.assertEqual([s["id"] for s in response.json()], [copy["id"]])

        response = self.client.get("/sessions", params={"status": "bogus"})
        self.assertEqual(response.status_code, 400)

    def test_catalog_editing(self) -> None:
        seed(self.db_path)
        squat = self._movement_id("Squat")
        response = self.client.put(
            f"/movements/{squat}", params={"default_set_count": 5, "category": "Quads"}
        )
        self.assertEqual(response.status_code, 200)
        detail = self.client.get(f"/movements/{squat}").json()
        self.assertEqual((detail["default_set_count"], detail["category"]), (5, "Quads"))
        self.assertEqual(self.client.put("/movements/999", params={"notes": "x"}).status_code, 404)

        legs = next(t for t in self.client.get("/templates").json() if t["name"] == "LEGS")
        self.client.delete(f"/templates/items/{legs['items'][0]['id']}")
        self.assertEqual(self.client.get(f"/templates/{legs['id']}").json()["items"], [])

        session = self.client.post("/sessions").json()
        item = self.client.post(
            f"/sessions/{session['id']}/movements", params={"movement_id": squat}
        ).json()
        sets = self.client.get(f"/session_movements/{item['id']}/sets").json()
        self.assertEqual([s["set_index"] for s in sets], [1, 2, 3, 4, 5])

    def test_template_item_rejects_foreign_variant(self) -> None:
        seed(self.db_path)
        bench = self._movement_id("Bench Press")
        squat = self._movement_id("Squat")
        squat_variant = self.client.get(f"/movements/{squat}").json()["variants"][0]["id"]
        tid = self.client.post("/templates", params={"name": "CUSTOM"}).json()["id"]

        for variant_id in (squat_variant, 999):
            response = self.client.post(
                f"/templates/{tid}/items",
                params={"movement_id": bench, "variant_id": variant_id},
            )
            self.assertEqual(response.status_code, 400)
        self.assertEqual(self.client.get(f"/templates/{tid}").json()["items"], [])

    def test_missing_records_return_404(self) -> None:
        self.assertEqual(self.client.get("/movements/42").status_code, 404)
        self.assertEqual(self.client.get("/templates/42").status_code, 404)
        self.assertEqual(self.client.get("/sessions/42").status_code, 404)
        self.assertEqual(self.client.post("/sessions/42/finish").status_code, 404)
        self.assertEqual(
            self.client.post("/sessions", params={"template_id": 42}).status_code, 404
        )
        self.assertEqual(self.client.delete("/sets/42").status_code, 404)
        self.assertEqual(
            self.client.get("/stats/exercise_history", params={"movement_id": 42}).status_code,
            404,
        )

    def test_settings_endpoints(self) -> None:
        response = self.client.get("/settings/general")
        self.assertEqual(
            response.json(),
            {"default_set_count": 3, "timezone": "UTC", "week_start": 0},
        )
        response = self.client.post("/settings/general", params={"week_start": 6})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/settings/general").json()["week_start"], 6)

        response = self.client.post("/settings/general", params={"week_start": 9})
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/settings/general", params={"timezone": "Mars/Base"})
        self.assertEqual(response.status_code, 400)

        self.client.post("/settings/general", params={"default_set_count": 5})
        mid = self.client.post("/movements", params={"name": "Dip"}).json()["id"]
        self.assertEqual(self.client.get(f"/movements/{mid}").json()["default_set_count"], 5)


if __name__ == "__main__":
    unittest.main()
