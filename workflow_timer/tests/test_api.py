from __future__ import annotations

from datetime import datetime
import unittest

from workflow_timer.clock import FakeClock
from workflow_timer.tests.test_helpers import UTC, local_tmp_dir


class TestAPI(unittest.TestCase):
    def setUp(self) -> None:
        try:
            from fastapi.testclient import TestClient  # noqa: F401
            from workflow_timer.api.app import create_app  # noqa: F401
        except Exception as exc:  # pragma: no cover
            self.skipTest(f"fastapi test client unavailable: {exc}")

        from fastapi.testclient import TestClient

        from workflow_timer.api.app import create_app

        self._tmp = local_tmp_dir()
        self.tmp = self._tmp.__enter__()
        self.addCleanup(self._tmp.__exit__, None, None, None)
        self.clock = FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=UTC))
        self.db_path = self.tmp / "data" / "workflow_timer.sqlite"
        app = create_app(db_path=self.db_path, settings_path=self.tmp / "settings.json", clock=self.clock, tz=UTC)
        self.client = TestClient(app)

    def test_health_meta_and_openapi(self) -> None:
        health = self.client.get("/api/v1/health")
        self.assertEqual(health.status_code, 200)
        self.assertEqual(health.json(), {"status": "ok", "timer": "idle"})

        meta = self.client.get("/api/v1/meta")
        self.assertEqual(meta.status_code, 200)
        self.assertEqual(meta.json().get("db_path"), str(self.db_path))

        openapi = self.client.get("/openapi.json")
        self.assertEqual(openapi.status_code, 200)
        self.assertIn("/api/v1/timer/start", openapi.json()["paths"])

    def test_timer_flow(self) -> None:
        started = self.client.post("/api/v1/timer/start", json={"task": "API 작업"})
        self.assertEqual(started.status_code, 200)
        self.assertEqual(started.json()["status"], "running")
        session_id = started.json()["current"]["id"]

        again = self.client.post("/api/v1/timer/start", json={})
        self.assertEqual(again.status_code, 409)

        self.clock.advance(minutes=30)
        paused = self.client.post("/api/v1/timer/pause")
        self.assertEqual(paused.json()["elapsed_ms"], 30 * 60_000)

        self.clock.advance(minutes=10)
        self.client.post("/api/v1/timer/start", json={})
        self.clock.advance(minutes=20)
        finished = self.client.post("/api/v1/timer/finish", json={"hold": True})
        self.assertEqual(finished.status_code, 200)
        self.assertEqual(finished.json()["completion_status"], "on-hold")

        timeline = self.client.get("/api/v1/timeline")
        self.assertEqual([item["kind"] for item in timeline.json()], ["work", "break", "work"])

        today = self.client.get("/api/v1/stats/today")
        self.assertEqual(today.json()["focus_index"], 88)
        self.assertEqual(today.json()["focus_level"], "A")

        ratio = self.client.get("/api/v1/timeline/ratio")
        self.assertEqual(ratio.json()["total_ms"], 60 * 60_000)
        top_label = ratio.json()["labels"][0]
        self.assertEqual((top_label["label"], top_label["duration_ms"], top_label["count"]), ("API 작업", 50 * 60_000, 2))

        history = self.client.get("/api/v1/sessions")
        self.assertEqual(history.json()[0]["sessions"][0]["id"], session_id)

        hold = self.client.delete(f"/api/v1/sessions/{session_id}/hold")
        self.assertEqual(hold.json()["completion_status"], "completed")

    def test_session_edits_and_errors(self) -> None:
        started = self.client.post("/api/v1/timer/start", json={"task": "편집"}).json()
        session_id = started["current"]["id"]
        self.clock.advance(minutes=10)
        self.client.post("/api/v1/timer/finish", json={})

        missing = self.client.get("/api/v1/sessions/nope")
        self.assertEqual(missing.status_code, 404)

        bad_index = self.client.delete(f"/api/v1/sessions/{session_id}/segments/9")
        self.assertEqual(bad_index.status_code, 404)

        bad_gap = self.client.post(f"/api/v1/sessions/{session_id}/gaps", json={"start": 10, "end": 5})
        self.assertEqual(bad_gap.status_code, 400)

        patched = self.client.patch(f"/api/v1/sessions/{session_id}", json={"name": "새 이름", "group_id": "3"})
        self.assertEqual(patched.json()["name"], "새 이름")
        self.assertEqual(patched.json()["group_id"], "3")

        trashed = self.client.delete(f"/api/v1/sessions/{session_id}")
        self.assertIsNotNone(trashed.json()["deleted_at"])
        self.assertEqual(len(self.client.get("/api/v1/trash").json()), 1)

        restored = self.client.post(f"/api/v1/sessions/{session_id}/restore")
        self.assertIsNone(restored.json()["deleted_at"])

        purged = self.client.delete(f"/api/v1/sessions/{session_id}/purge")
        self.assertEqual(purged.status_code, 204)
        self.assertEqual(self.client.get(f"/api/v1/sessions/{session_id}").status_code, 404)

    def test_stats_range_and_groups(self) -> None:
        stats = self.client.get("/api/v1/stats/range", params={"preset": "week"})
        self.assertEqual(stats.status_code, 200)
        self.assertEqual(len(stats.json()["days"]), 7)

        bogus = self.client.get("/api/v1/stats/range", params={"preset": "decade"})
        self.assertEqual(bogus.status_code, 422)

        groups = self.client.get("/api/v1/groups")
        self.assertEqual([item["name"] for item in groups.json()], ["업무", "개인", "공부"])

        saved = self.client.put("/api/v1/groups", json=[{"id": "1", "name": "회사", "color": "blue"}])
        self.assertEqual(saved.json(), [{"id": "1", "name": "회사", "color": "blue"}])


if __name__ == "__main__":
    unittest.main()
