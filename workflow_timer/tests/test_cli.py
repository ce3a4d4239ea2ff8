from __future__ import annotations

from contextlib import redirect_stderr, redirect_stdout
from datetime import datetime, timezone
import io
from pathlib import Path
import unittest

from workflow_timer import cli
from workflow_timer.clock import FakeClock
from workflow_timer.tests.test_helpers import local_tmp_dir


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = local_tmp_dir()
        self.tmp = self._tmp.__enter__()
        self.addCleanup(self._tmp.__exit__, None, None, None)
        self.clock = FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))

    def run_cli(self, *args: str) -> tuple[int, str, str]:
        base = ["--db", str(Path(self.tmp) / "workflow_timer.sqlite"), "--settings", str(Path(self.tmp) / "settings.json")]
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = cli.main(base + list(args), clock=self.clock)
        return code, out.getvalue(), err.getvalue()

    def test_start_pause_status(self) -> None:
        code, out, _ = self.run_cli("start", "--task", "문서 작성")
        self.assertEqual(code, 0)
        self.assertIn("작업 시작: 문서 작성", out)

        self.clock.advance(minutes=25)
        _, out, _ = self.run_cli("status")
        self.assertIn("상태: 진행 중", out)
        self.assertIn("경과: 00:25:00", out)

        self.assertEqual(self.run_cli("pause")[0], 0)
        _, out, _ = self.run_cli("status")
        self.assertIn("상태: 휴식 중", out)

    def test_state_errors_exit_with_one(self) -> None:
        code, _, err = self.run_cli("pause")
        self.assertEqual(code, 1)
        self.assertIn("오류", err)

        code, _, _ = self.run_cli("continue", "missing")
        self.assertEqual(code, 1)

    def test_finish_and_log(self) -> None:
        self.run_cli("start", "--task", "코드 리뷰")
        self.clock.advance(minutes=30)
        code, out, _ = self.run_cli("finish", "--hold")
        self.assertEqual(code, 0)
        self.assertIn("작업 보류: 코드 리뷰", out)

        _, out, _ = self.run_cli("log")
        self.assertIn("코드 리뷰 (보류)", out)

        code, _, _ = self.run_cli("timeline")
        self.assertEqual(code, 0)

    def test_bad_date_is_a_usage_error(self) -> None:
        with self.assertRaises(SystemExit) as exc:
            self.run_cli("log", "--date", "2026-13-01")
        self.assertEqual(exc.exception.code, 2)

    def test_custom_range_requires_start(self) -> None:
        with self.assertRaises(SystemExit) as exc:
            self.run_cli("stats", "--range", "custom")
        self.assertEqual(exc.exception.code, 2)

    def test_week_beyond_year_is_a_usage_error(self) -> None:
        with self.assertRaises(SystemExit) as exc:
            self.run_cli("report", "--year", "2025", "--week", "53", "--out-dir", str(Path(self.tmp) / "out"))
        self.assertEqual(exc.exception.code, 2)

        code, out, _ = self.run_cli("report", "--year", "2026", "--week", "53", "--out-dir", str(Path(self.tmp) / "out"))
        self.assertEqual(code, 0)
        self.assertIn("week-2026-53.md", out)

    def test_report_and_trash(self) -> None:
        out_dir = Path(self.tmp) / "out"
        code, out, _ = self.run_cli("report", "--out-dir", str(out_dir))
        self.assertEqual(code, 0)
        self.assertIn("주간 리포트 생성 완료", out)
        self.assertTrue(any(out_dir.glob("week-*.md")))

        _, out, _ = self.run_cli("trash", "list")
        self.assertIn("휴지통이 비어 있습니다.", out)


if __name__ == "__main__":
    unittest.main()
