import io
import json
import shutil
import unittest
import uuid
from contextlib import redirect_stdout
from pathlib import Path

from telemetry_ledger.__main__ import build_parser, run
from telemetry_ledger.app_config import parse_app_config
from telemetry_ledger.logging_config import DEFAULT_LOG_FILE, default_sinks, setup_logging
from telemetry_ledger.storage import TelemetryStore
from tests.payloads import api_request, data_point, logs_payload, metrics_payload, sum_metric


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._dir = Path.cwd() / ".test-artifacts" / f"cli-{uuid.uuid4().hex}"
        self._dir.mkdir(parents=True, exist_ok=True)
        self._store = TelemetryStore(str(self._dir / "telemetry.db"))
        self._app = parse_app_config({"DbPath": ":memory:"}, environ={})
        setup_logging(level="ERROR", consumers=[{"type": "console"}])

    def tearDown(self) -> None:
        self._store.close()
        shutil.rmtree(self._dir, ignore_errors=True)

    def _write(self, name: str, payload: dict) -> str:
        path = self._dir / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return str(path)

    def _run(self, *argv: str) -> tuple[int, str]:
        args = build_parser().parse_args(list(argv))
        out = io.StringIO()
        with redirect_stdout(out):
            code = run(args, self._app, self._store)
        return code, out.getvalue()

    def test_ingest_then_report_and_repos(self) -> None:
        logs = self._write("logs.json", logs_payload([api_request(1_700_000_000_000)], session_id="s1", repository="repo-x"))
        metrics = self._write(
            "metrics.json",
            metrics_payload([sum_metric("claude_code.lines_of_code.count", [data_point(as_int=3, type="added")])], session_id="s1"),
        )

        code, out = self._run("ingest-logs", logs)
        self.assertEqual(0, code)
        self.assertIn("1 events, 0 unknown, 1 sessions", out)

        code, out = self._run("ingest-metrics", metrics)
        self.assertEqual(0, code)
        self.assertIn("1 metric points", out)

        code, out = self._run("repos")
        self.assertEqual((0, "repo-x\n"), (code, out))

        code, out = self._run("report", "--repo", "repo-x", "--days", "100000")
        self.assertEqual(0, code)
        self.assertIn("Dashboard (repository repo-x)", out)
        self.assertIn("Lines of code:   +3 / -0", out)

    def test_session_command(self) -> None:
        self._run("ingest-logs", self._write("logs.json", logs_payload([api_request(1000)], session_id="s1")))
        code, out = self._run("session", "s1")
        self.assertEqual(0, code)
        self.assertIn("Session s1", out)
        self.assertIn("api_request", out)

    def test_missing_session_fails(self) -> None:
        code, out = self._run("session", "missing")
        self.assertEqual(1, code)
        self.assertEqual("", out)

    def test_report_limit_zero_lists_no_sessions(self) -> None:
        self._run("ingest-logs", self._write("logs.json", logs_payload([api_request(1000)], session_id="s1")))
        code, out = self._run("report", "--limit", "0", "--days", "100000")
        self.assertEqual(0, code)
        lines = out.splitlines()
        recent = lines.index("Recent sessions")
        self.assertEqual("  (no data)", lines[recent + 1])

    def test_report_scope_flags_are_exclusive(self) -> None:
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit):
            build_parser().parse_args(["report", "--repo", "x", "--uncategorized"])


class SetupLoggingTests(unittest.TestCase):
    def test_registers_known_sinks_and_skips_unknown(self) -> None:
        log_dir = Path.cwd() / ".test-artifacts" / f"logs-{uuid.uuid4().hex}"
        try:
            descriptions = setup_logging(
                level="INFO",
                consumers=[
                    {"type": "console", "level": "WARNING"},
                    {"type": "file", "path": str(log_dir / "app.log"), "serialize": True},
                    {"type": "carrier-pigeon"},
                ],
            )
            self.assertEqual(2, len(descriptions))
            self.assertEqual("console (stderr, WARNING)", descriptions[0])
            self.assertIn("json", descriptions[1])
            self.assertTrue(log_dir.exists())
        finally:
            setup_logging(level="ERROR", consumers=[{"type": "console"}])
            shutil.rmtree(log_dir, ignore_errors=True)

    def test_default_log_file_lives_beside_database(self) -> None:
        log_dir = Path.cwd() / ".test-artifacts" / f"logs-{uuid.uuid4().hex}"
        try:
            descriptions = setup_logging(level="INFO", log_dir=log_dir)
            self.assertEqual(2, len(descriptions))
            self.assertIn(str(log_dir / DEFAULT_LOG_FILE), descriptions[1])
            self.assertTrue(log_dir.exists())
        finally:
            setup_logging(level="ERROR", consumers=[{"type": "console"}])
            shutil.rmtree(log_dir, ignore_errors=True)

    def test_default_sinks_without_directory_use_working_directory(self) -> None:
        self.assertEqual(
            [{"type": "console"}, {"type": "file", "path": DEFAULT_LOG_FILE}],
            default_sinks(),
        )


if __name__ == "__main__":
    unittest.main()
