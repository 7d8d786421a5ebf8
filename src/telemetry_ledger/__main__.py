import argparse
import json
import sqlite3
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from telemetry_ledger.app_config import AppConfig, load_json_config, parse_app_config, resolve_db_path
from telemetry_ledger.ingest import IngestService
from telemetry_ledger.logging_config import setup_logging
from telemetry_ledger.queries import (
    get_distinct_repositories,
    get_session_info,
    get_session_timeline,
    parse_repo_filter,
)
from telemetry_ledger.report import build_dashboard_report, build_timeline_report
from telemetry_ledger.storage import TelemetryStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="telemetry_ledger",
        description="Ingest coding-agent OTLP telemetry and report usage per session and repository.",
    )
    parser.add_argument("--db", help="SQLite database path (overrides DbPath and TELEMETRY_LEDGER_DB_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    logs = sub.add_parser("ingest-logs", help="ingest OTLP/JSON log export requests")
    logs.add_argument("files", nargs="+", type=Path)

    metrics = sub.add_parser("ingest-metrics", help="ingest OTLP/JSON metric export requests")
    metrics.add_argument("files", nargs="+", type=Path)

    report = sub.add_parser("report", help="print the usage dashboard")
    scope = report.add_mutually_exclusive_group()
    scope.add_argument("--repo", help="only sessions attributed to this repository")
    scope.add_argument("--uncategorized", action="store_true", help="only sessions without a repository")
    report.add_argument("--days", type=int, help="daily window in days")
    report.add_argument("--limit", type=int, help="number of recent sessions")

    session = sub.add_parser("session", help="print one session's ordered timeline")
    session.add_argument("session_id")

    sub.add_parser("repos", help="list known repositories")
    return parser


def run(args: argparse.Namespace, app: AppConfig, store: TelemetryStore) -> int:
    if args.command in ("ingest-logs", "ingest-metrics"):
        service = IngestService(store)
        for path in args.files:
            with open(path) as f:
                payload = json.load(f)
            if args.command == "ingest-logs":
                result = service.ingest_logs(payload)
                print(
                    f"{path}: {result.stored_events} events, {result.unknown_events} unknown, "
                    f"{result.session_upserts} sessions"
                )
            else:
                result = service.ingest_metrics(payload)
                print(f"{path}: {result.metric_points} metric points")
        return 0

    if args.command == "report":
        repo = parse_repo_filter(args.repo, uncategorized=args.uncategorized)
        print(
            build_dashboard_report(
                store,
                repo,
                days=args.days if args.days is not None else app.daily_window_days,
                limit=args.limit if args.limit is not None else app.recent_sessions_limit,
                tz_offset_hours=app.timezone_offset_hours,
            )
        )
        return 0

    if args.command == "session":
        info = get_session_info(store, args.session_id)
        if info is None:
            logger.error(f"Session not found: {args.session_id}")
            return 1
        events = get_session_timeline(store, args.session_id)
        print(build_timeline_report(info, events, tz_offset_hours=app.timezone_offset_hours))
        return 0

    if args.command == "repos":
        for repository in get_distinct_repositories(store):
            print(repository)
        return 0

    return 2


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    app = parse_app_config(load_json_config())
    if args.db:
        app.db_path = resolve_db_path(args.db)
    log_dir = None if app.db_path == ":memory:" else Path(app.db_path).parent
    setup_logging(level=app.log_level, consumers=app.log_consumers, log_dir=log_dir)

    store = TelemetryStore(app.db_path)
    try:
        return run(args, app, store)
    except (OSError, json.JSONDecodeError) as ex:
        logger.error(f"Could not read payload: {ex}")
        return 1
    except sqlite3.Error as ex:
        logger.error(f"Store failure: {ex}")
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
