from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class AppConfig:
    db_path: str
    log_level: str
    log_consumers: list | None
    daily_window_days: int
    recent_sessions_limit: int
    timezone_offset_hours: int


def load_json_config(config_path: Path | None = None) -> dict:
    path = config_path or Path.cwd() / "config.json"
    if path.exists():
        with open(path) as f:
            return json.load(f)
    return {}


def parse_app_config(config: dict, environ: dict[str, str] | None = None) -> AppConfig:
    env = os.environ if environ is None else environ
    db_path = env.get("TELEMETRY_LEDGER_DB_PATH") or str(config.get("DbPath", ".telemetry_ledger/telemetry.db"))
    log_level = env.get("TELEMETRY_LEDGER_LOG_LEVEL") or str(config.get("LogLevel", "INFO"))
    return AppConfig(
        db_path=resolve_db_path(db_path),
        log_level=log_level.upper(),
        log_consumers=config.get("LogConsumers"),
        daily_window_days=int(config.get("DailyWindowDays", 30)),
        recent_sessions_limit=int(config.get("RecentSessionsLimit", 20)),
        timezone_offset_hours=int(config.get("TimezoneOffsetHours", 9)),
    )


def resolve_db_path(db_path: str) -> str:
    if db_path == ":memory:":
        return db_path
    path = Path(db_path)
    if not path.is_absolute():
        path = Path.cwd() / path
    return str(path)
