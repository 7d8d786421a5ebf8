import sys
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger

_CONSOLE_FORMAT = "<level>{level:<8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} - {message}"

DEFAULT_LOG_FILE = "telemetry-ledger.log"


@runtime_checkable
class LogSink(Protocol):
    def register(self, level: str) -> None: ...
    def describe(self, level: str) -> str: ...


class ConsoleLogSink:
    """Human-readable lines on stderr so stdout stays free for reports."""

    def register(self, level: str) -> None:
        logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT)

    def describe(self, level: str) -> str:
        return f"console (stderr, {level})"


class FileLogSink:
    def __init__(
        self,
        path: str = DEFAULT_LOG_FILE,
        rotation: str = "10 MB",
        retention: int = 3,
        serialize: bool = False,
    ):
        self._path = path
        self._rotation = rotation
        self._retention = retention
        self._serialize = serialize

    def register(self, level: str) -> None:
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            self._path,
            level=level,
            format=_FILE_FORMAT,
            rotation=self._rotation,
            retention=self._retention,
            serialize=self._serialize,
        )

    def describe(self, level: str) -> str:
        kind = "json" if self._serialize else "text"
        return f"file ({self._path}, {kind}, {level})"


_SINK_TYPES: dict[str, type] = {
    "console": ConsoleLogSink,
    "file": FileLogSink,
}


def default_sinks(log_dir: Path | None = None) -> list[dict[str, Any]]:
    """Console plus a log file beside the database (or in the cwd without one)."""
    path = Path(log_dir) / DEFAULT_LOG_FILE if log_dir is not None else Path(DEFAULT_LOG_FILE)
    return [
        {"type": "console"},
        {"type": "file", "path": str(path)},
    ]


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
    log_dir: Path | None = None,
) -> list[str]:
    """Replace loguru's sinks with the configured ones and describe what was registered."""
    logger.remove()

    descriptions: list[str] = []
    for config in consumers if consumers is not None else default_sinks(log_dir):
        sink_type = config.get("type", "")
        cls = _SINK_TYPES.get(sink_type)
        if cls is None:
            logger.warning(f"Unknown log sink type: {sink_type!r}")
            continue

        options = {k: v for k, v in config.items() if k not in ("type", "level")}
        sink_level = config.get("level", level)

        sink = cls(**options)
        sink.register(sink_level)
        descriptions.append(sink.describe(sink_level))

    return descriptions
