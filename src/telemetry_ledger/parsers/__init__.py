from telemetry_ledger.parsers.attributes import get_double, get_int, get_string
from telemetry_ledger.parsers.logs import parse_logs_payload
from telemetry_ledger.parsers.metrics import parse_metrics_payload

__all__ = [
    "get_double",
    "get_int",
    "get_string",
    "parse_logs_payload",
    "parse_metrics_payload",
]
