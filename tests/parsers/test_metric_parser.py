import json
import unittest

from telemetry_ledger.parsers.metrics import parse_metrics_payload
from tests.payloads import data_point, metrics_payload, sum_metric


class MetricParserTests(unittest.TestCase):
    def test_sum_points_lift_type_and_model(self) -> None:
        payload = metrics_payload(
            [sum_metric("claude_code.token.usage", [data_point(as_int=500, type="input", model="claude-sonnet")])],
            session_id="s1",
        )
        points = parse_metrics_payload(payload)
        self.assertEqual(1, len(points))
        point = points[0]
        self.assertEqual("s1", point.session_id)
        self.assertEqual("claude_code.token.usage", point.metric_name)
        self.assertEqual(500.0, point.value)
        self.assertEqual("input", point.attr_type)
        self.assertEqual("claude-sonnet", point.attr_model)
        self.assertIsNone(point.attributes_json)
        self.assertEqual(1_700_000_000_000, point.timestamp_ms)

    def test_as_double_wins_over_as_int(self) -> None:
        payload = metrics_payload([sum_metric("m", [data_point(as_int=1, as_double=2.5)])])
        self.assertEqual(2.5, parse_metrics_payload(payload)[0].value)

    def test_string_as_int_is_converted(self) -> None:
        payload = metrics_payload([sum_metric("m", [data_point(as_int="12345")])])
        self.assertEqual(12345.0, parse_metrics_payload(payload)[0].value)

    def test_points_without_value_are_dropped(self) -> None:
        payload = metrics_payload([sum_metric("m", [data_point(), data_point(as_int=3), data_point(as_int="x")])])
        points = parse_metrics_payload(payload)
        self.assertEqual([3.0], [p.value for p in points])

    def test_non_finite_and_oversized_values_are_dropped(self) -> None:
        payload = metrics_payload(
            [
                sum_metric(
                    "m",
                    [
                        data_point(as_double=float("nan")),
                        data_point(as_double=float("inf")),
                        data_point(as_int=10**400),
                        data_point(as_int="99999999999999999999"),
                    ],
                )
            ]
        )
        self.assertEqual([1e20], [p.value for p in parse_metrics_payload(payload)])

    def test_gauge_points_are_read(self) -> None:
        payload = metrics_payload([{"name": "g", "gauge": {"dataPoints": [data_point(as_double=0.75)]}}])
        points = parse_metrics_payload(payload)
        self.assertEqual(1, len(points))
        self.assertEqual("g", points[0].metric_name)

    def test_point_session_id_overrides_resource(self) -> None:
        payload = metrics_payload(
            [sum_metric("m", [data_point(as_int=1, session__id="point-level"), data_point(as_int=2)])],
            session_id="resource-level",
        )
        points = parse_metrics_payload(payload)
        self.assertEqual(["point-level", "resource-level"], [p.session_id for p in points])

    def test_session_id_is_none_without_any_source(self) -> None:
        payload = metrics_payload([sum_metric("m", [data_point(as_int=1)])])
        self.assertIsNone(parse_metrics_payload(payload)[0].session_id)

    def test_other_attributes_are_preserved_verbatim(self) -> None:
        payload = metrics_payload(
            [sum_metric("claude_code.lines_of_code.count", [data_point(as_int=10, type="added", language="python")])],
            session_id="s1",
        )
        point = parse_metrics_payload(payload)[0]
        self.assertEqual("added", point.attr_type)
        self.assertEqual(
            [{"key": "language", "value": {"stringValue": "python"}}],
            json.loads(point.attributes_json),
        )

    def test_missing_metric_name_defaults_to_unknown(self) -> None:
        payload = metrics_payload([{"sum": {"dataPoints": [data_point(as_int=1)]}}])
        self.assertEqual("unknown", parse_metrics_payload(payload)[0].metric_name)

    def test_empty_payload(self) -> None:
        self.assertEqual([], parse_metrics_payload({}))
        self.assertEqual([], parse_metrics_payload({"resourceMetrics": [{"scopeMetrics": []}]}))


if __name__ == "__main__":
    unittest.main()
