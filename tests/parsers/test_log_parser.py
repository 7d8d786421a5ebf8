import json
import unittest

from telemetry_ledger.models import ApiError, ApiRequest, ToolDecision, ToolResult, UnknownEvent, UserPrompt
from telemetry_ledger.parsers.logs import extract_tool_details, ns_to_ms, parse_logs_payload
from tests.payloads import log_record, logs_payload


class LogParserTests(unittest.TestCase):
    def test_records_without_event_name_are_skipped(self) -> None:
        payload = logs_payload(
            [
                log_record(None, model="x"),
                log_record("api_request"),
                log_record(None),
            ],
            session_id="s1",
        )
        result = parse_logs_payload(payload)
        self.assertEqual(1, len(result.events))
        self.assertEqual(1, len(result.resource_contexts))

    def test_session_id_prefers_record_then_resource_then_placeholder(self) -> None:
        payload = logs_payload(
            [log_record("user_prompt", session__id="record-level"), log_record("user_prompt")],
            session_id="resource-level",
        )
        events = parse_logs_payload(payload).events
        self.assertEqual("record-level", events[0].session_id)
        self.assertEqual("resource-level", events[1].session_id)

        orphan = parse_logs_payload(logs_payload([log_record("user_prompt")])).events[0]
        self.assertEqual("unknown", orphan.session_id)

    def test_api_request_defaults(self) -> None:
        event = parse_logs_payload(logs_payload([log_record("api_request")], session_id="s1")).events[0]
        self.assertIsInstance(event, ApiRequest)
        self.assertEqual("unknown", event.model)
        self.assertEqual(0.0, event.cost_usd)
        self.assertEqual(0, event.input_tokens)
        self.assertEqual(0, event.output_tokens)
        self.assertEqual(0, event.cache_read_tokens)
        self.assertEqual(0, event.cache_creation_tokens)
        self.assertEqual(0, event.duration_ms)
        self.assertIsNone(event.event_sequence)

    def test_api_request_reads_string_encoded_numbers(self) -> None:
        record = {
            "timeUnixNano": "1700000000123456789",
            "attributes": [
                {"key": "event.name", "value": {"stringValue": "api_request"}},
                {"key": "event.sequence", "value": {"intValue": "12"}},
                {"key": "model", "value": {"stringValue": "claude-opus"}},
                {"key": "cost_usd", "value": {"stringValue": "0.021"}},
                {"key": "input_tokens", "value": {"stringValue": "1000"}},
                {"key": "output_tokens", "value": {"intValue": 500}},
            ],
        }
        event = parse_logs_payload(logs_payload([record], session_id="s1")).events[0]
        self.assertEqual(12, event.event_sequence)
        self.assertEqual("claude-opus", event.model)
        self.assertAlmostEqual(0.021, event.cost_usd)
        self.assertEqual(1000, event.input_tokens)
        self.assertEqual(500, event.output_tokens)
        self.assertEqual("1700000000123456789", event.timestamp_ns)
        self.assertEqual(1700000000123, event.timestamp_ms)

    def test_tool_result_success_defaults_to_true(self) -> None:
        records = [
            log_record("tool_result", tool_name="Read"),
            log_record("tool_result", tool_name="Edit", success="false"),
            log_record("tool_result", tool_name="Bash", success="FALSE"),
            log_record("tool_result", tool_name="Grep", success=False),
        ]
        events = parse_logs_payload(logs_payload(records, session_id="s1")).events
        self.assertTrue(all(isinstance(e, ToolResult) for e in events))
        self.assertEqual([True, False, True, False], [e.success for e in events])
        self.assertIsNone(events[0].error)

    def test_tool_result_keeps_unparseable_parameters(self) -> None:
        record = log_record("tool_result", tool_name="Bash", tool_parameters="not-json")
        event = parse_logs_payload(logs_payload([record], session_id="s1")).events[0]
        self.assertEqual("not-json", event.tool_parameters)
        self.assertIsNone(event.mcp_server_name)
        self.assertIsNone(event.mcp_tool_name)
        self.assertIsNone(event.skill_name)

    def test_tool_result_extracts_mcp_identity(self) -> None:
        params = '{"mcp_server_name": "github", "mcp_tool_name": "create_issue", "skill_name": 3}'
        record = log_record("tool_result", tool_name="mcp_tool", tool_parameters=params)
        event = parse_logs_payload(logs_payload([record], session_id="s1")).events[0]
        self.assertEqual(params, event.tool_parameters)
        self.assertEqual("github", event.mcp_server_name)
        self.assertEqual("create_issue", event.mcp_tool_name)
        self.assertIsNone(event.skill_name)

    def test_extract_tool_details_handles_non_object_json(self) -> None:
        self.assertEqual((None, None, None), extract_tool_details("[1, 2]"))
        self.assertEqual((None, None, None), extract_tool_details(None))
        self.assertEqual((None, None, "review"), extract_tool_details('{"skill_name": "review"}'))

    def test_api_error_user_prompt_and_tool_decision_defaults(self) -> None:
        records = [
            log_record("api_error"),
            log_record("user_prompt"),
            log_record("tool_decision"),
        ]
        error, prompt, decision = parse_logs_payload(logs_payload(records, session_id="s1")).events
        self.assertIsInstance(error, ApiError)
        self.assertEqual("unknown error", error.error)
        self.assertEqual(1, error.attempt)
        self.assertIsNone(error.model)
        self.assertIsNone(error.status_code)
        self.assertIsInstance(prompt, UserPrompt)
        self.assertEqual(0, prompt.prompt_length)
        self.assertIsNone(prompt.prompt)
        self.assertIsInstance(decision, ToolDecision)
        self.assertEqual("unknown", decision.tool_name)
        self.assertEqual("unknown", decision.decision)
        self.assertIsNone(decision.source)

    def test_unknown_events_are_kept_without_resource_context(self) -> None:
        records = [log_record("something_new"), log_record("user_prompt")]
        result = parse_logs_payload(logs_payload(records, session_id="s1", repository="repo-x"))
        self.assertIsInstance(result.events[0], UnknownEvent)
        self.assertEqual("something_new", result.events[0].event_name)
        self.assertEqual(2, len(result.events))
        self.assertEqual(1, len(result.resource_contexts))
        self.assertEqual("repo-x", result.resource_contexts[0].repository)

    def test_resource_context_repository_is_none_without_label(self) -> None:
        result = parse_logs_payload(logs_payload([log_record("user_prompt")], session_id="s1"))
        self.assertIsNone(result.resource_contexts[0].repository)

    def test_empty_and_malformed_payloads_yield_nothing(self) -> None:
        for payload in ({}, None, {"resourceLogs": None}, {"resourceLogs": [{"scopeLogs": [{"logRecords": []}]}]}):
            result = parse_logs_payload(payload)
            self.assertEqual([], result.events)
            self.assertEqual([], result.resource_contexts)

    def test_ns_to_ms_uses_exact_integer_division(self) -> None:
        self.assertEqual(("18446744073709551615", 18446744073709), ns_to_ms("18446744073709551615"))
        self.assertEqual(("0", 0), ns_to_ms(None))
        self.assertEqual(("0", 0), ns_to_ms("garbage"))
        self.assertEqual(("1999999", 1), ns_to_ms(1999999))

    def test_ns_to_ms_rejects_values_beyond_storable_range(self) -> None:
        self.assertEqual(("0", 0), ns_to_ms("9" * 30))

    def test_non_finite_and_oversized_numbers_fall_back_to_defaults(self) -> None:
        raw = (
            '{"resourceLogs": [{"resource": {"attributes": [{"key": "session.id", "value": {"stringValue": "s1"}}]},'
            ' "scopeLogs": [{"logRecords": [{"timeUnixNano": "1000000000", "attributes": ['
            '{"key": "event.name", "value": {"stringValue": "api_request"}},'
            '{"key": "duration_ms", "value": {"doubleValue": NaN}},'
            '{"key": "cost_usd", "value": {"doubleValue": Infinity}},'
            '{"key": "input_tokens", "value": {"intValue": "99999999999999999999"}},'
            '{"key": "output_tokens", "value": {"intValue": 7}}'
            "]}]}]}]}"
        )
        event = parse_logs_payload(json.loads(raw)).events[0]
        self.assertEqual(0, event.duration_ms)
        self.assertEqual(0.0, event.cost_usd)
        self.assertEqual(0, event.input_tokens)
        self.assertEqual(7, event.output_tokens)


if __name__ == "__main__":
    unittest.main()
