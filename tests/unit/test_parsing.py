"""Unit tests for decision-source response parsing."""
from __future__ import annotations

import logging

from adapters.base import AgentAction
from adapters.parsing import log_action, parse_agent_response, strip_code_fence


class TestStripCodeFence:
    """Tests for strip_code_fence."""

    def test_plain_json_untouched(self):
        assert strip_code_fence('{"done": true}') == '{"done": true}'

    def test_json_tagged_fence(self):
        assert strip_code_fence('```json\n{"done": true}\n```') == '{"done": true}'

    def test_untagged_fence(self):
        assert strip_code_fence('```\n{"done": true}\n```') == '{"done": true}'

    def test_surrounding_whitespace(self):
        assert strip_code_fence('  \n```JSON\n{"a": 1}\n```  \n') == '{"a": 1}'


class TestParseAgentResponse:
    """Tests for parse_agent_response."""

    def test_valid_response(self):
        raw = (
            '{"thought": "Click the link", "commands": ["click @e5", "wait 1500"], '
            '"done": false, "success": false, "actual_result": ""}'
        )
        result = parse_agent_response(raw)
        assert result.ok
        assert result.error is None
        assert result.action.thought == "Click the link"
        assert result.action.commands == ["click @e5", "wait 1500"]
        assert result.action.done is False

    def test_fenced_response(self):
        raw = '```json\n{"thought": "Done", "commands": [], "done": true, "success": true, "actual_result": "Dashboard"}\n```'
        result = parse_agent_response(raw)
        assert result.ok
        assert result.action.done is True
        assert result.action.success is True
        assert result.action.actual_result == "Dashboard"

    def test_invalid_json_falls_back(self):
        raw = "I think I should click the login button."
        result = parse_agent_response(raw)
        assert not result.ok
        assert "invalid JSON" in result.error
        assert result.action.commands == []
        assert result.action.done is False
        assert result.action.thought == f"Parse error. Raw response: {raw}"

    def test_fallback_thought_truncates_raw_text(self):
        raw = "x" * 500
        result = parse_agent_response(raw)
        assert result.action.thought == "Parse error. Raw response: " + "x" * 200

    def test_non_object_json_falls_back(self):
        result = parse_agent_response('["click @e1"]')
        assert not result.ok
        assert "expected a JSON object" in result.error
        assert result.action.commands == []

    def test_empty_response(self):
        result = parse_agent_response("")
        assert not result.ok
        assert result.action.done is False

    def test_missing_fields_use_defaults(self):
        result = parse_agent_response('{"thought": "hmm"}')
        assert result.ok
        assert result.action.commands == []
        assert result.action.done is False
        assert result.action.success is False
        assert result.action.actual_result == ""

    def test_wrong_shapes_coerced_to_safe_values(self):
        result = parse_agent_response('{"thought": null, "commands": "click @e1", "done": 1, "actual_result": 42}')
        assert result.ok
        assert result.action.thought == ""
        assert result.action.commands == []
        assert result.action.done is True
        assert result.action.actual_result == "42"


class TestLogAction:
    """Tests for log_action."""

    def test_logs_thought_commands_and_verdict(self, caplog):
        logger = logging.getLogger("test_log_action")
        action = AgentAction(
            thought="Verified",
            commands=["click @e1", "wait 1500"],
            done=True,
            success=False,
            actual_result="Error shown",
        )
        with caplog.at_level(logging.INFO, logger="test_log_action"):
            log_action(action, logger)

        assert "Thought: Verified" in caplog.text
        assert "click @e1 → wait 1500" in caplog.text
        assert "Done (FAIL): Error shown" in caplog.text

    def test_skipped_verdict(self, caplog):
        logger = logging.getLogger("test_log_action")
        action = AgentAction(done=True, skipped=True, actual_result="Step skipped")
        with caplog.at_level(logging.INFO, logger="test_log_action"):
            log_action(action, logger)
        assert "Done (SKIPPED)" in caplog.text
