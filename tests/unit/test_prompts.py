"""Unit tests for prompt building."""
from __future__ import annotations

from adapters.base import DecisionRequest
from prompts import (
    ACTION_SCHEMA,
    SNAPSHOT_SENTINEL,
    SYSTEM_PROMPT,
    build_system_prompt,
    build_user_message,
    with_response_format,
)


def make_request(observation, previous_actions=(), iteration=1) -> DecisionRequest:
    return DecisionRequest(
        system_prompt=SYSTEM_PROMPT,
        step_description="Click the login link",
        expected_result="Login form is visible",
        observation=observation,
        previous_actions=tuple(previous_actions),
        iteration=iteration,
        max_iterations=10,
    )


class TestBuildSystemPrompt:
    """Tests for build_system_prompt."""

    def test_appends_site_context(self, sample_test_case):
        prompt = build_system_prompt(sample_test_case)
        assert prompt.startswith(SYSTEM_PROMPT)
        assert prompt.endswith("## Site-Specific Context\n\n- The login form lives at /login")

    def test_without_site_context(self, sample_test_case):
        sample_test_case.site_context = []
        assert build_system_prompt(sample_test_case) == SYSTEM_PROMPT

    def test_mentions_snapshot_sentinel(self):
        assert SNAPSHOT_SENTINEL in SYSTEM_PROMPT

    def test_with_response_format(self):
        prompt = with_response_format("Base prompt")
        assert prompt == f"Base prompt\n\n## Response Format\n\n{ACTION_SCHEMA}"


class TestBuildUserMessage:
    """Tests for build_user_message."""

    def test_first_turn_includes_step(self, sample_observation):
        message = build_user_message(make_request(sample_observation))

        assert "**Action:** Click the login link" in message
        assert "**Expected result:** Login form is visible" in message
        assert "**Page URL:** https://the-internet.herokuapp.com/" in message
        assert "**Page title:** The Internet" in message
        assert "**Iteration:** 1 of 10" in message
        assert f"```\n{sample_observation.snapshot}\n```" in message
        assert "Commands executed so far" not in message

    def test_follow_up_turn_lists_recent_commands(self, sample_observation):
        actions = ["scroll down", "click @e1", 'fill @e2 "tom"', "click @e3"]
        message = build_user_message(make_request(sample_observation, actions, iteration=3))

        assert "**Action:**" not in message
        assert message.startswith('## After executing: click @e1, fill @e2 "tom", click @e3')
        assert "**Iteration:** 3 of 10" in message
        assert "## Commands executed so far this step" in message
        assert "- `scroll down`" in message
