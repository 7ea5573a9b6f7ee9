"""Pytest fixtures for testpilot tests."""
from __future__ import annotations

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from adapters.base import AgentAction
from browser import CommandResult
from test_types import Observation, StepResult, StepStatus, TestCase, TestReport, TestStep

PROVIDER_ENV_VARS = (
    "MODEL_PROVIDER",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_MODEL",
    "GITHUB_MODELS_TOKEN",
    "GITHUB_MODELS_MODEL",
)


@pytest.fixture(autouse=True)
def clean_provider_env(monkeypatch):
    """Keep credentials from the developer's shell or .env out of the tests."""
    for name in PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sample_steps() -> List[TestStep]:
    return [
        TestStep(step=1, action="Click the 'Form Authentication' link", expected="The login page is shown"),
        TestStep(step=2, action="Log in as tomsmith", expected="A 'You logged into a secure area!' message appears"),
    ]


@pytest.fixture
def sample_test_case(sample_steps: List[TestStep]) -> TestCase:
    """Create a sample test case for testing."""
    return TestCase(
        id="TC001",
        title="Login with valid credentials",
        target_url="https://the-internet.herokuapp.com",
        steps=sample_steps,
        priority="high",
        tags={"smoke", "auth"},
        preconditions=["Browser is open"],
        site_context=["The login form lives at /login"],
    )


@pytest.fixture
def sample_observation() -> Observation:
    return Observation(
        snapshot='- link "Form Authentication" [ref=e5]\n- heading "Welcome" [ref=e1]',
        url="https://the-internet.herokuapp.com/",
        title="The Internet",
    )


@pytest.fixture
def sample_report() -> TestReport:
    """A finalized report with one passing and one failing step."""
    report = TestReport(
        test_id="TC001",
        title="Login with valid credentials",
        started_at=datetime(2026, 1, 1, 10, 0, 0, tzinfo=timezone.utc),
    )
    report.add_step(StepResult(
        step=1,
        action="Click the 'Form Authentication' link",
        expected="The login page is shown",
        status=StepStatus.PASS,
        actual="Login page with username and password fields",
        reasoning="Heading 'Login Page' is visible",
        commands_executed=("click @e5",),
        iterations=2,
        screenshot=Path("screenshots/TC001_step1.png"),
        duration_ms=2500,
    ))
    report.add_step(StepResult(
        step=2,
        action="Log in as tomsmith",
        expected="A 'You logged into a secure area!' message appears",
        status=StepStatus.FAIL,
        actual="Error banner: Your password is invalid!",
        commands_executed=('fill @e2 "tomsmith"', 'fill @e3 "wrong"', "click @e4"),
        iterations=3,
        duration_ms=4000,
    ))
    return report.finalize(finished_at=datetime(2026, 1, 1, 10, 0, 30, tzinfo=timezone.utc))


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_task_yaml() -> str:
    """Sample YAML test case definition."""
    return """
id: TC002
title: Add a product to the cart
priority: high
tags:
  - smoke
  - cart
target_url: https://shop.example.com
preconditions:
  - Cart is empty
site_context:
  - Product tiles open a quick-view dialog first
steps:
  - step: 1
    action: Open the first product
    expected: The product page is shown
  - step: 2
    action: Click "Add to cart"
    expected: The cart badge shows 1
"""


@pytest.fixture
def sample_task_json() -> Dict[str, Any]:
    """Sample JSON test case definition."""
    return {
        "id": "TC003",
        "title": "Search for a product",
        "target_url": "https://shop.example.com",
        "tags": ["search", "p0"],
        "steps": [
            {"action": "Type 'shoes' into the search box and submit", "expected": "Results for 'shoes' are listed"},
        ],
    }


@pytest.fixture
def mock_browser(sample_observation: Observation) -> MagicMock:
    """Create a mock agent-browser controller for testing."""
    browser = MagicMock()
    browser.run = AsyncMock(return_value=CommandResult(stdout="✓ Done", stderr="", success=True))
    browser.open = AsyncMock(return_value=CommandResult(stdout="", stderr="", success=True))
    browser.wait_for_network_idle = AsyncMock(return_value=CommandResult(stdout="", stderr="", success=True))
    browser.close = AsyncMock(return_value=CommandResult(stdout="", stderr="", success=True))
    browser.capture_observation = AsyncMock(return_value=sample_observation)
    browser.take_step_screenshot = AsyncMock(return_value=Path("screenshots/shot.png"))
    return browser


@pytest.fixture
def make_adapter():
    """Factory for decision sources that answer with the given actions in order."""

    def _make(*actions: AgentAction) -> MagicMock:
        adapter = MagicMock()
        adapter.decide = AsyncMock(side_effect=list(actions))
        adapter.aclose = AsyncMock()
        return adapter

    return _make


@pytest.fixture
def mock_adapter() -> MagicMock:
    """Decision source that passes every step on the first iteration."""
    adapter = MagicMock()
    adapter.decide = AsyncMock(return_value=AgentAction(
        thought="Expected result is visible",
        commands=[],
        done=True,
        success=True,
        actual_result="As expected",
    ))
    adapter.aclose = AsyncMock()
    return adapter


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Injected sleep that records delays instead of waiting."""
    return AsyncMock()
