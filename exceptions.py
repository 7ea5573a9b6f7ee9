"""Custom exception hierarchy for the testpilot runner."""
from __future__ import annotations

from typing import Any, Optional


class PilotError(Exception):
    """Base exception for all testpilot errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# Browser-related exceptions
class BrowserError(PilotError):
    """Base exception for agent-browser errors."""

    pass


class BrowserNotFoundError(BrowserError):
    """Raised when the agent-browser CLI is not on PATH."""

    def __init__(self, binary: str):
        super().__init__(
            f"`{binary}` CLI not found on PATH.\n\n"
            "testpilot requires the agent-browser CLI to control the browser.\n"
            "Install it globally with npm:\n\n"
            "    npm install -g agent-browser\n\n"
            "Then install the required Playwright browser (Chromium):\n\n"
            "    npx playwright install chromium\n",
            {"binary": binary},
        )
        self.binary = binary


class NavigationError(BrowserError):
    """Raised when opening the test case target fails."""

    def __init__(self, message: str, url: Optional[str] = None):
        details = {"url": url} if url else {}
        super().__init__(message, details)
        self.url = url


class ObservationError(BrowserError):
    """Raised when the snapshot, URL or title of the page cannot be read."""

    def __init__(self, message: str, command: Optional[str] = None):
        details = {"command": command} if command else {}
        super().__init__(message, details)
        self.command = command


class ScreenshotError(BrowserError):
    """Raised when screenshot capture fails."""

    pass


# LLM-related exceptions
class LLMError(PilotError):
    """Base exception for decision-source errors."""

    pass


class LLMConnectionError(LLMError):
    """Raised when unable to connect to the LLM service."""

    def __init__(self, message: str, base_url: Optional[str] = None):
        details = {"base_url": base_url} if base_url else {}
        super().__init__(message, details)
        self.base_url = base_url


class LLMResponseError(LLMError):
    """Raised when a successful provider response has an unexpected structure."""

    def __init__(self, message: str, response: Optional[str] = None):
        details = {"response_preview": response[:200] if response else None}
        super().__init__(message, details)
        self.response = response


class ProviderError(LLMError):
    """Raised when the provider answers with a non-retryable HTTP status."""

    def __init__(self, message: str, status_code: int, provider: Optional[str] = None):
        details: dict[str, Any] = {"status_code": status_code}
        if provider:
            details["provider"] = provider
        super().__init__(message, details)
        self.status_code = status_code
        self.provider = provider


class ProviderRetryExhaustedError(ProviderError):
    """Raised when rate-limit/overload retries run out."""

    def __init__(self, status_code: int, attempts: int, provider: Optional[str] = None):
        label = "Rate limited" if status_code == 429 else "Provider overloaded"
        super().__init__(
            f"{label} ({status_code}) after {attempts} attempts",
            status_code=status_code,
            provider=provider,
        )
        self.attempts = attempts


# Test definition exceptions
class TestDefinitionError(PilotError):
    """Base exception for test definition/loading errors."""

    __test__ = False


class TaskLoadError(TestDefinitionError):
    """Raised when a test case file cannot be loaded or parsed."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        details = {"file_path": file_path} if file_path else {}
        super().__init__(message, details)
        self.file_path = file_path


class TaskValidationError(TestDefinitionError):
    """Raised when a test case definition is invalid."""

    def __init__(self, message: str, task_id: Optional[str] = None, field: Optional[str] = None):
        details = {}
        if task_id:
            details["task_id"] = task_id
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.task_id = task_id
        self.field = field


# Configuration exceptions
class ConfigurationError(PilotError):
    """Raised when configuration is invalid or incomplete."""

    pass
