"""Defensive parsing of decision-source responses."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from adapters.base import AgentAction

_FENCE_OPEN = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n?```$")


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing a raw response: either a validated action or a safe fallback."""

    action: AgentAction
    ok: bool
    error: Optional[str] = None


def strip_code_fence(raw: str) -> str:
    """Remove a surrounding Markdown code fence, if present."""
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
        cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_agent_response(raw: str) -> ParseResult:
    """
    Parse a raw model response into an AgentAction.

    Never raises: anything that is not a JSON object yields an action with no
    commands and done=False whose thought carries an excerpt of the raw text.
    """
    raw = raw or ""
    cleaned = strip_code_fence(raw)
    try:
        parsed = json.loads(cleaned)
    except ValueError as exc:
        return _fallback(raw, f"invalid JSON: {exc}")

    if not isinstance(parsed, dict):
        return _fallback(raw, f"expected a JSON object, got {type(parsed).__name__}")

    try:
        action = AgentAction.model_validate(parsed)
    except ValidationError as exc:
        return _fallback(raw, str(exc))
    return ParseResult(action=action, ok=True)


def _fallback(raw: str, error: str) -> ParseResult:
    action = AgentAction(thought=f"Parse error. Raw response: {raw[:200]}")
    return ParseResult(action=action, ok=False, error=error)


def log_action(action: AgentAction, logger: logging.Logger) -> None:
    """Log the thought, commands and verdict of a decision."""
    logger.info(f"Thought: {action.thought}")
    if action.commands:
        logger.info(f"Commands: {' → '.join(action.commands)}")
    if action.done:
        verdict = "SKIPPED" if action.skipped else ("PASS" if action.success else "FAIL")
        logger.info(f"Done ({verdict}): {action.actual_result}")
