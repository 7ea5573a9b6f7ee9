"""Decision-source contract shared by the interactive and model-backed adapters."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, runtime_checkable

from pydantic import BaseModel, Field, field_validator

from test_types import Observation


@dataclass(frozen=True)
class DecisionRequest:
    """Everything a decision source sees for one iteration of a step."""

    system_prompt: str
    step_description: str
    expected_result: str
    observation: Observation
    # Commands already executed this step, oldest first
    previous_actions: Tuple[str, ...] = ()
    iteration: int = 1
    max_iterations: int = 10


class AgentAction(BaseModel):
    """The decision source's answer: what to run next and whether the step is over.

    Field shapes that don't match the schema fall back to safe defaults
    instead of failing validation.
    """

    thought: str = ""
    commands: List[str] = Field(default_factory=list)
    done: bool = False
    success: bool = False
    actual_result: str = ""
    # Only set by the interactive source when the tester skips the step
    skipped: bool = False

    @field_validator("thought", "actual_result", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("commands", mode="before")
    @classmethod
    def coerce_commands(cls, v: Any) -> List[str]:
        if not isinstance(v, list):
            return []
        return [c if isinstance(c, str) else str(c) for c in v]

    @field_validator("done", "success", "skipped", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        return bool(v)


@runtime_checkable
class DecisionSource(Protocol):
    """Anything that can pick the next browser commands for a step."""

    async def decide(self, request: DecisionRequest) -> AgentAction:
        ...


class ConversationHistory:
    """Role-tagged message list scoped to one step's iterations."""

    def __init__(self) -> None:
        self._messages: List[Dict[str, str]] = []

    def reset(self) -> None:
        self._messages = []

    def record_turn(self, user_message: str, assistant_message: str) -> None:
        self._messages.append({"role": "user", "content": user_message})
        self._messages.append({"role": "assistant", "content": assistant_message})

    def with_user_message(self, user_message: str) -> List[Dict[str, str]]:
        """History plus the outgoing user turn, without recording it."""
        return [*self._messages, {"role": "user", "content": user_message}]

    @property
    def messages(self) -> List[Dict[str, str]]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)


@dataclass(frozen=True)
class ProviderReply:
    """Transport-neutral view of one HTTP exchange with a model provider."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""
    # Decoded JSON payload on success
    data: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> Optional[str]:
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None
