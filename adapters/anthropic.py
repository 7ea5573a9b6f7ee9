"""Decision source backed by the Anthropic Messages API."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from adapters.base import AgentAction, ConversationHistory, DecisionRequest, ProviderReply
from adapters.parsing import log_action, parse_agent_response
from adapters.retry import RetryPolicy, SleepFn
from config.models import AnthropicConfig
from exceptions import ConfigurationError, LLMConnectionError, LLMResponseError
from prompts import build_user_message, with_response_format

ANTHROPIC_OVERLOADED = 529


class AnthropicAdapter:
    """Claude via POST /v1/messages, with the system prompt as a top-level field."""

    provider = "anthropic"

    def __init__(
        self,
        config: AnthropicConfig,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFn] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if not config.api_key:
            raise ConfigurationError(
                "ANTHROPIC_API_KEY not set. "
                "Create a .env file from .env.example and add your Anthropic API key."
            )
        self.config = config
        self.logger = logger or logging.getLogger("anthropic_adapter")
        self.history = ConversationHistory()
        self.client = httpx.AsyncClient(timeout=config.timeout, transport=transport)
        retry_kwargs: Dict[str, Any] = {"sleep": sleep} if sleep else {}
        self.retry = RetryPolicy(
            max_retries=max_retries,
            overloaded_status=ANTHROPIC_OVERLOADED,
            provider="Anthropic",
            logger=self.logger,
            **retry_kwargs,
        )
        self.logger.info(f"Anthropic adapter initialized (model: {config.model})")

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.config.api_key or "",
            "anthropic-version": self.config.api_version,
            "content-type": "application/json",
        }

    async def decide(self, request: DecisionRequest) -> AgentAction:
        if not request.previous_actions:
            self.history.reset()

        user_message = build_user_message(request)
        system_prompt = with_response_format(request.system_prompt)
        messages = self.history.with_user_message(user_message)

        self.logger.info(f"Asking {self.config.model}...")
        response = await self._call_api(system_prompt, messages)
        self.history.record_turn(user_message, response)

        result = parse_agent_response(response)
        if not result.ok:
            self.logger.warning(f"Unparseable response from {self.config.model}: {result.error}")
        log_action(result.action, self.logger)
        return result.action

    async def _send(self, body: Dict[str, Any]) -> ProviderReply:
        try:
            response = await self.client.post(self.config.endpoint, headers=self.headers, json=body)
        except httpx.HTTPError as e:
            raise LLMConnectionError(
                f"Failed to reach Anthropic API: {e}",
                base_url=self.config.endpoint,
            ) from e

        data = None
        if response.is_success:
            try:
                data = response.json()
            except ValueError as e:
                raise LLMResponseError("Anthropic API returned invalid JSON", response.text) from e
        return ProviderReply(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.text,
            data=data,
        )

    async def _call_api(self, system_prompt: str, messages: List[Dict[str, str]]) -> str:
        """Send one Messages request and return the first text block."""
        body = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "system": system_prompt,
            "messages": messages,
        }
        reply = await self.retry.call(self._send, body)

        content = (reply.data or {}).get("content")
        if isinstance(content, list):
            for block in content:
                if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str):
                    return block["text"]
        raise LLMResponseError("Unexpected Anthropic response structure", reply.body)

    async def aclose(self) -> None:
        await self.client.aclose()
