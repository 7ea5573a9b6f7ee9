"""Decision source backed by GitHub Models (OpenAI-compatible chat completions)."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from adapters.base import AgentAction, ConversationHistory, DecisionRequest, ProviderReply
from adapters.parsing import log_action, parse_agent_response
from adapters.retry import RetryPolicy, SleepFn
from config.models import GitHubModelsConfig
from exceptions import ConfigurationError, LLMConnectionError, LLMResponseError
from prompts import build_user_message, with_response_format


def uses_completion_tokens(model: str) -> bool:
    """gpt-5 models reject max_tokens/temperature and take max_completion_tokens."""
    return "gpt-5" in model


class GitHubModelsAdapter:
    """GitHub Models chat completions, with the system prompt as the first message.

    GitHub Models is a preview service with aggressive free-tier rate limits,
    so 429 responses are retried by the shared policy rather than the SDK.
    """

    provider = "github-models"

    def __init__(
        self,
        config: GitHubModelsConfig,
        max_retries: int = 3,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[SleepFn] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if not config.token:
            raise ConfigurationError(
                "GITHUB_MODELS_TOKEN not set. "
                "Create a .env file from .env.example and add your GitHub PAT."
            )
        self.config = config
        self.logger = logger or logging.getLogger("github_models_adapter")
        self.history = ConversationHistory()
        self.client = AsyncOpenAI(
            api_key=config.token,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=0,
            default_headers={"X-GitHub-Api-Version": config.api_version},
            http_client=http_client,
        )
        retry_kwargs: Dict[str, Any] = {"sleep": sleep} if sleep else {}
        self.retry = RetryPolicy(
            max_retries=max_retries,
            provider="GitHub Models",
            logger=self.logger,
            **retry_kwargs,
        )
        self.logger.info(f"GitHub Models adapter initialized (model: {config.model})")
        self.logger.warning("GitHub Models is a preview service, rate limits may apply")

    async def decide(self, request: DecisionRequest) -> AgentAction:
        if not request.previous_actions:
            self.history.reset()

        user_message = build_user_message(request)
        messages = [
            {"role": "system", "content": with_response_format(request.system_prompt)},
            *self.history.with_user_message(user_message),
        ]

        self.logger.info(f"Asking {self.config.model}...")
        response = await self._call_api(messages)
        self.history.record_turn(user_message, response)

        result = parse_agent_response(response)
        if not result.ok:
            self.logger.warning(f"Unparseable response from {self.config.model}: {result.error}")
        log_action(result.action, self.logger)
        return result.action

    def _completion_kwargs(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"model": self.config.model, "messages": messages}
        if uses_completion_tokens(self.config.model):
            kwargs["max_completion_tokens"] = self.config.max_tokens
        else:
            kwargs["temperature"] = self.config.temperature
            kwargs["max_tokens"] = self.config.max_tokens
        return kwargs

    async def _send(self, kwargs: Dict[str, Any]) -> ProviderReply:
        try:
            completion = await self.client.chat.completions.create(**kwargs)
        except APIStatusError as e:
            return ProviderReply(
                status_code=e.status_code,
                headers=dict(e.response.headers),
                body=e.response.text,
            )
        except APIConnectionError as e:
            raise LLMConnectionError(
                f"Failed to reach GitHub Models: {e}",
                base_url=self.config.base_url,
            ) from e
        return ProviderReply(status_code=200, data=completion.model_dump())

    async def _call_api(self, messages: List[Dict[str, str]]) -> str:
        """Send one chat completion request and return the message content."""
        kwargs = self._completion_kwargs(messages)
        reply = await self.retry.call(self._send, kwargs)

        data = reply.data or {}
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise LLMResponseError("Unexpected GitHub Models response structure", str(data)[:500])
        return content

    async def aclose(self) -> None:
        await self.client.close()
