"""Decision sources: interactive, Anthropic and GitHub Models."""
from __future__ import annotations

import logging
from typing import Optional

from adapters.anthropic import AnthropicAdapter
from adapters.base import (
    AgentAction,
    ConversationHistory,
    DecisionRequest,
    DecisionSource,
    ProviderReply,
)
from adapters.github_models import GitHubModelsAdapter
from adapters.interactive import InteractiveAdapter
from adapters.parsing import ParseResult, parse_agent_response
from adapters.retry import RetryPolicy
from config.models import AgentConfig
from exceptions import ConfigurationError

__all__ = [
    "AgentAction",
    "AnthropicAdapter",
    "ConversationHistory",
    "DecisionRequest",
    "DecisionSource",
    "GitHubModelsAdapter",
    "InteractiveAdapter",
    "ParseResult",
    "ProviderReply",
    "RetryPolicy",
    "create_adapter",
    "parse_agent_response",
]


def create_adapter(config: AgentConfig, logger: Optional[logging.Logger] = None) -> DecisionSource:
    """Build the decision source selected by ``config.provider``."""
    provider = config.provider
    if provider == "interactive":
        return InteractiveAdapter(logger=logger)
    if provider == "anthropic":
        return AnthropicAdapter(config.anthropic, max_retries=config.max_retries, logger=logger)
    if provider == "github-models":
        return GitHubModelsAdapter(config.github_models, max_retries=config.max_retries, logger=logger)
    raise ConfigurationError(
        f'Unknown model provider "{provider}". Use: interactive, github-models, or anthropic.',
        {"provider": provider},
    )
