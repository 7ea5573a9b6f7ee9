"""Configuration module for the testpilot runner."""
from config.models import (
    AgentConfig,
    AnthropicConfig,
    BrowserConfig,
    GitHubModelsConfig,
    PilotConfig,
    ProviderName,
    ReportingConfig,
    RunnerConfig,
    load_config,
)

__all__ = [
    "AgentConfig",
    "AnthropicConfig",
    "BrowserConfig",
    "GitHubModelsConfig",
    "PilotConfig",
    "ProviderName",
    "ReportingConfig",
    "RunnerConfig",
    "load_config",
]
