"""Pydantic configuration models for the testpilot runner."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator


# Load .env file if present
load_dotenv()

ProviderName = Literal["interactive", "github-models", "anthropic"]


def _env_defaults(data: Any, env_mapping: dict[str, str]) -> Any:
    """Fill fields from environment variables when not explicitly set."""
    if not isinstance(data, dict):
        return data
    for field_name, env_var in env_mapping.items():
        if data.get(field_name) is None:
            env_value = os.getenv(env_var)
            if env_value:
                data[field_name] = env_value
    return data


class AnthropicConfig(BaseModel):
    """Anthropic Messages API settings."""

    api_key: Optional[str] = Field(default=None, description="Anthropic API key (sk-ant-...)")
    model: str = Field(default="claude-sonnet-4-6", description="Anthropic model ID")
    endpoint: str = Field(
        default="https://api.anthropic.com/v1/messages",
        description="Messages API endpoint",
    )
    api_version: str = Field(default="2023-06-01", description="anthropic-version header")
    max_tokens: int = Field(default=1024, ge=100, le=8192)
    timeout: float = Field(default=120.0, gt=0, description="HTTP timeout in seconds")

    @model_validator(mode="before")
    @classmethod
    def load_from_env(cls, data: Any) -> Any:
        return _env_defaults(data, {"api_key": "ANTHROPIC_API_KEY", "model": "ANTHROPIC_MODEL"})


class GitHubModelsConfig(BaseModel):
    """GitHub Models (OpenAI-compatible) settings."""

    token: Optional[str] = Field(default=None, description="GitHub PAT with `models` scope")
    model: str = Field(default="openai/gpt-4.1", description="GitHub Models model ID")
    base_url: str = Field(
        default="https://models.github.ai/inference",
        description="OpenAI-compatible inference base URL",
    )
    api_version: str = Field(default="2022-11-28", description="X-GitHub-Api-Version header")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1024, ge=100, le=8192)
    timeout: float = Field(default=120.0, gt=0, description="HTTP timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base_url doesn't have trailing slash."""
        return v.rstrip("/")

    @model_validator(mode="before")
    @classmethod
    def load_from_env(cls, data: Any) -> Any:
        return _env_defaults(data, {"token": "GITHUB_MODELS_TOKEN", "model": "GITHUB_MODELS_MODEL"})


class AgentConfig(BaseModel):
    """Decision-source selection and provider settings."""

    provider: Optional[ProviderName] = Field(
        default=None,
        description="Decision source; auto-detected from available credentials when unset",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries on rate-limit/overload responses",
    )
    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)
    github_models: GitHubModelsConfig = Field(default_factory=GitHubModelsConfig)

    @model_validator(mode="before")
    @classmethod
    def load_from_env(cls, data: Any) -> Any:
        return _env_defaults(data, {"provider": "MODEL_PROVIDER"})

    @model_validator(mode="after")
    def detect_provider(self) -> "AgentConfig":
        """Pick a provider from credentials when none was configured."""
        if self.provider is None:
            if self.anthropic.api_key:
                self.provider = "anthropic"
            elif self.github_models.token:
                self.provider = "github-models"
            else:
                self.provider = "interactive"
        return self


class RunnerConfig(BaseModel):
    """Step iteration loop settings."""

    max_iterations: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum observe/decide/act cycles per step",
    )
    settle_delay: float = Field(
        default=1.5,
        ge=0.0,
        le=30.0,
        description="Seconds to wait after a state-mutating command",
    )
    mutating_commands: List[str] = Field(
        default_factory=lambda: ["click", "fill", "select", "press"],
        description="Command verbs followed by the settle delay",
    )


class BrowserConfig(BaseModel):
    """agent-browser CLI settings."""

    binary: str = Field(default="agent-browser", description="agent-browser executable")
    command_timeout: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Timeout for a single agent-browser command, in seconds",
    )
    snapshot_args: List[str] = Field(
        default_factory=lambda: ["-i", "-c"],
        description="Arguments for `snapshot` (interactive elements, compact)",
    )


class ReportingConfig(BaseModel):
    """Reporting and output configuration."""

    save_screenshots: bool = Field(
        default=True,
        description="Save a screenshot at the end of every step",
    )
    screenshots_folder: Path = Field(
        default=Path("./screenshots"),
        description="Directory for saving screenshots",
    )
    reports_folder: Path = Field(
        default=Path("./reports"),
        description="Directory for saving reports",
    )
    output_format: Literal["json", "markdown", "junit", "all"] = Field(
        default="all",
        description="Report output format",
    )

    @field_validator("screenshots_folder", "reports_folder", mode="before")
    @classmethod
    def convert_to_path(cls, v: Any) -> Path:
        """Convert string to Path."""
        if isinstance(v, str):
            return Path(v)
        return v


class PilotConfig(BaseModel):
    """Root configuration model combining all config sections."""

    agent: AgentConfig = Field(default_factory=AgentConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)

    verbose: bool = Field(
        default=False,
        description="Enable verbose logging",
    )


def load_config(
    config_path: Optional[Path] = None,
    cli_overrides: Optional[dict[str, Any]] = None,
) -> PilotConfig:
    """
    Load configuration from file with CLI overrides.

    Priority (highest to lowest):
    1. CLI arguments
    2. Config file
    3. Environment variables (including .env)
    4. Defaults
    """
    config_data: dict[str, Any] = {}

    # Load from file if provided or default exists
    if config_path is None:
        config_path = Path("config.json")

    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.suffix in {".yaml", ".yml"}:
                import yaml
                config_data = yaml.safe_load(f) or {}
            else:
                config_data = json.load(f)

    config = PilotConfig.model_validate(config_data)

    # Apply CLI overrides
    if cli_overrides:
        config_dict = config.model_dump()
        _apply_overrides(config_dict, cli_overrides)
        config = PilotConfig.model_validate(config_dict)

    return config


def _apply_overrides(config_dict: dict[str, Any], overrides: dict[str, Any]) -> None:
    """Apply CLI overrides to config dictionary."""
    override_mapping = {
        "provider": ("agent", "provider"),
        "max_iterations": ("runner", "max_iterations"),
        "output_format": ("reporting", "output_format"),
        "reports_dir": ("reporting", "reports_folder"),
        "verbose": ("verbose", None),
    }

    for key, value in overrides.items():
        if value is None:
            continue

        mapping = override_mapping.get(key)
        if mapping:
            section, field = mapping
            if field is None:
                config_dict[section] = value
            else:
                config_dict[section][field] = value
