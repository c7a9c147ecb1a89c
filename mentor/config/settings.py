"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    """MCP server identity and tool behaviour."""

    name: str = Field(default="mentor-mcp-server", description="Server name reported to MCP clients")
    version: str = Field(default="1.0.0", description="Server version reported to MCP clients")
    include_reasoning: bool = Field(
        default=False,
        description="Append the model's reasoning channel (when the provider exposes one) "
                    "as an extra text block in tool results.",
    )
    max_prompt_length: int | None = Field(
        default=None,
        ge=1,
        description="If set, tool prompts longer than this many characters are truncated "
                    "at a sentence or word boundary before being sent. None disables truncation.",
    )

    model_config = SettingsConfigDict(env_prefix="SERVER_")


class LLMSettings(BaseSettings):
    """LLM API configuration."""

    model: str = Field(
        default="deepseek/deepseek-reasoner",
        description="LiteLLM model string, e.g. 'deepseek/deepseek-reasoner', "
                    "'openrouter/deepseek/deepseek-chat'. The provider prefix tells LiteLLM "
                    "which API to route the request to.",
    )
    api_key: str = Field(default="", description="API key for the model's provider")
    base_url: str | None = Field(
        default="https://api.deepseek.com",
        description="Base URL of the model endpoint. None lets LiteLLM pick the provider default.",
    )
    max_tokens: int = Field(default=4096, ge=1, description="Maximum tokens in response")
    timeout: float = Field(
        default=30.0, gt=0, description="Transport timeout for a single request, in seconds"
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Total attempts per call. Only server-side rate limiting (HTTP 429) is retried.",
    )
    retry_base_delay: float = Field(
        default=1.0,
        ge=0,
        description="Backoff before retry N (0-based) is retry_base_delay * 2**N seconds",
    )
    extra_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra HTTP headers sent with every request (e.g. OpenRouter's "
                    "HTTP-Referer and X-Title). Set via LLM__EXTRA_HEADERS='{\"X-Title\": \"...\"}'",
    )

    model_config = SettingsConfigDict(env_prefix="LLM_")


class RateLimitSettings(BaseSettings):
    """Token bucket admission control for outbound model calls."""

    capacity: int = Field(default=50, ge=0, description="Maximum burst of admitted calls")
    refill_rate: float = Field(default=10.0, ge=0, description="Tokens added per second")

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_")


class FileSettings(BaseSettings):
    """Local file access for tools that read source files."""

    allowed_root: Path = Field(
        default_factory=Path.cwd,
        description="Tools may only read files that resolve inside this directory",
    )

    model_config = SettingsConfigDict(env_prefix="FILES_")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    server: ServerSettings = Field(default_factory=ServerSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    files: FileSettings = Field(default_factory=FileSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    if env_file:
        return Settings(_env_file=env_file)
    return Settings()
