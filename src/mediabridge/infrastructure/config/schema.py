"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from mediabridge.infrastructure.common.constants import DEFAULT_USER_AGENT

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
EachErrorPolicyName = Literal["swallow", "propagate"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class ProviderSettings(BaseModel):
    """Per-adapter switches (YAML section: providers.<name>.*)."""

    enabled: bool = Field(default=True, description="Register this adapter.")
    base_url: Optional[str] = Field(
        default=None,
        description="Override the adapter's site URL (mirrors, proxies).",
    )
    timeout_seconds: Optional[float] = Field(
        default=None,
        description="Per-request timeout; falls back to http.timeout_seconds.",
    )

    @field_validator("timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("timeout_seconds must be > 0")
        return v


class ProvidersConfig(BaseModel):
    """Native adapters bundled with mediabridge."""

    flixhq: ProviderSettings = Field(default_factory=ProviderSettings)
    sflix: ProviderSettings = Field(default_factory=ProviderSettings)

    def items(self) -> list[tuple[str, ProviderSettings]]:
        return [("flixhq", self.flixhq), ("sflix", self.sflix)]


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (plugins/http/logging/providers).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="mediabridge", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # Script plugins (YAML section: plugins.*)
    plugin_dir: Path = Field(
        default=Path("./plugins"),
        validation_alias=AliasChoices(
            "plugin_dir",
            AliasPath("plugins", "plugin_dir"),
        ),
        description="Directory scanned for *.lua provider plugins.",
    )
    plugins_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "plugins_enabled",
            AliasPath("plugins", "enabled"),
        ),
        description="Load Lua plugins from plugin_dir.",
    )
    each_error_policy: EachErrorPolicyName = Field(
        default="swallow",
        validation_alias=AliasChoices(
            "each_error_policy",
            AliasPath("plugins", "each_error_policy"),
        ),
        description="What a failing each() callback does: log and continue, or abort.",
    )
    plugin_http_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices(
            "plugin_http_timeout_seconds",
            AliasPath("plugins", "http_timeout_seconds"),
        ),
        description="Timeout for http_get() calls made by plugins.",
    )
    plugin_extract_timeout_seconds: float = Field(
        default=60.0,
        validation_alias=AliasChoices(
            "plugin_extract_timeout_seconds",
            AliasPath("plugins", "extract_timeout_seconds"),
        ),
        description="Timeout for extract_sources() calls made by plugins.",
    )

    # HTTP (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="HTTP timeout in seconds for native adapters and extractors.",
    )
    http_user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    # Native adapters (YAML section: providers.*)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)

    @field_validator("plugin_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator(
        "http_timeout_seconds",
        "plugin_http_timeout_seconds",
        "plugin_extract_timeout_seconds",
    )
    @classmethod
    def _validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "plugins": {
                "plugin_dir": str(self.plugin_dir),
                "enabled": self.plugins_enabled,
                "each_error_policy": self.each_error_policy,
                "http_timeout_seconds": self.plugin_http_timeout_seconds,
                "extract_timeout_seconds": self.plugin_extract_timeout_seconds,
            },
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "providers": self.providers.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read MEDIABRIDGE_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - MEDIABRIDGE_PLUGIN_DIR
    - MEDIABRIDGE_EACH_ERROR_POLICY
    - MEDIABRIDGE_HTTP_TIMEOUT_SECONDS
    - MEDIABRIDGE_SFLIX_BASE_URL
    - MEDIABRIDGE_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="MEDIABRIDGE_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    plugin_dir: Optional[Path] = None
    plugins_enabled: Optional[bool] = None
    each_error_policy: Optional[EachErrorPolicyName] = None
    plugin_http_timeout_seconds: Optional[float] = None
    plugin_extract_timeout_seconds: Optional[float] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    flixhq_enabled: Optional[bool] = None
    flixhq_base_url: Optional[str] = None
    sflix_enabled: Optional[bool] = None
    sflix_base_url: Optional[str] = None

    @field_validator("plugin_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
