"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation.
An optional config.yaml provides defaults; environment variables win.
"""

import json
import os
import yaml
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings


DEFAULT_ENDPOINTS = [
    "https://rocknrolla.treblle.com",
    "https://punisher.treblle.com",
    "https://sicario.treblle.com",
]


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        possible_paths = [
            "config.yaml",
            "../../config.yaml",
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


class TreblleSettings(BaseSettings):
    """Treblle credentials, delivery endpoints and masking keywords."""

    # Deployment env names are swapped: the SDK token is sent as
    # api_key and TREBLLE_API_KEY identifies the project.
    sdk_token: str = Field(default="", description="Credential sent as api_key and x-api-key")
    api_key: str = Field(default="", description="Treblle project id")
    endpoints: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ENDPOINTS),
        description="Candidate delivery endpoints",
    )
    additional_mask_keywords: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ADDITIONAL_MASK_KEYWORDS", "additional_mask_keywords"),
        description="Comma-separated keys to mask on top of the built-in list",
    )

    @field_validator("endpoints", mode="before")
    def parse_endpoints(cls, v: Any) -> Any:
        """Accept a comma-separated string as well as a JSON list."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
            except json.JSONDecodeError:
                return [item.strip() for item in v.split(",") if item.strip()]
            return parsed
        return v

    @property
    def has_credentials(self) -> bool:
        return bool(self.sdk_token.strip()) and bool(self.api_key.strip())

    class Config:
        env_prefix = "TREBLLE_"
        populate_by_name = True


class PublisherSettings(BaseSettings):
    """Delivery and retry configuration."""

    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    retry_delay_seconds: float = Field(default=10.0, ge=0, description="Fixed delay before each retry")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Total timeout per delivery call")

    class Config:
        env_prefix = "FORWARDER_PUBLISHER_"


class Settings(BaseSettings):
    """Main application settings."""

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    treblle: TreblleSettings = Field(default_factory=TreblleSettings)
    publisher: PublisherSettings = Field(default_factory=PublisherSettings)

    class Config:
        env_prefix = "FORWARDER_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""
    config_data = load_config_file()

    if config_data:
        _set_env_from_config(config_data)

    return Settings()


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("server", "host"): "FORWARDER_HOST",
        ("server", "port"): "FORWARDER_PORT",
        ("server", "debug"): "FORWARDER_DEBUG",
        ("server", "log_level"): "FORWARDER_LOG_LEVEL",
        ("treblle", "sdk_token"): "TREBLLE_SDK_TOKEN",
        ("treblle", "api_key"): "TREBLLE_API_KEY",
        ("treblle", "additional_mask_keywords"): "ADDITIONAL_MASK_KEYWORDS",
        ("publisher", "max_retries"): "FORWARDER_PUBLISHER_MAX_RETRIES",
        ("publisher", "retry_delay_seconds"): "FORWARDER_PUBLISHER_RETRY_DELAY_SECONDS",
        ("publisher", "timeout_seconds"): "FORWARDER_PUBLISHER_TIMEOUT_SECONDS",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                if isinstance(value, list):
                    value = ",".join(str(item) for item in value)
                os.environ[env_var] = str(value)

    if "TREBLLE_ENDPOINTS" not in os.environ:
        endpoints = (config_data.get("treblle") or {}).get("endpoints")
        if endpoints:
            os.environ["TREBLLE_ENDPOINTS"] = json.dumps(endpoints)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
