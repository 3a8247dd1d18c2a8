"""Configuration management for castle-metadata."""

import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from castle_metadata import __version__


ENV_VAR_PATTERN = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}")


def expand_env_vars(value: Any) -> Any:
    """Expand ${NAME} and ${NAME:-default} references in loaded YAML values.

    Raises:
        ValueError: If a referenced variable is unset and has no default
    """
    if isinstance(value, dict):
        return {key: expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    if not isinstance(value, str):
        return value

    def _lookup(match: re.Match) -> str:
        name = match.group("name")
        resolved = os.environ.get(name, match.group("default"))
        if resolved is None:
            raise ValueError(f"Environment variable '{name}' is not set (referenced in configuration)")
        return resolved

    return ENV_VAR_PATTERN.sub(_lookup, value)


class ResolverConfig(BaseModel):
    """Metadata resolver configuration."""

    allow_private_urls: bool = Field(
        default=False, description="Allow fetching URLs that resolve to private addresses"
    )
    include_source_code: bool = Field(
        default=False, description="Attach the fetched body to self-hosting results"
    )
    user_agent: str = Field(
        default=f"castle-metadata/{__version__}", description="User-Agent for outbound requests"
    )

    @field_validator("user_agent")
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        """Validate user agent is a usable header value."""
        v = v.strip()
        if not v or "\n" in v or "\r" in v:
            raise ValueError("User-Agent must be a non-empty single line")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    format: str = Field(default="text", description="Log format (json or text)")
    level: str = Field(default="warning", description="Log level")
    output: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        if v.lower() not in ("debug", "info", "warning", "error", "critical"):
            raise ValueError("Invalid log level")
        return v.lower()


class Config(BaseModel):
    """Main configuration model."""

    resolver: ResolverConfig = Field(
        default_factory=ResolverConfig, description="Resolver configuration"
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path) as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            raw_config = {}

        raw_config = expand_env_vars(raw_config)

        return cls(**raw_config)

    @classmethod
    def from_defaults(cls) -> "Config":
        """Create configuration with default values."""
        return cls()


def load_config(path: Optional[str | Path] = None) -> Config:
    """Load configuration from file or use defaults.

    Args:
        path: Optional path to configuration file. If None, uses defaults.

    Returns:
        Config instance
    """
    if path is None:
        return Config.from_defaults()

    return Config.from_yaml(path)
