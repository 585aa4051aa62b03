"""Configuration for changelog generation.

Values are resolved from, lowest to highest precedence: model defaults,
an optional JSON config file, ``CHANGELOG_*`` environment variables, and
finally explicit command-line flags.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError

DEFAULT_OUTPUT = "CHANGELOG.md"
DEFAULT_SECTION_NAME = "All Changes"

_TRUTHY = ("true", "1", "yes")


class ChangelogConfig(BaseModel):
    """Settings for one changelog generation run."""

    repo: str = Field(default=".", description="Path to the git repository")
    output: str = Field(default=DEFAULT_OUTPUT, description="Changelog file to read and rewrite")
    url: Optional[str] = Field(
        default=None,
        description="Repository web URL for commit links (defaults to the origin remote)"
    )
    follow: List[str] = Field(
        default_factory=list,
        description="Paths to filter commits by; one section per path"
    )
    verbose: bool = Field(default=False, description="Enable debug logging")
    section_name: str = Field(
        default=DEFAULT_SECTION_NAME,
        description="Section name used when no follow paths are given"
    )

    @field_validator('url', mode='before')
    @classmethod
    def strip_trailing_slash(cls, v):
        """Drop a trailing slash; treat an empty URL as unset."""
        if v is None:
            return v
        v = str(v).strip().rstrip("/")
        return v or None

    @field_validator('follow', mode='before')
    @classmethod
    def drop_blank_paths(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        return [p.strip() for p in v if p and p.strip()]

    @field_validator('repo', 'output', mode='before')
    @classmethod
    def expand_path(cls, v):
        """Expand ~ in paths."""
        if isinstance(v, str):
            return os.path.expanduser(v)
        return v

    @classmethod
    def from_file(cls, path: str) -> "ChangelogConfig":
        """Load a config from a JSON file.

        Raises:
            ConfigError: If the file is missing, not JSON, or has invalid fields
        """
        config_path = Path(os.path.expanduser(path))
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {config_path}")
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to load config {config_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Config {config_path} must contain a JSON object")
        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ChangelogConfig":
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}")

    def with_env_overrides(self, environ: Optional[Mapping[str, str]] = None) -> "ChangelogConfig":
        """Return a copy with ``CHANGELOG_*`` environment variables applied."""
        env = os.environ if environ is None else environ
        data = self.model_dump()

        env_repo = env.get("CHANGELOG_REPO")
        if env_repo:
            data["repo"] = env_repo

        env_output = env.get("CHANGELOG_OUTPUT")
        if env_output:
            data["output"] = env_output

        env_url = env.get("CHANGELOG_URL")
        if env_url:
            data["url"] = env_url

        env_follow = env.get("CHANGELOG_FOLLOW")
        if env_follow:
            data["follow"] = env_follow

        env_verbose = env.get("CHANGELOG_VERBOSE")
        if env_verbose:
            data["verbose"] = env_verbose.lower() in _TRUTHY

        return self.from_mapping(data)

    def with_overrides(self, **overrides: Any) -> "ChangelogConfig":
        """Return a copy with every non-None override applied."""
        data: Dict[str, Any] = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return self.from_mapping(data)


def load_config(
    config_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> ChangelogConfig:
    """Resolve the effective configuration from file, environment and overrides."""
    config = ChangelogConfig.from_file(config_file) if config_file else ChangelogConfig()
    return config.with_env_overrides(environ).with_overrides(**overrides)
