#!/usr/bin/env python3
"""
Configuration loading.

Settings come from, in increasing precedence: built-in defaults, an optional
YAML or JSON config file, and environment variables. The result is an
immutable LLMConfig that is passed explicitly to whatever needs it.

Config file shape:

    llm:
      provider: openrouter
      api_key: sk-...
      model: anthropic/claude-3-haiku
      options:
        site_name: My App
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

from translator_errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "openai"

ENV_PROVIDER = "LLM_PROVIDER"
ENV_API_KEY = "LLM_API_KEY"
ENV_MODEL = "LLM_MODEL"


@dataclass(frozen=True)
class LLMConfig:
    """
    Configuration for LLM API access.

    Attributes:
        provider: Registered provider name (e.g. "openai", "openrouter", "anthropic")
        api_key: API key for authentication (may be empty until validated by the provider)
        model: Model identifier; empty lets the provider pick its default model
        options: Vendor-specific options passed through to the provider builder
    """

    provider: str = DEFAULT_PROVIDER
    api_key: str = ""
    model: str = ""
    options: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze the options so the config can be shared safely
        object.__setattr__(
            self,
            "options",
            MappingProxyType({str(k): _option_str(v) for k, v in dict(self.options).items()}),
        )

    def to_provider_config(self) -> Dict[str, str]:
        """Flatten into the mapping consumed by provider builders."""
        config = dict(self.options)
        config["api_key"] = self.api_key
        config["model"] = self.model
        return config

    def __repr__(self) -> str:
        # Never leak the API key into logs
        masked = "***" if self.api_key else ""
        return (
            f"LLMConfig(provider={self.provider!r}, api_key={masked!r}, "
            f"model={self.model!r}, options={dict(self.options)!r})"
        )


def _option_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def read_config_file(path: Path) -> Dict[str, Any]:
    """
    Parse a YAML or JSON config file into a dictionary.

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed to read config {path}: {e}") from e

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to parse config {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a mapping at the top level")
    return data


def load_config(
    config_path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None
) -> LLMConfig:
    """
    Build the LLM configuration from defaults, the config file and environment.

    Args:
        config_path: Optional YAML/JSON config file
        environ: Environment mapping (defaults to os.environ)

    Raises:
        ConfigError: If the config file is unreadable or malformed
    """
    env = os.environ if environ is None else environ

    llm: Dict[str, Any] = {}
    if config_path:
        data = read_config_file(config_path)
        llm = data.get("llm") or {}
        if not isinstance(llm, dict):
            raise ConfigError(f"'llm' section of {config_path} must be a mapping")
        logger.debug(f"Loaded configuration from {config_path}")

    options = llm.get("options") or {}
    if not isinstance(options, dict):
        raise ConfigError("'llm.options' must be a mapping")

    provider = env.get(ENV_PROVIDER) or llm.get("provider") or DEFAULT_PROVIDER
    api_key = env.get(ENV_API_KEY) or llm.get("api_key") or ""
    model = env.get(ENV_MODEL) or llm.get("model") or ""

    return LLMConfig(
        provider=str(provider).lower(),
        api_key=str(api_key),
        model=str(model),
        options=options,
    )
