"""Configuration for openai_wrapper.

Config discovery (first match wins):
  1. explicit ``path`` argument (``--config`` on the CLI)
  2. ``./openai_wrapper.yaml``
  3. ``~/.config/openai-wrapper/config.yaml``
  4. Built-in defaults

An empty ``api_key`` is filled from the ``OPENAI_API_KEY`` environment
variable.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from openai_wrapper.errors import ConfigurationError

_logger = logging.getLogger(__name__)

DEFAULT_URL = "https://api.openai.com/v1"
DEFAULT_STREAM_BUFFER = 1024 * 1024 * 10  # 10 MiB


class LanguageModels:
    """Known chat model names."""

    GPT_3_5_TURBO = "gpt-3.5-turbo"
    GPT_3_5_TURBO_0613 = "gpt-3.5-turbo-0613"  # function calling
    GPT_4 = "gpt-4"
    GPT_4_0613 = "gpt-4-0613"  # function calling


# ---------------------------------------------------------------------------
# Config data structures
# ---------------------------------------------------------------------------

@dataclass
class CompletionOptions:
    """Per-call options for a chat completion."""

    model: str = LanguageModels.GPT_3_5_TURBO
    temperature: float = 0.7
    # Disables the duplicate function call guard.
    allow_repeated_function_calls: bool = False

    def validate(self) -> CompletionOptions:
        if not self.model:
            raise ConfigurationError("CompletionOptions.model must not be empty")
        if not 0 <= self.temperature <= 2:
            raise ConfigurationError(
                f"CompletionOptions.temperature must be within [0, 2], got {self.temperature}"
            )
        return self

    def with_overrides(self, **changes: Any) -> CompletionOptions:
        """Return a copy with the non-``None`` values in *changes* applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


@dataclass
class ClientSpec:
    """Connection settings for the remote chat completions endpoint."""

    url: str = DEFAULT_URL
    api_key: str = ""
    timeout: float = 120
    max_stream_buffer: int = DEFAULT_STREAM_BUFFER
    options: CompletionOptions = field(default_factory=CompletionOptions)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

_SEARCH_PATHS = [
    Path("./openai_wrapper.yaml"),
    Path.home() / ".config" / "openai-wrapper" / "config.yaml",
]


def _parse_options(raw: dict[str, Any] | None) -> CompletionOptions:
    if not raw:
        return CompletionOptions()
    base: dict[str, Any] = {}
    for k, v in raw.items():
        if v is not None and k in CompletionOptions.__dataclass_fields__:
            base[k] = v
        elif k not in CompletionOptions.__dataclass_fields__:
            _logger.warning("Ignoring unknown option in config: %s", k)
    return CompletionOptions(**base).validate()


def _apply_env(spec: ClientSpec) -> ClientSpec:
    if not spec.api_key:
        spec.api_key = os.environ.get("OPENAI_API_KEY", "")
    return spec


def load_config(path: str | Path | None = None) -> ClientSpec:
    """Load configuration from YAML.

    Parameters
    ----------
    path:
        Explicit config path.  If *None*, search default locations.

    Returns
    -------
    ClientSpec
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            _logger.warning("Config file not found: %s, using defaults", path)
            return _apply_env(ClientSpec())
    else:
        for candidate in _SEARCH_PATHS:
            if candidate.exists():
                config_path = candidate
                break

    if config_path is None:
        _logger.info("No config file found, using defaults")
        return _apply_env(ClientSpec())

    _logger.info("Loading config from %s", config_path)
    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    return _apply_env(
        ClientSpec(
            url=raw.get("url", DEFAULT_URL),
            api_key=raw.get("api_key", "") or "",
            timeout=raw.get("timeout", 120),
            max_stream_buffer=raw.get("max_stream_buffer", DEFAULT_STREAM_BUFFER),
            options=_parse_options(raw.get("options")),
        )
    )
