"""Configuration for sitegen-stream.

Config discovery (first match wins):
  1. ``--config`` flag
  2. ``./sitegen.yaml``
  3. ``~/.config/sitegen/config.yaml``
  4. Built-in defaults
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from sitegen_stream.errors import ConfigError

_logger = logging.getLogger(__name__)

_API_KEY_ENV = "SITEGEN_API_KEY"


# ---------------------------------------------------------------------------
# Config data structures
# ---------------------------------------------------------------------------

@dataclass
class ProviderSpec:
    """OpenAI-compatible model provider."""

    url: str = "http://localhost:11434/v1"
    api_key: str = "no-key"
    model: str = "google/gemini-2.5-pro"
    note_model: str = "google/gemini-2.5-flash"
    timeout: float = 120
    extra_params: dict[str, Any] = field(default_factory=dict)


UNCLOSED_REASONING_POLICIES = ("complete", "fail")


@dataclass
class GenerationSpec:
    """Prompt building and finalization knobs."""

    history_window: int = 5
    artifact_context_chars: int = 10000
    vision_context_chars: int = 6000
    min_markup_length: int = 100
    unclosed_reasoning: str = "complete"  # "complete" | "fail"
    default_note: str = "Site updated successfully!"


@dataclass
class ServerSpec:
    host: str = "127.0.0.1"
    port: int = 8000
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    api_key: str = ""  # empty disables the X-API-Key check


@dataclass
class SitegenConfig:
    """Top-level config."""

    provider: ProviderSpec = field(default_factory=ProviderSpec)
    generation: GenerationSpec = field(default_factory=GenerationSpec)
    server: ServerSpec = field(default_factory=ServerSpec)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

_SEARCH_PATHS = [
    Path("./sitegen.yaml"),
    Path.home() / ".config" / "sitegen" / "config.yaml",
]


def _pick(cls: type, raw: dict[str, Any] | None) -> dict[str, Any]:
    """Keep only keys that are fields of dataclass *cls*."""
    if not raw:
        return {}
    known = cls.__dataclass_fields__
    unknown = sorted(k for k in raw if k not in known)
    if unknown:
        _logger.warning("Ignoring unknown %s keys: %s", cls.__name__, ", ".join(unknown))
    return {k: v for k, v in raw.items() if k in known and v is not None}


def _parse_generation(raw: dict[str, Any] | None) -> GenerationSpec:
    spec = GenerationSpec(**_pick(GenerationSpec, raw))
    if spec.unclosed_reasoning not in UNCLOSED_REASONING_POLICIES:
        raise ConfigError(
            f"generation.unclosed_reasoning must be one of "
            f"{', '.join(UNCLOSED_REASONING_POLICIES)}, got {spec.unclosed_reasoning!r}"
        )
    if spec.min_markup_length < 0 or spec.history_window < 0:
        raise ConfigError("generation limits must not be negative")
    return spec


def load_config(path: str | Path | None = None) -> SitegenConfig:
    """Load configuration from YAML.

    Parameters
    ----------
    path:
        Explicit config path.  If *None*, search default locations.

    Returns
    -------
    SitegenConfig
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            _logger.warning("Config file not found: %s, using defaults", path)
            config_path = None
    else:
        for candidate in _SEARCH_PATHS:
            if candidate.exists():
                config_path = candidate
                break

    raw: dict[str, Any] = {}
    if config_path is None:
        _logger.info("No config file found, using defaults")
    else:
        _logger.info("Loading config from %s", config_path)
        with open(config_path) as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"{config_path} must contain a mapping")

    provider = ProviderSpec(**_pick(ProviderSpec, raw.get("provider")))
    env_key = os.environ.get(_API_KEY_ENV)
    if env_key and provider.api_key == "no-key":
        provider.api_key = env_key

    return SitegenConfig(
        provider=provider,
        generation=_parse_generation(raw.get("generation")),
        server=ServerSpec(**_pick(ServerSpec, raw.get("server"))),
    )
