"""Configuration loader for API Review.

Loads a JSON configuration file and returns a validated ReviewConfig.
Uses module-level caching so each file is only parsed once per process.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from api_review.config.models import ReviewConfig
from api_review.domain.errors import ConfigError

logger = logging.getLogger(__name__)

# Module-level cache
_config_cache: dict[str, ReviewConfig] = {}

# Default config path — lives next to this module
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "review_default.json"


def load_config(path: Optional[Path] = None) -> ReviewConfig:
    """Load and validate a review config from a JSON file.

    Parameters
    ----------
    path : Path | None
        Path to a custom JSON config file.
        If ``None``, the built-in ``review_default.json`` is used.

    Returns
    -------
    ReviewConfig
        Validated configuration instance.

    Raises
    ------
    FileNotFoundError
        If the specified path does not exist.
    ConfigError
        If the file is not JSON or does not match the expected schema.
    """
    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH
    cache_key = str(config_path.resolve())

    if cache_key in _config_cache:
        return _config_cache[cache_key]

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
        config = ReviewConfig.model_validate(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {exc}") from exc
    except ValidationError as exc:
        raise ConfigError(f"Invalid config {config_path}: {exc}") from exc

    logger.debug("Loaded review config from %s", config_path)
    _config_cache[cache_key] = config
    return config


def get_config() -> ReviewConfig:
    """Get the default review configuration (cached)."""
    return load_config()


def clear_cache() -> None:
    """Clear the config cache — useful for testing."""
    _config_cache.clear()
