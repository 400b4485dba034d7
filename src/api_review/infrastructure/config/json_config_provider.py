"""JSON config provider — implements ConfigProviderPort.

Wraps the config/loader.py logic.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from api_review.config.loader import get_config, load_config
from api_review.config.models import ReviewConfig
from api_review.domain.ports.config_provider import ConfigProviderPort


class JsonConfigProvider(ConfigProviderPort):
    """Load review configuration from JSON files."""

    def __init__(self, config_path: Optional[str | Path] = None) -> None:
        self._config_path = Path(config_path) if config_path else None
        self._config: Optional[ReviewConfig] = None

    def get_config(self) -> ReviewConfig:
        """Return the current configuration, loading lazily."""
        if self._config is None:
            if self._config_path is not None:
                self._config = load_config(self._config_path)
            else:
                self._config = get_config()
        return self._config
