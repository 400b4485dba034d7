"""Composition Root — Dependency Injection Container.

This module is the ONLY place where concrete infrastructure classes are
imported and wired together. All other layers refer to ports (interfaces).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from api_review.application.use_cases.review_interface import ReviewInterfaceUseCase
from api_review.config.models import ReviewConfig
from api_review.domain.models.snapshot import Snapshot
from api_review.domain.ports.config_provider import ConfigProviderPort
from api_review.domain.ports.snapshot_source import SnapshotSourcePort
from api_review.infrastructure.config.json_config_provider import JsonConfigProvider
from api_review.infrastructure.snapshots.json_snapshot_source import JsonSnapshotSource
from api_review.rules.builtin import default_registry
from api_review.rules.registry import RuleRegistry


class Container:
    """Simple dependency injection container.

    Usage::

        container = Container()
        report = container.review_interface().execute(
            container.load_snapshot(Path("candidate.json")),
        )
    """

    def __init__(
        self,
        config_path: Optional[str | Path] = None,
        registry: Optional[RuleRegistry] = None,
    ) -> None:
        self._config_provider: ConfigProviderPort = JsonConfigProvider(config_path)
        self._snapshot_source: SnapshotSourcePort = JsonSnapshotSource()
        self._registry = registry or default_registry()

    # -- Accessors -----------------------------------------------------------

    @property
    def config(self) -> ReviewConfig:
        return self._config_provider.get_config()

    @property
    def registry(self) -> RuleRegistry:
        return self._registry

    @property
    def snapshot_source(self) -> SnapshotSourcePort:
        return self._snapshot_source

    def load_snapshot(self, path: Path) -> Snapshot:
        return self._snapshot_source.load(path)

    # -- Use cases -----------------------------------------------------------

    def review_interface(self) -> ReviewInterfaceUseCase:
        return ReviewInterfaceUseCase(self._registry, self.config)
