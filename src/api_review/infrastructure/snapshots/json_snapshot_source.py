"""JSON snapshot source — implements SnapshotSourcePort.

Reads the structured snapshot documents written by doc-extraction front
ends::

    {
      "library": "pkg",
      "version": "1.2.0",
      "features": {"std": true, "serde": false},
      "items": [{"path": "pkg.foo", "kind": "function", ...}]
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from api_review.domain.errors import SnapshotParseError
from api_review.domain.models.snapshot import Snapshot
from api_review.domain.ports.snapshot_source import SnapshotSourcePort

logger = logging.getLogger(__name__)


class JsonSnapshotSource(SnapshotSourcePort):
    """Load and save snapshots as JSON files."""

    def load(self, path: Path) -> Snapshot:
        """Load a snapshot from the JSON file at *path*."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Snapshot file not found: {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise SnapshotParseError(f"Snapshot {path} is not valid JSON: {exc}") from exc
        snapshot = self.parse(data)
        logger.debug(
            "Loaded snapshot %s %s (%d items) from %s",
            snapshot.library,
            snapshot.version,
            len(snapshot),
            path,
        )
        return snapshot

    @staticmethod
    def parse(data: Any) -> Snapshot:
        """Validate an already-decoded snapshot document."""
        if not isinstance(data, dict):
            raise SnapshotParseError(
                f"Snapshot document must be an object, got {type(data).__name__}"
            )
        try:
            return Snapshot.model_validate(data)
        except ValidationError as exc:
            first = exc.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise SnapshotParseError(
                f"Invalid snapshot field '{location}': {first['msg']}"
            ) from exc

    def save(self, snapshot: Snapshot, path: Path) -> None:
        """Serialize *snapshot* to JSON at *path*."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            snapshot.model_dump_json(indent=2, exclude_defaults=True),
            encoding="utf-8",
        )
