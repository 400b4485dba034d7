"""Port: Snapshot source — supply interface snapshots from build artifacts."""

from abc import ABC, abstractmethod
from pathlib import Path

from api_review.domain.models.snapshot import Snapshot


class SnapshotSourcePort(ABC):
    """Contract for front ends that turn build output into snapshots."""

    @abstractmethod
    def load(self, path: Path) -> Snapshot:
        """Read and validate the snapshot stored at *path*.

        Raises ``SnapshotParseError`` if the input is malformed.
        """
        ...
