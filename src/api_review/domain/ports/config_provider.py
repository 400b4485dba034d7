"""Port: Configuration provider — supply review configuration."""

from abc import ABC, abstractmethod

from api_review.config.models import ReviewConfig


class ConfigProviderPort(ABC):
    """Contract for providing configuration to the application."""

    @abstractmethod
    def get_config(self) -> ReviewConfig:
        """Return the current review configuration."""
        ...
