"""Review configuration package."""

from api_review.config.loader import get_config, load_config
from api_review.config.models import ReviewConfig

__all__ = ["ReviewConfig", "get_config", "load_config"]
