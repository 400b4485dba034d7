"""Rule definitions, registry and the built-in rule set."""

from api_review.rules.base import Rule, RuleContext
from api_review.rules.builtin import BUILTIN_RULES, default_registry
from api_review.rules.registry import RuleRegistry

__all__ = ["BUILTIN_RULES", "Rule", "RuleContext", "RuleRegistry", "default_registry"]
