"""Domain errors — custom exceptions for API Review.

Structural and configuration errors are fatal and abort a run before any
rule executes. ``RuleFault`` is raised inside the evaluator only and is
always converted into a Finding; it never reaches the caller.
"""

from __future__ import annotations


class APIReviewError(Exception):
    """Base exception for all API Review errors."""


class SnapshotParseError(APIReviewError):
    """Raised when an interface snapshot is malformed.

    Covers duplicate item paths, dangling parent references and
    unparseable feature-gate expressions.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class FeatureExpressionError(SnapshotParseError):
    """Raised when a feature-gate expression cannot be parsed."""


class ConfigError(APIReviewError):
    """Raised when review configuration is invalid."""

    def __init__(self, message: str, rule_id: str | None = None) -> None:
        super().__init__(message)
        self.rule_id = rule_id


class DuplicateRuleIdError(ConfigError):
    """Raised when a rule id is registered twice."""


class UnknownRuleError(ConfigError):
    """Raised when a rule id is not present in the registry."""


class InvalidSuppressionError(ConfigError):
    """Raised when a suppression targets an unknown rule or path."""

    def __init__(self, message: str, rule_id: str, path: str) -> None:
        super().__init__(message, rule_id=rule_id)
        self.path = path


class RuleFault(APIReviewError):
    """A rule's applicability predicate or check failed unexpectedly."""

    def __init__(self, rule_id: str, path: str, cause: BaseException) -> None:
        super().__init__(f"rule '{rule_id}' failed on '{path}': {cause!r}")
        self.rule_id = rule_id
        self.path = path
        self.cause = cause
