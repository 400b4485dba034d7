"""Rule Registry — ordered, append-only collection of rules keyed by id.

The registry is the only long-lived object of the engine. It is mutated
while being set up (``register``, ``enable``/``disable``,
``override_severity``) and is then shared read-only: ``resolve`` derives
the rule list of a single run from a ``ReviewConfig`` without touching the
registry's own state.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from api_review.config.models import ReviewConfig
from api_review.domain.errors import DuplicateRuleIdError, UnknownRuleError
from api_review.domain.models.enums import RuleCategory, Severity
from api_review.rules.base import Rule

logger = logging.getLogger(__name__)


class RuleRegistry:
    """Holds rule definitions in registration order.

    Usage::

        registry = RuleRegistry()
        registry.register(my_rule)
        registry.disable("documentation-completeness")
        rules = registry.resolve(config)
    """

    def __init__(self, rules: Optional[list[Rule]] = None) -> None:
        self._rules: dict[str, Rule] = {}
        self._disabled: set[str] = set()
        self._severity: dict[str, Severity] = {}
        for rule in rules or []:
            self.register(rule)

    # -- Registration ----------------------------------------------------

    def register(self, rule: Rule) -> None:
        """Append *rule*; ids are unique for the lifetime of the registry."""
        if rule.id in self._rules:
            raise DuplicateRuleIdError(f"Rule id '{rule.id}' is already registered", rule.id)
        self._rules[rule.id] = rule
        logger.debug("Registered rule %s (%s)", rule.id, rule.category.value)

    # -- Lookup ----------------------------------------------------------

    def get(self, rule_id: str) -> Rule:
        """Return the rule with *rule_id*, with any severity override applied."""
        try:
            rule = self._rules[rule_id]
        except KeyError:
            raise UnknownRuleError(f"Unknown rule id '{rule_id}'", rule_id) from None
        override = self._severity.get(rule_id)
        return rule.with_severity(override) if override else rule

    def by_category(self, category: RuleCategory) -> list[Rule]:
        return [self.get(rid) for rid, rule in self._rules.items() if rule.category is category]

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __iter__(self) -> Iterator[Rule]:
        return (self.get(rid) for rid in self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def ids(self) -> list[str]:
        """Rule ids in registration order."""
        return list(self._rules)

    def is_enabled(self, rule_id: str) -> bool:
        self._require(rule_id)
        return rule_id not in self._disabled

    # -- Enable / disable / severity -------------------------------------

    def enable(self, rule_id: str) -> None:
        self._require(rule_id)
        self._disabled.discard(rule_id)

    def disable(self, rule_id: str) -> None:
        self._require(rule_id)
        self._disabled.add(rule_id)

    def override_severity(self, rule_id: str, severity: Severity) -> None:
        self._require(rule_id)
        self._severity[rule_id] = Severity(severity)

    # -- Per-run resolution ----------------------------------------------

    def resolve(self, config: ReviewConfig) -> list[Rule]:
        """Rules to run for *config*, in registration order.

        Applies the config's selection, disabled list and severity overrides
        on top of the registry's own state. Unknown ids are a ``ConfigError``.
        """
        for rule_id in [*config.disabled_rules, *config.severity_overrides, *(config.select or [])]:
            self._require(rule_id)

        selected = set(config.select) if config.select is not None else None
        rules: list[Rule] = []
        for rule in self:
            if rule.id in self._disabled or rule.id in config.disabled_rules:
                continue
            if selected is not None and rule.id not in selected:
                continue
            override = config.severity_overrides.get(rule.id)
            rules.append(rule.with_severity(override) if override else rule)
        return rules

    def _require(self, rule_id: str) -> None:
        if rule_id not in self._rules:
            raise UnknownRuleError(f"Unknown rule id '{rule_id}'", rule_id)
