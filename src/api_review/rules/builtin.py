"""Built-in rule set.

Each guideline of the public-interface review checklist that can be
checked mechanically is expressed as one ``Rule``. Guidelines that need
human judgement (e.g. "is this API intention-revealing") have no rule.

Rules whose behaviour depends on a threshold or pattern read it from
``RuleSettings``; with nothing configured they apply to nothing.
"""

from __future__ import annotations

import re
from typing import Iterator

from api_review.domain.models.enums import ItemKind, RuleCategory, Severity
from api_review.domain.models.snapshot import InterfaceItem
from api_review.rules.base import Rule, RuleContext, public_only
from api_review.rules.registry import RuleRegistry


def _public_callable(item: InterfaceItem, ctx: RuleContext) -> bool:
    return ctx.is_public(item) and item.signature is not None


# ---------------------------------------------------------------------------
# surface-minimality
# ---------------------------------------------------------------------------


def _check_internal_pattern(item: InterfaceItem, ctx: RuleContext) -> Iterator[str]:
    for pattern in ctx.settings.internal_patterns:
        if pattern.matches(item):
            yield (
                f"public {item.kind.value} matches internal pattern "
                f"({pattern.describe()}) and should not be exported"
            )
            return


def _check_parameter_count(item: InterfaceItem, ctx: RuleContext) -> Iterator[str]:
    limit = ctx.settings.max_parameters
    count = len(item.signature.parameters)
    if count > limit:
        yield f"takes {count} parameters (limit {limit}); consider a parameter object"


def _check_generic_bounds(item: InterfaceItem, ctx: RuleContext) -> Iterator[str]:
    limit = ctx.settings.max_generic_bounds
    count = item.signature.bound_count
    if count > limit:
        yield f"declares {count} generic bounds (limit {limit})"


def _check_leaky_borrow(item: InterfaceItem, ctx: RuleContext) -> Iterator[str]:
    sig = item.signature
    if not sig.exposes_borrow or (sig.borrow_justification or "").strip():
        return
    leaks = [p.name for p in sig.parameters if p.borrowed]
    if sig.returns_borrowed:
        leaks.append("return value")
    yield f"exposes borrow-scoped references ({', '.join(leaks)}) without justification"


# ---------------------------------------------------------------------------
# naming
# ---------------------------------------------------------------------------


def _check_boolean_parameter(item: InterfaceItem, ctx: RuleContext) -> Iterator[str]:
    two_valued = set(ctx.settings.two_valued_types)
    for param in item.signature.parameters:
        if param.type_tag.strip() in two_valued:
            yield (
                f"parameter '{param.name}' has two-valued type '{param.type_tag}'; "
                "callers cannot tell what the literal means"
            )


def _check_naming(item: InterfaceItem, ctx: RuleContext) -> Iterator[str]:
    pattern = ctx.settings.naming_patterns[item.kind]
    if not re.fullmatch(pattern, item.name):
        yield f"{item.kind.value} name '{item.name}' does not match /{pattern}/"


# ---------------------------------------------------------------------------
# error-handling
# ---------------------------------------------------------------------------


def _check_error_shape(item: InterfaceItem, ctx: RuleContext) -> Iterator[str]:
    error = item.signature.error.strip()
    if error in ctx.settings.text_error_types:
        yield f"fails with unstructured text error '{error}' instead of a named error type"


# ---------------------------------------------------------------------------
# escape hatches
# ---------------------------------------------------------------------------


def _check_escape_justification(item: InterfaceItem, ctx: RuleContext) -> Iterator[str]:
    if not (item.escape_justification or "").strip():
        yield "uses a low-level escape hatch without a written justification"


# ---------------------------------------------------------------------------
# feature hygiene
# ---------------------------------------------------------------------------


def _check_feature_gate(item: InterfaceItem, ctx: RuleContext) -> Iterator[str]:
    gate = item.gate
    undeclared = sorted(gate.names() - set(ctx.features))
    if undeclared:
        yield f"feature gate references undeclared capabilities: {', '.join(undeclared)}"
        return
    if (
        ctx.settings.flag_default_on_gates
        and ctx.is_public(item)
        and gate.evaluate(ctx.snapshot.default_features)
    ):
        yield (
            f"feature gate '{item.feature_gate}' is satisfied by default capabilities; "
            "the item ships in every default build"
        )


# ---------------------------------------------------------------------------
# documentation
# ---------------------------------------------------------------------------


def _check_documented(item: InterfaceItem, ctx: RuleContext) -> Iterator[str]:
    if not item.has_documented_contract:
        yield f"public {item.kind.value} has no documented contract"


def _check_upgrade_path(item: InterfaceItem, ctx: RuleContext) -> Iterator[str]:
    if not item.deprecated.message.strip():
        yield f"deprecated since {item.deprecated.since} without an upgrade path"


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------


BUILTIN_RULES: list[Rule] = [
    Rule(
        id="surface-minimality",
        category=RuleCategory.SURFACE_MINIMALITY,
        severity=Severity.WARNING,
        rationale="Every exported item is a compatibility promise; keep internals internal.",
        check=_check_internal_pattern,
        applies=lambda item, ctx: ctx.is_public(item) and bool(ctx.settings.internal_patterns),
        fix="Reduce the item's visibility or move it under a non-public module",
    ),
    Rule(
        id="boolean-parameter",
        category=RuleCategory.NAMING,
        severity=Severity.WARNING,
        rationale="Boolean arguments hide intent at the call site and cannot grow a third state.",
        check=_check_boolean_parameter,
        applies=lambda item, ctx: (
            _public_callable(item, ctx) and item.kind is ItemKind.FUNCTION
        ),
        fix="Replace the flag with an enumeration or a configuration type",
    ),
    Rule(
        id="leaky-borrow",
        category=RuleCategory.SURFACE_MINIMALITY,
        severity=Severity.WARNING,
        rationale="Borrow-scoped references in a public signature tie consumers to internal ownership.",
        check=_check_leaky_borrow,
        applies=lambda item, ctx: (
            _public_callable(item, ctx) and item.signature.exposes_borrow
        ),
        fix="Return owned data or document why the borrow is part of the contract",
    ),
    Rule(
        id="error-shape",
        category=RuleCategory.ERROR_HANDLING,
        severity=Severity.WARNING,
        rationale="Text errors cannot be matched on; consumers need a named error classification.",
        check=_check_error_shape,
        applies=lambda item, ctx: (
            _public_callable(item, ctx) and item.signature.is_fallible
        ),
        fix="Introduce a dedicated error type with distinguishable variants",
    ),
    Rule(
        id="escape-hatch-justification",
        category=RuleCategory.ESCAPE_HATCH_JUSTIFICATION,
        severity=Severity.ERROR,
        rationale="Operations that bypass safety guarantees must say why they are sound.",
        check=_check_escape_justification,
        applies=lambda item, ctx: item.uses_low_level_escape,
        fix="Document the invariants that make the escape hatch sound",
    ),
    Rule(
        id="feature-hygiene",
        category=RuleCategory.FEATURE_HYGIENE,
        severity=Severity.WARNING,
        rationale="Feature gates must name declared capabilities and actually gate something.",
        check=_check_feature_gate,
        applies=lambda item, ctx: item.feature_gate is not None,
        fix="Declare the capability or correct the gate expression",
    ),
    Rule(
        id="documentation-completeness",
        category=RuleCategory.DOCUMENTATION,
        severity=Severity.INFO,
        rationale="Public items need a documented contract consumers can rely on.",
        check=_check_documented,
        applies=public_only,
        fix="Document inputs, outputs, errors and panics/exceptions",
    ),
    Rule(
        id="deprecation-upgrade-path",
        category=RuleCategory.DOCUMENTATION,
        severity=Severity.WARNING,
        rationale="A deprecation without a migration hint strands consumers.",
        check=_check_upgrade_path,
        applies=lambda item, ctx: ctx.is_public(item) and item.deprecated is not None,
        fix="Name the replacement in the deprecation message",
    ),
    Rule(
        id="naming-convention",
        category=RuleCategory.NAMING,
        severity=Severity.WARNING,
        rationale="Consistent naming per item kind keeps the surface predictable.",
        check=_check_naming,
        applies=lambda item, ctx: (
            ctx.is_public(item) and item.kind in ctx.settings.naming_patterns
        ),
    ),
    Rule(
        id="parameter-count",
        category=RuleCategory.SURFACE_MINIMALITY,
        severity=Severity.INFO,
        rationale="Long parameter lists are hard to call correctly and to extend.",
        check=_check_parameter_count,
        applies=lambda item, ctx: (
            _public_callable(item, ctx) and ctx.settings.max_parameters is not None
        ),
        fix="Group related parameters into a configuration type",
    ),
    Rule(
        id="generic-bound-count",
        category=RuleCategory.SURFACE_MINIMALITY,
        severity=Severity.INFO,
        rationale="Heavily bounded generics leak implementation constraints into the API.",
        check=_check_generic_bounds,
        applies=lambda item, ctx: (
            _public_callable(item, ctx) and ctx.settings.max_generic_bounds is not None
        ),
    ),
]


def default_registry() -> RuleRegistry:
    """A fresh registry holding every built-in rule."""
    return RuleRegistry(list(BUILTIN_RULES))
