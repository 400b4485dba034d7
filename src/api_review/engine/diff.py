"""Diff Engine — compatibility impact between two snapshots.

Items are matched by identical path. Unmatched baseline items are
``removed``; unmatched candidate items are ``added``; matched items are
compared field by field and may produce several deltas, each classified
on its own.

Impact classification is a pure function of the change kind and the
before/after values; it never looks at item identity or ordering. For
matched items the classification is relative to the baseline: surface a
consumer could not reach in the baseline (effectively non-public) changes
with impact ``none``.

Path matching is a single-threaded precomputation. The per-path
comparisons that follow are independent and run on a thread pool when
``config.workers > 1``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from api_review.config.models import ReviewConfig
from api_review.domain.features import parse_feature_expression
from api_review.domain.models.enums import ChangeKind, Impact, ItemKind
from api_review.domain.models.findings import CompatibilityDelta, UnresolvedPath
from api_review.domain.models.snapshot import InterfaceItem, Signature, Snapshot
from api_review.engine.evaluator import BudgetTracker

logger = logging.getLogger(__name__)


@dataclass
class DiffResult:
    """Ordered deltas between a baseline and a candidate snapshot."""

    baseline_version: str
    candidate_version: str
    deltas: list[CompatibilityDelta] = field(default_factory=list)
    unresolved: list[UnresolvedPath] = field(default_factory=list)
    truncated: bool = False

    @property
    def item_impacts(self) -> dict[str, Impact]:
        """Most disruptive impact retained per path."""
        impacts: dict[str, Impact] = {}
        for delta in self.deltas:
            current = impacts.get(delta.item_path, Impact.NONE)
            impacts[delta.item_path] = Impact.worst([current, delta.impact])
        return impacts

    @property
    def change_kinds(self) -> set[tuple[str, ChangeKind]]:
        return {(d.item_path, d.change_kind) for d in self.deltas}


# ---------------------------------------------------------------------------
# Impact classification
# ---------------------------------------------------------------------------


def classify_added(public: bool) -> Impact:
    return Impact.MINOR if public else Impact.NONE


def classify_removed(was_public: bool) -> Impact:
    return Impact.MAJOR if was_public else Impact.NONE


def classify_kind(before: ItemKind, after: ItemKind) -> Impact:
    """A path that changes kind breaks every consumer of the old kind."""
    return Impact.MAJOR if before is not after else Impact.NONE


def classify_signature(
    before: Optional[Signature], after: Optional[Signature]
) -> tuple[Impact, list[str]]:
    """Classify a signature change and explain it.

    Removing, retyping or renaming a parameter, adding a required one,
    dropping a default, changing the return, error or borrow shape, or
    adding/removing a generic parameter or bound-narrowing is major.
    Appending a defaulted parameter, gaining a default or removing a bound
    is minor. Anything else (annotation-only) is patch.
    """
    if before is None or after is None:
        return Impact.MAJOR, ["signature introduced" if before is None else "signature dropped"]

    reasons: list[tuple[Impact, str]] = []
    old_params, new_params = before.parameters, after.parameters

    for index, (old, new) in enumerate(zip(old_params, new_params)):
        if old.type_tag != new.type_tag:
            reasons.append((Impact.MAJOR, f"parameter {index} type {old.type_tag} -> {new.type_tag}"))
        if old.name != new.name:
            reasons.append((Impact.MAJOR, f"parameter {index} renamed {old.name} -> {new.name}"))
        if old.borrowed != new.borrowed or old.lifetime != new.lifetime:
            reasons.append((Impact.MAJOR, f"parameter '{new.name}' borrow changed"))
        if old.has_default and not new.has_default:
            reasons.append((Impact.MAJOR, f"parameter '{new.name}' lost its default"))
        elif new.has_default and not old.has_default:
            reasons.append((Impact.MINOR, f"parameter '{new.name}' gained a default"))

    for param in new_params[len(old_params):]:
        if param.has_default:
            reasons.append((Impact.MINOR, f"optional parameter '{param.name}' added"))
        else:
            reasons.append((Impact.MAJOR, f"required parameter '{param.name}' added"))
    for param in old_params[len(new_params):]:
        reasons.append((Impact.MAJOR, f"parameter '{param.name}' removed"))

    if before.returns != after.returns:
        reasons.append((Impact.MAJOR, f"return type {before.returns} -> {after.returns}"))
    if before.returns_borrowed != after.returns_borrowed:
        reasons.append((Impact.MAJOR, "return borrow changed"))
    if before.error != after.error:
        reasons.append((Impact.MAJOR, f"error type {before.error} -> {after.error}"))

    old_generics = {g.name: g.bound_set for g in before.generics}
    new_generics = {g.name: g.bound_set for g in after.generics}
    for name in sorted(old_generics.keys() - new_generics.keys()):
        reasons.append((Impact.MAJOR, f"generic parameter {name} removed"))
    for name in sorted(new_generics.keys() - old_generics.keys()):
        reasons.append((Impact.MAJOR, f"generic parameter {name} added"))
    for name in sorted(old_generics.keys() & new_generics.keys()):
        old_bounds, new_bounds = old_generics[name], new_generics[name]
        if old_bounds == new_bounds:
            continue
        if new_bounds < old_bounds:
            reasons.append((Impact.MINOR, f"generic {name} bound widened"))
        else:
            reasons.append((Impact.MAJOR, f"generic {name} bound narrowed"))

    if not reasons:
        return Impact.PATCH, ["signature annotation changed"]
    return Impact.worst(i for i, _ in reasons), [text for _, text in reasons]


def classify_gate(
    before: Optional[str],
    after: Optional[str],
    old_defaults: frozenset[str],
    new_defaults: frozenset[str],
) -> Impact:
    """Classify a feature-gate text change.

    A gate introduced on a previously unconditional item, or a gate that no
    longer holds in a default build although it used to, is major. Dropping
    the gate is minor. Any other textual change is patch.
    """
    if before is None:
        return Impact.MAJOR
    if after is None:
        return Impact.MINOR
    was_default = parse_feature_expression(before).evaluate(old_defaults)
    is_default = parse_feature_expression(after).evaluate(new_defaults)
    if was_default and not is_default:
        return Impact.MAJOR
    return Impact.PATCH


def _gate_text(item: InterfaceItem) -> Optional[str]:
    return item.feature_gate.strip() if item.feature_gate is not None else None


# ---------------------------------------------------------------------------
# Per-path comparison
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _PathContext:
    old_visibility: dict[str, bool]
    new_visibility: dict[str, bool]
    old_defaults: frozenset[str]
    new_defaults: frozenset[str]


def compare_path(
    path: str,
    before: Optional[InterfaceItem],
    after: Optional[InterfaceItem],
    pctx: _PathContext,
) -> list[CompatibilityDelta]:
    """Deltas for one path; pure and independent of every other path."""
    if before is None:
        public = pctx.new_visibility[path]
        return [CompatibilityDelta(path, ChangeKind.ADDED, classify_added(public))]
    if after is None:
        was_public = pctx.old_visibility[path]
        return [CompatibilityDelta(path, ChangeKind.REMOVED, classify_removed(was_public))]

    was_public = pctx.old_visibility[path]
    is_public = pctx.new_visibility[path]
    deltas: list[CompatibilityDelta] = []

    def relevant(impact: Impact) -> Impact:
        return impact if was_public else Impact.NONE

    if before.kind is not after.kind or before.signature != after.signature:
        impacts: list[Impact] = []
        reasons: list[str] = []
        if before.kind is not after.kind:
            impacts.append(classify_kind(before.kind, after.kind))
            reasons.append(f"kind {before.kind.value} -> {after.kind.value}")
        if before.signature != after.signature:
            impact, signature_reasons = classify_signature(before.signature, after.signature)
            impacts.append(impact)
            reasons.extend(signature_reasons)
        deltas.append(
            CompatibilityDelta(
                path,
                ChangeKind.SIGNATURE_CHANGED,
                relevant(Impact.worst(impacts)),
                "; ".join(reasons),
            )
        )

    if was_public and not is_public:
        deltas.append(CompatibilityDelta(path, ChangeKind.VISIBILITY_NARROWED, Impact.MAJOR))
    elif is_public and not was_public:
        deltas.append(CompatibilityDelta(path, ChangeKind.VISIBILITY_WIDENED, Impact.MINOR))

    if before.deprecated is None and after.deprecated is not None:
        deltas.append(
            CompatibilityDelta(
                path,
                ChangeKind.DEPRECATED_ADDED,
                relevant(Impact.MINOR),
                f"since {after.deprecated.since}",
            )
        )
    elif before.deprecated is not None and after.deprecated is None:
        deltas.append(
            CompatibilityDelta(path, ChangeKind.DEPRECATED_REMOVED, relevant(Impact.PATCH))
        )

    old_gate, new_gate = _gate_text(before), _gate_text(after)
    if old_gate != new_gate:
        impact = classify_gate(old_gate, new_gate, pctx.old_defaults, pctx.new_defaults)
        deltas.append(
            CompatibilityDelta(
                path,
                ChangeKind.FEATURE_GATE_CHANGED,
                relevant(impact),
                f"{old_gate or '<none>'} -> {new_gate or '<none>'}",
            )
        )

    # has_documented_contract differences are documentation-only: no delta
    return deltas


# ---------------------------------------------------------------------------
# Rename candidates
# ---------------------------------------------------------------------------


def _looks_renamed(before: InterfaceItem, after: InterfaceItem) -> bool:
    if before.kind is not after.kind or before.signature != after.signature:
        return False
    if before.name == after.name:
        return True
    return before.signature is not None and before.parent == after.parent


def _rename_keys(item: InterfaceItem) -> list[tuple]:
    """Buckets an item can be found in: same leaf name, or same parent."""
    keys = [(item.kind, item.signature, "name", item.name)]
    if item.signature is not None:
        keys.append((item.kind, item.signature, "parent", item.parent))
    return keys


def find_rename_candidates(
    old: Snapshot, new: Snapshot, removed: list[str], added: list[str]
) -> list[UnresolvedPath]:
    """Pair vanished baseline paths with structurally similar new paths.

    Added items are bucketed by kind, signature and name or parent, so a
    removed path is only compared with items it could actually match.
    """
    buckets: dict[tuple, list[InterfaceItem]] = {}
    for new_path in added:
        after = new.item(new_path)
        for key in _rename_keys(after):
            buckets.setdefault(key, []).append(after)

    candidates: list[UnresolvedPath] = []
    for old_path in sorted(removed):
        if not old.is_public(old_path):
            continue
        before = old.item(old_path)
        matches = {
            after.path: after for key in _rename_keys(before) for after in buckets.get(key, ())
        }
        for new_path in sorted(matches):
            if _looks_renamed(before, matches[new_path]):
                candidates.append(UnresolvedPath(old_path, new_path, before.kind))
    return candidates


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def diff_snapshots(
    old: Snapshot,
    new: Snapshot,
    config: Optional[ReviewConfig] = None,
) -> DiffResult:
    """Compare *old* (baseline) with *new* (candidate)."""
    config = config or ReviewConfig()
    if old.library != new.library:
        logger.warning(
            "Diffing different libraries (%s vs %s); no paths will match",
            old.library,
            new.library,
        )

    # Precomputation: path matching and visibility closures
    old_items = {item.path: item for item in old.items}
    new_items = {item.path: item for item in new.items}
    paths = sorted(old_items.keys() | new_items.keys())
    pctx = _PathContext(
        old_visibility=old.effective_visibility,
        new_visibility=new.effective_visibility,
        old_defaults=old.default_features,
        new_defaults=new.default_features,
    )

    budget = BudgetTracker(config.budget)
    scheduled: list[str] = []
    deltas: list[CompatibilityDelta] = []

    if config.workers == 1:
        for path in paths:
            if not budget.allow():
                break
            scheduled.append(path)
            deltas.extend(compare_path(path, old_items.get(path), new_items.get(path), pctx))
    else:
        with ThreadPoolExecutor(max_workers=config.workers) as pool:
            futures = []
            for path in paths:
                if not budget.allow():
                    break
                scheduled.append(path)
                futures.append(
                    pool.submit(compare_path, path, old_items.get(path), new_items.get(path), pctx)
                )
            for future in futures:
                deltas.extend(future.result())

    deltas.sort(key=lambda d: d.sort_key)

    unresolved: list[UnresolvedPath] = []
    if config.rules.detect_renames:
        removed = [p for p in scheduled if p not in new_items]
        added = [p for p in scheduled if p not in old_items]
        unresolved = find_rename_candidates(old, new, removed, added)

    truncated = len(scheduled) < len(paths)
    logger.debug(
        "Diff %s %s -> %s: %d deltas, %d rename candidates%s",
        new.library,
        old.version,
        new.version,
        len(deltas),
        len(unresolved),
        " (truncated)" if truncated else "",
    )
    return DiffResult(
        baseline_version=old.version,
        candidate_version=new.version,
        deltas=deltas,
        unresolved=unresolved,
        truncated=truncated,
    )


def diff(old: Snapshot, new: Snapshot) -> list[CompatibilityDelta]:
    """Ordered compatibility deltas from *old* to *new*."""
    return diff_snapshots(old, new).deltas
