"""Tests for the Diff Engine and impact classification."""

from __future__ import annotations

import random

import pytest

from api_review.application.use_cases.review_interface import review
from api_review.config.models import ReviewConfig, RuleSettings, WorkBudget
from api_review.domain.models import (
    ChangeKind,
    Deprecation,
    GenericParameter,
    Impact,
    ItemKind,
    Parameter,
    Severity,
    Signature,
    Snapshot,
    UnresolvedPath,
)
from api_review.engine.diff import (
    classify_added,
    classify_gate,
    classify_kind,
    classify_removed,
    classify_signature,
    diff,
    diff_snapshots,
)
from api_review.rules import default_registry

from conftest import item, module, params, private, snapshot

FEATURES = {"std": True, "serde": False}


def _kinds(deltas) -> set[tuple[str, ChangeKind]]:
    return {(d.item_path, d.change_kind) for d in deltas}


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_narrowing_a_public_function_is_major(self):
        old = snapshot(item("pkg.foo"), version="1.0.0")
        new = snapshot(private("pkg.foo"), version="1.1.0")

        deltas = diff(old, new)
        assert len(deltas) == 1
        assert deltas[0].change_kind is ChangeKind.VISIBILITY_NARROWED
        assert deltas[0].impact is Impact.MAJOR

        report = review(new, default_registry(), ReviewConfig(diff_mode=True), baseline=old)
        assert report.has_blocking_findings
        assert report.release_impact is Impact.MAJOR
        assert report.baseline_version == "1.0.0"
        assert report.findings[0].rule_id == "visibility_narrowed"
        assert report.findings[0].severity is Severity.ERROR

    def test_adding_a_documented_function_is_minor(self):
        old = snapshot(item("pkg.foo"), version="1.0.0")
        new = snapshot(item("pkg.foo"), item("pkg.bar"), version="1.1.0")

        deltas = diff(old, new)
        assert [(d.item_path, d.change_kind, d.impact) for d in deltas] == [
            ("pkg.bar", ChangeKind.ADDED, Impact.MINOR)
        ]

        report = review(new, default_registry(), ReviewConfig(diff_mode=True), baseline=old)
        assert not report.has_blocking_findings
        assert report.release_impact is Impact.MINOR
        assert report.item_impacts == {"pkg.bar": Impact.MINOR}

    def test_identical_snapshots(self):
        snap = snapshot(module("pkg.io"), item("pkg.io.read"))
        assert diff(snap, snap) == []

    def test_documentation_only_change_produces_no_delta(self):
        old = snapshot(item("pkg.foo", has_documented_contract=False))
        new = snapshot(item("pkg.foo", has_documented_contract=True))
        assert diff(old, new) == []


# ---------------------------------------------------------------------------
# Symmetry and monotonicity
# ---------------------------------------------------------------------------


def _version_a() -> Snapshot:
    return snapshot(
        item("pkg.old"),
        item("pkg.n"),
        item("pkg.d"),
        item("pkg.g"),
        item("pkg.s", signature=params(("x", "int"))),
        private("pkg.hidden"),
        features=FEATURES,
        version="1.0.0",
    )


def _version_b() -> Snapshot:
    return snapshot(
        item("pkg.fresh"),
        private("pkg.n"),
        item("pkg.d", deprecated=Deprecation(since="2.0", message="use pkg.fresh")),
        item("pkg.g", feature_gate="serde"),
        item(
            "pkg.s",
            signature=Signature(
                parameters=(
                    Parameter(name="x", type_tag="int"),
                    Parameter(name="y", type_tag="int", has_default=True),
                )
            ),
        ),
        private("pkg.hidden", signature=params(("z", "str"))),
        features=FEATURES,
        version="2.0.0",
    )


class TestSymmetry:
    def test_reverse_diff_inverts_change_kinds(self):
        a, b = _version_a(), _version_b()
        forward = diff(a, b)
        backward = diff(b, a)
        assert _kinds(forward) == {(p, k.inverse) for p, k in _kinds(backward)}

    def test_forward_classification(self):
        impacts = {(d.item_path, d.change_kind): d.impact for d in diff(_version_a(), _version_b())}
        assert impacts == {
            ("pkg.old", ChangeKind.REMOVED): Impact.MAJOR,
            ("pkg.fresh", ChangeKind.ADDED): Impact.MINOR,
            ("pkg.n", ChangeKind.VISIBILITY_NARROWED): Impact.MAJOR,
            ("pkg.d", ChangeKind.DEPRECATED_ADDED): Impact.MINOR,
            ("pkg.g", ChangeKind.FEATURE_GATE_CHANGED): Impact.MAJOR,
            ("pkg.s", ChangeKind.SIGNATURE_CHANGED): Impact.MINOR,
            ("pkg.hidden", ChangeKind.SIGNATURE_CHANGED): Impact.NONE,
        }

    def test_backward_classification(self):
        impacts = {(d.item_path, d.change_kind): d.impact for d in diff(_version_b(), _version_a())}
        assert impacts == {
            ("pkg.old", ChangeKind.ADDED): Impact.MINOR,
            ("pkg.fresh", ChangeKind.REMOVED): Impact.MAJOR,
            ("pkg.n", ChangeKind.VISIBILITY_WIDENED): Impact.MINOR,
            ("pkg.d", ChangeKind.DEPRECATED_REMOVED): Impact.PATCH,
            ("pkg.g", ChangeKind.FEATURE_GATE_CHANGED): Impact.MINOR,
            ("pkg.s", ChangeKind.SIGNATURE_CHANGED): Impact.MAJOR,
            ("pkg.hidden", ChangeKind.SIGNATURE_CHANGED): Impact.NONE,
        }

    def test_deltas_ordered_by_path(self):
        deltas = diff(_version_a(), _version_b())
        paths = [d.item_path for d in deltas]
        assert paths == sorted(paths)


class TestMonotonicity:
    def test_adding_public_items_is_at_most_minor(self):
        base = _version_a()
        kinds = [ItemKind.FUNCTION, ItemKind.TYPE, ItemKind.CONSTANT, ItemKind.MACRO]
        rng = random.Random(3)
        for i in range(20):
            extra = item(f"pkg.extra{i}", rng.choice(kinds))
            grown = Snapshot(
                library=base.library,
                version="1.1.0",
                items=(*base.items, extra),
                features=base.features,
            )
            result = diff_snapshots(base, grown)
            assert Impact.worst(result.item_impacts.values()).weight <= Impact.MINOR.weight

    def test_adding_private_items_has_no_impact(self):
        base = _version_a()
        grown = Snapshot(
            library=base.library,
            version="1.0.1",
            items=(*base.items, private("pkg.internal_helper")),
            features=base.features,
        )
        assert [d.impact for d in diff(base, grown)] == [Impact.NONE]


# ---------------------------------------------------------------------------
# Classifiers
# ---------------------------------------------------------------------------


class TestClassifyAddRemove:
    def test_added(self):
        assert classify_added(True) is Impact.MINOR
        assert classify_added(False) is Impact.NONE

    def test_removed(self):
        assert classify_removed(True) is Impact.MAJOR
        assert classify_removed(False) is Impact.NONE

    def test_removing_a_private_module_subtree(self):
        old = snapshot(module("pkg.internal", visibility="private"), item("pkg.internal.f"))
        new = snapshot()
        assert {d.impact for d in diff(old, new)} == {Impact.NONE}


class TestClassifySignature:
    def _sig(self, *parameters: Parameter, **kwargs) -> Signature:
        return Signature(parameters=parameters, **kwargs)

    def test_unchanged_shape_is_patch(self):
        impact, reasons = classify_signature(
            self._sig(borrow_justification="a"), self._sig(borrow_justification="b")
        )
        assert impact is Impact.PATCH
        assert reasons

    @pytest.mark.parametrize(
        "before, after",
        [
            (
                (Parameter(name="x", type_tag="int"),),
                (Parameter(name="x", type_tag="str"),),
            ),
            (
                (Parameter(name="x", type_tag="int"),),
                (Parameter(name="y", type_tag="int"),),
            ),
            (
                (Parameter(name="x", type_tag="int"),),
                (Parameter(name="x", type_tag="int"), Parameter(name="y", type_tag="int")),
            ),
            (
                (Parameter(name="x", type_tag="int"), Parameter(name="y", type_tag="int")),
                (Parameter(name="x", type_tag="int"),),
            ),
            (
                (Parameter(name="x", type_tag="int", has_default=True),),
                (Parameter(name="x", type_tag="int"),),
            ),
            (
                (Parameter(name="x", type_tag="[u8]"),),
                (Parameter(name="x", type_tag="[u8]", borrowed=True),),
            ),
        ],
        ids=["retyped", "renamed", "required-added", "removed", "default-lost", "borrow"],
    )
    def test_major_parameter_changes(self, before, after):
        impact, _ = classify_signature(self._sig(*before), self._sig(*after))
        assert impact is Impact.MAJOR

    def test_optional_parameter_appended_is_minor(self):
        impact, reasons = classify_signature(
            self._sig(Parameter(name="x", type_tag="int")),
            self._sig(
                Parameter(name="x", type_tag="int"),
                Parameter(name="y", type_tag="int", has_default=True),
            ),
        )
        assert impact is Impact.MINOR
        assert any("'y'" in r for r in reasons)

    def test_gaining_a_default_is_minor(self):
        impact, _ = classify_signature(
            self._sig(Parameter(name="x", type_tag="int")),
            self._sig(Parameter(name="x", type_tag="int", has_default=True)),
        )
        assert impact is Impact.MINOR

    @pytest.mark.parametrize(
        "field, before, after",
        [
            ("returns", "int", "str"),
            ("error", None, "ParseError"),
            ("error", "ParseError", "IoError"),
            ("returns_borrowed", False, True),
        ],
    )
    def test_return_and_error_changes_are_major(self, field, before, after):
        impact, _ = classify_signature(Signature(**{field: before}), Signature(**{field: after}))
        assert impact is Impact.MAJOR

    def test_generic_bounds(self):
        loose = Signature(generics=(GenericParameter(name="T", bounds=("Clone",)),))
        strict = Signature(generics=(GenericParameter(name="T", bounds=("Clone", "Send")),))
        assert classify_signature(loose, strict)[0] is Impact.MAJOR
        assert classify_signature(strict, loose)[0] is Impact.MINOR

    def test_generic_parameter_added(self):
        plain = Signature()
        generic = Signature(generics=(GenericParameter(name="T"),))
        assert classify_signature(plain, generic)[0] is Impact.MAJOR
        assert classify_signature(generic, plain)[0] is Impact.MAJOR

    def test_signature_dropped(self):
        assert classify_signature(Signature(), None)[0] is Impact.MAJOR
        assert classify_signature(None, Signature())[0] is Impact.MAJOR

    def test_kind_change_is_major_both_ways(self):
        as_type = snapshot(item("pkg.Thing", ItemKind.TYPE))
        as_constant = snapshot(item("pkg.Thing", ItemKind.CONSTANT))
        forward = diff(as_type, as_constant)
        backward = diff(as_constant, as_type)
        assert [(d.change_kind, d.impact, d.detail) for d in forward] == [
            (ChangeKind.SIGNATURE_CHANGED, Impact.MAJOR, "kind type -> constant")
        ]
        assert [(d.change_kind, d.impact, d.detail) for d in backward] == [
            (ChangeKind.SIGNATURE_CHANGED, Impact.MAJOR, "kind constant -> type")
        ]

    def test_kind_and_signature_change_share_one_delta(self):
        old = snapshot(item("pkg.make", signature=params(("x", "int"))))
        new = snapshot(item("pkg.make", ItemKind.MACRO, signature=params(("x", "str"))))
        deltas = diff(old, new)
        assert len(deltas) == 1
        assert deltas[0].detail.startswith("kind function -> macro; ")
        assert deltas[0].impact is Impact.MAJOR

    def test_kind_change_of_hidden_item_has_no_impact(self):
        old = snapshot(private("pkg.Thing", ItemKind.TYPE))
        new = snapshot(private("pkg.Thing", ItemKind.CONSTANT))
        assert [d.impact for d in diff(old, new)] == [Impact.NONE]

    def test_classify_kind(self):
        assert classify_kind(ItemKind.TYPE, ItemKind.ALIAS) is Impact.MAJOR
        assert classify_kind(ItemKind.TYPE, ItemKind.TYPE) is Impact.NONE

    def test_worst_reason_wins(self):
        impact, reasons = classify_signature(
            self._sig(Parameter(name="x", type_tag="int")),
            self._sig(
                Parameter(name="x", type_tag="int", has_default=True),
                Parameter(name="y", type_tag="int"),
            ),
        )
        assert impact is Impact.MAJOR
        assert len(reasons) == 2


class TestClassifyGate:
    DEFAULTS = frozenset({"std"})

    def test_gate_introduced(self):
        assert classify_gate(None, "serde", self.DEFAULTS, self.DEFAULTS) is Impact.MAJOR

    def test_gate_dropped(self):
        assert classify_gate("serde", None, self.DEFAULTS, self.DEFAULTS) is Impact.MINOR

    def test_lost_default_availability(self):
        assert classify_gate("std", "serde", self.DEFAULTS, self.DEFAULTS) is Impact.MAJOR

    def test_equivalent_rewrite(self):
        assert classify_gate("serde", "any(serde)", self.DEFAULTS, self.DEFAULTS) is Impact.PATCH

    def test_gate_made_available_by_default(self):
        assert classify_gate("serde", "std || serde", self.DEFAULTS, self.DEFAULTS) is Impact.PATCH

    def test_whitespace_only_change_is_not_a_delta(self):
        old = snapshot(item("pkg.f", feature_gate="serde"), features=FEATURES)
        new = snapshot(item("pkg.f", feature_gate="serde "), features=FEATURES)
        assert diff(old, new) == []


# ---------------------------------------------------------------------------
# Visibility relative to the baseline
# ---------------------------------------------------------------------------


class TestBaselineVisibility:
    def test_changes_behind_a_private_module_are_none(self):
        old = snapshot(
            module("pkg.internal", visibility="private"),
            item("pkg.internal.f", signature=params(("x", "int"))),
        )
        new = snapshot(
            module("pkg.internal", visibility="private"),
            item("pkg.internal.f", signature=params(("x", "str"))),
        )
        deltas = diff(old, new)
        assert [(d.change_kind, d.impact) for d in deltas] == [
            (ChangeKind.SIGNATURE_CHANGED, Impact.NONE)
        ]

    def test_narrowing_a_module_narrows_its_children(self):
        old = snapshot(module("pkg.io"), item("pkg.io.read"))
        new = snapshot(module("pkg.io", visibility="private"), item("pkg.io.read"))
        assert _kinds(diff(old, new)) == {
            ("pkg.io", ChangeKind.VISIBILITY_NARROWED),
            ("pkg.io.read", ChangeKind.VISIBILITY_NARROWED),
        }

    def test_one_path_may_carry_several_deltas(self):
        old = snapshot(item("pkg.f", signature=params(("x", "int"))))
        new = snapshot(
            item(
                "pkg.f",
                signature=params(("x", "str")),
                deprecated=Deprecation(since="2.0", message="use pkg.g"),
            )
        )
        deltas = diff(old, new)
        assert [d.change_kind for d in deltas] == [
            ChangeKind.SIGNATURE_CHANGED,
            ChangeKind.DEPRECATED_ADDED,
        ]
        assert diff_snapshots(old, new).item_impacts == {"pkg.f": Impact.MAJOR}


# ---------------------------------------------------------------------------
# Renames and budgets
# ---------------------------------------------------------------------------


class TestRenames:
    def _pair(self) -> tuple[Snapshot, Snapshot]:
        sig = params(("text", "str"))
        old = snapshot(module("pkg.util"), item("pkg.util.parse", signature=sig))
        new = snapshot(module("pkg.text"), item("pkg.text.parse", signature=sig))
        return old, new

    def test_moved_item_reported_as_unresolved(self):
        old, new = self._pair()
        result = diff_snapshots(old, new)
        assert result.unresolved == [
            UnresolvedPath("pkg.util.parse", "pkg.text.parse", ItemKind.FUNCTION)
        ]
        assert ("pkg.util.parse", ChangeKind.REMOVED) in result.change_kinds
        assert ("pkg.text.parse", ChangeKind.ADDED) in result.change_kinds

    def test_renamed_in_place(self):
        sig = params(("text", "str"))
        old = snapshot(item("pkg.parse", signature=sig))
        new = snapshot(item("pkg.parse_text", signature=sig))
        result = diff_snapshots(old, new)
        assert [(u.old_path, u.new_path) for u in result.unresolved] == [
            ("pkg.parse", "pkg.parse_text")
        ]

    def test_different_shape_is_not_a_rename(self):
        old = snapshot(item("pkg.parse", signature=params(("text", "str"))))
        new = snapshot(item("pkg.parse_text", signature=params(("text", "bytes"))))
        assert diff_snapshots(old, new).unresolved == []

    def test_moving_a_whole_module(self):
        sig = params(("text", "str"))
        count = 300
        old = snapshot(
            module("pkg.util"), *(item(f"pkg.util.f{i}", signature=sig) for i in range(count))
        )
        new = snapshot(
            module("pkg.text"), *(item(f"pkg.text.f{i}", signature=sig) for i in range(count))
        )
        result = diff_snapshots(old, new)
        assert len(result.unresolved) == count
        assert all(
            u.old_path.rpartition(".")[2] == u.new_path.rpartition(".")[2]
            for u in result.unresolved
        )

    def test_same_shape_in_same_module_pairs_up(self):
        sig = params(("text", "str"))
        old = snapshot(module("pkg.a"), module("pkg.b"), item("pkg.a.load", signature=sig))
        new = snapshot(
            module("pkg.a"),
            module("pkg.b"),
            item("pkg.a.read", signature=sig),
            item("pkg.b.fetch", signature=sig),
        )
        result = diff_snapshots(old, new)
        assert [(u.old_path, u.new_path) for u in result.unresolved] == [
            ("pkg.a.load", "pkg.a.read")
        ]

    def test_detection_can_be_disabled(self):
        old, new = self._pair()
        config = ReviewConfig(rules=RuleSettings(detect_renames=False))
        assert diff_snapshots(old, new, config).unresolved == []

    def test_rename_surfaces_in_report(self):
        old, new = self._pair()
        report = review(new, default_registry(), baseline=old)
        assert len(report.unresolved) == 1
        assert any(f.rule_id == "unresolved-path" for f in report.findings)


class TestDiffBudget:
    def test_truncated(self):
        old = snapshot(*(item(f"pkg.f{i}") for i in range(5)))
        new = snapshot()
        config = ReviewConfig(budget=WorkBudget(max_units=2))
        result = diff_snapshots(old, new, config)
        assert result.truncated
        assert len(result.deltas) == 2

    def test_parallel_matches_sequential(self):
        a, b = _version_a(), _version_b()
        sequential = diff_snapshots(a, b, ReviewConfig(workers=1))
        parallel = diff_snapshots(a, b, ReviewConfig(workers=4))
        assert parallel.deltas == sequential.deltas
        assert not parallel.truncated
