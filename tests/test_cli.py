"""Tests for the Typer CLI."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from api_review.presentation.cli.app import EXIT_BLOCKING, EXIT_INPUT_ERROR, app

runner = CliRunner()


def _fn(path: str, **extra) -> dict:
    return {"path": path, "kind": "function", "has_documented_contract": True, **extra}


def _write_snapshot(tmp_path: Path, name: str, items: list[dict], version: str = "1.0.0") -> Path:
    path = tmp_path / name
    path.write_text(
        json.dumps({"library": "pkg", "version": version, "items": items}), encoding="utf-8"
    )
    return path


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


class TestCheck:
    def test_clean_snapshot_passes(self, tmp_path):
        snap = _write_snapshot(tmp_path, "snap.json", [_fn("pkg.f")])
        result = runner.invoke(app, ["check", str(snap)])
        assert result.exit_code == 0, result.output
        assert "PASS" in result.output

    def test_json_output(self, tmp_path):
        flagged = _fn("pkg.configure", signature={"parameters": [{"name": "verbose", "type_tag": "bool"}]})
        snap = _write_snapshot(tmp_path, "snap.json", [flagged])
        result = runner.invoke(app, ["check", str(snap), "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [f["rule_id"] for f in data["findings"]] == ["boolean-parameter"]
        assert data["has_blocking_findings"] is False

    def test_error_finding_blocks(self, tmp_path):
        snap = _write_snapshot(tmp_path, "snap.json", [_fn("pkg.raw", uses_low_level_escape=True)])
        result = runner.invoke(app, ["check", str(snap)])
        assert result.exit_code == EXIT_BLOCKING
        assert "BLOCKED" in result.output

    def test_suppression_from_config_unblocks(self, tmp_path):
        snap = _write_snapshot(tmp_path, "snap.json", [_fn("pkg.raw", uses_low_level_escape=True)])
        config = tmp_path / "review.json"
        config.write_text(
            json.dumps(
                {"suppressions": [{"rule_id": "escape-hatch-justification", "path": "pkg.raw"}]}
            ),
            encoding="utf-8",
        )
        result = runner.invoke(app, ["check", str(snap), "--config", str(config), "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["findings"] == []
        assert len(data["suppressed"]) == 1

    def test_baseline_narrowing_blocks(self, tmp_path):
        old = _write_snapshot(tmp_path, "old.json", [_fn("pkg.foo")])
        new = _write_snapshot(
            tmp_path, "new.json", [_fn("pkg.foo", visibility="private")], version="1.1.0"
        )
        result = runner.invoke(app, ["check", str(new), "--baseline", str(old), "--json"])
        assert result.exit_code == EXIT_BLOCKING
        data = json.loads(result.output)
        assert data["deltas"] == [
            {
                "item_path": "pkg.foo",
                "change_kind": "visibility_narrowed",
                "impact": "major",
                "detail": "",
            }
        ]

    def test_missing_snapshot(self, tmp_path):
        result = runner.invoke(app, ["check", str(tmp_path / "nope.json")])
        assert result.exit_code == EXIT_INPUT_ERROR

    def test_malformed_snapshot(self, tmp_path):
        snap = _write_snapshot(tmp_path, "snap.json", [_fn("pkg.f"), _fn("pkg.f")])
        result = runner.invoke(app, ["check", str(snap)])
        assert result.exit_code == EXIT_INPUT_ERROR
        assert "Duplicate" in result.output

    def test_invalid_suppression(self, tmp_path):
        snap = _write_snapshot(tmp_path, "snap.json", [_fn("pkg.f")])
        config = tmp_path / "review.json"
        config.write_text(
            json.dumps({"suppressions": [{"rule_id": "no-such-rule", "path": "pkg.f"}]}),
            encoding="utf-8",
        )
        result = runner.invoke(app, ["check", str(snap), "--config", str(config)])
        assert result.exit_code == EXIT_INPUT_ERROR


# ---------------------------------------------------------------------------
# diff
# ---------------------------------------------------------------------------


class TestDiff:
    def test_minor_change(self, tmp_path):
        old = _write_snapshot(tmp_path, "old.json", [_fn("pkg.foo")])
        new = _write_snapshot(tmp_path, "new.json", [_fn("pkg.foo"), _fn("pkg.bar")], "1.1.0")
        result = runner.invoke(app, ["diff", str(old), str(new), "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["impact"] == "minor"
        assert data["deltas"][0]["change_kind"] == "added"

    def test_major_change_exits_blocking(self, tmp_path):
        old = _write_snapshot(tmp_path, "old.json", [_fn("pkg.foo"), _fn("pkg.bar")])
        new = _write_snapshot(tmp_path, "new.json", [_fn("pkg.foo")], "2.0.0")
        result = runner.invoke(app, ["diff", str(old), str(new)])
        assert result.exit_code == EXIT_BLOCKING
        assert "major" in result.output

    def test_missing_input(self, tmp_path):
        old = _write_snapshot(tmp_path, "old.json", [_fn("pkg.foo")])
        result = runner.invoke(app, ["diff", str(old), str(tmp_path / "nope.json")])
        assert result.exit_code == EXIT_INPUT_ERROR


# ---------------------------------------------------------------------------
# rules
# ---------------------------------------------------------------------------


class TestRules:
    def test_lists_rules(self):
        result = runner.invoke(app, ["rules"])
        assert result.exit_code == 0, result.output
        assert "Registered rules" in result.output
