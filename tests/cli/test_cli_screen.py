"""Tests for the screen reconcile and screen show commands."""

import json

import pytest
from typer.testing import CliRunner

from screenforge.cli.main import app as cli_app
from screenforge.schema.generator import generate_screen
from screenforge.schemas.screen import dump_snapshot
from screenforge.services.snapshot_store import write_json

runner = CliRunner()


@pytest.fixture
def snapshots(tmp_path, api_document, find_operation):
    """next, overlay (with body:name deleted) and previous for CreateUser."""
    screen = dump_snapshot(generate_screen(find_operation("CreateUser"), api_document))
    overlay = json.loads(json.dumps(screen))
    overlay["fields"] = [f for f in overlay["fields"] if f["name"] != "name"]

    paths = {
        "next": tmp_path / "next.json",
        "overlay": tmp_path / "overlay.json",
        "previous": tmp_path / "previous.json",
    }
    write_json(paths["next"], screen)
    write_json(paths["overlay"], overlay)
    write_json(paths["previous"], screen)
    return paths


def test_reconcile_without_overlay(snapshots):
    result = runner.invoke(cli_app, ["screen", "reconcile", str(snapshots["next"])])

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert "No merge decisions" in result.output


def test_reconcile_renders_decisions(snapshots):
    result = runner.invoke(
        cli_app,
        [
            "screen",
            "reconcile",
            str(snapshots["next"]),
            "--overlay",
            str(snapshots["overlay"]),
            "--previous",
            str(snapshots["previous"]),
        ],
    )

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert "Merge decisions" in result.output
    assert "USER_REMOVED_TOMBSTONE" in result.output
    assert "body:name" in result.output


def test_reconcile_json_output(snapshots):
    result = runner.invoke(
        cli_app,
        [
            "screen",
            "reconcile",
            str(snapshots["next"]),
            "--overlay",
            str(snapshots["overlay"]),
            "--previous",
            str(snapshots["previous"]),
            "--api-version",
            "9.9.9",
            "--json",
        ],
    )

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    merged = json.loads(result.stdout)
    name = next(f for f in merged["fields"] if f["name"] == "name")
    assert name["hidden"] is True
    assert name["meta"]["userRemoved"] is True
    assert merged["meta"]["openapiVersion"] == "9.9.9"


def test_reconcile_write(snapshots, tmp_path):
    target = tmp_path / "out" / "merged.json"
    result = runner.invoke(
        cli_app,
        [
            "screen",
            "reconcile",
            str(snapshots["next"]),
            "--overlay",
            str(snapshots["overlay"]),
            "--write",
            str(target),
        ],
    )

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    data = json.loads(target.read_text(encoding="utf-8"))
    assert data["operation"]["operationId"] == "CreateUser"
    assert data["meta"]["openapiVersion"] == "1.0.0"


def test_reconcile_malformed_overlay_is_absent(snapshots):
    snapshots["overlay"].write_text("{broken", encoding="utf-8")

    result = runner.invoke(
        cli_app,
        ["screen", "reconcile", str(snapshots["next"]), "--overlay", str(snapshots["overlay"])],
    )

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert "Treating" in result.output
    assert "No merge decisions" in result.output


def test_reconcile_missing_next_fails(tmp_path):
    result = runner.invoke(cli_app, ["screen", "reconcile", str(tmp_path / "missing.json")])

    assert result.exit_code == 1
    assert "Cannot read screen snapshot" in result.output


def test_show_lists_fields_with_flags(snapshots, tmp_path):
    merged_path = tmp_path / "merged.json"
    runner.invoke(
        cli_app,
        [
            "screen",
            "reconcile",
            str(snapshots["next"]),
            "--overlay",
            str(snapshots["overlay"]),
            "--previous",
            str(snapshots["previous"]),
            "--write",
            str(merged_path),
        ],
    )

    result = runner.invoke(cli_app, ["screen", "show", str(merged_path)])

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert "Fields" in result.output
    assert "body:email" in result.output
    assert "user-removed" in result.output


def test_show_missing_file_fails(tmp_path):
    result = runner.invoke(cli_app, ["screen", "show", str(tmp_path / "nope.json")])

    assert result.exit_code == 1


def test_reconcile_undecodable_overlay_is_absent(snapshots):
    snapshots["overlay"].write_bytes(b'{"entity": "\xff"}')

    result = runner.invoke(
        cli_app,
        ["screen", "reconcile", str(snapshots["next"]), "--overlay", str(snapshots["overlay"])],
    )

    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert "No merge decisions" in result.output


def test_reconcile_schema_invalid_overlay_fails(snapshots):
    data = json.loads(snapshots["overlay"].read_text(encoding="utf-8"))
    data["fields"][0]["label"] = 42
    snapshots["overlay"].write_text(json.dumps(data), encoding="utf-8")

    result = runner.invoke(
        cli_app,
        ["screen", "reconcile", str(snapshots["next"]), "--overlay", str(snapshots["overlay"])],
    )

    assert result.exit_code == 1
    assert "Invalid screen snapshot" in result.output
