"""Tests for the command line interface."""

import json

import pytest
from typer.testing import CliRunner

from autoshorts_cli import __version__
from autoshorts_cli.main import app


runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AUTOSHORTS_SETTINGS_FILE", str(tmp_path / "settings.json"))
    monkeypatch.setenv("AUTOSHORTS_JOBS_DIR", str(tmp_path / "jobs"))
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    return tmp_path


def _create(source="game.mp4"):
    result = runner.invoke(app, ["create", source, "--no-run"])
    assert result.exit_code == 0, result.output
    jobs = json.loads(runner.invoke(app, ["jobs", "--json"]).output)
    return jobs[0]["id"]


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_plano_init_and_validate():
    result = runner.invoke(app, ["plano", "init", "plano.json"])
    assert result.exit_code == 0

    result = runner.invoke(app, ["plano", "validate", "plano.json"])
    assert result.exit_code == 0
    assert "3 layer(s)" in result.output

    result = runner.invoke(app, ["plano", "init", "plano.json"])
    assert result.exit_code == 1


def test_plano_validate_reports_errors(isolated_home):
    (isolated_home / "bad.json").write_text('[{"type": "image", "path": "a.png"}]', encoding="utf-8")
    result = runner.invoke(app, ["plano", "validate", "bad.json"])
    assert result.exit_code == 1
    assert "UnsupportedTemplate" in result.output


def test_plano_preview_without_source():
    runner.invoke(app, ["plano", "init", "plano.json"])
    result = runner.invoke(app, ["plano", "preview", "plano.json", "--size", "1280x720"])
    assert result.exit_code == 0
    assert "shader" in result.output


def test_config_set_and_get():
    result = runner.invoke(app, ["config", "chunk_minutes", "20"])
    assert result.exit_code == 0

    result = runner.invoke(app, ["config", "chunk_minutes"])
    assert result.output.strip() == "20.0"


def test_config_rejects_unknown_key():
    result = runner.invoke(app, ["config", "whisper_model", "base"])
    assert result.exit_code == 1


def test_config_masks_keys():
    result = runner.invoke(app, ["config", "gemini_api_keys"])
    assert "test-key" not in result.output
    assert "1 key" in result.output


def test_jobs_empty():
    result = runner.invoke(app, ["jobs"])
    assert result.exit_code == 0
    assert "No jobs yet" in result.output


def test_create_status_and_cancel():
    job_id = _create()

    result = runner.invoke(app, ["status", job_id[:8], "--json"])
    assert result.exit_code == 0
    assert json.loads(result.output)["phase"] == "created"

    result = runner.invoke(app, ["cancel", job_id[:8]])
    assert result.exit_code == 0

    result = runner.invoke(app, ["status", job_id, "--json"])
    assert json.loads(result.output)["error"] == "cancelled"


def test_confirm_outside_review_fails():
    job_id = _create()
    result = runner.invoke(app, ["confirm", job_id, "--no-run"])
    assert result.exit_code == 1
    assert "InvalidTransition" in result.output


def test_moments_empty():
    job_id = _create()
    result = runner.invoke(app, ["moments", job_id])
    assert result.exit_code == 0
    assert "No moments found" in result.output


def test_unknown_job():
    result = runner.invoke(app, ["status", "does-not-exist"])
    assert result.exit_code == 1
    assert "JobNotFound" in result.output


def test_retry_rejects_unknown_phase():
    job_id = _create()
    result = runner.invoke(app, ["retry", job_id, "--from", "sleeping"])
    assert result.exit_code == 1
