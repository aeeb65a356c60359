from typer.testing import CliRunner

from livyops.cli.cli import app

runner = CliRunner()


def test_batches_without_subcommand_prints_help():
    result = runner.invoke(app, ["batches"])

    assert result.exit_code == 0
    assert "submit" in result.output


def test_missing_url_is_reported(monkeypatch):
    monkeypatch.delenv("LIVYOPS_URL", raising=False)

    result = runner.invoke(app, ["batches", "list"])

    assert result.exit_code == 1


def test_malformed_conf_is_rejected_before_submitting():
    result = runner.invoke(
        app,
        ["batches", "--url", "http://livy:8998", "submit", "wasb:///app.jar", "--conf", "broken"],
    )

    assert result.exit_code == 1


def test_sessions_run_without_code(monkeypatch):
    monkeypatch.setenv("LIVYOPS_URL", "http://livy:8998")

    result = runner.invoke(app, ["sessions", "run", "   "])

    assert result.exit_code == 1
