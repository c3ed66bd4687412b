"""Tests for the export command."""

import logging
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from src.ssoinventory.cli import app
from src.ssoinventory.inventory.errors import DirectoryError, ErrorKind
from src.ssoinventory.utils.config import Config
from tests.fixtures.directory import access_denied, small_directory  # noqa: F401

runner = CliRunner()

HEADER = "Account Number,Account Name,Username,Permission Set,Group"

ENV_VARS = [
    "SSOINVENTORY_CONCURRENCY",
    "SSOINVENTORY_MAX_RETRIES",
    "SSOINVENTORY_INITIAL_DELAY_MS",
    "SSOINVENTORY_OUTPUT_FILE",
    "SSOINVENTORY_CONTINUE_ON_ERROR",
    "SSOINVENTORY_PROGRESS",
    "SSOINVENTORY_LOG_FILE",
]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the command at an empty config file, a clean environment and untouched logging."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    package_logger = logging.getLogger("ssoinventory")
    handlers, level, propagate = (
        list(package_logger.handlers),
        package_logger.level,
        package_logger.propagate,
    )
    config_path = tmp_path / "config.yaml"
    with patch(
        "src.ssoinventory.commands.export.Config", side_effect=lambda: Config(config_path)
    ):
        yield config_path
    for handler in package_logger.handlers:
        if handler not in handlers:
            handler.close()
    package_logger.handlers = handlers
    package_logger.setLevel(level)
    package_logger.propagate = propagate


@pytest.fixture
def aws_directory(small_directory):  # noqa: F811
    with patch(
        "src.ssoinventory.commands.export.get_aws_client_manager", return_value=MagicMock()
    ) as manager, patch(
        "src.ssoinventory.commands.export.DirectoryClient.from_client_manager",
        return_value=small_directory,
    ):
        yield manager, small_directory


def export(*args):
    return runner.invoke(app, ["export", "--no-progress", *args])


def test_export_writes_csv(aws_directory, tmp_path):
    output = tmp_path / "report.csv"

    result = export("-o", str(output))

    assert result.exit_code == 0, result.output
    lines = output.read_text(encoding="utf-8").splitlines()
    assert lines[0] == HEADER
    assert lines[1] == "111111111111,prod,alice,AdministratorAccess,"
    assert len(lines) == 7
    assert "Exported 6 assignments" in result.output


def test_cli_options_reach_client_manager(aws_directory, tmp_path):
    manager, _ = aws_directory

    result = export("-o", str(tmp_path / "r.csv"), "--profile", "audit", "-c", "3")

    assert result.exit_code == 0, result.output
    kwargs = manager.call_args.kwargs
    assert kwargs["profile"] == "audit"
    assert kwargs["max_pool_connections"] == 3


def test_config_file_supplies_output(aws_directory, isolated_config, tmp_path):
    output = tmp_path / "from-config.csv"
    isolated_config.write_text(f"inventory:\n  output_file: {output}\n", encoding="utf-8")

    result = export()

    assert result.exit_code == 0, result.output
    assert output.exists()


def test_fail_fast_exits_without_report(aws_directory, tmp_path):
    _, directory = aws_directory
    directory.fail(
        "ListAccountAssignments", "222222222222", access_denied("ListAccountAssignments")
    )
    output = tmp_path / "report.csv"

    result = export("-o", str(output))

    assert result.exit_code == 1
    assert "Failed to process" in result.output
    assert not output.exists()


def test_continue_on_error_writes_partial_report(aws_directory, tmp_path):
    _, directory = aws_directory
    # Both pairs of account 222 fail
    directory.fail(
        "ListAccountAssignments",
        "222222222222",
        access_denied("ListAccountAssignments"),
        access_denied("ListAccountAssignments"),
    )
    output = tmp_path / "report.csv"

    result = export("-o", str(output), "--continue-on-error")

    assert result.exit_code == 1
    lines = output.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 4
    assert all(line.startswith("111111111111") for line in lines[1:])
    assert "Failed (2)" in result.output


def test_network_error_is_reported(aws_directory, tmp_path):
    _, directory = aws_directory
    directory.fail(
        "ListAccounts",
        "",
        DirectoryError(ErrorKind.OTHER, "ListAccounts", "EndpointConnectionError", "no route"),
    )

    result = export("-o", str(tmp_path / "r.csv"))

    assert result.exit_code == 1
    assert not isinstance(result.exception, DirectoryError)
    assert "AWS Error in ListAccounts (EndpointConnectionError)" in result.output


def test_file_logging_from_config(aws_directory, isolated_config, tmp_path):
    log_dir = tmp_path / "logs"
    isolated_config.write_text(
        f"logging:\n  file_logging: true\n  log_directory: {log_dir}\n", encoding="utf-8"
    )

    result = export("-o", str(tmp_path / "r.csv"))

    assert result.exit_code == 0, result.output
    assert (log_dir / "ssoinventory.log").exists()


def test_invalid_settings_exit_before_aws(aws_directory, tmp_path):
    manager, _ = aws_directory

    result = export("-o", str(tmp_path / "r.csv"), "--concurrency", "0")

    assert result.exit_code == 1
    assert "concurrency" in result.output
    manager.assert_not_called()


def test_unwritable_output_exits(aws_directory, tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")

    result = export("-o", str(blocker / "report.csv"))

    assert result.exit_code == 1
    assert "Cannot write report" in result.output


def test_export_help():
    result = runner.invoke(app, ["export", "--help"], env={"COLUMNS": "200"})

    assert result.exit_code == 0
    assert "--continue-on-error" in result.output
    assert "--concurrency" in result.output


def test_version_command():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "ssoinventory version:" in result.output
