"""Tests for the command-line entry point."""

import json
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import yaml

from sheet_notifier.config.environment import EnvironmentConfig
from sheet_notifier.config.exceptions import ConfigurationError
from sheet_notifier.config.models import AppConfig
from sheet_notifier.main import build_parser, load_runtime_config, main, run_preview
from sheet_notifier.matching.models import RowData
from sheet_notifier.pipeline import PipelineRunResult
from sheet_notifier.utils.dates import utc_now
from tests.helpers.constants import SLACK_WEBHOOK

CONFIG = {
    "spreadsheet": {"id": "sheet-key"},
    "logging": {"level": "WARNING"},
    "rules": [
        {
            "name": "deadline",
            "kind": "date_threshold",
            "channel": {"type": "SLACK", "webhook_url": SLACK_WEBHOOK},
            "mentions": {"slack": {"user_ids": ["U1"]}},
        }
    ],
}


@pytest.fixture
def app_config():
    return AppConfig.model_validate(CONFIG)


@pytest.fixture
def env_config():
    return EnvironmentConfig(log_level="INFO")


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(CONFIG), encoding="utf-8")
    return path


def make_result(had_errors=False):
    now = utc_now()
    return PipelineRunResult(run_started_at=now, run_finished_at=now, had_errors=had_errors)


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.config is None
        assert args.from_env is False
        assert args.manual_run is False
        assert args.preview is False
        assert args.rules is None

    def test_repeatable_rule(self):
        args = build_parser().parse_args(["--rule", "a", "--rule", "b", "--config", "c.yaml"])

        assert args.rules == ["a", "b"]
        assert args.config == Path("c.yaml")

    def test_config_and_from_env_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--config", "c.yaml", "--from-env"])


class TestLoadRuntimeConfig:
    def test_config_level_used_when_env_unset(self, config_file, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("SMTP_HOST", raising=False)
        monkeypatch.delenv("ERROR_NOTIFY_EMAIL", raising=False)

        _, env_config = load_runtime_config(config_file, False, None)

        assert env_config.log_level == "WARNING"

    def test_environment_beats_config(self, config_file, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.delenv("SMTP_HOST", raising=False)
        monkeypatch.delenv("ERROR_NOTIFY_EMAIL", raising=False)

        _, env_config = load_runtime_config(config_file, False, None)

        assert env_config.log_level == "ERROR"

    def test_cli_beats_everything(self, config_file, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.delenv("SMTP_HOST", raising=False)
        monkeypatch.delenv("ERROR_NOTIFY_EMAIL", raising=False)

        _, env_config = load_runtime_config(config_file, False, "DEBUG")

        assert env_config.log_level == "DEBUG"

    @patch("sheet_notifier.main.load_config_from_properties")
    def test_from_env(self, mock_from_properties, app_config, env_config):
        mock_from_properties.return_value = (app_config, env_config)

        assert load_runtime_config(None, True, None) == (app_config, env_config)
        mock_from_properties.assert_called_once_with()


def test_run_preview_prints_rows(app_config, capsys):
    runner = Mock()
    runner.select_rules.return_value = app_config.rules
    runner.preview_rule.return_value = [RowData(row_number=2, date="2024/03/02", columns={"D": "Alice"})]

    assert run_preview(runner, None) == 0

    output = json.loads(capsys.readouterr().out)
    assert output == {
        "deadline": [{"row_number": 2, "date": "2024/03/02", "columns": {"D": "Alice"}, "row_url": ""}]
    }


class TestMain:
    @patch("sheet_notifier.main.build_runner")
    @patch("sheet_notifier.main.configure_logging")
    @patch("sheet_notifier.main.load_runtime_config")
    def test_manual_run_success(self, mock_load, mock_configure_logging, mock_build_runner, app_config, env_config):
        mock_load.return_value = (app_config, env_config)
        runner = Mock()
        runner.run_all.return_value = make_result()
        mock_build_runner.return_value = runner

        exit_code = main(["--manual-run", "--rule", "deadline"])

        assert exit_code == 0
        mock_configure_logging.assert_called_once()
        runner.run_all.assert_called_once_with(["deadline"])

    @patch("sheet_notifier.main.build_runner")
    @patch("sheet_notifier.main.configure_logging")
    @patch("sheet_notifier.main.load_runtime_config")
    def test_manual_run_with_errors(self, mock_load, mock_configure_logging, mock_build_runner, app_config, env_config):
        mock_load.return_value = (app_config, env_config)
        runner = Mock()
        runner.run_all.return_value = make_result(had_errors=True)
        mock_build_runner.return_value = runner

        assert main(["--manual-run"]) == 1

    @patch("sheet_notifier.main.build_runner")
    @patch("sheet_notifier.main.configure_logging")
    @patch("sheet_notifier.main.load_runtime_config")
    def test_preview_mode(self, mock_load, mock_configure_logging, mock_build_runner, app_config, env_config, capsys):
        mock_load.return_value = (app_config, env_config)
        runner = Mock()
        runner.select_rules.return_value = app_config.rules
        runner.preview_rule.return_value = []
        mock_build_runner.return_value = runner

        assert main(["--preview"]) == 0
        runner.run_all.assert_not_called()
        assert json.loads(capsys.readouterr().out) == {"deadline": []}

    @patch("sheet_notifier.main.SchedulerService")
    @patch("sheet_notifier.main.build_runner")
    @patch("sheet_notifier.main.configure_logging")
    @patch("sheet_notifier.main.load_runtime_config")
    @patch("signal.signal")
    def test_daemon_mode(
        self, mock_signal, mock_load, mock_configure_logging, mock_build_runner, mock_scheduler_service,
        app_config, env_config,
    ):
        mock_load.return_value = (app_config, env_config)
        mock_build_runner.return_value = Mock()
        scheduler_instance = Mock()
        mock_scheduler_service.return_value = scheduler_instance

        # Leave the wait loop right away
        def start():
            mock_scheduler_service.call_args[1]["shutdown_event"].set()

        scheduler_instance.start.side_effect = start

        exit_code = main([])

        assert exit_code == 0
        scheduler_instance.start.assert_called_once()
        assert mock_scheduler_service.call_args[1]["schedule"] == app_config.schedule
        assert mock_signal.call_count == 2

    @patch("sheet_notifier.main.SchedulerService")
    @patch("sheet_notifier.main.build_runner")
    @patch("sheet_notifier.main.configure_logging")
    @patch("sheet_notifier.main.load_runtime_config")
    def test_daemon_rejects_unknown_rule(
        self, mock_load, mock_configure_logging, mock_build_runner, mock_scheduler_service, app_config, env_config
    ):
        mock_load.return_value = (app_config, env_config)
        runner = Mock()
        runner.select_rules.side_effect = ConfigurationError("Unknown rule: nope")
        mock_build_runner.return_value = runner

        assert main(["--rule", "nope"]) == 1
        mock_scheduler_service.assert_not_called()

    @patch("sheet_notifier.main.load_runtime_config")
    def test_configuration_error(self, mock_load, capsys):
        mock_load.side_effect = ConfigurationError("Config file not found", suggestions=["Create it"])

        assert main(["--config", "nonexistent.yaml"]) == 1
        assert "Configuration Error: Config file not found" in capsys.readouterr().err

    @patch("sheet_notifier.main.build_runner")
    @patch("sheet_notifier.main.configure_logging")
    @patch("sheet_notifier.main.load_runtime_config")
    def test_unexpected_error(self, mock_load, mock_configure_logging, mock_build_runner, app_config, env_config, capsys):
        mock_load.return_value = (app_config, env_config)
        mock_build_runner.side_effect = RuntimeError("credentials missing")

        assert main(["--manual-run"]) == 1
        assert "Fatal error: credentials missing" in capsys.readouterr().err

    @patch("sheet_notifier.main.load_runtime_config")
    def test_keyboard_interrupt(self, mock_load):
        mock_load.side_effect = KeyboardInterrupt()

        assert main(["--manual-run"]) == 0

    def test_check_config(self, config_file, capsys):
        assert main(["--check-config", "--config", str(config_file)]) == 0
        assert "is valid" in capsys.readouterr().out

    def test_check_config_searches_default_locations(self, tmp_path, monkeypatch, capsys):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "config.yaml").write_text(yaml.safe_dump(CONFIG), encoding="utf-8")
        monkeypatch.chdir(tmp_path)

        assert main(["--check-config"]) == 0
        assert "config/config.yaml is valid" in capsys.readouterr().out

    def test_check_config_invalid(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("spreadsheet: {}\n", encoding="utf-8")

        assert main(["--check-config", "--config", str(path)]) == 1
