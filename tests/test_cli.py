"""Tests for the command-line interface."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from webmail import cli as cli_module
from webmail.cli import cli
from webmail.config_schema import LoggingConfig

BATCH = [
    {
        "id": "1",
        "from": "jane@personal.com",
        "fromDisplayName": "Jane",
        "to": ["me@x.com"],
        "subject": "Can we meet Friday?",
        "body": "Let me know your availability.",
        "date": "2024-03-01T09:00:00Z",
        "messageId": "<q@p>",
    },
    {
        "id": "2",
        "from": "me@x.com",
        "to": ["jane@personal.com"],
        "subject": "Re: Can we meet Friday?",
        "body": "Friday works.",
        "date": "2024-03-01T10:00:00Z",
        "read": True,
        "inReplyTo": "<q@p>",
    },
    {
        "id": "3",
        "from": "news@brand.com",
        "to": ["me@x.com"],
        "subject": "Spring sale",
        "body": "Big savings",
        "date": "2024-02-28T12:00:00Z",
    },
]


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def batch_file(tmp_path: Path) -> Path:
    path = tmp_path / "batch.json"
    path.write_text(json.dumps({"success": True, "emails": BATCH, "count": len(BATCH)}))
    return path


@pytest.fixture
def mock_configure_logging(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    mock = MagicMock()
    monkeypatch.setattr(cli_module, "configure_logging", mock)
    return mock


class TestLoggingSetup:
    """Tests for logging configured by the command group."""

    def test_uses_config_logging_section(
        self, runner: CliRunner, set_config_env: None, mock_configure_logging: MagicMock
    ) -> None:
        result = runner.invoke(cli, ["classify", "--sender", "a@x.com"])

        assert result.exit_code == 0, result.output
        settings = mock_configure_logging.call_args.args[0]
        assert settings == LoggingConfig(level="DEBUG", json_output=False)
        assert mock_configure_logging.call_args.kwargs["debug"] is False

    def test_debug_flag_overrides_level(
        self, runner: CliRunner, set_config_env: None, mock_configure_logging: MagicMock
    ) -> None:
        result = runner.invoke(cli, ["--debug", "classify", "--sender", "a@x.com"])

        assert result.exit_code == 0, result.output
        assert mock_configure_logging.call_args.kwargs["debug"] is True

    def test_broken_config_falls_back_to_defaults(
        self,
        runner: CliRunner,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        mock_configure_logging: MagicMock,
    ) -> None:
        broken = tmp_path / "config.yaml"
        broken.write_text("fetch:\n  limit: 0\n")
        monkeypatch.setenv("WEBMAIL_CONFIG_PATH", str(broken))

        result = runner.invoke(cli, ["classify", "--sender", "a@x.com"])

        assert result.exit_code == 1
        assert "Config error" in result.output
        assert mock_configure_logging.call_args.args[0] == LoggingConfig()


class TestValidateConfig:
    """Tests for validate-config."""

    def test_valid_config(self, runner: CliRunner, config_file: Path) -> None:
        result = runner.invoke(cli, ["validate-config", "-c", str(config_file)])

        assert result.exit_code == 0
        assert "Configuration valid" in result.output

    def test_missing_config(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["validate-config", "-c", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1
        assert "Load error" in result.output


class TestThreads:
    """Tests for the threads command."""

    def test_json_output(self, runner: CliRunner, batch_file: Path) -> None:
        result = runner.invoke(cli, ["threads", str(batch_file), "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert [t["messageIds"] for t in payload["needsResponse"]] == [["1", "2"]]
        assert [t["messageIds"] for t in payload["newsletters"]] == [["3"]]
        thread = payload["needsResponse"][0]
        assert thread["subject"] == "can we meet friday?"
        assert thread["latestSender"] == "me@x.com"
        assert thread["hasUnread"] is True
        assert thread["messageCount"] == 2

    def test_limit_takes_most_recent_records(self, runner: CliRunner, batch_file: Path) -> None:
        result = runner.invoke(cli, ["threads", str(batch_file), "--json", "--limit", "1"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert [t["messageIds"] for t in payload["needsResponse"]] == []
        assert [t["messageIds"] for t in payload["newsletters"]] == [["3"]]

    @pytest.mark.parametrize("limit", ["0", "-2"])
    def test_rejects_non_positive_limit(
        self, runner: CliRunner, batch_file: Path, limit: str
    ) -> None:
        result = runner.invoke(cli, ["threads", str(batch_file), "--json", "--limit", limit])

        assert result.exit_code == 2
        assert "--limit" in result.output

    def test_limit_larger_than_batch_uses_all_records(
        self, runner: CliRunner, batch_file: Path
    ) -> None:
        result = runner.invoke(cli, ["threads", str(batch_file), "--json", "--limit", "50"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert sum(len(t["messageIds"]) for t in payload["needsResponse"]) == 2
        assert sum(len(t["messageIds"]) for t in payload["newsletters"]) == 1

    def test_table_output(self, runner: CliRunner, batch_file: Path) -> None:
        result = runner.invoke(cli, ["threads", str(batch_file)])

        assert result.exit_code == 0, result.output
        assert "2 threads" in result.output
        assert "Needs Response (1)" in result.output
        assert "Newsletters & Updates (1)" in result.output

    def test_accepts_bare_yaml_list(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "batch.yaml"
        path.write_text("- id: 1\n  from: a@x.com\n  subject: Hi\n")

        result = runner.invoke(cli, ["threads", str(path), "--json"])

        assert result.exit_code == 0, result.output
        assert len(json.loads(result.stdout)["needsResponse"]) == 1

    def test_rejects_scalar_batch(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "batch.json"
        path.write_text("42")

        result = runner.invoke(cli, ["threads", str(path)])

        assert result.exit_code == 1
        assert "must be a list" in result.output


class TestClassify:
    """Tests for the classify command."""

    def test_automated(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["classify", "--sender", "noreply@example.com", "--subject", "Hello"]
        )

        assert result.exit_code == 0
        assert "automated" in result.output
        assert "automated_sender" in result.output

    def test_human(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli,
            ["classify", "--sender", "jane@personal.com", "--subject", "Can we meet Friday?"],
        )

        assert result.exit_code == 0
        assert "human" in result.output
        assert "no rule matched" in result.output
