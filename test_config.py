"""Tests for configuration loading and environment overrides."""

from pathlib import Path

import pytest

from claims_autopilot.utils.config import Config
from claims_autopilot.utils.logging import DEFAULT_FORMAT

ENV_VARS = (
    "AWS_REGION",
    "BEDROCK_MODEL_ID",
    "SES_SENDER_EMAIL",
    "CRON_SECRET",
    "AUTOPILOT_MAX_WORKERS",
    "AUTOPILOT_STATE_PATH",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_from_empty_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")

    config = Config.load(str(path))

    assert config.aws_region == "us-east-1"
    assert config.agent.stalled_claim_days == 7
    assert config.agent.idle_claim_days == 14
    assert config.agent.idle_nudge_window_days == 7
    assert config.agent.deadline_horizon_days == 3
    assert config.agent.document_batch_size == 10
    assert config.trigger.cron_secret is None
    assert config.trigger.header_name == "X-Cron-Secret"
    assert config.logging.format == DEFAULT_FORMAT


def test_file_values_and_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text(
        "aws:\n"
        "  region: eu-west-1\n"
        "  bedrock:\n"
        "    model_id: file-model\n"
        "agent:\n"
        "  max_workers: 8\n"
        "  stalled_escalation_window_days: 14\n"
        "trigger:\n"
        "  cron_secret: from-file\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("BEDROCK_MODEL_ID", "env-model")
    monkeypatch.setenv("CRON_SECRET", "from-env")
    monkeypatch.setenv("AUTOPILOT_MAX_WORKERS", "2")

    config = Config.load(str(path))

    assert config.aws_region == "eu-west-1"
    assert config.bedrock.model_id == "env-model"
    assert config.trigger.cron_secret == "from-env"
    assert config.agent.max_workers == 2
    assert config.agent.stalled_escalation_window_days == 14


def test_blank_secret_is_unset():
    config = Config.from_dict({"trigger": {"cron_secret": ""}})
    assert config.trigger.cron_secret is None


def test_unknown_agent_setting_is_rejected():
    with pytest.raises(TypeError):
        Config.from_dict({"agent": {"not_a_setting": 1}})


def test_repository_config_loads():
    config = Config.load(str(Path(__file__).parent / "config.yaml"))
    assert config.storage.state_path == "data/autopilot_state.json"
