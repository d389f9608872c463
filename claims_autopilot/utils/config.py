"""Configuration management for the claims autopilot."""

import os
import yaml
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .logging import DEFAULT_FORMAT


@dataclass
class BedrockConfig:
    """AWS Bedrock configuration for the text-generation and classification collaborators."""
    model_id: str
    timeout: int
    max_retries: int
    temperature: float = 0.3
    max_tokens: int = 1024


@dataclass
class DeliveryConfig:
    """Email (SES) and SMS (SNS) delivery configuration."""
    sender_email: str
    sms_sender_id: str = ""
    timeout: int = 30
    max_retries: int = 2


@dataclass
class AgentConfig:
    """Schedule windows, thresholds and limits for the autonomous agent."""
    stalled_claim_days: int = 7
    stalled_escalation_window_days: int = 7
    deadline_horizon_days: int = 3
    idle_claim_days: int = 14
    idle_nudge_window_days: int = 7
    default_follow_up_interval_days: int = 7
    default_daily_action_limit: int = 10
    document_batch_size: int = 10
    max_workers: int = 4
    company_name: str = "Claims Team"


@dataclass
class StorageConfig:
    """Storage paths configuration."""
    state_path: str


@dataclass
class TriggerConfig:
    """Shared-secret configuration for the run trigger."""
    cron_secret: Optional[str] = None
    header_name: str = "X-Cron-Secret"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str
    format: str
    file: Optional[str] = None


@dataclass
class Config:
    """Main configuration class."""
    aws_region: str
    bedrock: BedrockConfig
    delivery: DeliveryConfig
    agent: AgentConfig
    storage: StorageConfig
    trigger: TriggerConfig
    logging: LoggingConfig

    @classmethod
    def load(cls, config_path: str = "config.yaml") -> "Config":
        """
        Load configuration from file and environment variables.

        Environment variables override config file values:
        - AWS_REGION
        - BEDROCK_MODEL_ID
        - SES_SENDER_EMAIL
        - CRON_SECRET
        - AUTOPILOT_MAX_WORKERS
        - AUTOPILOT_STATE_PATH
        - LOG_LEVEL

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings
        """
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any]) -> "Config":
        """Build a Config from an already-parsed mapping, applying environment overrides."""
        aws = config_data.get("aws", {}) or {}
        aws_region = os.getenv("AWS_REGION", aws.get("region", "us-east-1"))

        bedrock_data = aws.get("bedrock", {}) or {}
        bedrock_config = BedrockConfig(
            model_id=os.getenv("BEDROCK_MODEL_ID", bedrock_data.get("model_id", "amazon.nova-pro-v1:0")),
            timeout=int(bedrock_data.get("timeout", 60)),
            max_retries=int(bedrock_data.get("max_retries", 2)),
            temperature=float(bedrock_data.get("temperature", 0.3)),
            max_tokens=int(bedrock_data.get("max_tokens", 1024)),
        )

        delivery_data = config_data.get("delivery", {}) or {}
        delivery_config = DeliveryConfig(
            sender_email=os.getenv("SES_SENDER_EMAIL", delivery_data.get("sender_email", "")),
            sms_sender_id=delivery_data.get("sms_sender_id", ""),
            timeout=int(delivery_data.get("timeout", 30)),
            max_retries=int(delivery_data.get("max_retries", 2)),
        )

        agent_data = dict(config_data.get("agent", {}) or {})
        if os.getenv("AUTOPILOT_MAX_WORKERS"):
            agent_data["max_workers"] = int(os.environ["AUTOPILOT_MAX_WORKERS"])
        agent_config = AgentConfig(**agent_data)

        storage_data = config_data.get("storage", {}) or {}
        storage_config = StorageConfig(
            state_path=os.getenv("AUTOPILOT_STATE_PATH", storage_data.get("state_path", "data/autopilot_state.json"))
        )

        trigger_data = config_data.get("trigger", {}) or {}
        trigger_config = TriggerConfig(
            cron_secret=os.getenv("CRON_SECRET") or trigger_data.get("cron_secret") or None,
            header_name=trigger_data.get("header_name", "X-Cron-Secret"),
        )

        logging_data = config_data.get("logging", {}) or {}
        logging_config = LoggingConfig(
            level=os.getenv("LOG_LEVEL", logging_data.get("level", "INFO")),
            format=logging_data.get("format") or DEFAULT_FORMAT,
            file=logging_data.get("file") or None,
        )

        return cls(
            aws_region=aws_region,
            bedrock=bedrock_config,
            delivery=delivery_config,
            agent=agent_config,
            storage=storage_config,
            trigger=trigger_config,
            logging=logging_config,
        )
