"""
Main entry point for the autonomous claims agent.

This module provides run_agent, which builds the AWS collaborators from
configuration on first use and runs one orchestrator cycle. The store is
opened fresh for every cycle so that claims, policies and drafts edited
between runs are always seen.
"""

import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .orchestration.orchestrator import RunOrchestrator
from .plugins.document_classifier import DocumentClassifierPlugin
from .storage.json_store import JsonFileStore
from .utils.bedrock_client import BedrockClient
from .utils.config import Config
from .utils.delivery_client import AwsDeliveryClient
from .utils.errors import AutopilotError, ErrorContext, ErrorType
from .utils.logging import setup_logging
from .utils.text_generator import BedrockTextGenerator

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Global instances (initialized on first use)
_config: Optional[Config] = None
_collaborators: Optional[Dict[str, Any]] = None


def _initialize_system(config_path: str = "config.yaml") -> None:
    """
    Initialize configuration, logging and the AWS collaborators.

    Called lazily on the first run_agent invocation so that importing the
    module (for example by the HTTP trigger) has no side effects.
    """
    global _collaborators

    if _collaborators is not None:
        return

    try:
        config = load_config(config_path)
        setup_logging(config.logging.level, config.logging.format, config.logging.file)
        logger.info(f"Configuration loaded: region={config.aws_region}, model={config.bedrock.model_id}")

        bedrock = BedrockClient(
            region=config.aws_region,
            model_id=config.bedrock.model_id,
            timeout=config.bedrock.timeout,
            max_retries=config.bedrock.max_retries,
        )
        _collaborators = {
            "text_generator": BedrockTextGenerator(
                bedrock,
                company_name=config.agent.company_name,
                temperature=config.bedrock.temperature,
                max_tokens=config.bedrock.max_tokens,
            ),
            "classifier": DocumentClassifierPlugin(bedrock),
            "delivery": AwsDeliveryClient(
                region=config.aws_region,
                sender_email=config.delivery.sender_email,
                sms_sender_id=config.delivery.sms_sender_id,
                timeout=config.delivery.timeout,
                max_retries=config.delivery.max_retries,
            ),
        }
        logger.info("System initialization complete")

    except Exception as e:
        logger.error(f"System initialization failed: {str(e)}", exc_info=True)
        raise AutopilotError(
            ErrorContext(
                error_type=ErrorType.INITIALIZATION_FAILED,
                message=f"Failed to initialize claims autopilot: {str(e)}",
                recoverable=False,
                original_exception=e
            )
        )


def _build_orchestrator() -> RunOrchestrator:
    """Open the state snapshot and wire a new orchestrator for one cycle."""
    config = load_config()
    try:
        store = JsonFileStore(config.storage.state_path)
    except IOError as e:
        raise AutopilotError(
            ErrorContext(
                error_type=ErrorType.INITIALIZATION_FAILED,
                message=f"Failed to open automation state: {str(e)}",
                recoverable=True,
                original_exception=e
            )
        )
    return RunOrchestrator(store=store, config=config.agent, **_collaborators)


def load_config(config_path: str = "config.yaml") -> Config:
    """Load and cache the configuration without building any collaborators."""
    global _config
    if _config is None:
        _config = Config.load(config_path)
    return _config


def run_agent() -> Dict[str, Any]:
    """
    Run one autonomous agent cycle.

    Returns:
        JSON-ready summary with keys processed, tasksCompleted, emailsSent,
        escalations, queuedForReview, documentsProcessed, documentsFailed,
        budgetExhausted, skippedCapabilities and errors

    Raises:
        AutopilotError: If the system or the automation state cannot be loaded
    """
    _initialize_system()
    logger.info("Autonomous agent starting...")
    summary = _build_orchestrator().run()
    return summary.to_dict()


def reset_system() -> None:
    """Drop the cached instances so the next call re-reads configuration."""
    global _config, _collaborators
    _config = None
    _collaborators = None
