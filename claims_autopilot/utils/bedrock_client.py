"""AWS Bedrock client wrapper with retry logic and error handling."""

import logging
import os
import time
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError
from dotenv import load_dotenv

from .errors import ConfigurationError, ErrorContext, ErrorType, TextGenerationError

# Ensure environment variables are loaded
load_dotenv()

logger = logging.getLogger(__name__)

CREDENTIAL_ERROR_CODES = {
    "UnrecognizedClientException",
    "InvalidClientTokenId",
    "MissingAuthenticationToken",
    "AccessDeniedException",
}


class BedrockClient:
    """
    Wrapper for the AWS Bedrock Runtime Converse API.

    Each call has a connect/read timeout and at most max_retries attempts,
    with exponential backoff between attempts on throttling and 5xx codes.
    Failures surface as TextGenerationError; missing credentials surface as
    ConfigurationError.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        model_id: str = "amazon.nova-pro-v1:0",
        timeout: int = 60,
        max_retries: int = 2,
        runtime: Optional[Any] = None,
        sleep=time.sleep
    ):
        """
        Initialize Bedrock client.

        Args:
            region: AWS region for Bedrock service
            model_id: Model ID used for Converse calls
            timeout: Connect and read timeout in seconds
            max_retries: Maximum number of attempts per call
            runtime: Pre-built bedrock-runtime client (tests)
            sleep: Backoff sleep function (tests)
        """
        self.region = region
        self.model_id = model_id
        self.max_retries = max(1, max_retries)
        self._sleep = sleep

        if runtime is not None:
            self.runtime = runtime
        else:
            config_kwargs: Dict[str, Any] = {
                "region_name": region,
                "connect_timeout": timeout,
                "read_timeout": timeout,
                "retries": {"max_attempts": 0},  # We handle retries manually
            }
            # Bedrock API keys are honoured by botocore through this variable
            if os.getenv("AWS_BEARER_TOKEN_BEDROCK"):
                config_kwargs["signature_version"] = "bearer"
                logger.info("BedrockClient configured to use Amazon Bedrock API key authentication")

            self.runtime = boto3.client("bedrock-runtime", config=Config(**config_kwargs))

        logger.info(
            f"Initialized BedrockClient: region={region}, "
            f"model={model_id}, max_retries={self.max_retries}"
        )

    def converse(
        self,
        messages: List[Dict[str, Any]],
        temperature: float = 0.3,
        max_tokens: int = 1024,
        system_prompts: Optional[List[Dict[str, Any]]] = None,
        operation: str = "converse"
    ) -> Dict[str, Any]:
        """
        Invoke the model via the Converse API with retry logic.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            system_prompts: Optional system prompts
            operation: Name used in logs and errors

        Returns:
            Dict containing 'text', 'content', 'stop_reason' and 'usage'

        Raises:
            TextGenerationError: If all attempts fail
            ConfigurationError: If AWS credentials are missing or rejected
        """
        params: Dict[str, Any] = {
            "modelId": self.model_id,
            "messages": messages,
            "inferenceConfig": {
                "temperature": temperature,
                "maxTokens": max_tokens
            }
        }
        if system_prompts:
            params["system"] = system_prompts

        for attempt in range(self.max_retries):
            try:
                logger.debug(f"Invoking {self.model_id} for {operation} (attempt {attempt + 1}/{self.max_retries})")
                response = self.runtime.converse(**params)
                logger.info(
                    f"Bedrock {operation} successful: "
                    f"stop_reason={response.get('stopReason')}, usage={response.get('usage')}"
                )
                return self._parse_converse_response(response)

            except NoCredentialsError as e:
                raise ConfigurationError.missing("bedrock", "AWS credentials") from e

            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "Unknown")
                error_message = e.response.get("Error", {}).get("Message", str(e))

                logger.warning(
                    f"Bedrock API error (attempt {attempt + 1}/{self.max_retries}): "
                    f"code={error_code}, message={error_message}"
                )

                if error_code in CREDENTIAL_ERROR_CODES:
                    raise ConfigurationError.missing("bedrock", "valid AWS credentials") from e

                if self._is_retryable_error(error_code) and attempt < self.max_retries - 1:
                    # Exponential backoff: 1s, 2s, 4s, ...
                    wait_time = 2 ** attempt
                    logger.info(f"Retrying in {wait_time} seconds...")
                    self._sleep(wait_time)
                    continue

                logger.error(
                    f"Bedrock API call failed after {attempt + 1} attempts: "
                    f"{error_code} - {error_message}"
                )
                raise TextGenerationError.from_client_error(
                    error=e,
                    operation=operation,
                    recoverable=True,
                    fallback_action="Skip until next cycle"
                )

            except BotoCoreError as e:
                logger.warning(f"Bedrock transport error (attempt {attempt + 1}/{self.max_retries}): {str(e)}")
                if attempt < self.max_retries - 1:
                    self._sleep(2 ** attempt)
                    continue
                raise TextGenerationError(ErrorContext(
                    error_type=ErrorType.GENERATION_TIMEOUT,
                    message=f"{operation} failed: {str(e)}",
                    recoverable=True,
                    fallback_action="Skip until next cycle",
                    original_exception=e
                ))

        # Should not reach here, but just in case
        raise TextGenerationError(ErrorContext(
            error_type=ErrorType.GENERATION_SERVICE_ERROR,
            message=f"Failed to invoke {self.model_id} after {self.max_retries} attempts",
            recoverable=True
        ))

    def generate_text(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.3,
        max_tokens: int = 1024,
        operation: str = "generate_text"
    ) -> str:
        """Single-turn convenience wrapper returning the response text."""
        result = self.converse(
            messages=[{"role": "user", "content": [{"text": prompt}]}],
            temperature=temperature,
            max_tokens=max_tokens,
            system_prompts=[{"text": system_prompt}] if system_prompt else None,
            operation=operation,
        )
        text = result.get("text", "").strip()
        if not text:
            raise TextGenerationError.empty_response(operation)
        return text

    def _parse_converse_response(self, response: Dict[str, Any]) -> Dict[str, Any]:
        """
        Parse Converse API response into a simplified format.

        Args:
            response: Raw response from Converse API

        Returns:
            Parsed response dict with 'content', 'stop_reason', 'usage', etc.
        """
        output = response.get("output", {})
        message = output.get("message", {})

        parsed = {
            "content": message.get("content", []),
            "role": message.get("role", "assistant"),
            "stop_reason": response.get("stopReason", "unknown"),
            "usage": response.get("usage", {}),
        }

        text_parts = [block["text"] for block in parsed["content"] if "text" in block]
        parsed["text"] = "\n".join(text_parts)

        return parsed

    def _is_retryable_error(self, error_code: str) -> bool:
        """
        Determine if an error code is retryable.

        Args:
            error_code: AWS error code

        Returns:
            True if error is retryable, False otherwise
        """
        retryable_errors = {
            "ThrottlingException",
            "TooManyRequestsException",
            "ServiceUnavailableException",
            "InternalServerException",
            "RequestTimeout",
            "RequestTimeoutException",
            "ModelTimeoutException",
        }

        return error_code in retryable_errors
