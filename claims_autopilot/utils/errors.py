"""Error handling utilities for the claims autopilot."""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from enum import Enum


class ErrorType(Enum):
    """Enumeration of error types raised by the autopilot and its collaborators."""

    # Configuration Errors
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"
    CREDENTIALS_MISSING = "CREDENTIALS_MISSING"

    # Text Generation Errors
    GENERATION_RATE_LIMIT = "GENERATION_RATE_LIMIT"
    GENERATION_TIMEOUT = "GENERATION_TIMEOUT"
    GENERATION_SERVICE_ERROR = "GENERATION_SERVICE_ERROR"
    GENERATION_EMPTY_RESPONSE = "GENERATION_EMPTY_RESPONSE"

    # Delivery Errors
    DELIVERY_FAILED = "DELIVERY_FAILED"
    DELIVERY_REJECTED = "DELIVERY_REJECTED"

    # Classification Errors
    CLASSIFICATION_FAILED = "CLASSIFICATION_FAILED"

    # Trigger Errors
    UNAUTHORIZED_TRIGGER = "UNAUTHORIZED_TRIGGER"

    # System Errors
    INITIALIZATION_FAILED = "INITIALIZATION_FAILED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass
class ErrorContext:
    """
    Context information for errors in the autopilot.

    Attributes:
        error_type: Type of error from ErrorType enum
        message: Human-readable error message
        recoverable: Whether the next cycle can be expected to succeed
        fallback_action: Optional description of what the run did instead
        details: Optional additional error details
        original_exception: Optional original exception that caused this error
    """

    error_type: ErrorType
    message: str
    recoverable: bool
    fallback_action: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    original_exception: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error context to a dictionary for logging/serialization."""
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "fallback_action": self.fallback_action,
            "details": self.details or {},
            "original_exception": str(self.original_exception) if self.original_exception else None
        }


class AutopilotError(Exception):
    """
    Base exception for all autopilot errors.

    Attributes:
        context: ErrorContext with detailed error information
    """

    def __init__(self, context: ErrorContext):
        self.context = context
        super().__init__(context.message)

    def __str__(self) -> str:
        base = f"{self.context.error_type.value}: {self.context.message}"
        if self.context.fallback_action:
            base += f" (Fallback: {self.context.fallback_action})"
        return base

    @property
    def recoverable(self) -> bool:
        return self.context.recoverable

    def to_dict(self) -> Dict[str, Any]:
        return self.context.to_dict()


class ConfigurationError(AutopilotError):
    """A collaborator is missing credentials or settings; its capability is skipped for the run."""

    @classmethod
    def missing(cls, capability: str, setting: str) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_MISSING,
            message=f"{capability} is not configured: {setting} is not set",
            recoverable=False,
            fallback_action=f"Skip {capability} for this run",
            details={"capability": capability, "setting": setting},
        )
        return cls(context)


class CollaboratorError(AutopilotError):
    """Base class for transient failures of an external collaborator."""

    # Maps AWS error codes onto error types, as botocore reports them
    ERROR_TYPE_MAP: Dict[str, ErrorType] = {}
    DEFAULT_ERROR_TYPE: ErrorType = ErrorType.UNKNOWN_ERROR

    @classmethod
    def from_client_error(
        cls,
        error: Exception,
        operation: str,
        recoverable: bool = True,
        fallback_action: Optional[str] = None
    ) -> "CollaboratorError":
        """
        Create an error from a botocore ClientError.

        Args:
            error: Original ClientError
            operation: Description of operation that failed
            recoverable: Whether error is recoverable
            fallback_action: Optional fallback action description

        Returns:
            Instance of the calling subclass
        """
        error_code = "Unknown"
        error_message = str(error)

        if hasattr(error, "response"):
            error_info = error.response.get("Error", {})
            error_code = error_info.get("Code", "Unknown")
            error_message = error_info.get("Message", str(error))

        if error_code in ("UnrecognizedClientException", "InvalidClientTokenId", "MissingAuthenticationToken"):
            error_type = ErrorType.CREDENTIALS_MISSING
        else:
            error_type = cls.ERROR_TYPE_MAP.get(error_code, cls.DEFAULT_ERROR_TYPE)

        context = ErrorContext(
            error_type=error_type,
            message=f"{operation} failed: {error_message}",
            recoverable=recoverable,
            fallback_action=fallback_action,
            details={
                "error_code": error_code,
                "operation": operation
            },
            original_exception=error
        )
        return cls(context)


class TextGenerationError(CollaboratorError):
    """Exception for text generation (Bedrock) failures."""

    ERROR_TYPE_MAP = {
        "ThrottlingException": ErrorType.GENERATION_RATE_LIMIT,
        "TooManyRequestsException": ErrorType.GENERATION_RATE_LIMIT,
        "RequestTimeout": ErrorType.GENERATION_TIMEOUT,
        "RequestTimeoutException": ErrorType.GENERATION_TIMEOUT,
        "ModelTimeoutException": ErrorType.GENERATION_TIMEOUT,
        "ServiceUnavailableException": ErrorType.GENERATION_SERVICE_ERROR,
        "InternalServerException": ErrorType.GENERATION_SERVICE_ERROR,
    }
    DEFAULT_ERROR_TYPE = ErrorType.GENERATION_SERVICE_ERROR

    @classmethod
    def empty_response(cls, operation: str) -> "TextGenerationError":
        context = ErrorContext(
            error_type=ErrorType.GENERATION_EMPTY_RESPONSE,
            message=f"{operation} returned no text",
            recoverable=True,
            fallback_action="Skip draft until next cycle",
        )
        return cls(context)


class DeliveryError(CollaboratorError):
    """Exception for email/SMS delivery failures."""

    ERROR_TYPE_MAP = {
        "MessageRejected": ErrorType.DELIVERY_REJECTED,
        "MailFromDomainNotVerifiedException": ErrorType.DELIVERY_REJECTED,
        "InvalidParameter": ErrorType.DELIVERY_REJECTED,
    }
    DEFAULT_ERROR_TYPE = ErrorType.DELIVERY_FAILED

    @classmethod
    def failed(cls, channel: str, recipient: str, reason: str) -> "DeliveryError":
        context = ErrorContext(
            error_type=ErrorType.DELIVERY_FAILED,
            message=f"Failed to deliver {channel} to {recipient}: {reason}",
            recoverable=True,
            fallback_action="Leave pending action for the next cycle",
            details={"channel": channel, "recipient": recipient},
        )
        return cls(context)


class ClassificationError(CollaboratorError):
    """Exception for document classification failures."""

    DEFAULT_ERROR_TYPE = ErrorType.CLASSIFICATION_FAILED

    @classmethod
    def classification_failed(
        cls,
        file_name: str,
        error: Exception,
        fallback_action: Optional[str] = None
    ) -> "ClassificationError":
        context = ErrorContext(
            error_type=ErrorType.CLASSIFICATION_FAILED,
            message=f"Failed to classify document '{file_name}': {str(error)}",
            recoverable=True,
            fallback_action=fallback_action or "Leave document unclassified",
            details={"file_name": file_name},
            original_exception=error
        )
        return cls(context)


class UnauthorizedTriggerError(AutopilotError):
    """The run trigger did not present the shared secret."""

    @classmethod
    def rejected(cls, reason: str) -> "UnauthorizedTriggerError":
        context = ErrorContext(
            error_type=ErrorType.UNAUTHORIZED_TRIGGER,
            message=f"Run trigger rejected: {reason}",
            recoverable=False,
        )
        return cls(context)
