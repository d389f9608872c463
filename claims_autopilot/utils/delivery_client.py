"""Email and SMS delivery through Amazon SES and Amazon SNS."""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from .bedrock_client import CREDENTIAL_ERROR_CODES
from .errors import ConfigurationError, DeliveryError

logger = logging.getLogger(__name__)


class DeliveryClient(ABC):
    """Transport for outbound email and SMS. Both methods return a provider message id."""

    @abstractmethod
    def send_email(self, *, to_address: str, to_name: str, subject: str, body: str, claim_id: str) -> str:
        """
        Send an email.

        Raises:
            DeliveryError: If the transport failed or rejected the message
            ConfigurationError: If email delivery is not configured
        """

    @abstractmethod
    def send_sms(self, *, to_number: str, body: str, claim_id: str) -> str:
        """
        Send an SMS.

        Raises:
            DeliveryError: If the transport failed or rejected the message
            ConfigurationError: If SMS delivery is not configured
        """


class AwsDeliveryClient(DeliveryClient):
    """
    DeliveryClient using SES for email and SNS for SMS.

    Messages are tagged with the claim id so that bounces and delivery
    events can be correlated back to the claim.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        sender_email: str = "",
        sms_sender_id: str = "",
        timeout: int = 30,
        max_retries: int = 2,
        ses: Optional[Any] = None,
        sns: Optional[Any] = None
    ):
        """
        Initialize the delivery client.

        Args:
            region: AWS region for SES and SNS
            sender_email: Verified SES sender address
            sms_sender_id: Optional alphanumeric SMS sender id
            timeout: Connect and read timeout in seconds
            max_retries: Total attempts per call, including the first
            ses: Pre-built SES client (tests)
            sns: Pre-built SNS client (tests)
        """
        self.sender_email = sender_email
        self.sms_sender_id = sms_sender_id

        config = Config(
            region_name=region,
            connect_timeout=timeout,
            read_timeout=timeout,
            retries={"max_attempts": max(1, max_retries), "mode": "standard"},
        )
        self.ses = ses if ses is not None else boto3.client("ses", config=config)
        self.sns = sns if sns is not None else boto3.client("sns", config=config)

        logger.info(f"Initialized AwsDeliveryClient: region={region}, sender={sender_email or 'unset'}")

    def send_email(self, *, to_address: str, to_name: str, subject: str, body: str, claim_id: str) -> str:
        if not self.sender_email:
            raise ConfigurationError.missing("email delivery", "delivery.sender_email")

        response = self._call(
            "ses.send_email",
            "email",
            to_address,
            lambda: self.ses.send_email(
                Source=self.sender_email,
                Destination={"ToAddresses": [to_address]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {"Text": {"Data": body, "Charset": "UTF-8"}},
                },
                Tags=[{"Name": "claim_id", "Value": _tag_value(claim_id)}],
            ),
        )
        message_id = response.get("MessageId", "")
        logger.info(f"Sent email to {to_name or to_address} for claim {claim_id}: {message_id}")
        return message_id

    def send_sms(self, *, to_number: str, body: str, claim_id: str) -> str:
        attributes: Dict[str, Any] = {
            "AWS.SNS.SMS.SMSType": {"DataType": "String", "StringValue": "Transactional"},
        }
        if self.sms_sender_id:
            attributes["AWS.SNS.SMS.SenderID"] = {"DataType": "String", "StringValue": self.sms_sender_id}

        response = self._call(
            "sns.publish",
            "sms",
            to_number,
            lambda: self.sns.publish(PhoneNumber=to_number, Message=body, MessageAttributes=attributes),
        )
        message_id = response.get("MessageId", "")
        logger.info(f"Sent SMS for claim {claim_id}: {message_id}")
        return message_id

    @staticmethod
    def _call(operation: str, channel: str, recipient: str, send) -> Dict[str, Any]:
        try:
            return send()
        except NoCredentialsError as e:
            raise ConfigurationError.missing(f"{channel} delivery", "AWS credentials") from e
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in CREDENTIAL_ERROR_CODES:
                raise ConfigurationError.missing(f"{channel} delivery", "valid AWS credentials") from e
            logger.warning(f"{operation} failed for {recipient}: {error_code}")
            raise DeliveryError.from_client_error(
                error=e,
                operation=operation,
                fallback_action="Leave pending action for the next cycle"
            )
        except BotoCoreError as e:
            logger.warning(f"{operation} transport error for {recipient}: {str(e)}")
            raise DeliveryError.failed(channel, recipient, str(e)) from e


def _tag_value(value: str) -> str:
    """SES tag values allow only alphanumerics, '_', '-', '.' and '@'."""
    return re.sub(r"[^A-Za-z0-9_.@-]", "_", value)[:256] or "unknown"
