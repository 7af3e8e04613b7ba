"""
Amazon SES Delivery Gateway

This module hands an assembled message to Amazon SES using the raw-message
API, so the header block is delivered exactly as assembled and the envelope
recipients (including Bcc) are passed separately from the visible headers.

Usage:
    from integrations.ses_delivery import SesGateway

    gateway = SesGateway(config)
    result = gateway.send(sender, recipients, stream)
    print(result.message_id)
"""

import logging
import time
from typing import BinaryIO, List

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from domain.errors import DeliveryError
from domain.models import Address, DeliveryResult
from services.config import GatewayConfig

# Configure logging
logger = logging.getLogger(__name__)


# ============================================================================
# Client Initialization
# ============================================================================

def _initialize_ses_client(region: str):
    """
    Initialize boto3 SES client with timeout configuration.

    Args:
        region: AWS region of the SES endpoint

    Returns:
        boto3.client: Configured SES client
    """
    # Configure with NO retries and strict timeouts; a failed send is reported, not retried
    client_config = Config(
        retries={
            'max_attempts': 0,  # 0 attempts = 1 total call, NO retries
            'mode': 'standard'
        },
        connect_timeout=10,  # 10 seconds to establish connection
        read_timeout=60      # 60 seconds max for reading response
    )

    client = boto3.client('ses', region_name=region, config=client_config)

    logger.info(
        f"SES client initialized: region={region}, "
        f"connect_timeout=10s, read_timeout=60s, max_attempts=0 (no retries)"
    )
    return client


# ============================================================================
# Delivery Gateway
# ============================================================================

class SesGateway:
    """
    Delivery gateway backed by the SES SendRawEmail API.

    Attributes:
        config: Resolved gateway configuration
        send_enabled: If False, messages are read and logged but not sent
    """

    def __init__(
        self,
        config: GatewayConfig,
        client=None,
        send_enabled: bool = True
    ):
        self.config = config
        self.send_enabled = send_enabled
        self._client = client

    @property
    def client(self):
        # Created on first use so -d nosend works without AWS access
        if self._client is None:
            self._client = _initialize_ses_client(self.config.region)
        return self._client

    def send(
        self,
        sender: Address,
        recipients: List[Address],
        stream: BinaryIO
    ) -> DeliveryResult:
        """
        Send one message.

        Args:
            sender: Envelope sender
            recipients: Envelope recipients
            stream: Complete message (header block and body), read to the end

        Returns:
            DeliveryResult: success=True with the SES message ID

        Raises:
            DeliveryError: If SES rejects the message or cannot be reached

        Example:
            >>> result = gateway.send(
            ...     Address('gopher@example.com'),
            ...     [Address('rsc@example.com')],
            ...     io.BytesIO(b"Subject: hi\\n\\nhello\\n")
            ... )
            >>> result.message_id
            '0100018c...'
        """
        start_time = time.time()

        data = stream.read()
        destinations = [r.address for r in recipients]

        logger.info(
            f"Sending message: from={sender.address}, to={destinations}, "
            f"size={len(data):,} bytes"
        )

        if not self.send_enabled:
            logger.info("Delivery disabled (-d nosend), message not sent")
            return DeliveryResult(success=True, size=len(data), recipients=list(recipients))

        request = {
            'Source': str(sender),
            'Destinations': destinations,
            'RawMessage': {'Data': data},
        }
        if self.config.configuration_set:
            request['ConfigurationSetName'] = self.config.configuration_set

        try:
            response = self.client.send_raw_email(**request)

        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            error_message = e.response.get('Error', {}).get('Message', str(e))

            logger.error(
                f"SES rejected message: error_code={error_code}, "
                f"error_message={error_message}, from={sender.address}"
            )
            raise DeliveryError(
                f"sending mail: {error_code}: {error_message}",
                code=error_code
            )

        except BotoCoreError as e:
            logger.error(f"SES request failed: {e}")
            raise DeliveryError(f"sending mail: {e}")

        message_id = response.get('MessageId')
        execution_time = time.time() - start_time
        logger.info(
            f"Message sent: message_id={message_id}, "
            f"recipients={len(destinations)}, execution_time={execution_time:.2f}s"
        )

        return DeliveryResult(
            success=True,
            message_id=message_id,
            size=len(data),
            recipients=list(recipients)
        )
