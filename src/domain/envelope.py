"""
Envelope assembly - core business logic.

This module turns a parsed input message into what the delivery gateway needs:
1. Resolve recipients (command line, or To/Cc/Bcc headers with -t)
2. Synthesize a From header if the message has none
3. Remove the Bcc header
4. Serialize the header block in field-name order
5. Join the header block with the body, stopping the body at a single-dot
   line when the input is typed interactively
"""

import io
import logging
from typing import List, Optional

from .dotstop import DotStopReader, MessageStream
from .errors import AddressResolutionError
from .models import Address, Envelope, Message
from services import email as email_service

logger = logging.getLogger(__name__)

# Header fields consulted for recipients, in order
RECIPIENT_FIELDS = ('To', 'Cc', 'Bcc')


class EnvelopeAssembler:
    """
    Builds the outgoing envelope from a message and command-line defaults.

    Attributes:
        sender: Default sender, used for the envelope and for a missing From
        recipients: Recipients given on the command line
        use_headers: Also take recipients from To, Cc and Bcc (-t)
        preserve_dots: Never treat a single-dot line as end of message (-i)
        interactive: Input comes from a terminal
    """

    def __init__(
        self,
        sender: Address,
        recipients: Optional[List[Address]] = None,
        use_headers: bool = False,
        preserve_dots: bool = False,
        interactive: bool = False
    ):
        self.sender = sender
        self.recipients = list(recipients or [])
        self.use_headers = use_headers
        self.preserve_dots = preserve_dots
        self.interactive = interactive

    def assemble(self, message: Message) -> Envelope:
        """
        Produce the envelope for a parsed message.

        Args:
            message: Parsed input message (body not yet read)

        Returns:
            Envelope: sender, recipients and the outgoing stream

        Raises:
            AddressResolutionError: If no recipients can be determined
            HeaderParseError: If a recipient header cannot be parsed
        """
        recipients = self.resolve_recipients(message)
        logger.info(f"Resolved {len(recipients)} recipient(s)")

        headers = message.headers
        if not headers.has('From'):
            logger.info(f"No From header, using {self.sender}")
            headers.set('From', [str(self.sender)])
        headers.delete('Bcc')

        header_bytes = headers.serialize()

        body = message.body
        if self.filters_body:
            logger.info("Interactive input: message ends at a line containing only '.'")
            body = DotStopReader(body)

        stream = MessageStream(io.BytesIO(header_bytes), body)
        return Envelope(sender=self.sender, recipients=recipients, stream=stream)

    def resolve_recipients(self, message: Message) -> List[Address]:
        """
        Resolve the envelope recipients.

        Command-line recipients come first. With use_headers, addresses from
        To, Cc and Bcc follow in that order. Duplicates are kept.

        Raises:
            AddressResolutionError: If the result is empty
            HeaderParseError: If a recipient header cannot be parsed
        """
        recipients = list(self.recipients)

        if self.use_headers:
            for field in RECIPIENT_FIELDS:
                values = message.headers.get_all(field)
                if not values:
                    continue
                recipients.extend(email_service.parse_address_list(values, field))
            if not recipients:
                raise AddressResolutionError("no recipients found in message")

        if not recipients:
            raise AddressResolutionError("no delivery addresses given")

        return recipients

    @property
    def filters_body(self) -> bool:
        """Whether the body goes through DotStopReader."""
        return self.interactive and not self.preserve_dots
