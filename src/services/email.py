"""
Message parsing utilities for the sendmail front end.

This module provides reusable functions for reading the header section of a
message and parsing the addresses found in it.
"""

import logging
import re
from email.utils import getaddresses
from typing import BinaryIO, List

from domain.errors import HeaderParseError
from domain.models import Address, HeaderBlock, Message

logger = logging.getLogger(__name__)

# RFC 5322 field name: printable ASCII except space and colon
_FIELD_NAME = re.compile(r"[!-9;-~]+")

# RFC 7230 token characters; other names are left as written
_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")

_BLANK_LINES = (b'\n', b'\r\n')


def canonical_header_key(name: str) -> str:
    """
    Return the canonical form of a header field name.

    The first letter and any letter following a hyphen are upper case, the
    rest lower case. Names containing characters outside the header token
    set are returned unchanged.

    Example:
        >>> canonical_header_key("message-ID")
        'Message-Id'
        >>> canonical_header_key("BCC")
        'Bcc'
    """
    if not _TOKEN.fullmatch(name):
        return name
    return '-'.join(part[:1].upper() + part[1:].lower() for part in name.split('-'))


def read_message(stream: BinaryIO) -> Message:
    """
    Read the header section of a message and leave the body unread.

    Reads line by line up to the first blank line (or end of input), so on an
    interactive terminal the body can still be typed after the headers are
    parsed. Folded lines are joined with a single space.

    Args:
        stream: Binary input positioned at the start of the message

    Returns:
        Message: Parsed headers and the remaining stream as body

    Raises:
        HeaderParseError: If the input is empty or a header line is malformed

    Example:
        >>> import io
        >>> msg = read_message(io.BytesIO(b"subject: Hi\\n\\nBody"))
        >>> msg.headers.get_all("Subject")
        ['Hi']
        >>> msg.body.read()
        b'Body'
    """
    headers = HeaderBlock()
    current_name = None
    current_value = ''
    seen_input = False

    while True:
        line = stream.readline()
        if not line:
            if not seen_input:
                raise HeaderParseError("reading message header: no input")
            break
        seen_input = True
        if line in _BLANK_LINES:
            break

        text = line.rstrip(b'\r\n').decode('utf-8', errors='surrogateescape')

        # Continuation of a folded field
        if text[:1] in (' ', '\t'):
            if current_name is None:
                raise HeaderParseError(
                    f"reading message header: malformed initial line: {text!r}"
                )
            current_value = f"{current_value} {text.strip()}"
            continue

        if current_name is not None:
            headers.add(current_name, current_value)

        name, sep, value = text.partition(':')
        if not sep or not _FIELD_NAME.fullmatch(name):
            raise HeaderParseError(
                f"reading message header: malformed header line: {text!r}"
            )
        current_name = canonical_header_key(name)
        current_value = value.strip()

    if current_name is not None:
        headers.add(current_name, current_value)

    logger.info(f"Parsed message headers: {headers.names()}")
    return Message(headers=headers, body=stream)


def parse_address_list(values: List[str], field: str = 'address') -> List[Address]:
    """
    Parse one or more address list strings.

    Args:
        values: Header values or command-line arguments, each a
                comma-separated address list
        field: Field name used in error messages (e.g. "To")

    Returns:
        List[Address]: Addresses in order of appearance, repeats preserved

    Raises:
        HeaderParseError: If an entry has no usable mailbox

    Example:
        >>> parse_address_list(['Gopher <gopher@example.com>, rsc@example.com'], 'To')
        [Address(address='gopher@example.com', name='Gopher'), Address(address='rsc@example.com', name='')]
    """
    values = [v for v in values if v and v.strip()]
    if not values:
        return []

    addresses = []
    for name, addr in getaddresses(values):
        if not addr or '@' not in addr:
            raise HeaderParseError(
                f"cannot parse {field} list: {', '.join(values)!r}"
            )
        addresses.append(Address(address=addr, name=name))
    return addresses


def parse_address(value: str, field: str = 'address') -> Address:
    """
    Parse a single address.

    Raises:
        HeaderParseError: If value is not exactly one address
    """
    addresses = parse_address_list([value], field)
    if len(addresses) != 1:
        raise HeaderParseError(f"cannot parse {field}: expected one address, got {value!r}")
    return addresses[0]
