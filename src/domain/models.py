"""
Data models for the message assembly domain.

These type-safe data structures define clear contracts between components.
"""

from dataclasses import dataclass, field
from email.utils import formataddr
from enum import IntEnum
from typing import BinaryIO, Dict, List, Optional


@dataclass(frozen=True)
class Address:
    """
    Mail address with optional display name.

    Attributes:
        address: Mailbox, e.g. "gopher@example.com"
        name: Display name (empty string if not given)
    """
    address: str
    name: str = ''

    def __str__(self) -> str:
        return formataddr((self.name, self.address))


class HeaderBlock:
    """
    Message header fields keyed by canonical field name.

    A field may repeat (e.g. several Received lines); values keep their
    insertion order. Serialization orders fields by name so the output is
    deterministic regardless of input order.
    """

    def __init__(self):
        self._fields: Dict[str, List[str]] = {}

    def add(self, name: str, value: str) -> None:
        """Append a value to a field, creating the field if needed."""
        self._fields.setdefault(name, []).append(value)

    def set(self, name: str, values: List[str]) -> None:
        """Replace every value of a field."""
        self._fields[name] = list(values)

    def get_all(self, name: str) -> List[str]:
        """Return the values of a field (empty list if absent)."""
        return list(self._fields.get(name, []))

    def has(self, name: str) -> bool:
        return bool(self._fields.get(name))

    def delete(self, name: str) -> None:
        self._fields.pop(name, None)

    def names(self) -> List[str]:
        """Field names in serialization order."""
        return sorted(self._fields)

    def serialize(self) -> bytes:
        """
        Render the header block followed by the blank separator line.

        Returns:
            bytes: "Name: value\\n" per value, fields sorted by name, then "\\n"
        """
        lines = []
        for name in self.names():
            for value in self._fields[name]:
                lines.append(f"{name}: {value}\n")
        lines.append("\n")
        return ''.join(lines).encode('utf-8', errors='surrogateescape')

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"HeaderBlock({self._fields!r})"


class FilterState(IntEnum):
    """
    Progress of DotStopReader through the line-break, dot, line-break terminator.

    The value is the number of terminator bytes withheld from the caller.
    """
    IDLE = 0
    SAW_BREAK = 1
    SAW_DOT = 2
    DONE = 3


@dataclass
class Message:
    """
    Parsed input message.

    Attributes:
        headers: Header fields read from the input
        body: Remaining input stream (read once, lazily)
    """
    headers: HeaderBlock
    body: BinaryIO


@dataclass
class Envelope:
    """
    Everything the delivery gateway needs to transmit a message.

    Attributes:
        sender: Envelope sender
        recipients: Envelope recipients, in resolution order, not deduplicated
        stream: Serialized header block followed by the body
    """
    sender: Address
    recipients: List[Address]
    stream: BinaryIO


@dataclass
class DeliveryResult:
    """
    Result of a delivery attempt.

    Attributes:
        success: Whether the gateway accepted the message
        message_id: Gateway-assigned message identifier (if sent)
        size: Number of message bytes handed to the gateway
        recipients: Envelope recipients the message was addressed to
        error_message: Error description (if delivery failed)
    """
    success: bool
    message_id: Optional[str] = None
    size: int = 0
    recipients: List[Address] = field(default_factory=list)
    error_message: Optional[str] = None

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        if self.success:
            return f"DeliveryResult(success=True, message_id={self.message_id})"
        else:
            return f"DeliveryResult(success=False, error={self.error_message})"
