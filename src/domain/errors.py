"""
Error kinds raised by the sendmail pipeline.

Every error except FilterContractViolation is terminal and reported by the
command-line entry point with a non-zero exit status. FilterContractViolation
signals a programming error and is never caught.
"""


# ============================================================================
# Custom Exception Classes
# ============================================================================

class SendmailError(Exception):
    """Base class for fatal runtime errors reported to the user."""
    exit_code = 1


class UsageError(SendmailError):
    """Raised for an invalid flag combination or unsupported operation mode."""
    exit_code = 2


class AddressResolutionError(SendmailError):
    """Raised when no sender or no recipients can be determined."""
    pass


class HeaderParseError(SendmailError):
    """Raised when the input is not a well-formed message."""
    pass


class ConfigurationError(SendmailError):
    """Raised when the delivery gateway configuration is missing or invalid."""
    pass


class DeliveryError(SendmailError):
    """Raised when the delivery gateway rejects or fails to send the message."""

    def __init__(self, message: str, code: str = 'Unknown'):
        super().__init__(message)
        self.code = code


class FilterContractViolation(Exception):
    """Raised when a caller reads from DotStopReader with a buffer under 4 bytes."""
    pass
