"""Error taxonomy for the block stream consumer.

Only transport-class errors (``TransportError`` and its subclasses) are
retried by the consumer. Everything else aborts the run.
"""

from typing import Optional


class FirehoseError(Exception):
    """Base class for all consumer errors."""


class InputValidationError(FirehoseError):
    """Invalid user input (bad range syntax, inverted bounds)."""


class AuthError(FirehoseError):
    """Credential retrieval failed."""


class DecodeError(FirehoseError):
    """A received payload did not match the expected block schema."""


class TransportError(FirehoseError):
    """Connection refused, stream reset or remote-side error."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class PrematureEndOfStream(TransportError):
    """Server closed the stream before the requested range was covered."""


class RetryExhaustedError(FirehoseError):
    """Configured maximum of consecutive failed attempts was reached."""

    def __init__(self, attempts: int, last_error: Exception):
        super().__init__(f"giving up after {attempts} failed attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error
