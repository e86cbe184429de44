"""Core application modules."""

from .errors import (
    AuthError,
    DecodeError,
    FirehoseError,
    InputValidationError,
    PrematureEndOfStream,
    RetryExhaustedError,
    TransportError,
)
from .retry import RetryPolicy

__all__ = [
    "AuthError",
    "DecodeError",
    "FirehoseError",
    "InputValidationError",
    "PrematureEndOfStream",
    "RetryExhaustedError",
    "TransportError",
    "RetryPolicy",
]
