"""Authentication providers for the block stream."""

from .provider import IdentityProvider, StaticTokenProvider, TokenInfo
from .dfuse import DfuseAuthClient

__all__ = [
    "IdentityProvider",
    "StaticTokenProvider",
    "TokenInfo",
    "DfuseAuthClient",
]
