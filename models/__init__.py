"""Data models for the firehose playground."""

from .blocks import (
    BlockRef,
    BlockRange,
    Cursor,
)
from .requests import (
    BlockDetails,
    ForkMode,
    ForkStep,
    ResumeStrategy,
    StreamRequest,
)

__all__ = [
    "BlockRef",
    "BlockRange",
    "Cursor",
    "BlockDetails",
    "ForkMode",
    "ForkStep",
    "ResumeStrategy",
    "StreamRequest",
]
