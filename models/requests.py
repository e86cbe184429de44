"""Stream request models."""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Tuple


class ForkStep(IntEnum):
    """Fork steps as numbered on the wire by the block stream service."""
    UNKNOWN = 0
    NEW = 1
    UNDO = 2
    REDO = 3
    HANDOFF = 4
    IRREVERSIBLE = 5
    STALLED = 6


class ForkMode(str, Enum):
    """Fork handling mode of a stream."""
    IRREVERSIBLE = "irreversible"  # irreversible blocks only
    LIVE = "live"                  # reversible blocks, wrapped in new/undo steps

    @property
    def fork_steps(self) -> Tuple[ForkStep, ...]:
        if self is ForkMode.LIVE:
            return (ForkStep.NEW, ForkStep.UNDO)
        return (ForkStep.IRREVERSIBLE,)


class BlockDetails(IntEnum):
    """Amount of block data returned by the server."""
    FULL = 0
    LIGHT = 1


class ResumeStrategy(str, Enum):
    """How a dropped stream is resumed."""
    CURSOR = "cursor"        # opaque server cursor, start block as fallback
    BLOCK_NUMBER = "block"   # last block number + 1 only


@dataclass(frozen=True)
class StreamRequest:
    """Parameters of one stream-open call."""
    start: int
    stop: int
    fork_steps: Tuple[ForkStep, ...]
    filter_expr: str
    details: BlockDetails = BlockDetails.LIGHT
    cursor: str = ""
