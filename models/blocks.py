"""Block references, ranges and resume cursors."""

from dataclasses import dataclass, field
from typing import ClassVar

from core.errors import InputValidationError


@dataclass(frozen=True)
class BlockRef:
    """Unique reference to a block (number + id)."""
    num: int = 0
    id: str = ""

    EMPTY: ClassVar["BlockRef"]

    @property
    def is_empty(self) -> bool:
        return self.num == 0 and self.id == ""

    def __str__(self) -> str:
        if self.is_empty:
            return "<empty>"
        return f"#{self.num} ({self.id})"


BlockRef.EMPTY = BlockRef()


def _parse_uint(value: str, label: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise InputValidationError(f"the <range> {label} value {value!r} is not a valid uint64 value")

    parsed = int(value)
    if parsed >= 2 ** 64:
        raise InputValidationError(f"the <range> {label} value {value!r} is not a valid uint64 value")
    return parsed


@dataclass(frozen=True)
class BlockRange:
    """
    Half-open block range ``[start, end)``.

    An ``end`` of 0 means the range has no upper bound and the stream
    never ends on its own.
    """
    start: int
    end: int = 0

    @classmethod
    def parse(cls, raw: str) -> "BlockRange":
        """
        Parse ``"<start>-<stop>"`` or ``"<start>-"``.

        Spaces are stripped first so ``"150 000 000 - 150 010 000"`` is accepted.
        """
        value = raw.replace(" ", "")
        parts = value.split("-")
        if len(parts) != 2:
            raise InputValidationError(
                f"<range> input should be of the form <start>-<stop> or <start>- (spaces accepted), got {raw!r}"
            )

        start = _parse_uint(parts[0], "start")
        end = _parse_uint(parts[1], "end") if parts[1] != "" else 0

        if end != 0 and start >= end:
            raise InputValidationError(
                f"the <range> start value {parts[0]!r} value comes after end value {parts[1]!r}"
            )

        return cls(start=start, end=end)

    @property
    def is_open_ended(self) -> bool:
        return self.end == 0

    @property
    def last_block(self) -> int:
        """Last block number included in a bounded range."""
        return self.end - 1

    def compact(self) -> str:
        """Range rendering without spaces, used in output file names."""
        return str(self).replace(" ", "")

    def __str__(self) -> str:
        return f"{self.start} - {self.end}"


@dataclass(frozen=True)
class Cursor:
    """
    Resume position: the opaque server cursor plus the decoded block reference.

    A new instance replaces the previous one after every decoded message.
    """
    token: str = ""
    block: BlockRef = field(default_factory=BlockRef)

    EMPTY: ClassVar["Cursor"]

    @property
    def is_empty(self) -> bool:
        return self.token == "" and self.block.is_empty


Cursor.EMPTY = Cursor()
