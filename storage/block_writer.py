"""JSON-lines output of streamed blocks."""

import logging
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, TextIO

import aiofiles

from models.blocks import BlockRange

logger = logging.getLogger(__name__)

RANGE_PLACEHOLDER = "{range}"


class BlockWriter(ABC):
    """Append-only sink receiving one JSON line per block."""

    def __init__(self):
        self._written = 0

    @abstractmethod
    async def write_line(self, line: str):
        ...

    async def write(self, block):
        """Write a decoded block (anything with ``to_json()``) as one JSON line."""
        await self.write_line(block.to_json() + "\n")
        self._written += 1

    async def close(self):
        """Flush and release the destination."""

    @property
    def written(self) -> int:
        return self._written


class StreamBlockWriter(BlockWriter):
    """Writes to an already open text stream (standard output by default)."""

    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__()
        self._stream = stream or sys.stdout

    async def write_line(self, line: str):
        self._stream.write(line)

    async def close(self):
        self._stream.flush()


class FileBlockWriter(BlockWriter):
    """Writes to a file, truncated on open."""

    def __init__(self, path: Path):
        super().__init__()
        self.path = path
        self._file: Optional[Any] = None  # aiofiles file handle

    async def open(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = await aiofiles.open(self.path, "w", encoding="utf-8")
        logger.info(f"Writing blocks to {self.path}")

    async def write_line(self, line: str):
        if self._file is None:
            await self.open()
        await self._file.write(line)

    async def close(self):
        if self._file:
            await self._file.flush()
            await self._file.close()
            self._file = None
            logger.info(f"Wrote {self._written} blocks to {self.path}")


def resolve_output_path(output: str, block_range: BlockRange) -> str:
    """Replace the first ``{range}`` placeholder by the compact block range."""
    return output.strip().replace(RANGE_PLACEHOLDER, block_range.compact(), 1)


async def open_block_writer(output: Optional[str], block_range: BlockRange) -> Optional[BlockWriter]:
    """
    Build the writer selected by ``output``.

    Empty means no output, ``-`` means standard output, anything else is a
    file path which may contain ``{range}``.
    """
    if output is None or output.strip() == "":
        return None

    target = resolve_output_path(output, block_range)
    if target == "-":
        return StreamBlockWriter()

    writer = FileBlockWriter(Path(target))
    await writer.open()
    return writer
