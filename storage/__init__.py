"""Storage module for streamed block output."""

from .block_writer import BlockWriter, FileBlockWriter, StreamBlockWriter, open_block_writer

__all__ = [
    "BlockWriter",
    "FileBlockWriter",
    "StreamBlockWriter",
    "open_block_writer",
]
