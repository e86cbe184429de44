"""Decoding of block stream responses into EOSIO codec blocks."""

import logging
from dataclasses import dataclass
from typing import Any

from google.protobuf import json_format
from google.protobuf.message import DecodeError as ProtobufDecodeError

from core.errors import DecodeError
from models.blocks import BlockRef
from models.requests import ForkStep
from .protocol import Block, BLOCK_TYPE_URL

logger = logging.getLogger(__name__)


@dataclass
class DecodedBlock:
    """A block decoded from one stream response."""
    message: Any
    cursor: str
    step: ForkStep
    size: int

    @property
    def ref(self) -> BlockRef:
        return BlockRef(num=self.message.number, id=self.message.id)

    @property
    def previous_ref(self) -> BlockRef:
        previous_id = self.message.header.previous
        return BlockRef(num=_block_num_from_id(previous_id), id=previous_id)

    def to_json(self) -> str:
        """Single-line JSON rendering of the block."""
        return json_format.MessageToJson(self.message, indent=None)


def _block_num_from_id(block_id: str) -> int:
    # EOSIO block ids carry the block number in their first 8 hex characters
    if len(block_id) < 8:
        return 0
    try:
        return int(block_id[:8], 16)
    except ValueError:
        return 0


class BlockCodec:
    """Unpacks the ``Any`` payload of a stream response into a codec ``Block``."""

    type_url = BLOCK_TYPE_URL

    def decode(self, response) -> DecodedBlock:
        """
        Decode a ``BlockResponseV2``.

        Raises:
            DecodeError: payload missing, of another type, or unparsable
        """
        if not response.HasField("block"):
            raise DecodeError("received message has no block payload")

        payload = response.block
        if payload.type_url != self.type_url:
            raise DecodeError(f"unexpected block payload type {payload.type_url!r}, expected {self.type_url!r}")

        block = Block()
        try:
            block.ParseFromString(payload.value)
        except ProtobufDecodeError as e:
            raise DecodeError(f"unable to unmarshal received block payload: {e}") from e

        return DecodedBlock(
            message=block,
            cursor=response.cursor,
            step=_fork_step(response.step),
            size=response.ByteSize(),
        )


def _fork_step(value: int) -> ForkStep:
    try:
        return ForkStep(value)
    except ValueError:
        logger.debug(f"Unknown fork step {value}, treating as unknown")
        return ForkStep.UNKNOWN
