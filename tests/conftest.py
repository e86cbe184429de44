"""Shared fixtures: wire messages and a scripted block stream transport."""

from typing import List, Optional

import pytest
from google.protobuf import any_pb2

from models.requests import ForkStep, StreamRequest
from stream.firehose import BlockStreamTransport
from stream.protocol import Block, BlockResponseV2, BLOCK_TYPE_URL


def block_id(num: int) -> str:
    """EOSIO style id: block number in the first 8 hex characters."""
    return f"{num:08x}" + "ab" * 28


def make_block_response(num: int, cursor: Optional[str] = None, step: ForkStep = ForkStep.IRREVERSIBLE):
    block = Block(id=block_id(num), number=num)
    block.header.previous = block_id(num - 1)
    block.header.producer = "eosio"

    payload = any_pb2.Any()
    payload.Pack(block)
    return BlockResponseV2(block=payload, cursor=cursor or f"cursor-{num}", step=int(step))


def make_malformed_response(num: int = 0):
    payload = any_pb2.Any(type_url="type.googleapis.com/dfuse.eosio.codec.v1.Transaction", value=b"")
    return BlockResponseV2(block=payload, cursor=f"cursor-{num}")


def make_truncated_response():
    payload = any_pb2.Any(type_url=BLOCK_TYPE_URL, value=b"\x0a\x05ab")
    return BlockResponseV2(block=payload, cursor="cursor-truncated")


class ScriptedTransport(BlockStreamTransport):
    """
    Plays one script per stream-open call.

    A script item is either a response (yielded), an exception (raised) or
    a callable (invoked, e.g. to inspect consumer state between attempts).
    """

    def __init__(self, attempts: List[list]):
        self.attempts = [list(a) for a in attempts]
        self.requests: List[StreamRequest] = []
        self.credentials: List[Optional[str]] = []
        self.closed = False

    async def blocks(self, request, credential=None):
        self.requests.append(request)
        self.credentials.append(credential)
        if not self.attempts:
            raise AssertionError(f"unexpected stream attempt #{len(self.requests)}")

        for item in self.attempts.pop(0):
            if isinstance(item, Exception):
                raise item
            if callable(item):
                item()
                continue
            yield item

    async def close(self):
        self.closed = True


class FakeClock:
    """Monotonic clock advancing by ``step`` seconds on every read."""

    def __init__(self, start: float = 1000.0, step: float = 1.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def responses():
    """Factory for consecutive block responses ``[start, stop)``."""
    def build(start: int, stop: int) -> list:
        return [make_block_response(num) for num in range(start, stop)]
    return build


@pytest.fixture
def scripted_transport():
    return ScriptedTransport


@pytest.fixture
def fake_clock():
    return FakeClock()
