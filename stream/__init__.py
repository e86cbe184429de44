"""Stream module for firehose block streaming."""

from .firehose import BlockStreamTransport, FirehoseClient
from .codec import BlockCodec, DecodedBlock
from .consumer import ConsumerConfig, ResumableStreamConsumer

__all__ = [
    "BlockStreamTransport",
    "FirehoseClient",
    "BlockCodec",
    "DecodedBlock",
    "ConsumerConfig",
    "ResumableStreamConsumer",
]
