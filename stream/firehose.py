"""Firehose gRPC client for EOSIO block streaming."""

import asyncio
import logging
import ssl
from abc import ABC, abstractmethod
from typing import AsyncIterator, List, Optional, Tuple

import grpc
from grpc import aio as grpc_aio

from config.settings import settings
from core.errors import InputValidationError, TransportError
from models.requests import StreamRequest
from .protocol import BLOCKS_METHOD, BlockResponseV2, BlocksRequestV2

logger = logging.getLogger(__name__)


class BlockStreamTransport(ABC):
    """A streaming RPC client able to open one block stream at a time."""

    @abstractmethod
    def blocks(self, request: StreamRequest, credential: Optional[str] = None) -> AsyncIterator:
        """
        Open a block stream.

        Yields ``BlockResponseV2`` envelopes until the server ends the
        stream. Any failure while streaming surfaces as ``TransportError``.
        """
        ...

    async def close(self):
        """Release the underlying connection."""


def split_endpoint(endpoint: str) -> Tuple[str, int]:
    """Split ``host:port``, defaulting to port 443."""
    host, sep, port = endpoint.rpartition(":")
    if not sep:
        return endpoint, 443
    try:
        return host, int(port)
    except ValueError:
        raise InputValidationError(f"invalid port in endpoint {endpoint!r}")


def build_request(request: StreamRequest):
    """Convert a ``StreamRequest`` into its wire message."""
    return BlocksRequestV2(
        start_block_num=request.start,
        start_cursor=request.cursor,
        stop_block_num=request.stop,
        fork_steps=[int(step) for step in request.fork_steps],
        include_filter_expr=request.filter_expr,
        details=int(request.details),
    )


class FirehoseClient(BlockStreamTransport):
    """
    gRPC client for the ``BlockStreamV2`` service.

    Supports plain-text connections, TLS, and TLS with certificate
    verification skipped (the server certificate is fetched and pinned).
    """

    def __init__(
        self,
        endpoint: str,
        plaintext: bool = False,
        skip_verify: bool = False,
        max_receive_message_length: Optional[int] = None,
        keepalive_time_ms: Optional[int] = None,
    ):
        if not endpoint:
            raise InputValidationError("endpoint must not be empty")
        if skip_verify:
            split_endpoint(endpoint)

        self.endpoint = endpoint
        self.plaintext = plaintext
        self.skip_verify = skip_verify
        self.max_receive_message_length = max_receive_message_length or settings.grpc_max_receive_message_length
        self.keepalive_time_ms = keepalive_time_ms or settings.grpc_keepalive_time_ms

        self._channel: Optional[grpc_aio.Channel] = None
        self._blocks_call = None

    def _channel_options(self) -> List[Tuple[str, object]]:
        return [
            ("grpc.max_receive_message_length", self.max_receive_message_length),
            ("grpc.keepalive_time_ms", self.keepalive_time_ms),
            ("grpc.keepalive_timeout_ms", 10000),
            ("grpc.keepalive_permit_without_calls", True),
        ]

    async def connect(self):
        """Establish the gRPC channel."""
        options = self._channel_options()

        if self.plaintext:
            self._channel = grpc_aio.insecure_channel(self.endpoint, options=options)
        elif self.skip_verify:
            host, port = split_endpoint(self.endpoint)
            # Trust whatever certificate the server presents
            pem = await asyncio.to_thread(ssl.get_server_certificate, (host, port))
            credentials = grpc.ssl_channel_credentials(root_certificates=pem.encode())
            options.append(("grpc.ssl_target_name_override", host))
            self._channel = grpc_aio.secure_channel(self.endpoint, credentials, options=options)
        else:
            self._channel = grpc_aio.secure_channel(
                self.endpoint,
                grpc.ssl_channel_credentials(),
                options=options,
            )

        self._blocks_call = self._channel.unary_stream(
            BLOCKS_METHOD,
            request_serializer=BlocksRequestV2.SerializeToString,
            response_deserializer=BlockResponseV2.FromString,
        )
        logger.info(f"Connected to firehose at {self.endpoint}")

    async def close(self):
        """Close gRPC channel."""
        if self._channel:
            await self._channel.close()
            self._channel = None
            self._blocks_call = None
            logger.info("Disconnected from firehose")

    async def blocks(self, request: StreamRequest, credential: Optional[str] = None) -> AsyncIterator:
        if self._channel is None:
            try:
                await self.connect()
            except OSError as e:
                raise TransportError(f"unable to connect to {self.endpoint}: {e}") from e

        metadata = []
        if credential:
            metadata.append(("authorization", f"Bearer {credential}"))

        call = self._blocks_call(build_request(request), metadata=metadata)
        try:
            async for response in call:
                yield response
        except grpc.RpcError as e:
            code = e.code() if hasattr(e, "code") else None
            details = e.details() if hasattr(e, "details") else str(e)
            raise TransportError(
                f"stream failed: {code.name if code else 'UNKNOWN'} - {details}",
                code=code.name if code else None,
            ) from e
        finally:
            call.cancel()
