"""Tests for the firehose gRPC transport against an in-process server."""

import grpc
import pytest
from grpc import aio as grpc_aio

from conftest import make_block_response
from core.errors import InputValidationError, TransportError
from models.requests import BlockDetails, ForkStep, StreamRequest
from stream.firehose import FirehoseClient, build_request, split_endpoint
from stream.protocol import BlockResponseV2, BlocksRequestV2


class FakeBlockStreamServer:
    """Serves ``BlockStreamV2/Blocks`` from a list of block numbers."""

    def __init__(self, block_nums, fail_after=None):
        self.block_nums = block_nums
        self.fail_after = fail_after
        self.requests = []
        self.metadata = []
        self.server = None
        self.port = None

    async def blocks(self, request, context):
        self.requests.append(request)
        self.metadata.append({key: value for key, value in context.invocation_metadata()})
        for index, num in enumerate(self.block_nums):
            if self.fail_after is not None and index == self.fail_after:
                await context.abort(grpc.StatusCode.UNAVAILABLE, "backend restarting")
            yield make_block_response(num)

    async def start(self):
        handler = grpc.method_handlers_generic_handler(
            "dfuse.bstream.v1.BlockStreamV2",
            {
                "Blocks": grpc.unary_stream_rpc_method_handler(
                    self.blocks,
                    request_deserializer=BlocksRequestV2.FromString,
                    response_serializer=BlockResponseV2.SerializeToString,
                ),
            },
        )
        self.server = grpc_aio.server()
        self.server.add_generic_rpc_handlers((handler,))
        self.port = self.server.add_insecure_port("127.0.0.1:0")
        await self.server.start()

    async def stop(self):
        await self.server.stop(None)


def stream_request(**kwargs) -> StreamRequest:
    values = dict(
        start=100,
        stop=103,
        fork_steps=(ForkStep.IRREVERSIBLE,),
        filter_expr="receiver == 'eosio.token'",
        details=BlockDetails.LIGHT,
    )
    values.update(kwargs)
    return StreamRequest(**values)


class TestBuildRequest:
    def test_wire_fields(self):
        message = build_request(stream_request(cursor="abc", fork_steps=(ForkStep.NEW, ForkStep.UNDO)))

        assert message.start_block_num == 100
        assert message.stop_block_num == 103
        assert message.start_cursor == "abc"
        assert list(message.fork_steps) == [1, 2]
        assert message.include_filter_expr == "receiver == 'eosio.token'"
        assert message.details == int(BlockDetails.LIGHT)

    def test_round_trips_through_wire(self):
        message = build_request(stream_request())
        parsed = BlocksRequestV2.FromString(message.SerializeToString())
        assert parsed == message


class TestSplitEndpoint:
    def test_host_port(self):
        assert split_endpoint("eos.firehose.example.com:443") == ("eos.firehose.example.com", 443)

    def test_default_port(self):
        assert split_endpoint("localhost") == ("localhost", 443)

    def test_invalid_port(self):
        with pytest.raises(InputValidationError):
            split_endpoint("localhost:abc")


class TestFirehoseClient:
    """Streams against a local plain-text gRPC server."""

    @pytest.mark.asyncio
    async def test_streams_blocks_with_credential(self):
        server = FakeBlockStreamServer([100, 101, 102])
        await server.start()
        client = FirehoseClient(f"127.0.0.1:{server.port}", plaintext=True)
        try:
            responses = [r async for r in client.blocks(stream_request(), credential="jwt-token")]
        finally:
            await client.close()
            await server.stop()

        assert [r.cursor for r in responses] == ["cursor-100", "cursor-101", "cursor-102"]
        assert server.requests[0].start_block_num == 100
        assert server.requests[0].include_filter_expr == "receiver == 'eosio.token'"
        assert server.metadata[0]["authorization"] == "Bearer jwt-token"

    @pytest.mark.asyncio
    async def test_remote_error_becomes_transport_error(self):
        server = FakeBlockStreamServer([100, 101, 102], fail_after=2)
        await server.start()
        client = FirehoseClient(f"127.0.0.1:{server.port}", plaintext=True)
        received = []
        try:
            with pytest.raises(TransportError) as exc_info:
                async for response in client.blocks(stream_request()):
                    received.append(response)
        finally:
            await client.close()
            await server.stop()

        assert len(received) == 2
        assert exc_info.value.code == "UNAVAILABLE"

    def test_empty_endpoint_rejected(self):
        with pytest.raises(InputValidationError):
            FirehoseClient("")
