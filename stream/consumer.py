"""Resumable block stream consumer."""

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from auth.provider import IdentityProvider
from core.errors import InputValidationError, PrematureEndOfStream, RetryExhaustedError, TransportError
from core.retry import RetryPolicy
from core.stats import SessionStats, Summary
from models.blocks import BlockRange, Cursor
from models.requests import BlockDetails, ForkMode, ResumeStrategy, StreamRequest
from storage.block_writer import BlockWriter
from .codec import BlockCodec, DecodedBlock
from .firehose import BlockStreamTransport

logger = logging.getLogger(__name__)


@dataclass
class ConsumerConfig:
    """Points of variation of a consumer run."""
    fork_mode: ForkMode = ForkMode.IRREVERSIBLE
    details: BlockDetails = BlockDetails.LIGHT
    resume_strategy: ResumeStrategy = ResumeStrategy.CURSOR
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    status_frequency: float = 15.0


class ResumableStreamConsumer:
    """
    Streams a block range, restarting the stream after disconnects.

    Each connection attempt opens one stream starting right after the last
    decoded block. Transport errors and premature end of stream are retried
    according to the configured ``RetryPolicy``; authentication and decode
    failures abort the run.

    Blocks around a reconnect may be delivered twice (at-least-once), so
    anything downstream of the sink must tolerate duplicates.
    """

    def __init__(
        self,
        transport: BlockStreamTransport,
        codec: Optional[BlockCodec] = None,
        config: Optional[ConsumerConfig] = None,
        identity: Optional[IdentityProvider] = None,
        sink: Optional[BlockWriter] = None,
        log: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.transport = transport
        self.codec = codec or BlockCodec()
        self.config = config or ConsumerConfig()
        self.identity = identity
        self.sink = sink
        self.log = log or logger
        self._clock = clock

        self._stop_event = asyncio.Event()
        self.cursor = Cursor.EMPTY
        self.stats: Optional[SessionStats] = None
        self._next_status = 0.0

    def stop(self):
        """Signal to stop streaming; honored between messages and before each attempt."""
        self._stop_event.set()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def next_start(self, block_range: BlockRange) -> int:
        """Start block of the next attempt: right after the last decoded block."""
        if self.cursor.is_empty:
            return block_range.start
        return max(block_range.start, self.cursor.block.num + 1)

    def build_request(self, filter_expr: str, block_range: BlockRange) -> StreamRequest:
        cursor = ""
        if self.config.resume_strategy is ResumeStrategy.CURSOR:
            cursor = self.cursor.token

        return StreamRequest(
            start=self.next_start(block_range),
            stop=block_range.end,
            fork_steps=self.config.fork_mode.fork_steps,
            filter_expr=filter_expr,
            details=self.config.details,
            cursor=cursor,
        )

    def _range_covered(self, block_range: BlockRange) -> bool:
        if block_range.is_open_ended:
            return True
        return not self.cursor.is_empty and self.cursor.block.num >= block_range.last_block

    async def _credential(self) -> Optional[str]:
        if self.identity is None:
            return None
        token = await self.identity.get_token()
        return token.token

    async def run(self, endpoint: str, filter_expr: str, block_range: BlockRange) -> Summary:
        """
        Stream ``block_range`` to completion or until ``stop()`` is called.

        Raises:
            InputValidationError: empty endpoint or inverted range
            AuthError: credential retrieval failed
            DecodeError: a payload could not be decoded
            RetryExhaustedError: only with a finite ``max_attempts``
        """
        if not endpoint:
            raise InputValidationError("endpoint must not be empty")
        if not block_range.is_open_ended and block_range.start >= block_range.end:
            raise InputValidationError(f"invalid block range {block_range}: start must come before end")

        retry = self.config.retry
        self.stats = SessionStats(clock=self._clock)
        self.cursor = Cursor.EMPTY
        self._next_status = self._clock() + self.config.status_frequency
        failures = 0
        cancelled = False

        self.log.info(f"Starting firehose stream endpoint={endpoint} range={block_range} "
                      f"mode={self.config.fork_mode.value} resume={self.config.resume_strategy.value}")

        while True:
            if self.stopping:
                cancelled = True
                break

            credential = await self._credential()
            request = self.build_request(filter_expr, block_range)
            self.log.debug(f"Opening blocks stream start={request.start} stop={request.stop} "
                           f"cursor={request.cursor or '<none>'}")

            received_before = self.stats.blocks_received.total
            try:
                await self._consume(request, credential)
            except TransportError as e:
                failure = e
            else:
                if self.stopping:
                    cancelled = True
                    break
                if self._range_covered(block_range):
                    break
                failure = PrematureEndOfStream(
                    f"stream ended at {self.cursor.block} before end of range {block_range}"
                )

            if self.stats.blocks_received.total > received_before:
                failures = 0

            if self.stopping:
                cancelled = True
                break

            failures += 1
            delay = retry.delay_for(failures)
            self.log.error(
                f"Stream failed with {type(failure).__name__}, going to retry cursor={self.cursor.token!r} "
                f"last_block={self.cursor.block} retry_delay={delay}s error={failure}"
            )
            if retry.exhausted(failures):
                raise RetryExhaustedError(failures, failure)

            self.stats.record_restart()
            await self._wait(delay)

        summary = self.stats.summary(self.cursor, cancelled=cancelled)
        self.log.info(f"Firehose stream {'cancelled' if cancelled else 'completed'} "
                      f"blocks={summary.blocks_received} restarts={summary.restart_count}")
        return summary

    async def _consume(self, request: StreamRequest, credential: Optional[str]):
        """Read one stream until it ends, is stopped, or fails."""
        stream = self.transport.blocks(request, credential)
        async with contextlib.aclosing(stream):
            async for response in stream:
                block = self.codec.decode(response)
                await self._handle_block(block)

                if self.stopping:
                    break

    async def _handle_block(self, block: DecodedBlock):
        self.cursor = Cursor(token=block.cursor, block=block.ref)

        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(f"Block received block={block.ref} previous={block.previous_ref} "
                           f"step={block.step.name} cursor={block.cursor}")

        now = self._clock()
        if now >= self._next_status:
            self.log.info(f"Stream blocks progress {self.stats.progress()}")
            self._next_status = now + self.config.status_frequency

        if self.sink is not None:
            await self.sink.write(block)

        self.stats.record_block(block.size)

    async def _wait(self, delay: float):
        """Sleep ``delay`` seconds, waking early if ``stop()`` is called."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

