"""
Firehose playground: block stream consumption stats.

Main entry point for the application.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from auth.dfuse import DfuseAuthClient
from auth.provider import IdentityProvider
from config.settings import settings
from core.errors import FirehoseError, InputValidationError
from core.retry import RetryPolicy
from core.stats import Summary
from models.blocks import BlockRange
from models.requests import BlockDetails, ForkMode, ResumeStrategy
from storage.block_writer import open_block_writer
from stream.consumer import ConsumerConfig, ResumableStreamConsumer
from stream.firehose import FirehoseClient

logger = logging.getLogger("firehose")

USAGE = """usage: firehose-playground [options] <endpoint> <filter> <range>

Prints consumption stats connection to a dfuse Firehose endpoint like time
taken to fetch blocks, amount of bytes received, throughput stats, etc.

The <filter> is a valid CEL filter expression for the EOSIO network.

The <range> value must be in the form [<start>-<stop>] like "150 000 000 - 150 010 000"
(spaces are trimmed automatically so it's fine to use them). If the <stop> value is omitted,
it becomes a never ending streaming of blocks.
"""


class UsageError(Exception):
    """Invalid command line invocation."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="firehose-playground",
        description="Firehose playground - block stream consumption stats",
        usage="%(prog)s [options] <endpoint> <filter> <range>",
        epilog="The <range> value must be in the form <start>-<stop> or <start>- (never ending). "
               "The DFUSE_API_KEY environment variable must be set unless --no-auth is used.",
    )
    parser.add_argument("endpoint", nargs="?", help="Firehose gRPC endpoint (host:port)")
    parser.add_argument("filter", nargs="?", help="CEL include filter expression")
    parser.add_argument("range", nargs="?", help="Block range <start>-<stop> or <start>-")
    parser.add_argument(
        "-i", "--insecure",
        action="store_true",
        help="When set, assume we talk over a plain-text unencrypted gRPC connection"
    )
    parser.add_argument(
        "-s", "--skip-verify",
        action="store_true",
        help="When set, skips certificate verification"
    )
    parser.add_argument(
        "-f", "--full",
        action="store_true",
        help="Stream full blocks with all trace fields instead of light blocks"
    )
    parser.add_argument(
        "-l", "--live",
        action="store_true",
        help="Stream reversible blocks (new/undo steps) instead of irreversible only"
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default="",
        help="Write each block as one JSON line to this file, '-' writes to standard output, "
             "{range} is replaced by the block range"
    )
    parser.add_argument(
        "--resume-by",
        choices=[strategy.value for strategy in ResumeStrategy],
        default=ResumeStrategy.CURSOR.value,
        help="Resume a dropped stream by server cursor (default) or by last block number"
    )
    parser.add_argument(
        "--no-auth",
        action="store_true",
        help="Do not authenticate (DFUSE_API_KEY is then not required)"
    )
    parser.add_argument(
        "--retry-delay",
        type=float,
        default=None,
        help=f"Seconds between reconnections (default {settings.retry_delay_seconds})"
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=None,
        help="Give up after this many consecutive failed attempts (default: retry forever)"
    )
    parser.add_argument(
        "--backoff",
        type=float,
        default=None,
        help="Multiply the retry delay by this factor on each consecutive failure (default 1.0)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (logs every received block)"
    )
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    args = build_parser().parse_args(argv)
    if not args.endpoint or args.filter is None or not args.range:
        raise UsageError("missing arguments")
    return args


def build_config(args: argparse.Namespace) -> ConsumerConfig:
    """Translate command line flags into a consumer configuration."""
    defaults = RetryPolicy.from_settings()
    try:
        retry = RetryPolicy(
            delay=args.retry_delay if args.retry_delay is not None else defaults.delay,
            max_attempts=args.max_attempts if args.max_attempts is not None else defaults.max_attempts,
            backoff_multiplier=args.backoff if args.backoff is not None else defaults.backoff_multiplier,
            max_delay=defaults.max_delay,
        )
    except ValueError as e:
        raise InputValidationError(str(e)) from e

    return ConsumerConfig(
        fork_mode=ForkMode.LIVE if args.live else ForkMode.IRREVERSIBLE,
        details=BlockDetails.FULL if args.full else BlockDetails.LIGHT,
        resume_strategy=ResumeStrategy(args.resume_by),
        retry=retry,
        status_frequency=settings.status_frequency_seconds,
    )


def build_identity(args: argparse.Namespace, api_key: Optional[str]) -> Optional[IdentityProvider]:
    if args.no_auth:
        return None
    if not api_key:
        raise UsageError("the environment variable DFUSE_API_KEY must be set to a valid dfuse API key value")
    return DfuseAuthClient(api_key)


def setup_signal_handlers(consumer: ResumableStreamConsumer):
    """Stop streaming on the first SIGINT/SIGTERM, interrupt on the second."""
    loop = asyncio.get_running_loop()

    def handler(signum, frame):
        sig_name = signal.Signals(signum).name
        logger.info(f"Received {sig_name}, stopping stream after the current block (repeat to interrupt)...")
        loop.call_soon_threadsafe(consumer.stop)
        signal.signal(signal.SIGINT, signal.default_int_handler)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


async def run(
    args: argparse.Namespace,
    block_range: BlockRange,
    config: ConsumerConfig,
    identity: Optional[IdentityProvider],
) -> Summary:

    transport = FirehoseClient(
        args.endpoint,
        plaintext=args.insecure,
        skip_verify=args.skip_verify,
    )
    writer = await open_block_writer(args.output, block_range)
    consumer = ResumableStreamConsumer(
        transport,
        config=config,
        identity=identity,
        sink=writer,
    )
    setup_signal_handlers(consumer)

    try:
        return await consumer.run(args.endpoint, args.filter, block_range)
    finally:
        if writer:
            await writer.close()
        await transport.close()
        if identity:
            await identity.close()


def configure_logging(debug: bool = False):
    # Blocks may go to stdout, keep diagnostics on stderr
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ]
    )


def quit_with(message: str, usage: bool = False) -> int:
    if usage:
        message = f"{message}\n\n{USAGE}"
    print(message, file=sys.stderr)
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point, returns the process exit code."""
    try:
        args = parse_args(argv)
        block_range = BlockRange.parse(args.range)
        config = build_config(args)
        identity = build_identity(args, settings.dfuse_api_key)
    except UsageError as e:
        return quit_with(str(e), usage=True)
    except InputValidationError as e:
        return quit_with(f"invalid arguments: {e}")

    configure_logging(args.debug)

    try:
        summary = asyncio.run(run(args, block_range, config, identity))
    except FirehoseError as e:
        return quit_with(f"{type(e).__name__}: {e}")
    except OSError as e:
        return quit_with(f"unable to write blocks: {e}")
    except KeyboardInterrupt:
        return quit_with("interrupted")

    for line in summary.format_lines():
        print(line, file=sys.stderr)
    return 0


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
