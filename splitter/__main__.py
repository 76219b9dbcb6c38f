"""CLI entry point for splitting a stream into chunks.

Usage:
    python -m splitter app.log --delimiter "\\n" --chunk-size 65536
    cat data.csv | python -m splitter - --delimiter "\\n" --output-dir ./chunks
    python -m splitter app.log --config splitter.yaml
    python -m splitter --demo

Chunks are printed to stdout as ``chunk_sn start_value_sn end_value_sn payload``
unless --output-dir is given. Logs go to stderr.

Exit codes:
    0    all input consumed and flushed
    1    run failed (I/O error, value over --max-value-size, handler error)
    2    invalid configuration
    130  stopped by Ctrl-C before the end of input
"""

from __future__ import annotations

import argparse
import io
import logging
import signal
import sys
from contextlib import contextmanager
from typing import Any, BinaryIO, Dict, Generator, Iterator, List, Optional

from splitter.lib.accumulator import RunStatus, Splitter
from splitter.lib.chunk import Chunk
from splitter.lib.config import SplitterConfig, SplitterSettings, load_settings, make_drop_filter
from splitter.lib.env import load_env_file
from splitter.lib.errors import ConfigurationError, SplitterError
from splitter.lib.handlers import ChunkFileWriter, print_chunk
from splitter.lib.observability import setup_logging

logger = logging.getLogger("splitter")

EXIT_OK = 0
EXIT_RUN_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_STOPPED = 130

DEMO_INPUT = b"apple,banana,pear,peach,cherry"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stream-splitter",
        description="Split a delimited byte stream into size-bounded chunks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Newline-delimited log file, ~64 KiB chunks printed to stdout
    python -m splitter app.log --delimiter "\\n" --chunk-size 65536

    # Read stdin, write one file per chunk plus _chunks.json
    cat events.ndjson | python -m splitter - --output-dir ./chunks

    # Drop empty and "-" values, throttle to 1 MiB/s
    python -m splitter feed.txt --drop "" --drop "-" --rate-limit 1048576

    # Settings from YAML (a top-level 'splitter:' section or a flat mapping)
    python -m splitter feed.txt --config splitter.yaml
        """,
    )
    parser.add_argument(
        "input",
        nargs="?",
        default="-",
        help="Input file, or - for stdin (default: -)",
    )
    parser.add_argument("--delimiter", "-d", help="Value delimiter; escapes like \\n and \\x00 allowed (default: \\n)")
    parser.add_argument("--chunk-size", type=int, dest="chunk_size_limit", help="Soft chunk size limit in bytes (min 16)")
    parser.add_argument(
        "--max-value-size",
        type=int,
        dest="value_max_scan_size",
        help="Max bytes scanned for one value before failing (min 4096)",
    )
    parser.add_argument("--start-chunk-sn", type=int, dest="start_chunk_sn", help="First chunk sequence number")
    parser.add_argument("--rate-limit", type=float, dest="rate_limit", help="Max bytes read per second (0 = unlimited)")
    parser.add_argument(
        "--drop",
        action="append",
        dest="drop_values",
        metavar="VALUE",
        help="Drop values equal to VALUE (repeatable)",
    )
    parser.add_argument("--output-dir", "-o", dest="output_dir", help="Write chunk files to this directory")
    parser.add_argument("--chunk-prefix", dest="chunk_prefix", help="Chunk file name prefix (default: chunk)")
    parser.add_argument("--config", "-c", help="YAML settings file")
    parser.add_argument("--env-file", help="Load environment variables from this .env file first")
    parser.add_argument("--demo", action="store_true", help="Split a built-in sample and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--log-level", dest="log_level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument(
        "--json-log",
        action="store_true",
        help="Output logs in JSON format (for log aggregation systems)",
    )
    parser.add_argument("--log-file", dest="log_file", help="Write logs to a file in addition to stderr")
    return parser


def _overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {
        "delimiter": args.delimiter,
        "chunk_size_limit": args.chunk_size_limit,
        "value_max_scan_size": args.value_max_scan_size,
        "start_chunk_sn": args.start_chunk_sn,
        "rate_limit": args.rate_limit,
        "drop_values": args.drop_values,
        "output_dir": args.output_dir,
        "chunk_prefix": args.chunk_prefix,
        "log_level": args.log_level,
        "log_file": args.log_file,
    }
    if args.json_log:
        overrides["log_format"] = "json"
    return overrides


@contextmanager
def open_input(path: str) -> Iterator[BinaryIO]:
    """Yield a binary stream for ``path`` (``-`` is stdin, left open)."""
    if path == "-":
        yield sys.stdin.buffer
        return
    with open(path, "rb") as f:
        yield f


@contextmanager
def stop_on_interrupt(splitter: Splitter) -> Generator[None, None, None]:
    """Turn SIGINT into a cooperative stop request while the run is active."""

    def handler(signum: int, frame: Any) -> None:
        logger.warning("Interrupt received, stopping after the current value")
        splitter.request_stop()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def print_demo_chunk(chunk: Chunk) -> None:
    print(
        f"Chunk {chunk.chunk_sn} values {chunk.start_value_sn} to {chunk.end_value_sn}: "
        f"{chunk.data.decode('utf-8', errors='replace')}"
    )


def run_demo() -> int:
    """Split ``apple,banana,pear,peach,cherry`` with a 16-byte limit, dropping banana."""
    config = SplitterConfig(
        delimiter=b",",
        chunk_size_limit=16,
        flush_handler=print_demo_chunk,
        value_filter=make_drop_filter(["banana"]),
    )
    Splitter(config).run(io.BytesIO(DEMO_INPUT))
    return EXIT_OK


def run_split(settings: SplitterSettings, input_path: str) -> int:
    writer: Optional[ChunkFileWriter] = None
    if settings.output_dir:
        writer = ChunkFileWriter(settings.output_dir, prefix=settings.chunk_prefix)
    splitter = Splitter(settings.to_config(flush_handler=writer or print_chunk))

    logger.info(
        "Splitting %s (delimiter=%r, chunk_size_limit=%d)",
        "stdin" if input_path == "-" else input_path,
        splitter.delimiter,
        splitter.chunk_size_limit,
    )

    with open_input(input_path) as stream, stop_on_interrupt(splitter):
        result = splitter.run(stream)

    if writer is not None:
        writer.write_manifest(extra_metadata={
            "status": result.status.value,
            "bytes_scanned": result.bytes_scanned,
        })

    return EXIT_STOPPED if result.status is RunStatus.STOPPED else EXIT_OK


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.env_file:
        load_env_file(args.env_file)

    try:
        settings = load_settings(args.config, _overrides_from_args(args))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    setup_logging(
        verbose=args.verbose,
        json_format=settings.log_format == "json",
        log_file=settings.log_file,
        level=settings.log_level,
    )

    try:
        if args.demo:
            code = run_demo()
        else:
            code = run_split(settings, args.input)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)
    except (SplitterError, OSError) as e:
        logger.error("Split failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_RUN_ERROR)

    sys.exit(code)


if __name__ == "__main__":
    main()
