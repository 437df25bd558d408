#!/usr/bin/env python3
"""
ass2hls: live ASS subtitles to HLS

Reads an ASS subtitle stream (as produced by e.g.
``ffmpeg -i <ts> -map 0:s:0 -f ass -``) on standard input and maintains a
rolling window of subtitle segments and a live media playlist next to the
configured output path.

Example:
    ffmpeg -i udp://... -map 0:s:0 -f ass - | ass2hls -o /srv/hls/sub/playlist.m3u8 -m /srv/hls/master.m3u8
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import List, Optional

from subhls.config import Settings
from subhls.dialogue_queue import POLICIES
from subhls.errors import Ass2HlsError
from subhls.logging_config import configure_logging
from subhls.session import SegmenterSession

SERVICE_NAME = "ass2hls"

MAX_LINE_LENGTH = 16 * 1024 * 1024  # bytes

logger = logging.getLogger(SERVICE_NAME)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=SERVICE_NAME,
        description="Segment a live ASS subtitle stream from stdin into HLS subtitle segments")
    parser.add_argument("-o", "--output", help="Media playlist path; segments are written next to it")
    parser.add_argument("-d", "--segment-duration", type=float, help="Nominal segment duration in seconds")
    parser.add_argument("-s", "--list-size", type=int, help="Maximum number of segments in the playlist")
    parser.add_argument("--init-name", help="File name of the initialization segment")
    parser.add_argument("-m", "--master", help="Master playlist to add the subtitle rendition to")
    parser.add_argument("--policy", choices=POLICIES, help="Cue buffering policy")
    parser.add_argument("--idle-timeout", type=float, help="Seconds without input before a passthrough rotation")
    parser.add_argument("--millis-names", action="store_true", default=None,
                        help="Add milliseconds to segment file names")
    parser.add_argument("--env-file", help="Read settings from this .env file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env(args.env_file)
    overrides = {
        "output_path": args.output,
        "segment_duration": args.segment_duration,
        "list_size": args.list_size,
        "init_name": args.init_name,
        "master_path": args.master,
        "policy": args.policy,
        "idle_timeout": args.idle_timeout,
        "millis_names": args.millis_names,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(settings, key, value)
    return settings


def setup_logging(settings: Settings, verbose: bool = False, service_name: str = SERVICE_NAME) -> logging.Logger:
    """Configure logging from settings, which include values read from .env."""
    return configure_logging(
        service_name,
        console_level="DEBUG" if verbose else settings.console_log_level,
        file_level=settings.file_log_level,
        log_dir=settings.log_dir,
        enable_file=settings.log_to_file,
        json_logs=settings.json_logs,
    )


async def read_lines(session: SegmenterSession, stream=None) -> None:
    """Feed lines from a pipe (stdin by default) into the session, then EOF."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=MAX_LINE_LENGTH)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), stream or sys.stdin)

    first = True
    while True:
        raw = await reader.readline()
        if not raw:
            break
        line = raw.decode("utf-8")
        if first:
            line = line.lstrip("\ufeff")
            first = False
        session.post_line(line)
    session.post_eof()


async def run_session(settings: Settings) -> int:
    session = SegmenterSession(settings)
    await session.start()

    consumer = asyncio.ensure_future(session.run())
    reader = asyncio.ensure_future(read_lines(session))
    signals_seen = 0

    def handle_signal(signum: int) -> None:
        nonlocal signals_seen
        signals_seen += 1
        if signals_seen == 1:
            logger.info(f"Received signal {signum}, flushing and stopping...")
            session.post_stop(flush=True)
        else:
            logger.warning(f"Received signal {signum} again, stopping without flushing")
            consumer.cancel()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        done, _ = await asyncio.wait({consumer, reader}, return_when=asyncio.FIRST_COMPLETED)
        if reader in done and reader.exception() is not None:
            consumer.cancel()
            raise reader.exception()
        await consumer
    except asyncio.CancelledError:
        logger.warning("Terminated, buffered cues were dropped")
        return 1
    finally:
        reader.cancel()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = settings_from_args(args)
        settings.validate()
    except ValueError as e:
        parser.error(str(e))

    setup_logging(settings, verbose=args.verbose)

    try:
        os.makedirs(settings.output_dir, exist_ok=True)
        return asyncio.run(run_session(settings))
    except (Ass2HlsError, OSError, ValueError) as e:
        logger.critical(f"Fatal: {e}")
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
