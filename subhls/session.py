#!/usr/bin/env python3
"""
Segmenter Session Module

The single consumer that owns all mutable state of a running segmenter.
Input lines and timer ticks arrive as messages on one asyncio queue and
are handled strictly one at a time, so a drain is never re-entered and no
locking is needed.

Scheduler states:
    idle      waiting for the next tick
    draining  writing a segment and rewriting the playlist
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from subhls.config import Settings
from subhls.dialogue import DIALOGUE_PREFIX, DialogueRecord, InputCorrector
from subhls.dialogue_queue import GAPFILL, make_queue
from subhls.errors import Ass2HlsError
from subhls.master_playlist import patch_master_playlist
from subhls.monitoring import PipelineMetrics
from subhls.playlist import PlaylistWindow, Segment
from subhls.segment_writer import HeaderTemplate, SegmentWriter
from subhls.timestamps import format_program_date_time, local_now

logger = logging.getLogger("ass2hls.session")

IDLE = "idle"
DRAINING = "draining"

# Message kinds
LINE = "line"
TICK = "tick"
EOF = "eof"
STOP = "stop"


def _ms(seconds: float) -> int:
    return int(round(seconds * 1000))


class SegmenterSession:
    """State and message loop of one segmenter process."""

    def __init__(self, settings: Settings, time_base: Optional[datetime] = None):
        """
        Initialize the session.

        Args:
            settings: Validated settings
            time_base: Wall-clock instant cue offsets are relative to;
                defaults to now
        """
        self.settings = settings
        self.time_base = time_base or local_now()
        self.segment_duration = _ms(settings.segment_duration)

        self.header = HeaderTemplate()
        self.corrector = InputCorrector()
        self.queue = make_queue(settings.policy)
        self.events: List[DialogueRecord] = []
        self.window: Optional[PlaylistWindow] = None
        self.writer = SegmentWriter(settings.output_dir, self.header,
                                    self.segment_duration, settings.millis_names)
        self.metrics = PipelineMetrics(metrics_dir=settings.metrics_dir)

        self.state = IDLE
        self.closed = False
        self._messages: asyncio.Queue = asyncio.Queue()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._timer_generation = 0

    @property
    def gap_filling(self) -> bool:
        return self.queue.policy == GAPFILL

    # --- message plumbing -------------------------------------------------

    def post_line(self, line: str) -> None:
        self._messages.put_nowait((LINE, line))

    def post_eof(self) -> None:
        self._messages.put_nowait((EOF,))

    def post_stop(self, flush: bool = True) -> None:
        self._messages.put_nowait((STOP, flush))

    def arm_timer(self, delay: int) -> None:
        """(Re)arm the rotation timer ``delay`` milliseconds from now."""
        self.cancel_timer()
        generation = self._timer_generation
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay / 1000, self._messages.put_nowait, (TICK, generation))

    def cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        # Ticks already queued by the cancelled timer are now stale
        self._timer_generation += 1

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    # --- lifecycle ----------------------------------------------------------

    async def start(self) -> None:
        """Reconstruct the playlist window from disk, if there is one."""
        self.window = await PlaylistWindow.load(
            self.settings.output_path,
            self.settings.list_size,
            self.segment_duration,
            self.settings.init_name,
        )
        logger.info(f"Session time base {format_program_date_time(self.time_base)}, "
                    f"{self.queue.policy} policy, {self.settings.segment_duration}s segments, "
                    f"window of {self.settings.list_size}")

    async def run(self) -> None:
        """
        Handle messages until end of input or a stop request.

        Any error raised while handling a message ends the loop and
        propagates to the caller.
        """
        if self.window is None:
            await self.start()
        try:
            while True:
                message = await self._messages.get()
                kind = message[0]
                if kind == LINE:
                    await self.handle_line(message[1])
                elif kind == TICK:
                    if message[1] != self._timer_generation:
                        continue
                    self._timer = None
                    await self.handle_tick()
                elif kind == EOF:
                    logger.info("End of input")
                    await self.shutdown(flush=True)
                    return
                elif kind == STOP:
                    await self.shutdown(flush=message[1])
                    return
        finally:
            self.cancel_timer()

    async def shutdown(self, flush: bool = True) -> None:
        """
        Stop the session. With ``flush``, cues still buffered are closed and
        written as a final segment; otherwise they are dropped.
        """
        self.cancel_timer()
        if self.closed:
            return
        self.closed = True
        if not flush:
            logger.info(f"Stopping without flushing {len(self.events) + len(self.queue)} buffered cue(s)")
            return
        self.events.extend(self.queue.flush(_ms(self.settings.max_cue_duration)))
        if self.events:
            await self.drain()
        logger.info("Session closed")

    # --- handlers -------------------------------------------------------------

    async def handle_line(self, line: str) -> None:
        """Handle one input line: header capture first, then dialogue cues."""
        self.metrics.increment("lines_read")

        if not self.header.complete:
            self.header.feed(line)
            if self.header.complete:
                await self.writer.write_init(self.window.init_path)
                if self.gap_filling:
                    self.arm_timer(self.segment_duration)
            return

        if not line.startswith(DIALOGUE_PREFIX):
            if line.strip():
                logger.debug(f"Ignoring non-dialogue line: {line.rstrip()!r}")
            return

        record = DialogueRecord.parse(line, self.header.field_names)
        self.corrector.correct(record)
        self.metrics.increment("cues_parsed")

        ready = self.queue.push(record)
        self.events.extend(ready)
        self.metrics.increment("cues_emitted", len(ready))

        if self.gap_filling:
            # A burst of lines shares the one pending rotation
            if not self.timer_pending:
                self.arm_timer(self.segment_duration)
        else:
            self.arm_timer(_ms(self.settings.idle_timeout))

    async def handle_tick(self) -> None:
        if not self.events:
            self.metrics.increment("empty_ticks")
            if self.gap_filling:
                self.arm_timer(_ms(self.settings.empty_retry))
            return

        await self.drain()
        if self.gap_filling:
            self.arm_timer(self.segment_duration)

    async def drain(self) -> Segment:
        """
        Write every buffered cue as one segment and publish it.

        Raises:
            Ass2HlsError: On any write failure; the segment stream cannot
                continue safely after one
        """
        self.state = DRAINING
        try:
            records, self.events = self.events, []
            segment = await self.writer.write_segment(records, self.time_base)
            evicted = await self.window.commit(segment)
            self.metrics.record_rotation(segment.uri, len(evicted))

            if self.settings.master_path:
                await patch_master_playlist(
                    self.settings.master_path,
                    self.window.path,
                    language=self.settings.language,
                    name=self.settings.name,
                    group_id=self.settings.group_id,
                    default=self.settings.default_rendition,
                    characteristics=self.settings.characteristics,
                )

            try:
                await self.metrics.save()
            except Ass2HlsError as e:
                logger.warning(f"Could not save metrics: {e}")
            return segment
        finally:
            self.state = IDLE
