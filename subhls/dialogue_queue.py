#!/usr/bin/env python3
"""
Dialogue Queue Module

Buffers cues whose end time is not known yet. ARIB captions stay on screen
until the next caption (or a "clear" event) replaces them, so an open-ended
cue is closed at the start of the next cue that begins at a different time.
"""

import logging
from typing import List

from subhls.dialogue import DialogueRecord

logger = logging.getLogger("ass2hls.queue")

GAPFILL = "gapfill"
PASSTHROUGH = "passthrough"
POLICIES = (GAPFILL, PASSTHROUGH)


class DialogueQueue:
    """Gap-filling queue: open-ended cues are held until a later cue closes them."""

    policy = GAPFILL

    def __init__(self):
        self.pending: List[DialogueRecord] = []

    def __len__(self) -> int:
        return len(self.pending)

    def push(self, record: DialogueRecord) -> List[DialogueRecord]:
        """
        Add a cue and return the cues that became complete, in arrival order.

        Args:
            record: The incoming cue

        Returns:
            List[DialogueRecord]: Cues ready to be written
        """
        ready = []
        while self.pending and self.pending[0].is_open:
            head = self.pending[0]
            if head.start == record.start:
                # Same cue boundary: the incoming cue shares the screen with it.
                break
            head.close(record.start)
            ready.append(self.pending.pop(0))

        if record.is_empty:
            logger.debug(f"Dropping empty cue at {record.start}ms")
        elif record.is_open:
            self.pending.append(record)
        else:
            ready.append(record)
        return ready

    def flush(self, max_duration: int) -> List[DialogueRecord]:
        """
        Close every buffered cue at ``start + max_duration`` and return them.

        Used at shutdown so no unterminated cue is ever written.
        """
        flushed = self.pending
        self.pending = []
        for record in flushed:
            if record.is_open:
                record.close(record.start + max_duration)
        if flushed:
            logger.info(f"Flushed {len(flushed)} open cue(s) with {max_duration}ms duration")
        return flushed


class PassthroughQueue:
    """No gap filling: every visible cue is released as soon as it arrives."""

    policy = PASSTHROUGH

    def __len__(self) -> int:
        return 0

    def push(self, record: DialogueRecord) -> List[DialogueRecord]:
        if record.is_empty:
            return []
        return [record]

    def flush(self, max_duration: int) -> List[DialogueRecord]:
        return []


def make_queue(policy: str):
    """Create the queue for a policy name ("gapfill" or "passthrough")."""
    if policy == GAPFILL:
        return DialogueQueue()
    if policy == PASSTHROUGH:
        return PassthroughQueue()
    raise ValueError(f"Unknown queue policy: {policy!r} (expected one of {', '.join(POLICIES)})")
