#!/usr/bin/env python3
"""
Segment Writer Module

Captures the script header from the input once and drains buffered cues
into standalone ASS segment files, each prefixed with that header so it
can be decoded on its own.
"""

import logging
import os
from datetime import datetime, timedelta
from typing import List, Optional

from subhls.dialogue import FORMAT_PREFIX, DialogueRecord, parse_format_line
from subhls.file_io import atomic_file_write, write_file
from subhls.playlist import Segment
from subhls.timestamps import format_program_date_time

logger = logging.getLogger("ass2hls.segment_writer")

EVENTS_SECTION = "[Events]"
SEGMENT_PREFIX = "segment_"
SEGMENT_EXTENSION = ".ass"
SEGMENT_NAME_FORMAT = "%Y%m%d%H%M%S"


class HeaderTemplate:
    """
    The part of the input preceding and including the ``[Events]`` Format line.

    Lines are fed one by one until the Format line of the ``[Events]``
    section is seen; from then on the template is frozen.
    """

    def __init__(self):
        self.lines: List[str] = []
        self.field_names: Optional[List[str]] = None
        self._in_events = False

    @property
    def complete(self) -> bool:
        return self.field_names is not None

    def feed(self, line: str) -> bool:
        """
        Offer an input line to the header.

        Returns:
            bool: True if the line belonged to the header
        """
        if self.complete:
            return False

        line = line.rstrip("\r\n")
        self.lines.append(line)
        stripped = line.strip()
        if stripped.startswith("[") and stripped.endswith("]"):
            self._in_events = stripped == EVENTS_SECTION
        elif self._in_events and stripped.startswith(FORMAT_PREFIX):
            self.field_names = parse_format_line(stripped)
            logger.info(f"Captured header ({len(self.lines)} lines), fields: {', '.join(self.field_names)}")
        return True

    def render(self) -> str:
        return "\n".join(self.lines) + "\n"


class SegmentWriter:
    """Writes one segment file per drain of the event buffer."""

    def __init__(self,
                 output_dir: str,
                 header: HeaderTemplate,
                 segment_duration: int,
                 millis_names: bool = False):
        """
        Initialize the writer.

        Args:
            output_dir: Directory the segment files are written to
            header: Captured header template
            segment_duration: Nominal segment duration in milliseconds
            millis_names: Append milliseconds to file names so two segments
                starting within the same second do not collide
        """
        self.output_dir = output_dir
        self.header = header
        self.segment_duration = segment_duration
        self.millis_names = millis_names

    def segment_name(self, moment: datetime) -> str:
        """File name for a segment starting at the given wall-clock time."""
        name = SEGMENT_PREFIX + moment.strftime(SEGMENT_NAME_FORMAT)
        if self.millis_names:
            name += f"{moment.microsecond // 1000:03d}"
        return name + SEGMENT_EXTENSION

    def render(self, records: List[DialogueRecord]) -> str:
        content = self.header.render()
        for record in records:
            content += record.serialize() + "\n"
        return content

    async def write_init(self, path: str) -> None:
        """Write the header template as the initialization segment."""
        await atomic_file_write(path, self.header.render())
        logger.info(f"Wrote initialization segment {path}")

    async def write_segment(self, records: List[DialogueRecord], time_base: datetime) -> Segment:
        """
        Re-base the given cues onto their segment and write the segment file.

        The segment starts at the first cue. Its duration is the span between
        the first and last cue starts, or the nominal duration when that span
        is empty.

        Args:
            records: Cues to write, in output order; must not be empty
            time_base: Wall-clock instant all cue offsets are relative to

        Returns:
            Segment: Playlist entry for the written file

        Raises:
            SegmentWriteError: If the file cannot be written
        """
        start = records[0].start
        duration = records[-1].start - start
        if duration <= 0:
            duration = self.segment_duration

        moment = time_base + timedelta(milliseconds=start)
        for record in records:
            record.shift(-start)

        name = self.segment_name(moment)
        path = os.path.join(self.output_dir, name)
        await write_file(path, self.render(records))

        logger.info(f"Wrote segment {name}: {len(records)} cue(s), {duration}ms, "
                    f"starting {format_program_date_time(moment)}")
        return Segment(name, moment, duration)
