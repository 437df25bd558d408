#!/usr/bin/env python3
"""
Playlist Window Module

Maintains the sliding window of subtitle segments referenced by the live
media playlist. The playlist is regenerated from memory on every rotation
and replaced atomically; on startup an existing playlist is parsed back so
a restarted process continues the same window and sequence numbers.
"""

import logging
import math
import os
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from subhls.errors import PlaylistError, TimestampError
from subhls.file_io import atomic_file_write, ensure_within_directory, read_text, remove_quietly
from subhls.timestamps import (
    format_duration,
    format_program_date_time,
    parse_duration,
    parse_program_date_time,
)

logger = logging.getLogger("ass2hls.playlist")

PLAYLIST_VERSION = 6

EXTM3U = "#EXTM3U"
EXT_X_VERSION = "#EXT-X-VERSION"
EXT_X_TARGETDURATION = "#EXT-X-TARGETDURATION"
EXT_X_MEDIA_SEQUENCE = "#EXT-X-MEDIA-SEQUENCE"
EXT_X_DISCONTINUITY_SEQUENCE = "#EXT-X-DISCONTINUITY-SEQUENCE"
EXT_X_INDEPENDENT_SEGMENTS = "#EXT-X-INDEPENDENT-SEGMENTS"
EXT_X_MAP = "#EXT-X-MAP"
EXT_X_DISCONTINUITY = "#EXT-X-DISCONTINUITY"
EXTINF = "#EXTINF"
EXT_X_PROGRAM_DATE_TIME = "#EXT-X-PROGRAM-DATE-TIME"


@dataclass
class Segment:
    """One playlist entry."""

    uri: str
    program_date_time: datetime
    duration: int  # milliseconds
    discontinuity: bool = False


class PlaylistWindow:
    """
    The bounded, oldest-evicted-first list of segments in the live playlist.

    ``media_sequence`` is the playlist index of the first segment in the
    window, so ``media_sequence + len(segments)`` is always the index the
    next segment will get.
    """

    def __init__(self,
                 path: str,
                 max_segments: int,
                 segment_duration: int,
                 init_name: str):
        """
        Initialize an empty window.

        Args:
            path: Media playlist path; segments live in the same directory
            max_segments: Maximum number of segments kept in the playlist
            segment_duration: Nominal segment duration in milliseconds
            init_name: File name of the initialization segment
        """
        if max_segments < 1:
            raise ValueError(f"max_segments must be at least 1, got {max_segments}")

        self.path = path
        self.output_dir = os.path.dirname(os.path.abspath(path))
        self.max_segments = max_segments
        self.segment_duration = segment_duration
        self.init_name = init_name
        ensure_within_directory(self.init_path, self.output_dir)

        self.segments: List[Segment] = []
        self.media_sequence = 0
        self.discontinuity_sequence = 0
        # Per process: the first segment after (re)start opens a new timeline.
        self.first_emitted = False

    @property
    def init_path(self) -> str:
        return os.path.join(self.output_dir, self.init_name)

    @property
    def next_index(self) -> int:
        return self.media_sequence + len(self.segments)

    def segment_path(self, uri: str) -> str:
        return os.path.join(self.output_dir, uri)

    @classmethod
    async def load(cls, path: str, max_segments: int, segment_duration: int,
                   init_name: str) -> "PlaylistWindow":
        """
        Create the window, reconstructing it from ``path`` if the file exists.

        Raises:
            PlaylistError: If the playlist exists but cannot be read or parsed
        """
        window = cls(path, max_segments, segment_duration, init_name)
        try:
            text = await read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise PlaylistError(path, str(e)) from e

        if text is None:
            logger.info(f"No playlist at {path}, starting fresh")
        else:
            window.parse(text)
            logger.info(f"Reconstructed {len(window.segments)} segment(s) from {path} "
                        f"(media sequence {window.media_sequence})")
        return window

    def parse(self, text: str) -> None:
        """
        Rebuild the window from playlist text, tag by tag.

        A URI line is only accepted once both its duration and its
        program-date-time have been seen.
        """
        pending_discontinuity = False
        pending_duration: Optional[int] = None
        pending_pdt: Optional[datetime] = None

        for number, raw in enumerate(text.splitlines(), 1):
            line = raw.strip()
            if not line:
                continue

            if not line.startswith("#"):
                if pending_duration is None or pending_pdt is None:
                    logger.warning(f"{self.path}:{number}: dropping {line!r}, "
                                   f"missing duration or program date time")
                else:
                    ensure_within_directory(self.segment_path(line), self.output_dir)
                    self.segments.append(Segment(line, pending_pdt, pending_duration, pending_discontinuity))
                pending_discontinuity = False
                pending_duration = None
                pending_pdt = None
                continue

            tag, _, value = line.partition(":")
            try:
                if tag == EXT_X_MEDIA_SEQUENCE:
                    self.media_sequence = int(value)
                elif tag == EXT_X_DISCONTINUITY_SEQUENCE:
                    self.discontinuity_sequence = int(value)
                elif tag == EXT_X_DISCONTINUITY:
                    pending_discontinuity = True
                elif tag == EXTINF:
                    pending_duration = parse_duration(value)
                elif tag == EXT_X_PROGRAM_DATE_TIME:
                    pending_pdt = parse_program_date_time(value)
                elif tag == EXT_X_MAP:
                    if f'URI="{self.init_name}"' not in value:
                        logger.warning(f"{self.path}:{number}: initialization segment {value} "
                                       f"differs from {self.init_name!r}")
                elif tag in (EXTM3U, EXT_X_VERSION, EXT_X_TARGETDURATION, EXT_X_INDEPENDENT_SEGMENTS):
                    pass
                else:
                    logger.warning(f"{self.path}:{number}: ignoring unrecognized tag {tag}")
            except (ValueError, TimestampError) as e:
                raise PlaylistError(self.path, f"line {number}: {e}") from e

    def rotate(self, segment: Segment) -> List[str]:
        """
        Append a segment and evict the oldest ones beyond ``max_segments``.

        Returns:
            List[str]: URIs of evicted segments, oldest first
        """
        if not self.first_emitted:
            segment.discontinuity = True
            self.first_emitted = True
        self.segments.append(segment)

        evicted = []
        while len(self.segments) > self.max_segments:
            oldest = self.segments.pop(0)
            self.media_sequence += 1
            if oldest.discontinuity:
                self.discontinuity_sequence += 1
            evicted.append(oldest.uri)
        return evicted

    def target_duration(self) -> int:
        """Target duration in whole seconds, covering every segment in the window."""
        longest = max([self.segment_duration] + [s.duration for s in self.segments])
        return max(1, math.ceil(longest / 1000))

    def render(self) -> str:
        map_line = f'{EXT_X_MAP}:URI="{self.init_name}"\n'

        content = f"{EXTM3U}\n"
        content += f"{EXT_X_VERSION}:{PLAYLIST_VERSION}\n"
        content += f"{EXT_X_TARGETDURATION}:{self.target_duration()}\n"
        content += f"{EXT_X_MEDIA_SEQUENCE}:{self.media_sequence}\n"
        if self.discontinuity_sequence:
            content += f"{EXT_X_DISCONTINUITY_SEQUENCE}:{self.discontinuity_sequence}\n"
        content += f"{EXT_X_INDEPENDENT_SEGMENTS}\n"
        if self.segments and not self.segments[0].discontinuity:
            content += map_line

        for segment in self.segments:
            if segment.discontinuity:
                content += f"{EXT_X_DISCONTINUITY}\n"
                content += map_line
            content += f"{EXTINF}:{format_duration(segment.duration)},\n"
            content += f"{EXT_X_PROGRAM_DATE_TIME}:{format_program_date_time(segment.program_date_time)}\n"
            content += f"{segment.uri}\n"
        return content

    async def save(self) -> None:
        await atomic_file_write(self.path, self.render())

    async def commit(self, segment: Segment) -> List[str]:
        """
        Add a written segment to the live playlist.

        The playlist is replaced first; evicted segment files are deleted
        only afterwards, and failures to delete them are ignored. A file
        whose name is still referenced by the window is kept.

        Returns:
            List[str]: URIs of evicted segments
        """
        evicted = self.rotate(segment)
        await self.save()
        live = {s.uri for s in self.segments}
        for uri in evicted:
            if uri in live:
                logger.warning(f"Evicted {uri} shares its name with a live segment, keeping the file")
                continue
            remove_quietly(self.segment_path(uri))

        logger.info(f"Playlist updated: {segment.uri} added, {len(evicted)} evicted, "
                    f"media sequence {self.media_sequence}, {len(self.segments)} in window")
        return evicted
