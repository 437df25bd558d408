#!/usr/bin/env python3
"""
Timestamp Codec Module

Parsing and formatting for the two textual time precisions used by the
pipeline: ASS dialogue timestamps (centiseconds) and playlist timestamps
(milliseconds). All values are integer milliseconds.
"""

import re
from datetime import datetime, timezone

from subhls.errors import TimestampError

# "9:59:59.99" is the largest value an ASS timestamp can hold. The upstream
# encoder uses it for cues whose end is not known yet.
OPEN_END_TEXT = "9:59:59.99"

# In-memory marker for an open-ended cue. Never shifted, never rolled over.
OPEN_END = 0x7FFFFFFFFFFFFFFF

# Older revisions stored the open end as the plain millisecond value of
# OPEN_END_TEXT; records carrying it are treated as open as well.
LEGACY_OPEN_END = 35999990

TEN_HOURS_MS = 10 * 3600 * 1000

ASS_TIME_PATTERN = re.compile(r'^(-)?(\d+):(\d{1,2}):(\d{1,2})\.(\d{1,3})$')


def is_open_end(milliseconds: int) -> bool:
    """Return True for either open-ended sentinel."""
    return milliseconds == OPEN_END or milliseconds == LEGACY_OPEN_END


def parse_timestamp(text: str) -> int:
    """
    Parse an ASS timestamp into milliseconds.

    Accepts ``[-]H:MM:SS.ff`` as well as the three-digit ``.fff`` variant.
    The literal ``9:59:59.99`` maps to OPEN_END.

    Args:
        text: Timestamp text

    Returns:
        int: Signed milliseconds, or OPEN_END

    Raises:
        TimestampError: If any component is missing or not numeric
    """
    text = text.strip()
    if text == OPEN_END_TEXT:
        return OPEN_END

    match = ASS_TIME_PATTERN.match(text)
    if not match:
        raise TimestampError(text)

    sign, hours, minutes, seconds, fraction = match.groups()
    # ".5" is half a second, ".05" five centiseconds, ".005" five milliseconds
    millis = int(fraction.ljust(3, "0"))
    value = ((int(hours) * 60 + int(minutes)) * 60 + int(seconds)) * 1000 + millis
    return -value if sign else value


def _split(milliseconds: int):
    hours, rest = divmod(milliseconds, 3600 * 1000)
    minutes, rest = divmod(rest, 60 * 1000)
    seconds, millis = divmod(rest, 1000)
    return hours, minutes, seconds, millis


def format_timestamp(milliseconds: int) -> str:
    """
    Format milliseconds as an ASS timestamp (``[-]H:MM:SS.ff``).

    Sub-centisecond precision is truncated, not rounded.
    """
    if milliseconds == OPEN_END:
        return OPEN_END_TEXT
    if milliseconds < 0:
        return "-" + format_timestamp(-milliseconds)

    hours, minutes, seconds, millis = _split(milliseconds)
    return f"{hours}:{minutes:02d}:{seconds:02d}.{millis // 10:02d}"


def format_playlist_timestamp(milliseconds: int) -> str:
    """Format milliseconds as ``[-]HH:MM:SS.mmm`` stream time."""
    if milliseconds < 0:
        return "-" + format_playlist_timestamp(-milliseconds)

    hours, minutes, seconds, millis = _split(milliseconds)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def format_duration(milliseconds: int) -> str:
    """Format a segment duration as the #EXTINF seconds value, e.g. ``6.00``."""
    return f"{milliseconds // 1000}.{(milliseconds % 1000) // 10:02d}"


def parse_duration(text: str) -> int:
    """
    Parse the value of an #EXTINF tag into milliseconds.

    Args:
        text: Everything after ``#EXTINF:``, title included

    Returns:
        int: Duration in milliseconds
    """
    value = text.split(",", 1)[0].strip()
    try:
        return int(round(float(value) * 1000))
    except ValueError:
        raise TimestampError(text, "invalid duration") from None


def format_program_date_time(moment: datetime) -> str:
    """Format a wall-clock instant as ``YYYY-MM-DDTHH:MM:SS.mmm+HH:MM``."""
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment.isoformat(timespec="milliseconds")


def parse_program_date_time(text: str) -> datetime:
    """
    Parse an #EXT-X-PROGRAM-DATE-TIME value into an aware datetime.

    Naive values are interpreted in the local timezone.
    """
    value = text.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        raise TimestampError(text, "invalid program date time") from None
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment


def local_now() -> datetime:
    """Current wall-clock time in the local timezone, timezone-aware."""
    return datetime.now(timezone.utc).astimezone()
