"""Shared fixtures for the ass2hls tests."""

from datetime import datetime, timezone

import pytest

from subhls.config import Settings
from subhls.dialogue import DialogueRecord

HEADER_LINES = [
    "[Script Info]",
    "; Script generated by FFmpeg/Lavc",
    "ScriptType: v4.00+",
    "PlayResX: 1920",
    "PlayResY: 1080",
    "",
    "[V4+ Styles]",
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, "
    "Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, "
    "Shadow, Alignment, MarginL, MarginR, MarginV, Encoding",
    "Style: Default,MS UI Gothic,36,&Hffffff,&Hffffff,&H0,&H0,0,0,0,0,100,100,0,0,1,1,0,7,0,0,0,0",
    "",
    "[Events]",
    "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text",
]
HEADER_TEXT = "\n".join(HEADER_LINES) + "\n"

FIELDS = ["Layer", "Start", "End", "Style", "Name", "MarginL", "MarginR", "MarginV", "Effect", "Text"]

TIME_BASE = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_record():
    """Factory for cues with the standard field list."""
    def factory(start, end, text="caption", style="Default"):
        fields = {name: "" for name in FIELDS}
        fields.update({"Layer": "0", "Style": style, "MarginL": "0000", "MarginR": "0000",
                       "MarginV": "0000", "Text": text})
        return DialogueRecord(list(FIELDS), fields, start, end)
    return factory


@pytest.fixture
def settings(tmp_path):
    return Settings(output_path=str(tmp_path / "playlist.m3u8"), segment_duration=60.0, list_size=3)


RESTART_PLAYLIST = """\
#EXTM3U
#EXT-X-VERSION:6
#EXT-X-TARGETDURATION:6
#EXT-X-MEDIA-SEQUENCE:7
#EXT-X-INDEPENDENT-SEGMENTS
#EXT-X-DISCONTINUITY
#EXT-X-MAP:URI="init.ass"
#EXTINF:6.00,
#EXT-X-PROGRAM-DATE-TIME:2024-01-01T12:00:00.000+00:00
segment_20240101120000.ass
#EXTINF:5.50,
#EXT-X-PROGRAM-DATE-TIME:2024-01-01T12:00:06.000+00:00
segment_20240101120006.ass
#EXTINF:6.00,
#EXT-X-PROGRAM-DATE-TIME:2024-01-01T12:00:11.500+00:00
segment_20240101120011.ass
"""
RESTART_SEGMENTS = ["segment_20240101120000.ass", "segment_20240101120006.ass", "segment_20240101120011.ass"]
