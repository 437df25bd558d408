"""Tests for subhls.segment_writer."""

import asyncio
from datetime import timedelta

import pytest

from conftest import FIELDS, HEADER_LINES, HEADER_TEXT, TIME_BASE
from subhls.errors import SegmentWriteError
from subhls.segment_writer import HeaderTemplate, SegmentWriter
from subhls.timestamps import OPEN_END


def complete_header():
    header = HeaderTemplate()
    for line in HEADER_LINES:
        header.feed(line + "\n")
    return header


class TestHeaderTemplate:

    def test_completes_on_events_format_line(self):
        header = HeaderTemplate()
        for line in HEADER_LINES[:-1]:
            assert header.feed(line)
            assert not header.complete
        header.feed(HEADER_LINES[-1])
        assert header.complete
        assert header.field_names == FIELDS

    def test_styles_format_line_does_not_complete(self):
        header = HeaderTemplate()
        for line in HEADER_LINES[:8]:
            header.feed(line)
        assert HEADER_LINES[7].startswith("Format:")
        assert not header.complete

    def test_frozen_once_complete(self):
        header = complete_header()
        assert not header.feed("Dialogue: 0,0:00:01.00,0:00:02.00,,,0,0,0,,x")
        assert header.render() == HEADER_TEXT

    def test_crlf_input(self):
        header = HeaderTemplate()
        for line in HEADER_LINES:
            header.feed(line + "\r\n")
        assert header.render() == HEADER_TEXT


class TestSegmentWriter:

    def test_write_segment(self, tmp_path, make_record):
        writer = SegmentWriter(str(tmp_path), complete_header(), 6000)
        records = [make_record(5000, 6500, text="one"), make_record(8000, OPEN_END, text="two")]

        segment = asyncio.run(writer.write_segment(records, TIME_BASE))

        assert segment.uri == "segment_20240101120005.ass"
        assert segment.duration == 3000
        assert segment.program_date_time == TIME_BASE + timedelta(seconds=5)
        assert not segment.discontinuity

        content = (tmp_path / segment.uri).read_text(encoding="utf-8")
        assert content == HEADER_TEXT + (
            "Dialogue: 0,0:00:00.00,0:00:01.50,Default,,0000,0000,0000,,one\n"
            "Dialogue: 0,0:00:03.00,9:59:59.99,Default,,0000,0000,0000,,two\n"
        )

    def test_single_record_uses_nominal_duration(self, tmp_path, make_record):
        writer = SegmentWriter(str(tmp_path), complete_header(), 6000)
        segment = asyncio.run(writer.write_segment([make_record(1000, 2000)], TIME_BASE))
        assert segment.duration == 6000

    def test_same_start_uses_nominal_duration(self, tmp_path, make_record):
        writer = SegmentWriter(str(tmp_path), complete_header(), 4000)
        records = [make_record(1000, 2000), make_record(1000, 2000)]
        assert asyncio.run(writer.write_segment(records, TIME_BASE)).duration == 4000

    def test_segment_names(self, tmp_path):
        moment = TIME_BASE + timedelta(milliseconds=5250)
        assert SegmentWriter(str(tmp_path), HeaderTemplate(), 6000).segment_name(moment) == \
            "segment_20240101120005.ass"
        assert SegmentWriter(str(tmp_path), HeaderTemplate(), 6000, millis_names=True).segment_name(moment) == \
            "segment_20240101120005250.ass"

    def test_write_init(self, tmp_path):
        writer = SegmentWriter(str(tmp_path), complete_header(), 6000)
        asyncio.run(writer.write_init(str(tmp_path / "init.ass")))
        assert (tmp_path / "init.ass").read_text(encoding="utf-8") == HEADER_TEXT

    def test_write_failure_is_raised(self, tmp_path, make_record):
        writer = SegmentWriter(str(tmp_path / "missing"), complete_header(), 6000)
        with pytest.raises(SegmentWriteError):
            asyncio.run(writer.write_segment([make_record(0, 10)], TIME_BASE))
