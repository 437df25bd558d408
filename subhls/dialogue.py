#!/usr/bin/env python3
"""
Dialogue Record Module

Parsing and serialization of ASS ``Dialogue:`` lines against the field list
declared by the ``Format:`` line of the ``[Events]`` section, plus the
per-line correction pass applied to the upstream encoder's output.
"""

import logging
from typing import Dict, List, Optional

from subhls.errors import DialogueFormatError
from subhls.timestamps import (
    OPEN_END,
    TEN_HOURS_MS,
    format_timestamp,
    is_open_end,
    parse_timestamp,
)

logger = logging.getLogger("ass2hls.dialogue")

DIALOGUE_PREFIX = "Dialogue:"
FORMAT_PREFIX = "Format:"

START_FIELD = "Start"
END_FIELD = "End"
STYLE_FIELD = "Style"
DEFAULT_STYLE = "Default"

# Colour override the ARIB decoder prefixes to every caption. It carries no
# meaning for the player and is removed from the text payload on output.
OPAQUE_COLOR_OVERRIDE = "{\\alpha&H00&}"


def parse_format_line(line: str) -> List[str]:
    """
    Parse the field names of a ``Format:`` line.

    Args:
        line: e.g. ``Format: Layer, Start, End, Style, Name, ..., Text``

    Returns:
        List[str]: Field names in declaration order
    """
    if not line.startswith(FORMAT_PREFIX):
        raise DialogueFormatError(line, "not a Format line")
    names = [name.strip() for name in line[len(FORMAT_PREFIX):].split(",")]
    if START_FIELD not in names or END_FIELD not in names:
        raise DialogueFormatError(line, "Format line lacks Start or End")
    return names


class DialogueRecord:
    """One subtitle cue with its fields in declaration order."""

    def __init__(self, field_names: List[str], fields: Dict[str, str], start: int, end: int):
        self.field_names = field_names
        self.fields = fields
        self.start = start
        self.end = end

    def __repr__(self) -> str:
        return (f"DialogueRecord({format_timestamp(self.start)} --> {format_timestamp(self.end)}, "
                f"text='{self.text[:20]}')")

    @classmethod
    def parse(cls, line: str, field_names: List[str]) -> "DialogueRecord":
        """
        Parse a ``Dialogue:`` line.

        The last declared field is free text and keeps any commas it contains.

        Args:
            line: Raw input line
            field_names: Names from the captured Format line

        Returns:
            DialogueRecord: The parsed cue

        Raises:
            DialogueFormatError: On a missing prefix or too few fields
            TimestampError: On an unparseable Start or End
        """
        line = line.rstrip("\r\n")
        if not line.startswith(DIALOGUE_PREFIX):
            raise DialogueFormatError(line, "missing Dialogue prefix")

        values = line[len(DIALOGUE_PREFIX):].lstrip().split(",", len(field_names) - 1)
        if len(values) < len(field_names):
            raise DialogueFormatError(
                line, f"expected {len(field_names)} fields, got {len(values)}"
            )

        fields = dict(zip(field_names, values))
        start = parse_timestamp(fields[START_FIELD])
        end = parse_timestamp(fields[END_FIELD])
        return cls(field_names, fields, start, end)

    @property
    def text(self) -> str:
        return self.fields.get(self.field_names[-1], "")

    @property
    def is_open(self) -> bool:
        return is_open_end(self.end)

    @property
    def is_empty(self) -> bool:
        """True for "clear screen" cues that carry no visible text."""
        return not self.text.replace(OPAQUE_COLOR_OVERRIDE, "").strip()

    def shift(self, delta: int) -> None:
        """Move the cue by ``delta`` milliseconds; open ends stay open."""
        self.start += delta
        if not is_open_end(self.end):
            self.end += delta

    def close(self, end: int) -> None:
        self.end = end

    def serialize(self) -> str:
        """
        Render the cue back to a ``Dialogue:`` line.

        Only Start and End are re-encoded; every other field is emitted as
        it was read, except for the colour override removed from the text.
        """
        values = []
        text_field = self.field_names[-1]
        for name in self.field_names:
            if name == START_FIELD:
                values.append(format_timestamp(self.start))
            elif name == END_FIELD:
                values.append(format_timestamp(OPEN_END if self.is_open else self.end))
            elif name == text_field:
                values.append(self.fields[name].replace(OPAQUE_COLOR_OVERRIDE, ""))
            else:
                values.append(self.fields[name])
        return f"{DIALOGUE_PREFIX} " + ",".join(values)


class InputCorrector:
    """
    Normalizes known defects of the upstream encoder before queueing.

    The encoder wraps its timestamps at ten hours, so a start (or end)
    lower than the previous one is moved forward by ten hours. Start and
    end keep separate baselines; an open end never updates its baseline.
    """

    def __init__(self):
        self.last_start: Optional[int] = None
        self.last_end: Optional[int] = None

    def correct(self, record: DialogueRecord) -> DialogueRecord:
        if self.last_start is not None:
            while record.start < self.last_start:
                record.start += TEN_HOURS_MS
                logger.debug(f"Start rolled over, corrected to {format_timestamp(record.start)}")
        self.last_start = record.start

        if not record.is_open:
            if self.last_end is not None:
                while record.end < self.last_end:
                    record.end += TEN_HOURS_MS
                    logger.debug(f"End rolled over, corrected to {format_timestamp(record.end)}")
            self.last_end = record.end

        if record.fields.get(STYLE_FIELD) == DEFAULT_STYLE:
            record.fields[STYLE_FIELD] = ""
        return record
