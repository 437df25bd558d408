#!/usr/bin/env python3
"""
Errors Module

Exception hierarchy for the ass2hls pipeline. Every exception defined here
is fatal to the running session: the CLI logs it as a single line and exits
with a non-zero status.
"""

from typing import Optional


class Ass2HlsError(Exception):
    """Base class for all ass2hls errors."""


class TimestampError(Ass2HlsError, ValueError):
    """Raised when a subtitle or playlist timestamp cannot be parsed."""

    def __init__(self, text: str, detail: str = "invalid timestamp"):
        super().__init__(f"{detail}: {text!r}")
        self.text = text


class DialogueFormatError(Ass2HlsError, ValueError):
    """Raised when a dialogue line does not match the captured Format header."""

    def __init__(self, line: str, detail: str):
        super().__init__(f"Malformed dialogue line ({detail}): {line.rstrip()!r}")
        self.line = line
        self.detail = detail


class PlaylistError(Ass2HlsError):
    """Raised when an existing media playlist cannot be read back."""

    def __init__(self, path: str, detail: str):
        super().__init__(f"Cannot load playlist '{path}': {detail}")
        self.path = path
        self.detail = detail


class PathTraversalError(Ass2HlsError):
    """Raised when a configured path escapes the directory it must live in."""

    def __init__(self, path: str, base_dir: str):
        super().__init__(f"'{path}' is not inside '{base_dir}'")
        self.path = path
        self.base_dir = base_dir


class SegmentWriteError(Ass2HlsError):
    """Raised when a segment, playlist or init file cannot be written."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to write '{path}'{detail}")
        self.path = path
        self.cause = cause
