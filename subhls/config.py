#!/usr/bin/env python3
"""
Configuration Module

Settings for the segmenter, read from environment variables (and a
``.env`` file, through python-dotenv) with defaults. The CLI overrides
individual values from its flags.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from subhls.dialogue_queue import GAPFILL, POLICIES
from subhls.master_playlist import ACCESSIBILITY_CHARACTERISTICS

DEFAULT_OUTPUT_PATH = "subtitles/playlist.m3u8"
DEFAULT_SEGMENT_DURATION = 6.0  # seconds
DEFAULT_LIST_SIZE = 5
DEFAULT_INIT_NAME = "init.ass"
DEFAULT_IDLE_TIMEOUT = 1.0  # seconds without input before a passthrough rotation
DEFAULT_EMPTY_RETRY = 1.0  # seconds before retrying a tick that found nothing to write
DEFAULT_MAX_CUE_DURATION = 10.0  # seconds given to cues still open at shutdown
DEFAULT_LOG_DIR = os.path.expanduser("~/.ass2hls/logs")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


@dataclass
class Settings:
    """Everything the session needs to know, durations in seconds."""

    output_path: str = DEFAULT_OUTPUT_PATH
    segment_duration: float = DEFAULT_SEGMENT_DURATION
    list_size: int = DEFAULT_LIST_SIZE
    init_name: str = DEFAULT_INIT_NAME
    master_path: Optional[str] = None
    policy: str = GAPFILL
    idle_timeout: float = DEFAULT_IDLE_TIMEOUT
    empty_retry: float = DEFAULT_EMPTY_RETRY
    max_cue_duration: float = DEFAULT_MAX_CUE_DURATION
    millis_names: bool = False
    language: str = "ja"
    name: str = "Japanese"
    group_id: str = "subs"
    default_rendition: bool = False
    characteristics: Optional[str] = ACCESSIBILITY_CHARACTERISTICS
    metrics_dir: Optional[str] = None
    console_log_level: str = "INFO"
    file_log_level: str = "DEBUG"
    log_to_file: bool = False
    log_dir: str = DEFAULT_LOG_DIR
    json_logs: bool = False

    @property
    def output_dir(self) -> str:
        return os.path.dirname(os.path.abspath(self.output_path))

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """Load settings from the environment, after applying ``.env``."""
        load_dotenv(dotenv_path)
        return cls(
            output_path=os.getenv("HLS_OUTPUT_PATH", DEFAULT_OUTPUT_PATH),
            segment_duration=float(os.getenv("SEGMENT_DURATION", str(DEFAULT_SEGMENT_DURATION))),
            list_size=int(os.getenv("HLS_LIST_SIZE", str(DEFAULT_LIST_SIZE))),
            init_name=os.getenv("INIT_SEGMENT_NAME", DEFAULT_INIT_NAME),
            master_path=os.getenv("MASTER_PLAYLIST") or None,
            policy=os.getenv("QUEUE_POLICY", GAPFILL),
            idle_timeout=float(os.getenv("IDLE_TIMEOUT", str(DEFAULT_IDLE_TIMEOUT))),
            empty_retry=float(os.getenv("EMPTY_RETRY", str(DEFAULT_EMPTY_RETRY))),
            max_cue_duration=float(os.getenv("MAX_CUE_DURATION", str(DEFAULT_MAX_CUE_DURATION))),
            millis_names=_env_bool("SEGMENT_NAME_MILLIS", False),
            language=os.getenv("SUBTITLE_LANGUAGE", "ja"),
            name=os.getenv("SUBTITLE_NAME", "Japanese"),
            group_id=os.getenv("SUBTITLE_GROUP_ID", "subs"),
            default_rendition=_env_bool("SUBTITLE_DEFAULT", False),
            characteristics=os.getenv("SUBTITLE_CHARACTERISTICS", ACCESSIBILITY_CHARACTERISTICS) or None,
            metrics_dir=os.getenv("METRICS_DIR") or None,
            console_log_level=os.getenv("CONSOLE_LOG_LEVEL", "INFO"),
            file_log_level=os.getenv("FILE_LOG_LEVEL", "DEBUG"),
            log_to_file=_env_bool("LOG_TO_FILE", False),
            log_dir=os.getenv("LOG_DIR") or DEFAULT_LOG_DIR,
            json_logs=_env_bool("JSON_LOGS", False),
        )

    def validate(self) -> None:
        """Raise ValueError on settings the session cannot run with."""
        if self.segment_duration <= 0:
            raise ValueError(f"Segment duration must be positive, got {self.segment_duration}")
        if self.list_size < 1:
            raise ValueError(f"List size must be at least 1, got {self.list_size}")
        if self.policy not in POLICIES:
            raise ValueError(f"Unknown queue policy {self.policy!r}, expected one of {', '.join(POLICIES)}")
        if self.idle_timeout <= 0 or self.empty_retry <= 0 or self.max_cue_duration <= 0:
            raise ValueError("Timeouts and durations must be positive")
