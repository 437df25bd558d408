#!/usr/bin/env python3
"""
Monitoring Module

Counters describing the health of a running segmenter, plus a snapshot of
the process' resource usage. When a metrics directory is configured the
metrics are written there as JSON after every rotation.
"""

import json
import logging
import os
import platform
import socket
import time
from typing import Any, Dict, Optional

import psutil

from subhls.errors import SegmentWriteError
from subhls.file_io import atomic_file_write

logger = logging.getLogger("ass2hls.monitoring")


class PipelineMetrics:
    """Collects counters for one session."""

    COUNTERS = (
        "lines_read",
        "cues_parsed",
        "cues_emitted",
        "segments_written",
        "segments_evicted",
        "empty_ticks",
    )

    def __init__(self, name: str = "ass2hls", metrics_dir: Optional[str] = None):
        self.name = name
        self.metrics_dir = metrics_dir
        self.started_at = time.time()
        self.counters: Dict[str, int] = {counter: 0 for counter in self.COUNTERS}
        self.last_rotation_time: Optional[float] = None
        self.last_segment: Optional[str] = None
        self._process = psutil.Process(os.getpid())

    def increment(self, counter: str, amount: int = 1) -> None:
        self.counters[counter] += amount

    def record_rotation(self, uri: str, evicted: int) -> None:
        self.counters["segments_written"] += 1
        self.counters["segments_evicted"] += evicted
        self.last_rotation_time = time.time()
        self.last_segment = uri

    def process_snapshot(self) -> Dict[str, Any]:
        """Resource usage of this process."""
        with self._process.oneshot():
            return {
                "pid": self._process.pid,
                "rss_bytes": self._process.memory_info().rss,
                "cpu_percent": self._process.cpu_percent(interval=None),
                "num_fds": self._process.num_fds() if hasattr(self._process, "num_fds") else None,
            }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "hostname": socket.gethostname(),
            "platform": platform.platform(),
            "uptime_seconds": round(time.time() - self.started_at, 3),
            "counters": dict(self.counters),
            "last_rotation_time": self.last_rotation_time,
            "last_segment": self.last_segment,
            "process": self.process_snapshot(),
        }

    async def save(self) -> Optional[str]:
        """
        Write the metrics to ``<metrics_dir>/<name>_metrics.json``.

        Returns:
            Optional[str]: Path written, or None when no directory is configured

        Raises:
            SegmentWriteError: If the directory or file cannot be written
        """
        if not self.metrics_dir:
            return None
        path = os.path.join(self.metrics_dir, f"{self.name}_metrics.json")
        try:
            os.makedirs(self.metrics_dir, exist_ok=True)
        except OSError as e:
            raise SegmentWriteError(path, e) from e
        await atomic_file_write(path, json.dumps(self.to_dict(), indent=2))
        logger.debug(f"Saved metrics to {path}")
        return path
