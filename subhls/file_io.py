#!/usr/bin/env python3
"""
File I/O Module

Async file helpers built on aiofiles. Files a player may be reading while
they change (playlists) go through a temporary file and an atomic rename.
"""

import logging
import os
from typing import Optional

import aiofiles

from subhls.errors import PathTraversalError, SegmentWriteError

logger = logging.getLogger("ass2hls.file_io")

TEMP_SUFFIX = ".tmp"


async def atomic_file_write(path: str, content: str) -> None:
    """
    Write content to a file atomically using a temporary file.

    Raises:
        SegmentWriteError: If writing or renaming fails
    """
    temp_path = f"{path}{TEMP_SUFFIX}"
    try:
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(content)
            await f.flush()
        os.chmod(temp_path, 0o644)
        os.replace(temp_path, path)  # Atomic on POSIX file systems
    except OSError as e:
        if os.path.exists(temp_path):
            try:
                os.unlink(temp_path)
            except OSError:
                pass
        raise SegmentWriteError(path, e) from e


async def write_file(path: str, content: str) -> None:
    """Write content directly, for files nothing references yet."""
    try:
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(content)
    except OSError as e:
        raise SegmentWriteError(path, e) from e


async def read_text(path: str) -> Optional[str]:
    """
    Read a UTF-8 text file.

    Returns:
        Optional[str]: File contents, or None if the file does not exist.
        Any other error propagates.
    """
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            return await f.read()
    except FileNotFoundError:
        return None


def remove_quietly(path: str) -> bool:
    """Delete a file, ignoring failures. Returns True if it was removed."""
    try:
        os.unlink(path)
        return True
    except OSError as e:
        logger.debug(f"Could not remove {path}: {e}")
        return False


def ensure_within_directory(path: str, base_dir: str) -> str:
    """
    Resolve ``path`` and require it to live under ``base_dir``.

    Returns:
        str: The resolved path

    Raises:
        PathTraversalError: If the path escapes the directory
    """
    resolved = os.path.realpath(path)
    base = os.path.realpath(base_dir)
    if os.path.commonpath([resolved, base]) != base or resolved == base:
        raise PathTraversalError(path, base_dir)
    return resolved
