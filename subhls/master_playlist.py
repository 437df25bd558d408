#!/usr/bin/env python3
"""
Master Playlist Patcher Module

Adds a reference to the subtitle media playlist to an existing master
playlist owned by the upstream packager. The patch is a single appended
EXT-X-MEDIA line, written at most once.
"""

import logging
import os
from typing import Optional

import aiofiles

from subhls.errors import PlaylistError, SegmentWriteError
from subhls.file_io import ensure_within_directory, read_text

logger = logging.getLogger("ass2hls.master_playlist")

ACCESSIBILITY_CHARACTERISTICS = "public.accessibility.transcribes-spoken-dialog,public.accessibility.describes-music-and-sound"


def relative_uri(master_path: str, playlist_path: str) -> str:
    """
    URI of the media playlist relative to the master playlist's directory.

    Raises:
        PathTraversalError: If the media playlist is not under that directory
    """
    master_dir = os.path.dirname(os.path.abspath(master_path))
    resolved = ensure_within_directory(playlist_path, master_dir)
    relative = os.path.relpath(resolved, os.path.realpath(master_dir))
    return relative.replace(os.sep, "/")


def build_media_line(uri: str,
                     language: str,
                     name: str,
                     group_id: str = "subs",
                     default: bool = False,
                     characteristics: Optional[str] = ACCESSIBILITY_CHARACTERISTICS) -> str:
    """Build the EXT-X-MEDIA line describing the subtitle rendition."""
    line = (f'#EXT-X-MEDIA:TYPE=SUBTITLES,GROUP-ID="{group_id}",NAME="{name}",'
            f'DEFAULT={"YES" if default else "NO"},AUTOSELECT=YES,FORCED=NO,'
            f'LANGUAGE="{language}",URI="{uri}"')
    if characteristics:
        line += f',CHARACTERISTICS="{characteristics}"'
    return line


async def patch_master_playlist(master_path: str,
                                playlist_path: str,
                                language: str,
                                name: str,
                                group_id: str = "subs",
                                default: bool = False,
                                characteristics: Optional[str] = ACCESSIBILITY_CHARACTERISTICS) -> bool:
    """
    Append the subtitle rendition to the master playlist unless already present.

    The check is an exact line match, the master playlist is not otherwise
    interpreted.

    Returns:
        bool: True if the line was appended

    Raises:
        PathTraversalError: If the media playlist is outside the master's directory
        PlaylistError: If the master playlist does not exist or cannot be read
        SegmentWriteError: If the master playlist cannot be appended to
    """
    uri = relative_uri(master_path, playlist_path)
    line = build_media_line(uri, language, name, group_id, default, characteristics)

    try:
        current = await read_text(master_path)
    except (OSError, UnicodeDecodeError) as e:
        raise PlaylistError(master_path, str(e)) from e
    if current is None:
        raise PlaylistError(master_path, "master playlist does not exist")

    if line in current.splitlines():
        logger.debug(f"Master playlist {master_path} already references {uri}")
        return False

    prefix = "" if not current or current.endswith("\n") else "\n"
    try:
        async with aiofiles.open(master_path, "a", encoding="utf-8") as f:
            await f.write(f"{prefix}{line}\n")
    except OSError as e:
        raise SegmentWriteError(master_path, e) from e

    logger.info(f"Added subtitle rendition {uri} to master playlist {master_path}")
    return True
