"""
Location of the ffmpeg/ffprobe binaries
"""

import os
import shutil
from typing import Optional, Sequence

from ..core.exceptions import ToolNotFoundError


FFMPEG_CANDIDATES = (
    "/usr/local/bin/ffmpeg",
    "/opt/homebrew/bin/ffmpeg",
    "/usr/bin/ffmpeg",
    "/opt/local/bin/ffmpeg",
    "/usr/local/opt/ffmpeg/bin/ffmpeg",
)

FFPROBE_CANDIDATES = (
    "/usr/local/bin/ffprobe",
    "/opt/homebrew/bin/ffprobe",
    "/usr/bin/ffprobe",
    "/opt/local/bin/ffprobe",
    "/usr/local/opt/ffmpeg/bin/ffprobe",
)


def _is_executable(path: Optional[str]) -> bool:
    return bool(path) and os.path.isfile(path) and os.access(path, os.X_OK)


def locate_tool(name: str, candidates: Sequence[str] = (),
                override: Optional[str] = None) -> Optional[str]:
    """
    Resolve an executable

    An explicit override wins, then the well-known install locations, then
    the PATH.
    """
    if override:
        if _is_executable(override):
            return override
        return shutil.which(override)
    for candidate in candidates:
        if _is_executable(candidate):
            return candidate
    return shutil.which(name)


def require_ffmpeg(override: Optional[str] = None) -> str:
    path = locate_tool("ffmpeg", FFMPEG_CANDIDATES, override)
    if not path:
        raise ToolNotFoundError("ffmpeg", details="Install ffmpeg or pass its location explicitly")
    return path


def find_ffprobe(override: Optional[str] = None) -> Optional[str]:
    return locate_tool("ffprobe", FFPROBE_CANDIDATES, override)
