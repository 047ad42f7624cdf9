"""
Filesystem utilities for loudbatch

This module provides audio file discovery and path resolution helpers.
"""

import os
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..core.exceptions import ConfigurationError


DEFAULT_AUDIO_EXTENSIONS = ('.mp3', '.m4a', '.mp4')


def canonical_path(path: Union[str, Path]) -> str:
    """Absolute path with symlinks resolved; used as the file identity key"""
    return str(Path(path).expanduser().resolve())


def _is_hidden(path: Path, root: Path) -> bool:
    try:
        relative = path.relative_to(root)
    except ValueError:
        return path.name.startswith('.')
    return any(part.startswith('.') for part in relative.parts)


def find_audio_files(paths: Iterable[Union[str, Path]],
                     extensions: Optional[Iterable[str]] = None,
                     recursive: bool = True) -> List[str]:
    """
    Collect audio files from files and directories

    Args:
        paths: Files and/or directories to scan
        extensions: Accepted extensions (default: mp3, m4a, mp4)
        recursive: Whether to descend into subdirectories

    Returns:
        Canonical file paths, deduplicated, in input order with each
        directory's contents sorted

    Raises:
        ConfigurationError: If a given path does not exist
    """
    accepted = {
        (ext if ext.startswith('.') else f'.{ext}').lower()
        for ext in (extensions or DEFAULT_AUDIO_EXTENSIONS)
    }

    collected: List[str] = []
    seen = set()

    def add(candidate: Path):
        if candidate.suffix.lower() not in accepted:
            return
        key = canonical_path(candidate)
        if key not in seen:
            seen.add(key)
            collected.append(key)

    for entry in paths:
        path = Path(entry).expanduser()
        if not path.exists():
            raise ConfigurationError(f"Path not found: {entry}", filepath=str(entry))

        if path.is_file():
            add(path)
            continue

        pattern = "**/*" if recursive else "*"
        for file_path in sorted(path.glob(pattern)):
            if file_path.is_file() and not _is_hidden(file_path, path):
                add(file_path)

    return collected


def resolve_log_path(text: str, root: Union[str, Path]) -> str:
    """
    Resolve a path printed by the normalization script

    Absolute paths pass through; './'-relative and bare relative paths are
    resolved against the working root.
    """
    if os.path.isabs(text):
        return os.path.normpath(text)
    if text.startswith('./'):
        text = text[2:]
    return os.path.normpath(os.path.join(str(root), text))
