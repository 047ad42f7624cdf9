"""
loudbatch Utilities Package

This package contains utility functions used throughout the application.
"""

from .text import strip_ansi, clean_tool_output, format_sample_rate
from .filesystem import canonical_path, find_audio_files, resolve_log_path

__all__ = [
    'strip_ansi',
    'clean_tool_output',
    'format_sample_rate',
    'canonical_path',
    'find_audio_files',
    'resolve_log_path',
]
