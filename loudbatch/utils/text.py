"""
Text processing utilities for loudbatch

Cleanup of external tool output and small formatting helpers shared by the
metric extractor and the normalization log pipeline.
"""

import re
from typing import Optional


# CSI sequences (colors, cursor movement) and two-character escapes
ANSI_ESCAPE_PATTERN = re.compile(r'\x1b(?:\[[0-?]*[ -/]*[@-~]|[@-Z\\-_])')

# Space variants emitted by some locales in numeric output
SPACE_REPLACEMENTS = {
    '\u00a0': ' ',  # no-break space
    '\u202f': ' ',  # narrow no-break space
}

QUOTE_CHARACTERS = '«»"\''

SAMPLE_RATE_LABELS = {
    44100: "44.1 kHz",
    48000: "48 kHz",
    96000: "96 kHz",
    192000: "192 kHz",
}


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences"""
    if not text:
        return ""
    return ANSI_ESCAPE_PATTERN.sub('', text)


def clean_tool_output(text: str) -> str:
    """
    Prepare raw tool output for parsing

    Strips ANSI sequences and carriage returns and replaces non-breaking
    space variants with plain spaces.

    Args:
        text: Decoded tool output

    Returns:
        Cleaned text
    """
    if not text:
        return ""
    cleaned = strip_ansi(text).replace('\r', '')
    for variant, replacement in SPACE_REPLACEMENTS.items():
        cleaned = cleaned.replace(variant, replacement)
    return cleaned


def decode_output(data: Optional[bytes]) -> str:
    """Decode process output; invalid bytes become U+FFFD"""
    if not data:
        return ""
    return data.decode('utf-8', errors='replace')


def strip_quotes(text: str) -> str:
    return text.strip().strip(QUOTE_CHARACTERS).strip()


def format_sample_rate(raw_value) -> str:
    """
    Format a sample rate in Hz as a human readable label

    Args:
        raw_value: Sample rate as int or string ("44100")

    Returns:
        Label such as "44.1 kHz"; non-numeric input is returned unchanged
    """
    text = str(raw_value).strip()
    try:
        hz = int(text.split()[0]) if text else None
    except ValueError:
        return text
    if hz is None:
        return text
    if hz in SAMPLE_RATE_LABELS:
        return SAMPLE_RATE_LABELS[hz]
    return f"{hz / 1000.0:.1f} kHz"
