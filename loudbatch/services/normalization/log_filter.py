"""
Log Line Filter

Reduces the normalization script output to the lines a person wants to
read: status lines, "processing file" markers and the final verdict.
Everything else (ffmpeg chatter, progress bars) is dropped.
"""

import re
from typing import Iterable, List, Optional


STATUS_GLYPHS = ("✅", "⚠️", "❌", "🎵", "🔍", "🟡", "🗂️", "📦")

# Base code points, so lines with or without the emoji variation selector match
_STATUS_PREFIXES = tuple(glyph.rstrip('\ufe0f') for glyph in STATUS_GLYPHS)

PROCESSING_FILE_PATTERN = re.compile(
    r'(?:processing file|обработка файла)\s*:\s*', re.IGNORECASE
)

DEFAULT_MARKER_GLYPH = "🔍"
ALTERNATE_MARKER_GLYPH = "🔎"
PROCESSING_FILE_LABEL = "Processing file:"

SUCCESS_PHRASES = (
    "all files processed successfully",
    "обработка всех файлов завершена успешно",
)
FAILURE_PHRASES = (
    "processing finished with errors",
    "обработка завершена с ошибками",
)
TERMINAL_PHRASES = SUCCESS_PHRASES + FAILURE_PHRASES


def is_processing_marker(line: str) -> bool:
    return PROCESSING_FILE_PATTERN.search(line) is not None


def is_terminal_phrase(line: str) -> bool:
    lowered = line.lower()
    return any(phrase in lowered for phrase in TERMINAL_PHRASES)


def processing_target(line: str) -> Optional[str]:
    """Text following the "processing file:" marker, or None"""
    match = PROCESSING_FILE_PATTERN.search(line)
    if not match:
        return None
    return line[match.end():].strip()


class LogLineFilter:
    """
    Stateless keep/drop classification of script output lines

    First match wins:
    1. a status glyph prefix keeps the line as is
    2. a "processing file:" marker anywhere keeps the line, rewritten to
       the canonical "<glyph> Processing file: <name>" form
    3. a terminal phrase keeps the line as is
    """

    def classify(self, line: str) -> Optional[str]:
        """
        Classify one line

        Args:
            line: Raw output line

        Returns:
            The line to keep (possibly rewritten), or None to drop it
        """
        text = line.strip()
        if not text:
            return None

        if text.startswith(_STATUS_PREFIXES):
            return text

        target = processing_target(text)
        if target is not None:
            glyph = ALTERNATE_MARKER_GLYPH if ALTERNATE_MARKER_GLYPH in text else DEFAULT_MARKER_GLYPH
            return f"{glyph} {PROCESSING_FILE_LABEL} {target}"

        if is_terminal_phrase(text):
            return text

        return None

    def filter_lines(self, lines: Iterable[str]) -> List[str]:
        kept = []
        for line in lines:
            classified = self.classify(line)
            if classified is not None:
                kept.append(classified)
        return kept
