"""
Progress tracking and log rendering for a normalization session
"""

import re
from typing import Dict, List, Optional, Set

from ...core.models import NormalizationProgress, NormalizationResult
from ...utils.filesystem import resolve_log_path
from ...utils.text import strip_quotes
from .log_filter import is_processing_marker, is_terminal_phrase, processing_target


RESULT_PREFIX = "###RESULT"
RESULT_FIELD_PATTERN = re.compile(r'(\w+)="([^"]*)"')
RESULT_FIELDS = ('file', 'method', 'lufs', 'tp', 'status')

NEW_FILE_PHRASES = ("new file created", "создан новый файл")
DONE_PHRASES = ("created", "skipping:", "пропускаем:") + NEW_FILE_PHRASES
DONE_GLYPH = "✅"

SECTION_SEPARATOR = " — "


def parse_result_line(line: str) -> Optional[NormalizationResult]:
    """
    Parse a '###RESULT key="value" ...' line

    Missing keys become "?". Returns None for any other line.
    """
    text = line.strip()
    if not text.startswith(RESULT_PREFIX):
        return None
    values: Dict[str, str] = {}
    for key, value in RESULT_FIELD_PATTERN.findall(text[len(RESULT_PREFIX):]):
        # First occurrence wins
        values.setdefault(key, value)
    return NormalizationResult(**{key: values.get(key, "?") for key in RESULT_FIELDS})


class ProgressTracker:
    """
    Section numbering and file progress, one kept line at a time

    Rendering rules:
    - every "processing file" line opens a numbered section; sections after
      the first are preceded by a blank line
    - a terminal phrase is preceded by a blank line
    - a blank line is never doubled
    """

    def __init__(self, working_root: str):
        self.working_root = working_root
        self.section_count = 0
        self.files_created = 0
        self.current_file: Optional[str] = None
        self.done_files: Set[str] = set()
        self.completed = False
        self.summary_emitted = False
        self._last_rendered: Optional[str] = None

    def process(self, line: str) -> List[str]:
        """
        Advance the state with one kept line

        Args:
            line: Line accepted by the log filter

        Returns:
            Lines to append to the rendered log (separator first, if any)
        """
        rendered: List[str] = []

        if is_processing_marker(line):
            self.section_count += 1
            if self.section_count > 1:
                self._separate(rendered)
            self.current_file = self._resolve_target(line)
            rendered.append(f"{self.section_count}{SECTION_SEPARATOR}{line}")

        elif is_terminal_phrase(line):
            self._separate(rendered)
            rendered.append(line)

        else:
            lowered = line.lower()
            if any(phrase in lowered for phrase in NEW_FILE_PHRASES):
                self.files_created += 1
            if DONE_GLYPH in line or any(phrase in lowered for phrase in DONE_PHRASES):
                self.mark_done()
            rendered.append(line)

        self._last_rendered = rendered[-1]
        return rendered

    def mark_done(self, file_path: Optional[str] = None) -> bool:
        """Add a file (default: the current one) to the done set"""
        target = file_path or self.current_file
        if target is None or target in self.done_files:
            return False
        self.done_files.add(target)
        return True

    def finish(self) -> Optional[str]:
        """Summary line; returned once per session, None afterwards"""
        if self.summary_emitted:
            return None
        self.completed = True
        self.summary_emitted = True
        return (f"Summary: {self.section_count} file section(s) processed, "
                f"{self.files_created} new file(s) created")

    def closing_lines(self) -> List[str]:
        """Separator and summary line, once"""
        summary = self.finish()
        if summary is None:
            return []
        rendered: List[str] = []
        self._separate(rendered)
        rendered.append(summary)
        self._last_rendered = summary
        return rendered

    @property
    def last_rendered_blank(self) -> bool:
        return self._last_rendered == ""

    @property
    def progress(self) -> NormalizationProgress:
        return NormalizationProgress(
            current_file=self.current_file,
            files_started=self.section_count,
            files_created=self.files_created,
            done_files=frozenset(self.done_files),
            completed=self.completed,
            final_summary_emitted=self.summary_emitted,
        )

    def _separate(self, rendered: List[str]):
        if self._last_rendered is not None and self._last_rendered != "":
            rendered.append("")
            self._last_rendered = ""

    def _resolve_target(self, line: str) -> Optional[str]:
        target = processing_target(line)
        if not target:
            return self.current_file
        name = strip_quotes(target)
        if not name:
            return self.current_file
        return resolve_log_path(name, self.working_root)
