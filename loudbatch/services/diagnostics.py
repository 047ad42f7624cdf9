"""
Diagnostics collaborator for incomplete metric extraction

Keeps a bounded text artifact per file so that parse failures can be
inspected after the batch.
"""

import os
import re
import threading
from typing import Optional

from ..utils.logging_config import get_logger


_UNSAFE_FILENAME_CHARS = re.compile(r'[^\w.\-]+')


class DiagnosticsWriter:
    """Writes one text file per failed parse into a diagnostics directory"""

    def __init__(self, directory: str, max_chars: int = 20000):
        self.directory = directory
        self.max_chars = max_chars
        self.logger = get_logger('diagnostics')
        self._lock = threading.Lock()

    def artifact_path(self, file_identifier: str) -> str:
        name = _UNSAFE_FILENAME_CHARS.sub('_', os.path.basename(file_identifier)) or 'unnamed'
        return os.path.join(self.directory, f"loudbatch-{name}.log")

    def record(self, file_identifier: str, text: str) -> Optional[str]:
        """Write the (truncated) text; returns the artifact path"""
        path = self.artifact_path(file_identifier)
        with self._lock:
            try:
                os.makedirs(self.directory, exist_ok=True)
                with open(path, 'w', encoding='utf-8') as f:
                    f.write(f"# {file_identifier}\n")
                    f.write(text[:self.max_chars])
            except OSError as e:
                self.logger.error(f"Could not write diagnostics for {file_identifier}: {e}")
                return None
        self.logger.info(f"Parse diagnostics written: {path}")
        return path
