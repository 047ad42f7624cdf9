"""
Reassembly of complete text lines from a chunked byte stream
"""

import codecs
from typing import List

from ...utils.text import strip_ansi


class LineReassembler:
    """
    Turns arbitrarily split output chunks into whole lines

    Decoding is incremental, so a UTF-8 sequence split across two chunks is
    decoded once both halves arrived. Only the trailing partial line is
    buffered between calls. Emitted lines have carriage returns and ANSI
    escape sequences removed; empty lines are emitted as well.
    """

    def __init__(self, encoding: str = 'utf-8'):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors='replace')
        self._pending = ""

    @staticmethod
    def _clean(line: str) -> str:
        return strip_ansi(line.replace('\r', ''))

    def feed(self, chunk: bytes) -> List[str]:
        """Add a chunk; returns the lines it completed, in order"""
        text = self._pending + self._decoder.decode(chunk)
        parts = text.split('\n')
        self._pending = parts.pop()
        return [self._clean(part) for part in parts]

    def flush(self) -> str:
        """Return the remaining partial line (may be empty) and reset"""
        tail = self._pending + self._decoder.decode(b'', final=True)
        self._pending = ""
        self._decoder.reset()
        return self._clean(tail)

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)
