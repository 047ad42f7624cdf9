"""
Loudness metric extraction from ffmpeg loudnorm output

ffmpeg prints the loudnorm measurement as a JSON block surrounded by banner
and stream information. The extractor reads the three input measurements
by key first and only falls back to parsing the JSON object when a value
is in a format the key patterns miss.
"""

import json
import re
from typing import Dict, NamedTuple, Optional, Union

from ..utils.logging_config import get_logger
from ..utils.text import clean_tool_output, decode_output


FIELD_KEYS = ('input_i', 'input_tp', 'input_lra')

_NUMBER = r'([-+]?\d+(?:[.,]\d+)?)'


def _key_pattern(key: str) -> 're.Pattern':
    return re.compile(
        r'(?<![\w])["\']?' + key + r'["\']?\s*:\s*["\']?' + _NUMBER,
        re.IGNORECASE,
    )


KEY_PATTERNS = {key: _key_pattern(key) for key in FIELD_KEYS}

# Innermost object containing the first key
JSON_BLOCK_PATTERN = re.compile(r'\{[^{}]*?"input_i"[^{}]*\}')


class LoudnessMetrics(NamedTuple):
    integrated: Optional[str] = None
    true_peak: Optional[str] = None
    loudness_range: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return None not in self

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in self)


def _normalize_decimal(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip().replace(',', '.')


def _from_json_block(text: str) -> Dict[str, str]:
    """Values of the loudnorm JSON object, as strings"""
    match = JSON_BLOCK_PATTERN.search(text)
    if not match:
        return {}
    try:
        obj = json.loads(match.group(0))
    except json.JSONDecodeError:
        return {}
    if not isinstance(obj, dict):
        return {}

    values = {}
    for key in FIELD_KEYS:
        value = obj.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (int, float, str)):
            values[key] = str(value)
    return values


class MetricExtractor:
    """
    Parses loudnorm output into integrated loudness, true peak and LRA

    Missing fields are expected (silent input, unusual builds) and are
    returned as None. When the extraction is incomplete and a diagnostics
    collaborator is configured, it receives the file identifier and a
    bounded prefix of the cleaned text.
    """

    def __init__(self, diagnostics=None, max_diagnostic_chars: int = 20000):
        self.diagnostics = diagnostics
        self.max_diagnostic_chars = max_diagnostic_chars
        self.logger = get_logger('analysis')

    def extract(self, raw_output: Union[str, bytes],
                file_identifier: Optional[str] = None) -> LoudnessMetrics:
        """
        Extract the three loudness measurements

        Args:
            raw_output: Tool output (bytes are decoded with replacement)
            file_identifier: File the output belongs to, for diagnostics

        Returns:
            LoudnessMetrics with '.'-decimal strings or None per field
        """
        if isinstance(raw_output, bytes):
            raw_output = decode_output(raw_output)
        clean = clean_tool_output(raw_output)

        found: Dict[str, Optional[str]] = {}
        for key, pattern in KEY_PATTERNS.items():
            match = pattern.search(clean)
            found[key] = match.group(1) if match else None

        if any(value is None for value in found.values()):
            block_values = _from_json_block(clean)
            for key in FIELD_KEYS:
                if found[key] is None and key in block_values:
                    found[key] = block_values[key]

        metrics = LoudnessMetrics(
            integrated=_normalize_decimal(found['input_i']),
            true_peak=_normalize_decimal(found['input_tp']),
            loudness_range=_normalize_decimal(found['input_lra']),
        )

        if not metrics.is_complete:
            self.logger.warning(
                f"Incomplete loudnorm output for {file_identifier or '<unknown>'}: "
                f"I={metrics.integrated} TP={metrics.true_peak} LRA={metrics.loudness_range}"
            )
            if self.diagnostics is not None:
                self.diagnostics.record(file_identifier or '', clean[:self.max_diagnostic_chars])

        return metrics
