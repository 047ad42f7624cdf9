"""
Status classification for loudness measurements
"""

import math
import re
from typing import Optional

from .config import AnalysisThresholds
from .models import AnalysisStatus


DEFAULT_THRESHOLDS = AnalysisThresholds()

_NON_NUMERIC = re.compile(r'[^0-9.]')

# Float noise allowance so that e.g. 44.15 vs 44.1 stays inside the
# inclusive tolerance band
_EPSILON = 1e-9


def _to_float(value: Optional[str]) -> float:
    """Parse a decimal string; anything missing or invalid fails every gate"""
    if value is None:
        return math.inf
    try:
        return float(str(value).strip().replace(',', '.'))
    except ValueError:
        return math.inf


def parse_sample_rate_khz(label: Optional[str]) -> Optional[float]:
    """Extract the kHz value from labels such as '44.1 kHz' or '48 kHz'"""
    if not label:
        return None
    numeric = _NON_NUMERIC.sub('', label.replace(',', '.'))
    try:
        return float(numeric)
    except ValueError:
        return None


def sample_rate_ok(label: Optional[str], thresholds: AnalysisThresholds = DEFAULT_THRESHOLDS) -> bool:
    # Missing sample-rate information is not penalized
    value = parse_sample_rate_khz(label)
    if value is None:
        return True
    tolerance = thresholds.sample_rate_tolerance_khz + _EPSILON
    return any(abs(value - accepted) <= tolerance
               for accepted in thresholds.accepted_sample_rates_khz)


def classify(integrated: Optional[str],
             true_peak: Optional[str],
             sample_rate_label: Optional[str] = None,
             thresholds: AnalysisThresholds = DEFAULT_THRESHOLDS) -> AnalysisStatus:
    """
    Classify one measurement

    Args:
        integrated: Integrated loudness in LUFS as a decimal string
        true_peak: True peak in dBTP as a decimal string
        sample_rate_label: Human readable sample rate ("44.1 kHz")
        thresholds: Quality gates to apply

    Returns:
        UNKNOWN when neither loudness nor true peak is known, NORMAL when
        every gate passes, WARNING otherwise
    """
    if integrated is None and true_peak is None:
        return AnalysisStatus.UNKNOWN

    lufs_ok = thresholds.lufs_in_range(_to_float(integrated))
    peak_ok = _to_float(true_peak) <= thresholds.true_peak_max
    rate_ok = sample_rate_ok(sample_rate_label, thresholds)

    if lufs_ok and peak_ok and rate_ok:
        return AnalysisStatus.NORMAL
    return AnalysisStatus.WARNING
