"""
Service layer for loudbatch

Per-file loudness measurement with its helpers, and the normalization
script runner.
"""

from .loudness_analysis import LoudnessAnalysisService
from .metric_extractor import MetricExtractor, LoudnessMetrics
from .diagnostics import DiagnosticsWriter
from .normalization import NormalizationSession

__all__ = [
    'LoudnessAnalysisService',
    'MetricExtractor',
    'LoudnessMetrics',
    'DiagnosticsWriter',
    'NormalizationSession',
]
