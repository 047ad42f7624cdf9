"""
Normalization script runner: stream reassembly, log filtering, progress
"""

from .line_reassembler import LineReassembler
from .log_filter import LogLineFilter
from .progress_tracker import ProgressTracker, parse_result_line
from .session import NormalizationPipeline, NormalizationSession

__all__ = [
    'LineReassembler',
    'LogLineFilter',
    'ProgressTracker',
    'parse_result_line',
    'NormalizationPipeline',
    'NormalizationSession',
]
