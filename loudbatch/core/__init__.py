"""
loudbatch Core Package

Data models, configuration value objects, status classification and the
batch analysis orchestrator.
"""

from .models import AnalysisResult, AnalysisStatus, BatchSnapshot, NormalizationProgress, NormalizationResult
from .config import AnalysisSettings, AnalysisThresholds
from .exceptions import LoudBatchError, ConfigurationError, ServiceError
from .classifier import classify

__all__ = [
    'AnalysisResult',
    'AnalysisStatus',
    'BatchSnapshot',
    'NormalizationProgress',
    'NormalizationResult',
    'AnalysisSettings',
    'AnalysisThresholds',
    'LoudBatchError',
    'ConfigurationError',
    'ServiceError',
    'classify',
]
