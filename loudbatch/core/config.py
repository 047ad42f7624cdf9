"""
Configuration value objects for loudbatch

Thresholds and analysis settings are immutable so they can be shared
between worker threads without copying.
"""

import os
import tempfile
from dataclasses import dataclass, field, fields
from typing import Dict, Any, Tuple


@dataclass(frozen=True)
class AnalysisThresholds:
    """Quality gates applied by the status classifier"""

    lufs_min: float = -15.5
    lufs_max: float = -13.5
    true_peak_max: float = 0.0
    accepted_sample_rates_khz: Tuple[float, ...] = (44.1, 48.0)
    sample_rate_tolerance_khz: float = 0.05

    def lufs_in_range(self, value: float) -> bool:
        return self.lufs_min <= value <= self.lufs_max

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['accepted_sample_rates_khz'] = list(self.accepted_sample_rates_khz)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalysisThresholds':
        """Create from dictionary, ignoring unknown keys"""
        valid_fields = {f.name for f in fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in valid_fields}
        if 'accepted_sample_rates_khz' in filtered_data:
            filtered_data['accepted_sample_rates_khz'] = tuple(
                float(v) for v in filtered_data['accepted_sample_rates_khz']
            )
        return cls(**filtered_data)


def _default_diagnostics_dir() -> str:
    return os.path.join(tempfile.gettempdir(), 'loudbatch-diagnostics')


@dataclass(frozen=True)
class AnalysisSettings:
    """Settings for the per-file loudness analysis"""

    # loudnorm measurement targets
    target_i: float = -14.0
    target_tp: float = -1.0
    target_lra: float = 11.0

    # Per-invocation wall clock ceiling
    timeout_seconds: float = 60.0
    max_workers: int = 8

    # Diagnostics for incomplete parses
    diagnostics_enabled: bool = True
    diagnostics_dir: str = field(default_factory=_default_diagnostics_dir)
    diagnostics_max_chars: int = 20000

    thresholds: AnalysisThresholds = field(default_factory=AnalysisThresholds)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['thresholds'] = self.thresholds.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalysisSettings':
        """Create from dictionary, ignoring unknown keys"""
        valid_fields = {f.name for f in fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in valid_fields}
        thresholds = filtered_data.get('thresholds')
        if isinstance(thresholds, dict):
            filtered_data['thresholds'] = AnalysisThresholds.from_dict(thresholds)
        return cls(**filtered_data)


def default_worker_count(max_workers: int = 8) -> int:
    """Worker pool size: one core is left for the consumer side"""
    available = os.cpu_count() or 1
    return min(max_workers, max(1, available - 1))
