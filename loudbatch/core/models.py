"""
Data models for loudbatch

This module defines the data structures shared by the analysis orchestrator,
the normalization session and their consumers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any, Tuple, FrozenSet


class AnalysisStatus(str, Enum):
    UNKNOWN = "unknown"
    NORMAL = "normal"
    WARNING = "warning"


STATUS_PRIORITY = {
    AnalysisStatus.NORMAL: 0,
    AnalysisStatus.WARNING: 1,
    AnalysisStatus.UNKNOWN: 2,
}


@dataclass(frozen=True)
class AnalysisResult:
    """Loudness measurement of a single file"""

    file_identifier: str
    loudness_integrated: Optional[str] = None
    true_peak: Optional[str] = None
    loudness_range: Optional[str] = None
    sample_rate_label: Optional[str] = None
    status: AnalysisStatus = AnalysisStatus.UNKNOWN

    @classmethod
    def pending(cls, file_identifier: str) -> 'AnalysisResult':
        """Placeholder row shown before measurement completes"""
        return cls(file_identifier=file_identifier)

    @property
    def status_priority(self) -> int:
        return STATUS_PRIORITY[self.status]

    @property
    def is_measured(self) -> bool:
        return self.status is not AnalysisStatus.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'file': self.file_identifier,
            'lufs': self.loudness_integrated,
            'true_peak': self.true_peak,
            'lra': self.loudness_range,
            'sample_rate': self.sample_rate_label,
            'status': self.status.value,
        }


@dataclass(frozen=True)
class BatchSnapshot:
    """Point-in-time copy of a batch, always in input order"""

    results: Tuple[AnalysisResult, ...] = ()
    completed: int = 0
    total: int = 0
    is_running: bool = False

    def __len__(self) -> int:
        return len(self.results)

    @property
    def statuses(self) -> List[AnalysisStatus]:
        return [r.status for r in self.results]


class BatchJob:
    """
    Result buffer of one analysis run

    Slots are index-aligned with the input file list. The buffer itself is
    not synchronized; the orchestrator serializes every access.
    """

    def __init__(self, files: List[str]):
        self.files: Tuple[str, ...] = tuple(files)
        self.results: List[AnalysisResult] = [AnalysisResult.pending(f) for f in self.files]
        self.index: Dict[str, int] = {}
        for position, file_identifier in enumerate(self.files):
            # First occurrence wins for duplicated inputs
            self.index.setdefault(file_identifier, position)
        self.completed = 0

    def __len__(self) -> int:
        return len(self.results)

    def place(self, result: AnalysisResult) -> Optional[int]:
        """Write a result into its slot; returns the slot index"""
        position = self.index.get(result.file_identifier)
        if position is None:
            return None
        self.results[position] = result
        return position

    def snapshot(self, is_running: bool) -> BatchSnapshot:
        return BatchSnapshot(
            results=tuple(self.results),
            completed=self.completed,
            total=len(self.results),
            is_running=is_running,
        )


@dataclass(frozen=True)
class NormalizationProgress:
    """Progress of one normalization session"""

    current_file: Optional[str] = None
    files_started: int = 0
    files_created: int = 0
    done_files: FrozenSet[str] = field(default_factory=frozenset)
    completed: bool = False
    final_summary_emitted: bool = False

    @property
    def files_done(self) -> int:
        return len(self.done_files)


@dataclass(frozen=True)
class NormalizationResult:
    """Result row reported by the normalization script"""

    file: str = "?"
    method: str = "?"
    lufs: str = "?"
    tp: str = "?"
    status: str = "?"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'file': self.file,
            'method': self.method,
            'lufs': self.lufs,
            'tp': self.tp,
            'status': self.status,
        }
