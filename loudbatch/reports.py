"""
Reports module for loudbatch
Batch summaries and JSON/CSV export of analysis results
"""
import csv
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from .core.models import AnalysisResult, AnalysisStatus, BatchSnapshot, NormalizationResult


logger = logging.getLogger(__name__)

CSV_COLUMNS = ('file', 'lufs', 'true_peak', 'lra', 'sample_rate', 'status')
NORMALIZATION_CSV_COLUMNS = ('file', 'method', 'lufs', 'tp', 'status')

SORT_KEYS = ('input', 'status', 'file', 'lufs')


def _float_or_nan(value: Optional[str]) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return float('nan')


def _rounded(value) -> Optional[float]:
    return None if value is None or np.isnan(value) else round(float(value), 2)


@dataclass
class BatchSummary:
    """Aggregate figures of one batch"""

    total: int = 0
    completed: int = 0
    counts: Dict[str, int] = field(default_factory=dict)
    measured: int = 0
    mean_lufs: Optional[float] = None
    min_lufs: Optional[float] = None
    max_lufs: Optional[float] = None
    max_true_peak: Optional[float] = None

    @classmethod
    def from_snapshot(cls, snapshot: BatchSnapshot) -> 'BatchSummary':
        """
        Summarize a snapshot

        Missing or unparseable loudness values are left out of the
        statistics; a batch without any value reports None.
        """
        counts = {status.value: 0 for status in AnalysisStatus}
        for result in snapshot.results:
            counts[result.status.value] += 1

        lufs = np.array([_float_or_nan(r.loudness_integrated) for r in snapshot.results], dtype=float)
        peaks = np.array([_float_or_nan(r.true_peak) for r in snapshot.results], dtype=float)
        lufs = lufs[~np.isnan(lufs)]
        peaks = peaks[~np.isnan(peaks)]

        return cls(
            total=snapshot.total,
            completed=snapshot.completed,
            counts=counts,
            measured=counts[AnalysisStatus.NORMAL.value] + counts[AnalysisStatus.WARNING.value],
            mean_lufs=_rounded(np.mean(lufs)) if lufs.size else None,
            min_lufs=_rounded(np.min(lufs)) if lufs.size else None,
            max_lufs=_rounded(np.max(lufs)) if lufs.size else None,
            max_true_peak=_rounded(np.max(peaks)) if peaks.size else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'completed': self.completed,
            'measured': self.measured,
            'counts': dict(self.counts),
            'mean_lufs': self.mean_lufs,
            'min_lufs': self.min_lufs,
            'max_lufs': self.max_lufs,
            'max_true_peak': self.max_true_peak,
        }

    def format_lines(self) -> List[str]:
        """Human readable summary, one figure per line"""
        lines = [
            f"Files analysed: {self.completed}/{self.total}",
            f"✅ Normal: {self.counts.get(AnalysisStatus.NORMAL.value, 0)}",
            f"⚠️ Warning: {self.counts.get(AnalysisStatus.WARNING.value, 0)}",
            f"❓ Unknown: {self.counts.get(AnalysisStatus.UNKNOWN.value, 0)}",
        ]
        if self.mean_lufs is not None:
            lines.append(f"Integrated loudness: mean {self.mean_lufs} LUFS "
                         f"(min {self.min_lufs}, max {self.max_lufs})")
        if self.max_true_peak is not None:
            lines.append(f"Highest true peak: {self.max_true_peak} dBTP")
        return lines


def sort_results(results: Iterable[AnalysisResult], key: str = 'status') -> List[AnalysisResult]:
    """
    Order results for display

    Args:
        results: Results in input order
        key: 'input' keeps the order, 'status' sorts Normal, Warning,
            Unknown, 'file' sorts by file name, 'lufs' sorts loudest first
            with unmeasured files last

    Returns:
        New list; the sort is stable
    """
    items = list(results)
    if key == 'input':
        return items
    if key == 'status':
        return sorted(items, key=lambda r: r.status_priority)
    if key == 'file':
        return sorted(items, key=lambda r: os.path.basename(r.file_identifier).lower())
    if key == 'lufs':
        def lufs_key(r):
            value = _float_or_nan(r.loudness_integrated)
            return (1, 0.0) if np.isnan(value) else (0, -value)
        return sorted(items, key=lufs_key)
    raise ValueError(f"Unknown sort key: {key} (expected one of {', '.join(SORT_KEYS)})")


def _ensure_parent(path: str):
    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)


def export_json(snapshot: BatchSnapshot, path: str, sort_key: str = 'input') -> str:
    """Write results and summary as JSON; returns the path"""
    _ensure_parent(path)
    report = {
        'generated': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
        'summary': BatchSummary.from_snapshot(snapshot).to_dict(),
        'results': [r.to_dict() for r in sort_results(snapshot.results, sort_key)],
    }
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2, ensure_ascii=False)
    logger.info(f"JSON report saved: {path}")
    return path


def export_csv(snapshot: BatchSnapshot, path: str, sort_key: str = 'input') -> str:
    """Write one row per file as CSV; returns the path"""
    _ensure_parent(path)
    with open(path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        for result in sort_results(snapshot.results, sort_key):
            writer.writerow({k: ('' if v is None else v) for k, v in result.to_dict().items()})
    logger.info(f"CSV report saved: {path}")
    return path


def export_report(snapshot: BatchSnapshot, path: str, fmt: Optional[str] = None,
                  sort_key: str = 'input') -> str:
    """Export in the given format, or the one implied by the file extension"""
    fmt = (fmt or os.path.splitext(path)[1].lstrip('.') or 'json').lower()
    if fmt == 'json':
        return export_json(snapshot, path, sort_key)
    if fmt == 'csv':
        return export_csv(snapshot, path, sort_key)
    raise ValueError(f"Unsupported report format: {fmt}")


def export_normalization_results(results: Sequence[NormalizationResult], path: str) -> str:
    """Write the ###RESULT rows of a normalization run as CSV"""
    _ensure_parent(path)
    with open(path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=NORMALIZATION_CSV_COLUMNS)
        writer.writeheader()
        for result in results:
            writer.writerow(result.to_dict())
    logger.info(f"Normalization results saved: {path}")
    return path
