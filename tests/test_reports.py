import csv
import json

import pytest

from loudbatch.core.models import AnalysisResult, AnalysisStatus, BatchSnapshot, NormalizationResult
from loudbatch.reports import (
    BatchSummary, export_csv, export_json, export_normalization_results, export_report, sort_results,
)


@pytest.fixture
def snapshot():
    results = (
        AnalysisResult("/m/unknown.mp3"),
        AnalysisResult("/m/loud.mp3", "-9.50", "0.80", "3.00", "44.1 kHz", AnalysisStatus.WARNING),
        AnalysisResult("/m/good.mp3", "-14.50", "-1.20", "6.00", "48 kHz", AnalysisStatus.NORMAL),
        AnalysisResult("/m/quiet.mp3", "-18.00", "-4.00", None, None, AnalysisStatus.WARNING),
    )
    return BatchSnapshot(results=results, completed=4, total=4, is_running=False)


def test_summary_statistics(snapshot):
    summary = BatchSummary.from_snapshot(snapshot)
    assert summary.counts == {"unknown": 1, "normal": 1, "warning": 2}
    assert summary.measured == 3
    assert summary.mean_lufs == pytest.approx(-14.0)
    assert summary.min_lufs == -18.0
    assert summary.max_lufs == -9.5
    assert summary.max_true_peak == 0.8


def test_summary_of_empty_batch():
    summary = BatchSummary.from_snapshot(BatchSnapshot())
    assert summary.mean_lufs is None
    assert summary.max_true_peak is None
    assert summary.format_lines()[0] == "Files analysed: 0/0"


@pytest.mark.parametrize(
    "key,expected",
    [
        ("input", ["unknown", "loud", "good", "quiet"]),
        ("status", ["good", "loud", "quiet", "unknown"]),
        ("file", ["good", "loud", "quiet", "unknown"]),
        ("lufs", ["loud", "good", "quiet", "unknown"]),
    ],
)
def test_sort_results(snapshot, key, expected):
    names = [r.file_identifier[3:-4] for r in sort_results(snapshot.results, key)]
    assert names == expected


def test_sort_results_unknown_key(snapshot):
    with pytest.raises(ValueError):
        sort_results(snapshot.results, "bpm")


def test_export_json(snapshot, tmp_path):
    path = export_json(snapshot, str(tmp_path / "reports" / "batch.json"), sort_key="status")
    with open(path, encoding="utf-8") as f:
        report = json.load(f)
    assert report["summary"]["counts"]["warning"] == 2
    assert [r["file"] for r in report["results"]][0] == "/m/good.mp3"
    assert report["results"][-1]["status"] == "unknown"
    assert report["results"][-1]["lufs"] is None


def test_export_csv(snapshot, tmp_path):
    path = export_csv(snapshot, str(tmp_path / "batch.csv"))
    with open(path, encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert [r["file"] for r in rows] == [r.file_identifier for r in snapshot.results]
    assert rows[0]["lufs"] == ""
    assert rows[2]["sample_rate"] == "48 kHz"


def test_export_report_picks_format_from_extension(snapshot, tmp_path):
    path = export_report(snapshot, str(tmp_path / "out.csv"))
    assert open(path, encoding="utf-8").readline().strip() == "file,lufs,true_peak,lra,sample_rate,status"
    with pytest.raises(ValueError):
        export_report(snapshot, str(tmp_path / "out.xml"))


def test_export_normalization_results(tmp_path):
    results = [NormalizationResult("a.mp3", "two-pass", "-14.0", "-1.0", "ok"), NormalizationResult()]
    path = export_normalization_results(results, str(tmp_path / "norm.csv"))
    with open(path, encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert rows[0]["method"] == "two-pass"
    assert rows[1] == {"file": "?", "method": "?", "lufs": "?", "tp": "?", "status": "?"}
