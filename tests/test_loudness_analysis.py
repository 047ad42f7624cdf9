"""
Loudness analysis service with a scripted command runner, and the
three-file batch scenario through the orchestrator.
"""

import threading

import pytest

from loudbatch.core.config import AnalysisSettings
from loudbatch.core.models import AnalysisStatus
from loudbatch.core.orchestrator import BatchAnalysisOrchestrator
from loudbatch.services.diagnostics import DiagnosticsWriter
from loudbatch.services.loudness_analysis import LoudnessAnalysisService

from conftest import loudnorm_output


class ScriptedRunner:
    """Command runner answering from canned outputs keyed by input file"""

    def __init__(self, outputs, probe_rates=None):
        self.outputs = outputs
        self.probe_rates = probe_rates or {}
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, cmd, timeout=None, **kwargs):
        with self._lock:
            self.calls.append((list(cmd), timeout, kwargs))
        if "-show_entries" in cmd:
            rate = self.probe_rates.get(cmd[-1])
            return None if rate is None else f"{rate}\n".encode()
        path = cmd[cmd.index("-i") + 1]
        output = self.outputs.get(path)
        if isinstance(output, str):
            return output.encode("utf-8")
        return output


def make_service(runner, diagnostics, ffprobe_path="", settings=None):
    return LoudnessAnalysisService(settings or AnalysisSettings(), ffmpeg_path="ffmpeg",
                                   ffprobe_path=ffprobe_path, command_runner=runner,
                                   diagnostics=diagnostics)


def test_analysis_command_line(diagnostics):
    service = make_service(ScriptedRunner({}), diagnostics)
    cmd = service.build_analysis_command("/music/a.mp3")
    assert cmd == [
        "ffmpeg", "-hide_banner", "-nostats", "-i", "/music/a.mp3",
        "-map", "0:a:0", "-vn", "-sn", "-dn",
        "-af", "loudnorm=I=-14.0:TP=-1.0:LRA=11.0:print_format=json",
        "-f", "null", "-",
    ]


def test_normal_file(diagnostics):
    runner = ScriptedRunner({"/m/a.mp3": loudnorm_output("-14.10", "-1.20", "5.00")})
    result = make_service(runner, diagnostics).analyze_file("/m/a.mp3")

    assert result.status == AnalysisStatus.NORMAL
    assert result.loudness_integrated == "-14.10"
    assert result.true_peak == "-1.20"
    assert result.loudness_range == "5.00"
    assert result.sample_rate_label == "44.1 kHz"
    assert runner.calls[0][1] == 60.0
    assert diagnostics.records == []


def test_sample_rate_from_ffprobe(diagnostics):
    runner = ScriptedRunner({"/m/a.mp3": loudnorm_output("-14.0", "-1.0", "5.0", rate=44100)},
                            probe_rates={"/m/a.mp3": 96000})
    result = make_service(runner, diagnostics, ffprobe_path="ffprobe").analyze_file("/m/a.mp3")

    assert result.sample_rate_label == "96 kHz"
    assert result.status == AnalysisStatus.WARNING
    probe_call = runner.calls[1]
    assert probe_call[2] == {"merge_stderr": False}


def test_sample_rate_falls_back_to_banner(diagnostics):
    runner = ScriptedRunner({"/m/a.mp3": loudnorm_output("-14.0", "-1.0", "5.0", rate=48000)})
    result = make_service(runner, diagnostics, ffprobe_path="ffprobe").analyze_file("/m/a.mp3")
    assert result.sample_rate_label == "48 kHz"


def test_failed_invocation_returns_none(diagnostics):
    service = make_service(ScriptedRunner({"/m/a.mp3": None}), diagnostics)
    assert service.analyze_file("/m/a.mp3") is None
    stats = service.get_performance_stats()
    assert stats["analyses"] == 1
    assert stats["failures"] == 1
    assert diagnostics.records == []


def test_timed_out_file_stays_unknown_without_diagnostics(tmp_path, diagnostics):
    hanging_ffmpeg = tmp_path / "ffmpeg"
    hanging_ffmpeg.write_text("#!/bin/sh\necho 'Stream #0:0: Audio: mp3, 44100 Hz'\nexec sleep 5\n")
    hanging_ffmpeg.chmod(0o755)
    settings = AnalysisSettings(timeout_seconds=0.2)
    service = LoudnessAnalysisService(settings, ffmpeg_path=str(hanging_ffmpeg), ffprobe_path="",
                                      diagnostics=diagnostics)
    orchestrator = BatchAnalysisOrchestrator(service.analyze_file, max_workers=1, canonicalize=False)

    final = orchestrator.run(["/music/slow.mp3"], timeout=10)

    assert final.statuses == [AnalysisStatus.UNKNOWN]
    assert final.results[0].loudness_integrated is None
    assert final.completed == 1
    assert not final.is_running
    assert diagnostics.records == []
    assert service.get_performance_stats()["failures"] == 1


def test_three_file_batch_scenario(diagnostics):
    files = ["/music/inside.mp3", "/music/outside.mp3", "/music/broken.mp3"]
    runner = ScriptedRunner({
        files[0]: loudnorm_output("-14.30", "-1.10", "6.20"),
        files[1]: loudnorm_output("-8,90", "0,80", "3,10"),
        files[2]: "Error while decoding stream #0:0: Invalid data found\n",
    })
    service = make_service(runner, diagnostics)
    orchestrator = BatchAnalysisOrchestrator(service.analyze_file, max_workers=3, canonicalize=False)

    final = orchestrator.run(files, timeout=10)

    assert [r.file_identifier for r in final.results] == files
    assert final.statuses[0] in (AnalysisStatus.NORMAL, AnalysisStatus.WARNING)
    assert final.statuses[1:] == [AnalysisStatus.WARNING, AnalysisStatus.UNKNOWN]
    assert final.results[1].loudness_integrated == "-8.90"
    assert final.completed == 3

    assert len(diagnostics.records) == 1
    assert diagnostics.records[0][0] == files[2]
    assert "Invalid data found" in diagnostics.records[0][1]


def test_diagnostics_writer_creates_artifact(tmp_path):
    settings = AnalysisSettings(diagnostics_dir=str(tmp_path / "diag"))
    runner = ScriptedRunner({"/m/odd name.mp3": "nothing useful"})
    service = LoudnessAnalysisService(settings, ffmpeg_path="ffmpeg", ffprobe_path="",
                                      command_runner=runner)

    result = service.analyze_file("/m/odd name.mp3")

    assert result.status == AnalysisStatus.UNKNOWN
    artifacts = list((tmp_path / "diag").iterdir())
    assert [a.name for a in artifacts] == ["loudbatch-odd_name.mp3.log"]
    assert "nothing useful" in artifacts[0].read_text(encoding="utf-8")


def test_diagnostics_writer_truncates(tmp_path):
    writer = DiagnosticsWriter(str(tmp_path), max_chars=10)
    path = writer.record("/m/a.mp3", "y" * 100)
    content = open(path, encoding="utf-8").read()
    assert content.splitlines()[1] == "y" * 10


def test_settings_round_trip_through_dict():
    settings = AnalysisSettings(timeout_seconds=30.0, max_workers=2)
    assert AnalysisSettings.from_dict(settings.to_dict()) == settings
