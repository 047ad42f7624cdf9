"""
End-to-end runs of the console entry point with the external tools
replaced by canned output.
"""

import csv
import json
import os
import sys
import textwrap

import pytest

from loudbatch.cli import commands, create_parser, main
from loudbatch.services.loudness_analysis import LoudnessAnalysisService

from conftest import loudnorm_output


OUTPUTS = {
    "good.mp3": loudnorm_output("-14.20", "-1.00", "6.00"),
    "loud.mp3": loudnorm_output("-9.00", "0.50", "4.00"),
    "broken.mp3": "[mp3 @ 0x1] Invalid data found when processing input\n",
}


def canned_runner(cmd, timeout=None, **kwargs):
    if "-show_entries" in cmd:
        return None
    name = os.path.basename(cmd[cmd.index("-i") + 1])
    return OUTPUTS[name].encode("utf-8")


@pytest.fixture
def music(tmp_path):
    folder = tmp_path / "music"
    folder.mkdir()
    for name in OUTPUTS:
        (folder / name).write_bytes(b"")
    (folder / "cover.jpg").write_bytes(b"")
    return folder


@pytest.fixture
def cli_args(tmp_path):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"analysis": {"diagnostics_dir": str(tmp_path / "diag")}}),
                      encoding="utf-8")
    return ["--config", str(config), "--log-dir", str(tmp_path / "logs"), "--no-console-log"]


@pytest.fixture
def fake_tools(monkeypatch):
    monkeypatch.setattr(commands, "require_ffmpeg", lambda override=None: "ffmpeg")
    monkeypatch.setattr(commands, "find_ffprobe", lambda override=None: None)

    def service_factory(settings, ffmpeg_path, ffprobe_path):
        return LoudnessAnalysisService(settings, ffmpeg_path=ffmpeg_path, ffprobe_path=ffprobe_path,
                                       command_runner=canned_runner)

    monkeypatch.setattr(commands, "LoudnessAnalysisService", service_factory)


def test_parser_subcommands():
    parser = create_parser()
    args = parser.parse_args(["analyze", "a.mp3", "b.mp3", "--workers", "2", "--sort", "lufs"])
    assert args.command == "analyze"
    assert args.paths == ["a.mp3", "b.mp3"]
    assert args.workers == 2
    assert args.sort == "lufs"

    args = parser.parse_args(["normalize", "/music", "--script", "normal.sh"])
    assert (args.command, args.root, args.script) == ("normalize", "/music", "normal.sh")


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        create_parser().parse_args([])


def test_analyze_writes_report(music, cli_args, fake_tools, tmp_path, capsys):
    report = tmp_path / "out" / "loudness.csv"
    code = main(cli_args + ["analyze", str(music), "--quiet", "--workers", "2",
                            "--report", str(report), "--sort", "status"])
    assert code == 0

    with open(report, encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert [(os.path.basename(r["file"]), r["status"]) for r in rows] == [
        ("good.mp3", "normal"),
        ("loud.mp3", "warning"),
        ("broken.mp3", "unknown"),
    ]
    out = capsys.readouterr().out
    assert "Files analysed: 3/3" in out
    assert "Report saved" in out


def test_analyze_without_audio_files(tmp_path, cli_args, fake_tools, capsys):
    empty = tmp_path / "empty"
    empty.mkdir()
    assert main(cli_args + ["analyze", str(empty)]) == 1
    assert "No audio files found" in capsys.readouterr().out


def test_analyze_missing_path(tmp_path, cli_args, fake_tools):
    assert main(cli_args + ["analyze", str(tmp_path / "nowhere")]) == 1


def test_missing_config_file(tmp_path, capsys):
    code = main(["--config", str(tmp_path / "absent.json"), "normalize", str(tmp_path)])
    assert code == 1
    assert "Configuration Error" in capsys.readouterr().out


def write_script(tmp_path, body):
    script = tmp_path / "normal.py"
    script.write_text(textwrap.dedent(body), encoding="utf-8")
    return str(script)


def test_normalize_streams_log_and_exports_results(music, cli_args, tmp_path, capsys):
    script = write_script(tmp_path, """
        import sys
        sys.stdout.reconfigure(encoding="utf-8")
        print("debug noise")
        print("Processing file: good.mp3", flush=True)
        print('###RESULT file="good.mp3" method="two-pass" lufs="-14.0" tp="-1.0" status="ok"')
        print("All files processed successfully")
    """)
    results_csv = tmp_path / "norm.csv"
    code = main(cli_args + ["normalize", str(music), "--script", script,
                            "--interpreter", sys.executable, "--results-csv", str(results_csv)])
    assert code == 0

    out = capsys.readouterr().out
    assert "Processing file: good.mp3" in out
    assert "debug noise" not in out
    assert "###RESULT" not in out
    assert "Summary: 1 file section(s) processed" in out

    with open(results_csv, encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert rows == [{"file": "good.mp3", "method": "two-pass", "lufs": "-14.0", "tp": "-1.0", "status": "ok"}]


def test_normalize_script_failure(music, cli_args, tmp_path, capsys):
    script = write_script(tmp_path, """
        import sys
        sys.exit(3)
    """)
    code = main(cli_args + ["normalize", str(music), "--script", script,
                            "--interpreter", sys.executable])
    assert code == 1
    assert "exited with code 3" in capsys.readouterr().out


def test_normalize_missing_script(music, cli_args, tmp_path, capsys):
    code = main(cli_args + ["normalize", str(music), "--script", str(tmp_path / "missing.sh")])
    assert code == 1
    assert "Normalization script not found" in capsys.readouterr().out
