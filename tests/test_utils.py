import os
import sys
import time

import pytest

from loudbatch.core.exceptions import ConfigurationError
from loudbatch.utils.filesystem import canonical_path, find_audio_files, resolve_log_path
from loudbatch.utils.process import c_locale_env, run_command
from loudbatch.utils.text import (
    clean_tool_output, decode_output, format_sample_rate, strip_ansi, strip_quotes,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        (44100, "44.1 kHz"),
        ("48000", "48 kHz"),
        ("96000", "96 kHz"),
        (192000, "192 kHz"),
        (88200, "88.2 kHz"),
        ("32000", "32.0 kHz"),
        ("n/a", "n/a"),
        ("", ""),
    ],
)
def test_format_sample_rate(raw, expected):
    assert format_sample_rate(raw) == expected


def test_strip_ansi():
    assert strip_ansi("\x1b[1;31mred\x1b[0m plain") == "red plain"
    assert strip_ansi("") == ""


def test_clean_tool_output():
    raw = "\x1b[33minput_i : -14,0\r\n done"
    assert clean_tool_output(raw) == "input_i : -14,0\n done"


def test_decode_output():
    assert decode_output(None) == ""
    assert decode_output(b"ok \xff") == "ok �"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("«a.mp3»", "a.mp3"),
        ("\"b.mp3\"", "b.mp3"),
        ("  'c.mp3' ", "c.mp3"),
        ("d.mp3", "d.mp3"),
    ],
)
def test_strip_quotes(raw, expected):
    assert strip_quotes(raw) == expected


@pytest.mark.parametrize(
    "text,expected",
    [
        ("/abs/a.mp3", "/abs/a.mp3"),
        ("./a.mp3", "/root/dir/a.mp3"),
        ("sub/../b.mp3", "/root/dir/b.mp3"),
        ("c d.mp3", "/root/dir/c d.mp3"),
    ],
)
def test_resolve_log_path(text, expected):
    assert resolve_log_path(text, "/root/dir") == expected


@pytest.fixture
def library(tmp_path):
    (tmp_path / "album").mkdir()
    (tmp_path / ".hidden").mkdir()
    for name in ("b.mp3", "a.M4A", "notes.txt", "album/c.mp4", "album/d.mp3", ".hidden/e.mp3", ".f.mp3"):
        (tmp_path / name).write_bytes(b"")
    return tmp_path


def test_find_audio_files_recursive(library):
    files = find_audio_files([library])
    names = [os.path.relpath(f, canonical_path(library)) for f in files]
    assert names == ["a.M4A", os.path.join("album", "c.mp4"), os.path.join("album", "d.mp3"), "b.mp3"]


def test_find_audio_files_flat_and_extensions(library):
    files = find_audio_files([library], extensions=["mp3"], recursive=False)
    assert [os.path.basename(f) for f in files] == ["b.mp3"]


def test_find_audio_files_deduplicates(library):
    single = library / "b.mp3"
    files = find_audio_files([single, library, str(library / "." / "b.mp3")])
    assert files[0] == canonical_path(single)
    assert files.count(canonical_path(single)) == 1


def test_find_audio_files_missing_path(tmp_path):
    with pytest.raises(ConfigurationError):
        find_audio_files([tmp_path / "nowhere"])


def test_c_locale_env():
    env = c_locale_env({"LANG": "ru_RU.UTF-8", "HOME": "/home/dj"})
    assert env == {"LANG": "C", "LC_ALL": "C", "HOME": "/home/dj"}


def test_run_command_launch_failure(tmp_path):
    assert run_command([str(tmp_path / "missing-tool")]) is None


def test_run_command_timeout_discards_output():
    script = "import sys, time\nprint('partial', flush=True)\ntime.sleep(5)\n"
    start = time.monotonic()
    assert run_command([sys.executable, "-c", script], timeout=0.2) is None
    assert time.monotonic() - start < 4


def test_run_command_output():
    assert run_command([sys.executable, "-c", "print('ok')"], timeout=10).strip() == b"ok"
