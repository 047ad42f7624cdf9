import threading

import pytest

from loudbatch.utils.logging_config import setup_logging


@pytest.fixture(autouse=True, scope="session")
def quiet_logging(tmp_path_factory):
    """Send all logging to a temporary directory"""
    return setup_logging(log_dir=str(tmp_path_factory.mktemp("logs")), enable_console=False)


class RecordingDiagnostics:
    """In-memory diagnostics sink"""

    def __init__(self):
        self.records = []
        self._lock = threading.Lock()

    def record(self, file_identifier, text):
        with self._lock:
            self.records.append((file_identifier, text))
        return None


@pytest.fixture
def diagnostics():
    return RecordingDiagnostics()


LOUDNORM_TEMPLATE = """ffmpeg version 6.1 Copyright (c) 2000-2023 the FFmpeg developers
Input #0, mp3, from '{name}':
  Stream #0:0: Audio: mp3, {rate} Hz, stereo, fltp, 320 kb/s
[Parsed_loudnorm_0 @ 0x6000038]
{{
	"input_i" : "{i}",
	"input_tp" : "{tp}",
	"input_lra" : "{lra}",
	"input_thresh" : "-24.52",
	"output_i" : "-14.01",
	"output_tp" : "-1.00",
	"output_lra" : "6.10",
	"output_thresh" : "-24.34",
	"normalization_type" : "dynamic",
	"target_offset" : "0.01"
}}
"""


def loudnorm_output(i, tp, lra, name="track.mp3", rate=44100):
    """Synthetic ffmpeg loudnorm output"""
    return LOUDNORM_TEMPLATE.format(i=i, tp=tp, lra=lra, name=name, rate=rate)
