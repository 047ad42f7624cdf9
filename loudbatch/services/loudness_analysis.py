"""
Loudness Analysis Service

Runs one ffmpeg loudnorm measurement per file, extracts the metrics,
looks up the sample rate and classifies the result.
"""

import os
import re
import threading
import time
from typing import Any, Callable, Dict, List, Optional

import mutagen

from ..core.classifier import classify
from ..core.config import AnalysisSettings
from ..core.models import AnalysisResult
from ..utils.logging_config import get_logger, get_app_logger
from ..utils.process import run_command
from ..utils.text import decode_output, format_sample_rate
from .diagnostics import DiagnosticsWriter
from .metric_extractor import MetricExtractor
from .tool_locator import find_ffprobe, require_ffmpeg


BANNER_SAMPLE_RATE_PATTERN = re.compile(r'(\d{4,6})\s*Hz')

# ffprobe is a header read; it gets a shorter ceiling than the measurement
SAMPLE_RATE_TIMEOUT = 15.0

CommandRunner = Callable[..., Optional[bytes]]


class LoudnessAnalysisService:
    """
    Per-file loudness measurement

    Features:
    - ffmpeg loudnorm measurement with a per-call timeout
    - tolerant metric extraction with parse diagnostics
    - sample rate via ffprobe, the ffmpeg banner or the file header
    - threshold classification
    """

    def __init__(self, settings: Optional[AnalysisSettings] = None,
                 ffmpeg_path: Optional[str] = None,
                 ffprobe_path: Optional[str] = None,
                 command_runner: CommandRunner = run_command,
                 diagnostics=None):
        """
        Initialize the analysis service

        Args:
            settings: Analysis settings (targets, timeout, thresholds)
            ffmpeg_path: ffmpeg executable; located automatically if omitted
            ffprobe_path: ffprobe executable; located automatically if None,
                disabled if empty
            command_runner: Callable running a command and returning its
                output bytes or None on failure
            diagnostics: Sink for incomplete parses; a DiagnosticsWriter is
                created from the settings if omitted

        Raises:
            ToolNotFoundError: If ffmpeg cannot be located
        """
        self.settings = settings or AnalysisSettings()
        self.logger = get_logger('analysis')
        self.ffmpeg_path = ffmpeg_path or require_ffmpeg()
        self.ffprobe_path = find_ffprobe() if ffprobe_path is None else ffprobe_path
        self.command_runner = command_runner

        if diagnostics is None and self.settings.diagnostics_enabled:
            diagnostics = DiagnosticsWriter(self.settings.diagnostics_dir,
                                            self.settings.diagnostics_max_chars)
        self.extractor = MetricExtractor(diagnostics, self.settings.diagnostics_max_chars)

        # Performance tracking
        self._lock = threading.Lock()
        self.analysis_count = 0
        self.failure_count = 0
        self.total_analysis_time = 0.0

        self.logger.debug(f"ffmpeg: {self.ffmpeg_path}, ffprobe: {self.ffprobe_path or 'None'}")

    def build_analysis_command(self, filepath: str) -> List[str]:
        s = self.settings
        loudnorm = (f"loudnorm=I={s.target_i}:TP={s.target_tp}:LRA={s.target_lra}"
                    f":print_format=json")
        return [
            self.ffmpeg_path,
            "-hide_banner", "-nostats",
            "-i", filepath,
            "-map", "0:a:0", "-vn", "-sn", "-dn",
            "-af", loudnorm,
            "-f", "null", "-",
        ]

    def analyze_file(self, filepath: str) -> Optional[AnalysisResult]:
        """
        Measure and classify one file

        Args:
            filepath: Canonical path of the audio file

        Returns:
            AnalysisResult, or None when the measurement could not run
            (launch failure or timeout)
        """
        start_time = time.time()
        output = self.command_runner(self.build_analysis_command(filepath),
                                     timeout=self.settings.timeout_seconds)
        duration = time.time() - start_time

        with self._lock:
            self.analysis_count += 1
            self.total_analysis_time += duration
            if output is None:
                self.failure_count += 1

        get_app_logger().log_file_analysis(filepath, duration, output is not None)
        if output is None:
            return None

        text = decode_output(output)
        if not text:
            self.logger.warning(f"Empty ffmpeg output for {os.path.basename(filepath)}")

        metrics = self.extractor.extract(text, filepath)
        sample_rate = self.lookup_sample_rate(filepath, text)
        status = classify(metrics.integrated, metrics.true_peak, sample_rate,
                          self.settings.thresholds)

        self.logger.debug(
            f"{os.path.basename(filepath)} -> LUFS:{metrics.integrated} TP:{metrics.true_peak} "
            f"LRA:{metrics.loudness_range} SR:{sample_rate} status:{status.value}"
        )

        return AnalysisResult(
            file_identifier=filepath,
            loudness_integrated=metrics.integrated,
            true_peak=metrics.true_peak,
            loudness_range=metrics.loudness_range,
            sample_rate_label=sample_rate,
            status=status,
        )

    def lookup_sample_rate(self, filepath: str, analysis_output: str = "") -> Optional[str]:
        """
        Sample rate label of the first audio stream

        Tries ffprobe, then the 'NNNNN Hz' stream line of the analysis
        output, then the container header via mutagen.
        """
        if self.ffprobe_path:
            cmd = [
                self.ffprobe_path,
                "-v", "error",
                "-select_streams", "a:0",
                "-show_entries", "stream=sample_rate",
                "-of", "default=nw=1:nk=1",
                filepath,
            ]
            raw = decode_output(self.command_runner(cmd, timeout=SAMPLE_RATE_TIMEOUT,
                                                    merge_stderr=False)).strip()
            first_line = raw.splitlines()[0].strip() if raw else ""
            if first_line.isdigit():
                return format_sample_rate(first_line)

        match = BANNER_SAMPLE_RATE_PATTERN.search(analysis_output or "")
        if match:
            return format_sample_rate(match.group(1))

        return self._sample_rate_from_header(filepath)

    def _sample_rate_from_header(self, filepath: str) -> Optional[str]:
        try:
            audio = mutagen.File(filepath)
        except (mutagen.MutagenError, OSError) as e:
            self.logger.debug(f"mutagen could not read {os.path.basename(filepath)}: {e}")
            return None
        sample_rate = getattr(getattr(audio, 'info', None), 'sample_rate', None)
        if not sample_rate:
            return None
        return format_sample_rate(int(sample_rate))

    def get_performance_stats(self) -> Dict[str, Any]:
        """Get analysis statistics"""
        with self._lock:
            avg_time = (self.total_analysis_time / self.analysis_count
                        if self.analysis_count else 0.0)
            return {
                'analyses': self.analysis_count,
                'failures': self.failure_count,
                'total_time': round(self.total_analysis_time, 3),
                'average_time': round(avg_time, 3),
            }
