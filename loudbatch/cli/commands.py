"""
CLI Commands Module

Command implementations for the loudbatch CLI, kept apart from the
argument parsing.
"""

import os
import time
from typing import List, Optional

from tqdm import tqdm

from ..core.config import default_worker_count
from ..core.exceptions import LoudBatchError
from ..core.models import AnalysisResult, AnalysisStatus, BatchSnapshot, NormalizationResult
from ..core.orchestrator import BatchAnalysisOrchestrator
from ..reports import BatchSummary, export_normalization_results, export_report, sort_results
from ..services.loudness_analysis import LoudnessAnalysisService
from ..services.normalization import NormalizationSession
from ..services.tool_locator import find_ffprobe, require_ffmpeg
from ..utils.filesystem import find_audio_files
from ..utils.logging_config import get_logger
from .config import CLIConfig


STATUS_ICONS = {
    AnalysisStatus.NORMAL: "✅",
    AnalysisStatus.WARNING: "⚠️",
    AnalysisStatus.UNKNOWN: "❓",
}

# How often the main thread wakes up to notice Ctrl-C
POLL_INTERVAL = 0.5


class CLICommands:
    """
    CLI command implementations

    Every command returns a process exit code: 0 on success, 1 on an
    application error, 130 when interrupted.
    """

    def __init__(self, config: Optional[CLIConfig] = None):
        """Initialize CLI commands"""
        self.config = config or CLIConfig()
        self.logger = get_logger('cli')

    def analyze_command(self, args) -> int:
        """
        Measure the loudness of every audio file under the given paths

        Args:
            args: Parsed command line arguments

        Returns:
            Exit code
        """
        orchestrator = None
        try:
            cfg = self.config.load_config()
            files = find_audio_files(
                args.paths,
                extensions=cfg['files']['extensions'],
                recursive=not getattr(args, 'no_recursive', False),
            )
            if not files:
                self._print_warning("No audio files found")
                return 1

            settings = self.config.build_analysis_settings({
                'max_workers': getattr(args, 'workers', None),
                'timeout_seconds': getattr(args, 'timeout', None),
            })
            tools = cfg['tools']
            ffmpeg = require_ffmpeg(getattr(args, 'ffmpeg', None) or tools['ffmpeg'])
            ffprobe = find_ffprobe(getattr(args, 'ffprobe', None) or tools['ffprobe']) or ""
            service = LoudnessAnalysisService(settings, ffmpeg_path=ffmpeg, ffprobe_path=ffprobe)

            if getattr(args, 'workers', None):
                workers = settings.max_workers
            else:
                workers = default_worker_count(settings.max_workers)

            self._print_header(len(files), workers, settings.timeout_seconds)
            start_time = time.time()

            with tqdm(total=len(files), unit='file', desc='Analysing',
                      disable=getattr(args, 'quiet', False)) as bar:

                def on_snapshot(snapshot: BatchSnapshot):
                    if snapshot.completed > bar.n:
                        bar.update(snapshot.completed - bar.n)

                orchestrator = BatchAnalysisOrchestrator(service.analyze_file,
                                                         max_workers=workers,
                                                         on_snapshot=on_snapshot)
                orchestrator.start(files)
                interrupted = self._wait_for_batch(orchestrator)

            final = orchestrator.latest_snapshot
            sort_key = getattr(args, 'sort', None) or cfg['reporting']['sort']
            self._print_results(sort_results(final.results, sort_key))
            self._print_summary(BatchSummary.from_snapshot(final), time.time() - start_time)

            report_path = getattr(args, 'report', None)
            if report_path:
                fmt = getattr(args, 'format', None)
                if fmt is None and not os.path.splitext(report_path)[1]:
                    fmt = cfg['reporting']['default_format']
                saved = export_report(final, report_path, fmt, sort_key)
                print(f"📊 Report saved: {saved}")

            if interrupted:
                self._print_warning("Analysis interrupted by user")
                return 130
            return 0

        except LoudBatchError as e:
            self._print_error(f"Application Error: {e}")
            return 1
        except ValueError as e:
            self._print_error(str(e))
            return 1
        except KeyboardInterrupt:
            if orchestrator is not None:
                orchestrator.request_stop()
            self._print_warning("Analysis interrupted by user")
            return 130

    def normalize_command(self, args) -> int:
        """
        Run the normalization script on a folder and stream its log

        Args:
            args: Parsed command line arguments

        Returns:
            Exit code; 1 if the script exited with an error
        """
        session = None
        try:
            command = self.config.normalization_command(
                getattr(args, 'script', None), getattr(args, 'interpreter', None)
            )
            session = NormalizationSession(command, on_log=print)
            print(f"🚀 Normalizing {os.path.abspath(args.root)}")
            session.run(args.root)

            while not session.wait(POLL_INTERVAL):
                pass

            results = session.results
            if results:
                self._print_normalization_results(results)
            results_path = getattr(args, 'results_csv', None)
            if results_path:
                saved = export_normalization_results(results, results_path)
                print(f"📊 Results saved: {saved}")

            if session.return_code:
                self._print_error(f"Normalization script exited with code {session.return_code}")
                return 1
            return 0

        except LoudBatchError as e:
            self._print_error(f"Application Error: {e}")
            return 1
        except KeyboardInterrupt:
            if session is not None:
                session.stop()
                session.wait(10)
            self._print_warning("Normalization interrupted by user")
            return 130

    def _wait_for_batch(self, orchestrator: BatchAnalysisOrchestrator) -> bool:
        """Wait for the batch; Ctrl-C stops dispatch and drains. Returns True if interrupted"""
        try:
            while not orchestrator.wait(POLL_INTERVAL):
                pass
            return False
        except KeyboardInterrupt:
            orchestrator.request_stop()
            print()
            self._print_warning("Stopping, waiting for running analyses to finish...")
            orchestrator.wait()
            return True

    def _print_header(self, file_count: int, workers: int, timeout: float):
        """Print analysis configuration"""
        print("🎚️ loudbatch - loudness analysis")
        print(f"   Files: {file_count}")
        print(f"   Workers: {workers}")
        print(f"   Timeout per file: {timeout:.0f}s")
        print()

    def _print_results(self, results: List[AnalysisResult]):
        print()
        print(f"   {'File':<40} {'LUFS':>7} {'TP':>6} {'LRA':>5} {'Rate':>9}")
        for r in results:
            name = os.path.basename(r.file_identifier)
            if len(name) > 40:
                name = name[:37] + "..."
            print(f"{STATUS_ICONS[r.status]} {name:<40} {r.loudness_integrated or '-':>7} "
                  f"{r.true_peak or '-':>6} {r.loudness_range or '-':>5} {r.sample_rate_label or '-':>9}")

    def _print_summary(self, summary: BatchSummary, total_time: float):
        print("\n📊 Batch Summary:")
        for line in summary.format_lines():
            print(f"   {line}")
        print(f"\n📈 Completed in {total_time:.1f}s")

    def _print_normalization_results(self, results: List[NormalizationResult]):
        print("\n📋 Normalization results:")
        for r in results:
            print(f"   {r.file}: {r.method}, {r.lufs} LUFS, TP {r.tp} ({r.status})")

    def _print_error(self, message: str):
        """Print error message"""
        print(f"❌ {message}")

    def _print_warning(self, message: str):
        """Print warning message"""
        print(f"⚠️ {message}")


__all__ = ['CLICommands']
