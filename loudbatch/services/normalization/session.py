"""
Normalization Session

Runs the external normalization script once per session and turns its
merged stdout/stderr into a rendered log, progress updates and result rows.

Two producer threads feed one event queue: a reader posting output chunks
followed by an end-of-stream event, and a waiter posting the exit code. A
single consumer thread applies the events in order, so log lines are never
reordered and the summary is appended exactly once, after the last line,
whichever of end-of-stream and exit arrives first.
"""

import os
import queue
import signal
import subprocess
import threading
from typing import Callable, List, Optional, Sequence

from ...core.exceptions import ConfigurationError, ProcessLaunchError
from ...core.models import NormalizationProgress, NormalizationResult
from ...utils.filesystem import canonical_path
from ...utils.logging_config import get_logger, get_app_logger
from .line_reassembler import LineReassembler
from .log_filter import LogLineFilter
from .progress_tracker import ProgressTracker, parse_result_line


LogCallback = Callable[[str], None]
ProgressCallback = Callable[[NormalizationProgress], None]
ResultCallback = Callable[[NormalizationResult], None]
CompletionCallback = Callable[[NormalizationProgress, Optional[int]], None]

CHUNK = 'chunk'
STREAM_CLOSED = 'stream_closed'
EXITED = 'exited'

DEFAULT_CHUNK_SIZE = 4096


class NormalizationPipeline:
    """
    Event handling for one run

    Not thread-safe: exactly one thread (the session consumer, or a test)
    delivers the events. The summary is emitted once both the stream end
    and the process exit were seen.
    """

    def __init__(self, working_root: str,
                 on_log: Optional[LogCallback] = None,
                 on_progress: Optional[ProgressCallback] = None,
                 on_result: Optional[ResultCallback] = None):
        self.reassembler = LineReassembler()
        self.filter = LogLineFilter()
        self.tracker = ProgressTracker(working_root)
        self.on_log = on_log
        self.on_progress = on_progress
        self.on_result = on_result
        self.logger = get_logger('normalization')

        self.log_lines: List[str] = []
        self.results: List[NormalizationResult] = []
        self.stream_closed = False
        self.exited = False
        self.return_code: Optional[int] = None

    @property
    def finished(self) -> bool:
        return self.tracker.summary_emitted

    def feed(self, chunk: bytes):
        if self.stream_closed:
            self.logger.debug(f"Ignoring {len(chunk)} bytes after end of stream")
            return
        self._handle_lines(self.reassembler.feed(chunk))

    def close_stream(self):
        if self.stream_closed:
            return
        self.stream_closed = True
        tail = self.reassembler.flush()
        if tail:
            self._handle_lines([tail])
        self._maybe_finish()

    def process_exited(self, return_code: Optional[int]):
        if self.exited:
            return
        self.exited = True
        self.return_code = return_code
        self._maybe_finish()

    def handle(self, kind: str, payload=None):
        """Dispatch one queued event"""
        if kind == CHUNK:
            self.feed(payload)
        elif kind == STREAM_CLOSED:
            self.close_stream()
        elif kind == EXITED:
            self.process_exited(payload)
        else:
            raise ValueError(f"Unknown session event: {kind}")

    def _handle_lines(self, lines: Sequence[str]):
        changed = False
        for line in lines:
            result = parse_result_line(line)
            if result is not None:
                self.results.append(result)
                self._call(self.on_result, result)
                continue

            kept = self.filter.classify(line)
            if kept is None:
                continue
            for rendered in self.tracker.process(kept):
                self._emit(rendered)
            changed = True

        if changed:
            self._call(self.on_progress, self.tracker.progress)

    def _maybe_finish(self):
        if not (self.stream_closed and self.exited) or self.finished:
            return
        if self.return_code:
            self.logger.warning(f"Normalization script exited with code {self.return_code}")
        for rendered in self.tracker.closing_lines():
            self._emit(rendered)
        self._call(self.on_progress, self.tracker.progress)

    def _emit(self, line: str):
        self.log_lines.append(line)
        self._call(self.on_log, line)

    def _call(self, callback, *args):
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            get_app_logger().log_error('normalization', e, {'callback': repr(callback)})


class NormalizationSession:
    """
    Lifecycle of the normalization script

    Features:
    - working root falls back to the last root used
    - at most one running process per session
    - SIGINT then SIGTERM on stop, without waiting
    - push callbacks for rendered log lines, progress, result rows and
      completion
    """

    def __init__(self, command: Sequence[str],
                 on_log: Optional[LogCallback] = None,
                 on_progress: Optional[ProgressCallback] = None,
                 on_result: Optional[ResultCallback] = None,
                 on_complete: Optional[CompletionCallback] = None,
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize the session

        Args:
            command: Interpreter and script; the working root is appended
                as the last argument
            on_log: Receives every rendered log line
            on_progress: Receives a progress copy after each change
            on_result: Receives every ###RESULT row
            on_complete: Called once per run with the final progress and
                the exit code
            chunk_size: Maximum bytes per read from the output pipe
        """
        if not command:
            raise ConfigurationError("Normalization command is empty")
        self.command = list(command)
        self.on_log = on_log
        self.on_progress = on_progress
        self.on_result = on_result
        self.on_complete = on_complete
        self.chunk_size = chunk_size
        self.logger = get_logger('normalization')

        self.last_root: Optional[str] = None
        self._lock = threading.Lock()
        self._process: Optional[subprocess.Popen] = None
        self._pipeline: Optional[NormalizationPipeline] = None
        self._active = False
        self._done_event = threading.Event()
        self._done_event.set()

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._active

    @property
    def log_lines(self) -> List[str]:
        pipeline = self._pipeline
        return list(pipeline.log_lines) if pipeline else []

    @property
    def results(self) -> List[NormalizationResult]:
        pipeline = self._pipeline
        return list(pipeline.results) if pipeline else []

    @property
    def progress(self) -> NormalizationProgress:
        pipeline = self._pipeline
        return pipeline.tracker.progress if pipeline else NormalizationProgress()

    @property
    def return_code(self) -> Optional[int]:
        pipeline = self._pipeline
        return pipeline.return_code if pipeline else None

    def build_command(self, working_root: str) -> List[str]:
        return self.command + [working_root]

    def run(self, working_root: Optional[str] = None) -> bool:
        """
        Start the script for a folder

        Args:
            working_root: Folder to normalize; defaults to the last one used

        Returns:
            True if the process was started, False if a run is active

        Raises:
            ConfigurationError: If no usable working root is available
            ProcessLaunchError: If the process could not be started
        """
        with self._lock:
            if self._active:
                self.logger.warning("Normalization already running, run request ignored")
                return False
            process, root, failure = self._launch(working_root or self.last_root)
            if process is not None:
                self.last_root = root
                pipeline = NormalizationPipeline(root, self.on_log, self.on_progress, self.on_result)
                events: "queue.Queue" = queue.Queue()
                self._process = process
                self._pipeline = pipeline
                self._active = True
                self._done_event.clear()

        # on_log may read session state, so failures are reported unlocked
        if failure is not None:
            message, error = failure
            self._report(message)
            raise error

        threading.Thread(target=self._read_output, args=(process, events),
                         name="loudbatch-norm-reader", daemon=True).start()
        threading.Thread(target=self._wait_exit, args=(process, events),
                         name="loudbatch-norm-waiter", daemon=True).start()
        threading.Thread(target=self._consume, args=(pipeline, events),
                         name="loudbatch-norm-consumer", daemon=True).start()
        return True

    def _launch(self, root: Optional[str]):
        """Start the process; returns (process, root, failure) with failure as (message, error)"""
        if not root:
            return None, None, ("❌ No folder selected for normalization",
                                ConfigurationError("No working root for normalization"))
        root = canonical_path(root)
        if not os.path.isdir(root):
            return None, root, (f"❌ Folder not found: {root}",
                                ConfigurationError("Working root is not a directory", filepath=root))

        cmd = self.build_command(root)
        self.logger.info(f"Starting normalization in {root}")
        self.logger.debug(f"Command: {' '.join(cmd)}")
        try:
            process = subprocess.Popen(
                cmd,
                cwd=root,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                bufsize=0,
            )
        except OSError as e:
            get_app_logger().log_error('normalization', e, {'command': cmd[0]})
            error = ProcessLaunchError(f"Could not start {cmd[0]}", details=str(e), filepath=root)
            error.__cause__ = e
            return None, root, (f"❌ Could not start normalization script: {e}", error)
        return process, root, None

    def stop(self) -> bool:
        """Interrupt, then terminate the script; returns without waiting"""
        with self._lock:
            process = self._process
        if process is None or process.poll() is not None:
            return False
        self.logger.info("Stopping normalization")
        try:
            process.send_signal(signal.SIGINT)
            process.terminate()
        except ProcessLookupError:
            # Exited between poll() and the signal
            return False
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current run finished; returns False on timeout"""
        return self._done_event.wait(timeout)

    # Producers

    def _read_output(self, process: subprocess.Popen, events: "queue.Queue"):
        stream = process.stdout
        try:
            while True:
                chunk = stream.read(self.chunk_size)
                if not chunk:
                    break
                events.put((CHUNK, chunk))
        except (OSError, ValueError) as e:
            self.logger.warning(f"Output stream closed unexpectedly: {e}")
        finally:
            stream.close()
            events.put((STREAM_CLOSED, None))

    def _wait_exit(self, process: subprocess.Popen, events: "queue.Queue"):
        events.put((EXITED, process.wait()))

    # Consumer

    def _consume(self, pipeline: NormalizationPipeline, events: "queue.Queue"):
        while not pipeline.finished:
            kind, payload = events.get()
            pipeline.handle(kind, payload)

        progress = pipeline.tracker.progress
        self.logger.info(
            f"Normalization finished: {progress.files_started} section(s), "
            f"{progress.files_created} created, exit code {pipeline.return_code}"
        )
        with self._lock:
            self._active = False
            self._process = None

        if self.on_complete is not None:
            try:
                self.on_complete(progress, pipeline.return_code)
            except Exception as e:
                get_app_logger().log_error('normalization', e, {'callback': 'on_complete'})

        with self._lock:
            # on_complete may have started the next run
            if not self._active:
                self._done_event.set()

    def _report(self, message: str):
        self.logger.error(message)
        if self.on_log is not None:
            try:
                self.on_log(message)
            except Exception as e:
                get_app_logger().log_error('normalization', e, {'callback': 'on_log'})
