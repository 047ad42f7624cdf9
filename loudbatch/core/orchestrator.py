"""
Batch Analysis Orchestrator

Runs one analysis per input file on a bounded worker pool and publishes
whole-batch snapshots while the batch is running.

Slots are assigned once from the input order, so every published snapshot
has the shape and order of the input list no matter which file finishes
first. Every buffer write and the snapshot taken after it happen under the
same lock.

Stopping is cooperative: a stop request prevents further dispatch, but
calls already running are only bounded by their own timeout.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Callable, List, Optional

from .config import default_worker_count
from .models import AnalysisResult, BatchJob, BatchSnapshot
from ..utils.filesystem import canonical_path
from ..utils.logging_config import get_logger, get_app_logger


Analyzer = Callable[[str], Optional[AnalysisResult]]
SnapshotCallback = Callable[[BatchSnapshot], None]


class BatchAnalysisOrchestrator:
    """
    Bounded-concurrency batch runner

    Features:
    - worker pool of min(8, cpu_count - 1) threads, gated by a semaphore
    - index-stable result buffer, whole snapshot published after each file
    - cooperative stop at the dispatch boundary
    - per-file failures never abort the batch
    """

    def __init__(self, analyzer: Analyzer,
                 max_workers: Optional[int] = None,
                 on_snapshot: Optional[SnapshotCallback] = None,
                 canonicalize: bool = True):
        """
        Initialize the orchestrator

        Args:
            analyzer: Callable measuring one file; returns None on failure
            max_workers: Pool size (default: min(8, cpu_count - 1))
            on_snapshot: Callback receiving every published snapshot
            canonicalize: Resolve input paths to canonical absolute paths
        """
        self.analyzer = analyzer
        self.max_workers = max_workers or default_worker_count()
        self.canonicalize = canonicalize
        self.logger = get_logger('batch')

        self._subscribers: List[SnapshotCallback] = []
        if on_snapshot is not None:
            self._subscribers.append(on_snapshot)

        # Buffer lock: serializes slot writes and snapshot publication
        self._lock = threading.RLock()
        # State lock: guards start/idle transitions
        self._state_lock = threading.Lock()

        self._job: Optional[BatchJob] = None
        self._latest = BatchSnapshot()
        self._running = False
        self._stop_event = threading.Event()
        self._done_event = threading.Event()
        self._done_event.set()
        self._coordinator: Optional[threading.Thread] = None

    # Public API

    def subscribe(self, callback: SnapshotCallback):
        """Register a snapshot consumer"""
        with self._lock:
            self._subscribers.append(callback)

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._running

    @property
    def latest_snapshot(self) -> BatchSnapshot:
        with self._lock:
            return self._latest

    def start(self, files: List[str]) -> bool:
        """
        Start analysing the given files

        Args:
            files: Ordered file identifiers

        Returns:
            True if a batch was started; False for an empty list or when a
            batch is already running
        """
        if not files:
            self.logger.debug("Ignoring start request with no files")
            return False

        with self._state_lock:
            if self._running:
                self.logger.warning("Analysis already running, start request ignored")
                return False
            self._running = True
            self._stop_event.clear()
            self._done_event.clear()

        identifiers = [canonical_path(f) if self.canonicalize else str(f) for f in files]
        unique = list(dict.fromkeys(identifiers))
        if len(unique) != len(identifiers):
            self.logger.warning(f"Dropped {len(identifiers) - len(unique)} duplicate file(s) from the batch")
        job = BatchJob(unique)

        with self._lock:
            self._job = job
            # Rows appear before any measurement completes
            self._publish_locked(is_running=True)

        workers = min(self.max_workers, len(job))
        get_app_logger().log_batch_start(len(job), workers)

        self._coordinator = threading.Thread(
            target=self._run_batch, args=(job, workers),
            name="loudbatch-coordinator", daemon=True
        )
        self._coordinator.start()
        return True

    def request_stop(self):
        """Stop dispatching new files; running analyses finish normally"""
        if self.is_running:
            self.logger.info("Stop requested, waiting for running analyses to finish")
        self._stop_event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the batch is idle; returns False on timeout"""
        return self._done_event.wait(timeout)

    def run(self, files: List[str], timeout: Optional[float] = None) -> BatchSnapshot:
        """Start a batch and block until its final snapshot"""
        self.start(files)
        self.wait(timeout)
        return self.latest_snapshot

    def clear(self) -> bool:
        """Discard the current results; ignored while running"""
        with self._state_lock:
            if self._running:
                return False
            with self._lock:
                self._job = None
                self._latest = snapshot = BatchSnapshot()
        # Subscribers may read is_running, so no lock is held here
        self._notify(snapshot)
        return True

    # Batch execution

    def _run_batch(self, job: BatchJob, workers: int):
        start_time = time.time()
        semaphore = threading.Semaphore(workers)
        dispatched = 0

        try:
            with ThreadPoolExecutor(max_workers=workers,
                                    thread_name_prefix="loudbatch-worker") as executor:
                for file_identifier in job.files:
                    if self._stop_event.is_set():
                        break
                    semaphore.acquire()
                    if self._stop_event.is_set():
                        semaphore.release()
                        break
                    executor.submit(self._analyze_one, job, file_identifier, semaphore)
                    dispatched += 1
                # Leaving the executor drains every dispatched task
        finally:
            stopped = dispatched < len(job)
            with self._lock:
                final = self._publish_locked(is_running=False)
            with self._state_lock:
                self._running = False
            self._done_event.set()

            measured = sum(1 for r in final.results if r.is_measured)
            get_app_logger().log_batch_complete(len(job), final.completed, measured,
                                                time.time() - start_time, stopped)

    def _analyze_one(self, job: BatchJob, file_identifier: str, semaphore: threading.Semaphore):
        try:
            self.logger.debug(f"Analysing {file_identifier}")
            try:
                result = self.analyzer(file_identifier)
            except Exception as e:
                # One file never takes the batch down
                get_app_logger().log_error('batch', e, {'file': file_identifier})
                result = None

            with self._lock:
                if result is not None:
                    if result.file_identifier != file_identifier:
                        result = replace(result, file_identifier=file_identifier)
                    job.place(result)
                else:
                    self.logger.warning(f"No result for {file_identifier}")
                job.completed += 1
                self._publish_locked(is_running=True)
        finally:
            semaphore.release()

    def _publish_locked(self, is_running: bool) -> BatchSnapshot:
        """Publish the whole buffer; caller holds self._lock"""
        snapshot = self._job.snapshot(is_running) if self._job else BatchSnapshot()
        self._latest = snapshot
        self._notify(snapshot)
        return snapshot

    def _notify(self, snapshot: BatchSnapshot):
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                get_app_logger().log_error('batch', e, {'callback': repr(callback)})
