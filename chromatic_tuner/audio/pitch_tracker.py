"""Asynchronous pitch tracking decoupled from the audio thread."""

from __future__ import annotations

import threading
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..core.errors import AnalysisError
from ..core.interfaces import IPitchEstimator, IPitchTracker
from ..logger import get_logger
from ..note_types import Result

logger = get_logger(__name__)

ResultCallback = Callable[[Result], None]


class AsyncPitchTracker(IPitchTracker):
    """Runs pitch analysis on a background thread.

    The audio callback hands blocks over through a single-slot mailbox. A block
    is only accepted while the worker is idle; otherwise it is dropped, so the
    estimate always reflects recent audio and the producer never waits on an
    analysis. Every successful analysis is published and can be read with
    latest().
    """

    def __init__(
        self,
        estimator: IPitchEstimator,
        join_timeout: float = 5.0,
        initial_block_size: int = 4096,
    ) -> None:
        """Initialize the tracker.

        Args:
            estimator: Estimator the worker feeds and analyzes
            join_timeout: Default number of seconds shutdown() waits for the worker
            initial_block_size: Pre-allocated mailbox size in samples
        """
        self._estimator = estimator
        self._join_timeout = join_timeout

        # Mailbox shared with the producer
        self._handoff = threading.Condition(threading.Lock())
        self._block = np.zeros(initial_block_size, dtype=np.float32)
        self._block_len = 0
        self._block_rate = 0
        self._pending = False
        self._busy = False

        # Latest published result
        self._result_lock = threading.Lock()
        self._result = Result.placeholder()

        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._listeners: List[ResultCallback] = []

        # Analysis counters are written by the worker only; drops by any producer
        self._drop_lock = threading.Lock()
        self.analyses_completed = 0
        self.analysis_failures = 0
        self.blocks_dropped = 0

    def __enter__(self) -> "AsyncPitchTracker":
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.shutdown()

    @property
    def estimator(self) -> IPitchEstimator:
        return self._estimator

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_listener(self, callback: ResultCallback) -> None:
        """Register a callback invoked on the worker thread for each published Result."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def start(self) -> None:
        """Start the background worker."""
        if self.is_running():
            logger.warning("Pitch tracker already running")
            return
        if self._cancelled.is_set():
            raise RuntimeError("Pitch tracker cannot be restarted after shutdown")

        self._thread = threading.Thread(
            target=self._run, name="pitch-tracker", daemon=True
        )
        self._thread.start()
        logger.info("Pitch tracker started")

    def feed(self, samples: Sequence[float], sample_rate: int) -> bool:
        """Offer a block of samples to the worker without blocking.

        Args:
            samples: Mono audio block
            sample_rate: Sample rate of the block in Hz

        Returns:
            True if the block was handed off, False if it was dropped because
            the worker is busy or not running
        """
        # Never wait for the lock; the worker only holds it briefly
        if not self._handoff.acquire(blocking=False):
            self._count_drop()
            return False
        try:
            if self._pending or self._busy or self._thread is None or self._cancelled.is_set():
                self._count_drop()
                return False

            num_samples = len(samples)
            if num_samples > len(self._block):
                self._block = np.zeros(num_samples, dtype=np.float32)
            self._block[:num_samples] = samples
            self._block_len = num_samples
            self._block_rate = sample_rate
            self._pending = True
            self._handoff.notify()
            return True
        finally:
            self._handoff.release()

    def _count_drop(self) -> None:
        with self._drop_lock:
            self.blocks_dropped += 1

    def copy_buffer(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Copy of the block most recently handed to the worker.

        Args:
            out: Optional array reused when it is large enough

        Returns:
            Array holding the samples of the last accepted block
        """
        with self._handoff:
            n = self._block_len
            if out is None or len(out) < n:
                out = np.empty(n, dtype=np.float64)
            out = out[:n]
            out[:] = self._block[:n]
        return out

    def latest(self) -> Result:
        """Most recently published Result (a placeholder before the first analysis)."""
        with self._result_lock:
            return self._result

    def _publish(self, result: Result) -> None:
        with self._result_lock:
            self._result = result
        self.analyses_completed += 1

        for callback in self._listeners:
            try:
                callback(result)
            except Exception as e:
                logger.error(f"Error in pitch tracker listener: {e}", exc_info=True)

    def _run(self) -> None:
        logger.debug("Pitch tracker worker running")
        while True:
            with self._handoff:
                while not self._pending and not self._cancelled.is_set():
                    self._handoff.wait()
                if self._cancelled.is_set():
                    break
                # Producer leaves the mailbox alone while busy
                self._pending = False
                self._busy = True
                block = self._block[:self._block_len]
                rate = self._block_rate

            try:
                self._estimator.feed(block, rate)
                result = self._estimator.analyze()
            except AnalysisError as e:
                self.analysis_failures += 1
                logger.error(f"Pitch analysis failed: {e}")
            except Exception:
                self.analysis_failures += 1
                logger.exception("Unexpected error in pitch tracker worker")
            else:
                self._publish(result)
            finally:
                with self._handoff:
                    self._busy = False

        logger.debug("Pitch tracker worker exiting")

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """Signal cancellation and wait for the worker to exit.

        An analysis already in progress is allowed to finish.

        Args:
            timeout: Seconds to wait, or None for the configured join timeout

        Returns:
            True if the worker has exited
        """
        self._cancelled.set()
        with self._handoff:
            self._handoff.notify_all()

        thread = self._thread
        if thread is None:
            return True

        thread.join(self._join_timeout if timeout is None else timeout)
        if thread.is_alive():
            logger.warning("Pitch tracker worker did not exit in time")
            return False

        logger.info("Pitch tracker stopped")
        return True
