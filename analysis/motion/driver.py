from __future__ import annotations

import contextlib
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Optional

import numpy as np

from capture.reader import FrameStream
from common.time import monotonic_ms

from .engine import MotionEngine
from .errors import MotionError
from .model import MotionOutcome, MotionResult
from .status import STATUS_ALREADY_RUNNING, STATUS_STARTING

_LOG = logging.getLogger(__name__)

OutcomeCallback = Callable[[MotionOutcome], None]
ErrorCallback = Callable[[MotionError], None]


@dataclass
class DriverStats:
    cycles: int = 0
    motion_cycles: int = 0
    warmup_cycles: int = 0
    skipped: int = 0  # ticks with no frame available
    errors: int = 0
    last_percentage: Optional[float] = None
    cycle_us_mean: float = 0.0
    cycle_us_p95: float = 0.0
    _cycle_us_hist: Deque[float] = field(default_factory=lambda: deque(maxlen=1000), repr=False)

    def update_cycle_us(self, dt_us: float) -> None:
        self._cycle_us_hist.append(dt_us)
        if self._cycle_us_hist:
            arr = np.fromiter(self._cycle_us_hist, dtype=np.float64)
            self.cycle_us_mean = float(arr.mean())
            self.cycle_us_p95 = float(np.percentile(arr, 95))


class MotionDriver:
    """
    Run a MotionEngine against a FrameStream at a fixed cadence:
      - start() arms the engine and spawns one worker thread
      - every period_ms the worker pulls a frame and runs one cycle
      - stop() waits for the in-flight cycle, then guarantees no further one runs

    Per-cycle MotionErrors are counted, logged and handed to ``on_error``;
    the next tick proceeds normally.
    """

    def __init__(
        self,
        engine: MotionEngine,
        source: FrameStream,
        period_ms: Optional[float] = None,
        on_outcome: Optional[OutcomeCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        logger: Optional[logging.Logger] = None,
        close_timeout_s: float = 1.0,
    ) -> None:
        self._engine = engine
        self._source = source
        self._period_ms = float(period_ms if period_ms is not None else engine.config.period_ms)
        if self._period_ms <= 0:
            raise ValueError(f"period_ms must be positive, got {self._period_ms}")
        self._on_outcome = on_outcome
        self._on_error = on_error
        self._log = logger or _LOG
        self._close_timeout_s = close_timeout_s

        # Re-entrant so callbacks running inside a cycle may call stop().
        self._cycle_lock = threading.RLock()
        self._stop_ev = threading.Event()
        self._running = False
        self._thr: Optional[threading.Thread] = None
        self._stats = DriverStats()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def period_ms(self) -> float:
        return self._period_ms

    def stats(self) -> DriverStats:
        return self._stats

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self, spawn: bool = True) -> bool:
        """Arm the engine and begin cycling.

        Returns False (and changes nothing) if the driver is already running.
        With ``spawn=False`` no worker thread is created and the caller is
        expected to invoke :meth:`tick` itself.
        """
        with self._cycle_lock:
            if self._running:
                self._log.info(STATUS_ALREADY_RUNNING)
                return False
            self._log.info(STATUS_STARTING)
            self._source.start()
            self._engine.start()
            self._stop_ev = threading.Event()
            self._running = True

            # The worker blocks on the cycle lock until start() releases it.
            if spawn:
                self._thr = threading.Thread(
                    target=self._worker, args=(self._stop_ev,), name="motion-driver", daemon=True
                )
                self._thr.start()
        return True

    def stop(self) -> None:
        """Halt cycling and clear history. Safe to call repeatedly."""
        with self._cycle_lock:
            was_running = self._running
            self._running = False
            self._stop_ev.set()
            self._engine.stop()
            thr, self._thr = self._thr, None

        if thr is not None and thr is not threading.current_thread():
            thr.join(timeout=self._close_timeout_s)
            if thr.is_alive():
                self._log.warning(
                    "Driver worker still alive after %.2fs; it will exit on its next tick",
                    self._close_timeout_s,
                )

        if was_running:
            with contextlib.suppress(Exception):
                self._source.close()
            self._log.info("Motion driver stopped after %d cycles", self._stats.cycles)

    def __enter__(self) -> MotionDriver:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ------------------------------------------------------------------ #
    # Cycles
    # ------------------------------------------------------------------ #

    def tick(self) -> Optional[MotionOutcome]:
        """Run exactly one cycle now; returns None if none was produced."""
        with self._cycle_lock:
            if not self._running:
                return None

            frame = self._source.read()
            if frame is None:
                self._stats.skipped += 1
                return None

            t0 = time.perf_counter()
            try:
                out = self._engine.step(frame)
            except MotionError as exc:
                self._stats.errors += 1
                self._log.warning("Cycle for frame %s aborted: %s", frame.frame_id, exc)
                if self._on_error is not None:
                    self._on_error(exc)
                return None
            finally:
                self._stats.update_cycle_us((time.perf_counter() - t0) * 1e6)

            if out is None:
                return None

            self._stats.cycles += 1
            if isinstance(out, MotionResult):
                self._stats.last_percentage = out.percentage
                if out.motion_detected:
                    self._stats.motion_cycles += 1
            else:
                self._stats.warmup_cycles += 1

            if self._on_outcome is not None:
                self._on_outcome(out)
            return out

    def _worker(self, stop_ev: threading.Event) -> None:
        next_ms = monotonic_ms()
        while not stop_ev.is_set():
            try:
                self.tick()
            except Exception:
                # Source or callback failure: log it and keep cycling.
                self._log.exception("Unexpected error in motion cycle")
            next_ms += self._period_ms
            delay_ms = next_ms - monotonic_ms()
            if delay_ms < 0:
                # Running behind: drop the missed ticks instead of bursting.
                next_ms = monotonic_ms()
                delay_ms = 0.0
            if stop_ev.wait(delay_ms / 1000.0):
                break
