"""Frame-differencing motion engine.

The engine keeps exactly one reference luminance buffer (the previous
frame) and compares every new frame against it:

- Reduce the RGBA frame to luminance (see ``luminance.reduce``).
- Count pixels whose absolute delta exceeds ``pixel_threshold``.
- Report motion when the changed share exceeds ``decision_threshold`` percent.
- Replace the reference with the frame just classified, regardless of the
  verdict. There is no slowly-settling background model.

``classify`` is the pure state transition and can be driven directly with
luminance buffers. ``MotionEngine`` wraps it with the start/stop/reset
lifecycle and a lock so a host can reset from another thread.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence, Union

import numpy as np

from common.frame import Frame

from .errors import EmptyFrame, FrameSizeMismatch, InvalidLuminanceBuffer, MotionError
from .luminance import reduce
from .model import (
    DetectorPhase,
    DetectorState,
    InsufficientHistory,
    MotionConfig,
    MotionOutcome,
    MotionResult,
)

_LOG = logging.getLogger(__name__)

BufferLike = Union[np.ndarray, Sequence[int]]


def _as_buffer(buf: BufferLike) -> np.ndarray:
    """Return an owned, flat uint8 copy of ``buf``.

    The copy detaches the stored reference from memory the caller may
    refill for the next frame.
    """
    if isinstance(buf, np.ndarray):
        if buf.dtype != np.uint8:
            raise InvalidLuminanceBuffer(f"Luminance buffer must be uint8, got {buf.dtype}")
        return buf.reshape(-1).copy()

    try:
        arr = np.asarray(buf)
    except ValueError as exc:
        raise InvalidLuminanceBuffer(f"Cannot read luminance buffer: {exc}") from exc
    if arr.size == 0:
        return np.zeros(0, dtype=np.uint8)
    if arr.dtype.kind not in "iu":
        raise InvalidLuminanceBuffer(f"Luminance values must be integers, got {arr.dtype}")
    if int(arr.min()) < 0 or int(arr.max()) > 255:
        raise InvalidLuminanceBuffer("Luminance values must lie within [0, 255]")
    return arr.astype(np.uint8).reshape(-1)


def classify(
    state: DetectorState,
    current: BufferLike,
    frame_id: Optional[int] = None,
    pts_ms: Optional[float] = None,
) -> MotionOutcome:
    """Compare ``current`` with the stored reference and advance the state.

    On any error the stored reference is left untouched.

    Raises
    ------
    InvalidLuminanceBuffer
        If ``current`` is not uint8 data or holds values outside [0, 255].
    EmptyFrame
        If ``current`` holds zero pixels.
    FrameSizeMismatch
        If ``current`` and the stored reference differ in length.
    """
    cur = _as_buffer(current)
    total = int(cur.size)
    if total == 0:
        raise EmptyFrame("Luminance buffer has zero pixels")

    prev = state.previous
    if prev is None:
        state.previous = cur
        return InsufficientHistory(total_pixels=total, frame_id=frame_id, pts_ms=pts_ms)

    if prev.size != total:
        raise FrameSizeMismatch(expected=int(prev.size), actual=total)

    cfg = state.config
    # int16 so the subtraction cannot wrap around.
    diff = np.abs(cur.astype(np.int16) - prev.astype(np.int16))
    diff_count = int(np.count_nonzero(diff > cfg.pixel_threshold))
    percentage = 100.0 * diff_count / total

    state.previous = cur
    return MotionResult(
        motion_detected=percentage > float(cfg.decision_threshold),
        percentage=percentage,
        diff_count=diff_count,
        total_pixels=total,
        frame_id=frame_id,
        pts_ms=pts_ms,
    )


class MotionEngine:
    """Stateful detector with an explicit start/stop/reset lifecycle.

    The reference buffer is the only shared mutable resource; every access
    to it happens under ``self._lock`` so a ``reset()`` issued while a cycle
    is in flight lands after that cycle, never in the middle of it.
    """

    def __init__(
        self,
        config: Optional[MotionConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._cfg = config or MotionConfig()
        self._log = logger or _LOG
        self._state = DetectorState(config=self._cfg)
        self._lock = threading.Lock()
        self._armed = False

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> MotionConfig:
        return self._cfg

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def phase(self) -> DetectorPhase:
        with self._lock:
            return self._state.phase

    def previous(self) -> Optional[np.ndarray]:
        """Return a copy of the stored reference buffer, if any."""
        with self._lock:
            prev = self._state.previous
            return None if prev is None else prev.copy()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        with self._lock:
            self._state.clear()
            self._armed = True
        self._log.info(
            "Motion detection armed (pixel_threshold=%d decision_threshold=%.2f%%)",
            self._cfg.pixel_threshold,
            self._cfg.decision_threshold,
        )

    def stop(self) -> None:
        with self._lock:
            self._state.clear()
            self._armed = False
        self._log.info("Motion detection stopped")

    def reset(self) -> None:
        with self._lock:
            self._state.clear()
        self._log.debug("Motion history cleared")

    # ------------------------------------------------------------------ #
    # Cycles
    # ------------------------------------------------------------------ #

    def classify(
        self,
        current: BufferLike,
        frame_id: Optional[int] = None,
        pts_ms: Optional[float] = None,
    ) -> MotionOutcome:
        """Classify a ready-made luminance buffer, regardless of arming."""
        with self._lock:
            return classify(self._state, current, frame_id=frame_id, pts_ms=pts_ms)

    def step(self, frame: Frame) -> Optional[MotionOutcome]:
        """Run one detection cycle for ``frame``.

        Returns ``None`` without touching the state when the engine is not
        armed, including when ``stop()`` lands while the frame is being
        reduced. Otherwise errors from the reducer or classifier propagate
        unchanged.
        """
        if not self._armed:
            self._log.debug("Detection not started; ignoring frame %s", frame.frame_id)
            return None

        try:
            luma = reduce(frame)
        except MotionError:
            if not self._armed:
                return None
            raise

        with self._lock:
            # stop() may have landed while we were reducing.
            if not self._armed:
                return None
            out = classify(
                self._state,
                luma,
                frame_id=int(frame.frame_id),
                pts_ms=float(frame.pts_ms),
            )

        if isinstance(out, MotionResult):
            self._log.debug(
                "frame=%d changed=%d/%d (%.2f%%) motion=%s",
                frame.frame_id,
                out.diff_count,
                out.total_pixels,
                out.percentage,
                out.motion_detected,
            )
        else:
            self._log.debug("frame=%d stored as reference", frame.frame_id)
        return out
