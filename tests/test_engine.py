from __future__ import annotations

import threading

import numpy as np
import pytest

from analysis.motion import (
    DetectorPhase,
    FrameSizeMismatch,
    InsufficientHistory,
    InvalidFrameShape,
    MotionConfig,
    MotionEngine,
    MotionResult,
)
from common.frame import Frame


def _grey(level: int, w: int = 2, h: int = 2, frame_id: int = 0) -> Frame:
    img = np.full((h, w, 4), level, dtype=np.uint8)
    img[:, :, 3] = 255
    return Frame.from_array(img, pts_ms=float(frame_id) * 50.0, frame_id=frame_id)


def test_step_ignored_until_started():
    eng = MotionEngine()
    assert eng.step(_grey(100)) is None
    assert eng.phase is DetectorPhase.IDLE
    assert eng.previous() is None


def test_first_step_after_start_is_warmup():
    eng = MotionEngine()
    eng.start()
    out = eng.step(_grey(100))
    assert isinstance(out, InsufficientHistory)
    assert eng.phase is DetectorPhase.TRACKING
    assert eng.previous().tolist() == [100, 100, 100, 100]


def test_end_to_end_frames():
    eng = MotionEngine(MotionConfig(pixel_threshold=50))
    eng.start()
    eng.step(_grey(100, frame_id=0))

    img = np.full((2, 2, 4), 100, dtype=np.uint8)
    img[1, 1, :3] = 200
    out = eng.step(Frame.from_array(img, pts_ms=50.0, frame_id=1))

    assert isinstance(out, MotionResult)
    assert out.diff_count == 1
    assert out.percentage == 25.0
    assert out.motion_detected is True
    assert out.frame_id == 1


def test_reset_is_idempotent_and_returns_to_idle():
    eng = MotionEngine()
    eng.start()
    eng.step(_grey(10))
    eng.step(_grey(10))

    eng.reset()
    eng.reset()
    eng.reset()
    assert eng.phase is DetectorPhase.IDLE
    assert eng.armed

    assert isinstance(eng.step(_grey(240)), InsufficientHistory)


def test_stop_clears_history_and_disarms():
    eng = MotionEngine()
    eng.start()
    eng.step(_grey(10))
    eng.stop()
    assert eng.phase is DetectorPhase.IDLE
    assert not eng.armed
    assert eng.step(_grey(10)) is None

    eng.start()
    assert isinstance(eng.step(_grey(10)), InsufficientHistory)


def test_start_clears_previous_history():
    eng = MotionEngine()
    eng.start()
    eng.step(_grey(10))
    eng.start()
    assert eng.phase is DetectorPhase.IDLE


def test_malformed_frame_keeps_reference():
    eng = MotionEngine()
    eng.start()
    eng.step(_grey(100))
    with pytest.raises(InvalidFrameShape):
        eng.step(Frame(data=bytes(5), width=2, height=2))
    assert eng.previous().tolist() == [100, 100, 100, 100]

    out = eng.step(_grey(100))
    assert isinstance(out, MotionResult)
    assert out.percentage == 0.0


def test_resolution_change_is_reported_not_tolerated():
    eng = MotionEngine()
    eng.start()
    eng.step(_grey(100, w=2, h=2))
    with pytest.raises(FrameSizeMismatch):
        eng.step(_grey(100, w=4, h=4))
    assert eng.previous().size == 4


def test_classify_accepts_raw_buffers():
    eng = MotionEngine()
    assert isinstance(eng.classify([1, 2, 3]), InsufficientHistory)
    out = eng.classify([1, 2, 3])
    assert out.percentage == 0.0


def test_concurrent_resets_never_tear_state():
    eng = MotionEngine(MotionConfig(pixel_threshold=0, decision_threshold=0.0))
    eng.start()
    frames = [_grey(level, w=32, h=32, frame_id=i) for i, level in enumerate((0, 255) * 50)]
    errors: list[BaseException] = []
    outcomes = []

    def _cycle():
        try:
            for f in frames:
                outcomes.append(eng.step(f))
        except BaseException as exc:  # pragma: no cover - surfaced by the assert
            errors.append(exc)

    def _resetter():
        for _ in range(200):
            eng.reset()

    threads = [threading.Thread(target=_cycle), threading.Thread(target=_resetter)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10.0)

    assert not errors
    for out in outcomes:
        # Alternating black/white frames: any verdict is either all or nothing.
        if isinstance(out, MotionResult):
            assert out.percentage == 100.0
    prev = eng.previous()
    assert prev is None or prev.size == 32 * 32


class _StopsEngineOnRead:
    """Pixel data that disarms the engine while it is being reduced."""

    def __init__(self, engine: MotionEngine):
        self._engine = engine

    def __array__(self, dtype=None, copy=None):
        self._engine.stop()
        return np.zeros(16, dtype=np.int64)  # not uint8, so the reducer rejects it


def test_stop_during_reduce_returns_none_instead_of_error():
    eng = MotionEngine()
    eng.start()
    frame = Frame(data=_StopsEngineOnRead(eng), width=2, height=2)  # type: ignore[arg-type]
    assert eng.step(frame) is None
    assert not eng.armed


def test_bad_frame_while_armed_still_raises():
    eng = MotionEngine()
    eng.start()
    with pytest.raises(InvalidFrameShape):
        eng.step(Frame(data=np.zeros(16, dtype=np.int64), width=2, height=2))
