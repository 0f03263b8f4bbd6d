from __future__ import annotations

from pathlib import Path
from typing import Any

from sidecar.writer import SidecarWriter

from .model import MotionConfig, MotionOutcome, MotionResult


class MotionSidecarWriter:
    """
    Record per-cycle motion outcomes as JSON Lines.

    The first line is a ``motion_meta`` record with the thresholds in use;
    then one ``motion_result`` or ``insufficient_history`` record per cycle.
    """

    def __init__(self, path: str | Path, config: MotionConfig | None = None):
        self._writer = SidecarWriter(path)
        self._cfg = config

    def __enter__(self) -> MotionSidecarWriter:
        self._writer.__enter__()
        if self._cfg is not None:
            self._writer.write(
                {
                    "type": "motion_meta",
                    "pixel_threshold": int(self._cfg.pixel_threshold),
                    "decision_threshold": float(self._cfg.decision_threshold),
                    "period_ms": float(self._cfg.period_ms),
                }
            )
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._writer.__exit__(exc_type, exc, tb)

    def write_outcome(self, out: MotionOutcome) -> None:
        payload: dict[str, Any] = {
            "frame_id": out.frame_id,
            "pts_ms": out.pts_ms,
            "total_pixels": int(out.total_pixels),
        }
        if isinstance(out, MotionResult):
            payload["type"] = "motion_result"
            payload["motion_detected"] = bool(out.motion_detected)
            payload["percentage"] = float(out.percentage)
            payload["diff_count"] = int(out.diff_count)
        else:
            payload["type"] = "insufficient_history"
        self._writer.write(payload)

    def flush(self) -> None:
        self._writer.flush()

    def close(self) -> None:
        self._writer.close()
