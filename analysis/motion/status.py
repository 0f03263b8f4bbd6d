"""Human-readable status lines for a motion indicator UI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .model import MotionOutcome, MotionResult

STATUS_STARTING = "Starting motion detection..."
STATUS_ALREADY_RUNNING = "Detection already running."
STATUS_STOPPED = "Detection stopped."
STATUS_WARMING_UP = "Waiting for a reference frame..."
STATUS_NO_MOTION = "No significant motion detected."


@dataclass(frozen=True)
class MotionStatus:
    text: str
    indicator: bool = False  # True lights the "movement" indicator


def describe(outcome: Optional[MotionOutcome]) -> MotionStatus:
    if outcome is None:
        return MotionStatus(STATUS_STOPPED)
    if not isinstance(outcome, MotionResult):
        return MotionStatus(STATUS_WARMING_UP)
    if outcome.motion_detected:
        return MotionStatus(f"Motion detected! ({outcome.percentage:.2f}% difference)", True)
    return MotionStatus(STATUS_NO_MOTION)


def describe_error(exc: BaseException) -> MotionStatus:
    return MotionStatus(f"Detection error: {exc}")
