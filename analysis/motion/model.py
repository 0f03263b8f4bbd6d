from __future__ import annotations

import enum
import numbers
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from .errors import ConfigError

DEFAULT_PIXEL_THRESHOLD = 50
DEFAULT_DECISION_THRESHOLD = 2.0
DEFAULT_PERIOD_MS = 50.0


@dataclass(frozen=True)
class MotionConfig:
    """
    Tuning knobs for the frame-differencing detector.

    ``pixel_threshold`` is the luminance delta a pixel must exceed to count
    as changed; ``decision_threshold`` is the percentage of changed pixels
    that must be exceeded to report motion. Both comparisons are strict.
    """

    pixel_threshold: int = DEFAULT_PIXEL_THRESHOLD  # [0, 255]
    decision_threshold: float = DEFAULT_DECISION_THRESHOLD  # [0, 100] percent
    period_ms: float = DEFAULT_PERIOD_MS  # cadence hint for the host driver

    def __post_init__(self) -> None:
        if isinstance(self.pixel_threshold, bool) or not isinstance(
            self.pixel_threshold, numbers.Integral
        ):
            raise ConfigError(f"pixel_threshold must be an int, got {self.pixel_threshold!r}")
        if not 0 <= self.pixel_threshold <= 255:
            raise ConfigError(f"pixel_threshold must be in [0, 255], got {self.pixel_threshold}")
        if not 0.0 <= float(self.decision_threshold) <= 100.0:
            raise ConfigError(
                f"decision_threshold must be in [0, 100], got {self.decision_threshold}"
            )
        if not float(self.period_ms) > 0.0:
            raise ConfigError(f"period_ms must be positive, got {self.period_ms}")


@dataclass(frozen=True)
class MotionResult:
    """Verdict for one frame pair."""

    motion_detected: bool
    percentage: float  # changed pixels, 0..100
    diff_count: int
    total_pixels: int

    # Frame bookkeeping, filled in when the result came from a Frame.
    frame_id: Optional[int] = None
    pts_ms: Optional[float] = None

    has_verdict = True


@dataclass(frozen=True)
class InsufficientHistory:
    """First frame after start/reset: stored as reference, nothing to compare."""

    total_pixels: int
    frame_id: Optional[int] = None
    pts_ms: Optional[float] = None

    has_verdict = False


MotionOutcome = Union[MotionResult, InsufficientHistory]


class DetectorPhase(str, enum.Enum):
    IDLE = "idle"
    TRACKING = "tracking"


@dataclass
class DetectorState:
    config: MotionConfig
    previous: Optional[np.ndarray] = None

    @property
    def phase(self) -> DetectorPhase:
        return DetectorPhase.IDLE if self.previous is None else DetectorPhase.TRACKING

    def clear(self) -> None:
        self.previous = None
