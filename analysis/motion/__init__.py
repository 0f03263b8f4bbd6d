"""Public exports for the motion analysis package."""

from __future__ import annotations

from .config import load_motion_config
from .driver import DriverStats, MotionDriver
from .engine import MotionEngine, classify
from .errors import (
    ConfigError,
    EmptyFrame,
    FrameSizeMismatch,
    InvalidFrameShape,
    InvalidLuminanceBuffer,
    MotionError,
)
from .luminance import reduce
from .model import (
    DetectorPhase,
    DetectorState,
    InsufficientHistory,
    MotionConfig,
    MotionOutcome,
    MotionResult,
)
from .sidecar import MotionSidecarWriter
from .status import MotionStatus, describe, describe_error

__all__ = [
    "MotionEngine",
    "MotionDriver",
    "DriverStats",
    "MotionResult",
    "InsufficientHistory",
    "MotionOutcome",
    "MotionConfig",
    "DetectorState",
    "DetectorPhase",
    "MotionError",
    "InvalidFrameShape",
    "InvalidLuminanceBuffer",
    "FrameSizeMismatch",
    "EmptyFrame",
    "ConfigError",
    "MotionSidecarWriter",
    "MotionStatus",
    "classify",
    "reduce",
    "describe",
    "describe_error",
    "load_motion_config",
]
