"""Errors raised by the motion detection core.

Every error aborts the current cycle only. The stored reference buffer is
left as it was, so the caller can skip the frame and carry on with the next
one (or call ``reset()`` to start over).
"""

from __future__ import annotations


class MotionError(Exception):
    """Base class for all motion detector errors."""


class InvalidFrameShape(MotionError, ValueError):
    """Frame byte length does not match 4 channels x width x height."""


class FrameSizeMismatch(MotionError, ValueError):
    """Current luminance buffer differs in length from the stored one."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Luminance buffer has {actual} pixels but the reference frame has {expected}"
        )
        self.expected = expected
        self.actual = actual


class EmptyFrame(MotionError, ValueError):
    """Frame with zero pixels; no percentage can be computed."""


class ConfigError(MotionError, ValueError):
    """Configuration value missing its domain or failing to parse."""


class InvalidLuminanceBuffer(MotionError, ValueError):
    """Luminance buffer that is not uint8 or holds values outside 0-255."""
