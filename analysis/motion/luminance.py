from __future__ import annotations

import numpy as np

from common.frame import Frame

from .errors import InvalidFrameShape

CHANNELS = 4

# Rec. 709 luma weights scaled by 10_000 so the sum is exact integer math.
_WEIGHT_SCALE = 10_000
_WEIGHTS = np.array([2126, 7152, 722], dtype=np.uint32)


def _as_bytes_view(data) -> np.ndarray:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return np.frombuffer(data, dtype=np.uint8)
    arr = np.asarray(data)
    if arr.dtype != np.uint8:
        raise InvalidFrameShape(f"Frame pixel data must be uint8, got {arr.dtype}")
    return arr.reshape(-1)


def reduce(frame: Frame) -> np.ndarray:
    """Reduce an RGBA frame to a flat uint8 luminance buffer.

    Each pixel becomes ``0.2126*R + 0.7152*G + 0.0722*B`` truncated toward
    zero; alpha is ignored. The weights sum to one, so the result already
    lies within [0, 255] before the final clamp.

    Raises
    ------
    InvalidFrameShape
        If the byte length is not a multiple of 4 or differs from
        ``4 * width * height``.
    """
    width, height = int(frame.width), int(frame.height)
    if width < 0 or height < 0:
        raise InvalidFrameShape(f"Negative frame dimensions: {width}x{height}")

    raw = _as_bytes_view(frame.data)
    if raw.size % CHANNELS != 0:
        raise InvalidFrameShape(
            f"Frame byte length {raw.size} is not a multiple of {CHANNELS} channels"
        )
    expected = CHANNELS * width * height
    if raw.size != expected:
        raise InvalidFrameShape(
            f"Frame byte length {raw.size} does not match {width}x{height}x{CHANNELS}={expected}"
        )

    rgb = raw.reshape(-1, CHANNELS)[:, :3].astype(np.uint32)
    gray = (rgb @ _WEIGHTS) // _WEIGHT_SCALE
    return np.clip(gray, 0, 255).astype(np.uint8)
