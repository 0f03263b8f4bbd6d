from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np

PixelData = Union[np.ndarray, bytes, bytearray, memoryview]


@dataclass
class Frame:
    data: PixelData  # RGBA, row-major, uint8 (H,W,4) or flat bytes
    width: int
    height: int
    pts_ms: float = 0.0  # epoch ms (float)
    frame_id: int = 0

    @classmethod
    def from_array(cls, img: np.ndarray, pts_ms: float = 0.0, frame_id: int = 0) -> Frame:
        """Wrap an (H, W, C) array, taking the dimensions from its shape."""
        if img.ndim < 2:
            raise ValueError(f"Expected an (H, W, 4) array, got shape {img.shape}")
        height, width = int(img.shape[0]), int(img.shape[1])
        return cls(data=img, width=width, height=height, pts_ms=pts_ms, frame_id=frame_id)
