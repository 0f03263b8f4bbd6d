from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Literal, Optional, Protocol, Sequence

import numpy as np

from common.frame import Frame
from common.time import now_ms

_LOG = logging.getLogger(__name__)

SourceKind = Literal["synthetic", "replay"]


class FrameStream(Protocol):
    def start(self) -> None: ...
    def read(self) -> Optional[Frame]: ...  # None when no frame is ready
    def close(self) -> None: ...


class SyntheticTransport:
    """Generates flat grey RGBA frames, optionally with a block sliding across.

    With ``move_px=0`` consecutive frames are identical, which is handy for
    checking that a static scene reports no motion.
    """

    def __init__(
        self,
        width: int = 160,
        height: int = 120,
        background: int = 100,
        block_size: int = 24,
        block_level: int = 230,
        move_px: int = 12,
    ):
        self.width, self.height = width, height
        self.background = background
        self.block_size = block_size
        self.block_level = block_level
        self.move_px = move_px
        self._running = False
        self._frame_id = 0

    def start(self) -> None:
        self._running = True
        self._frame_id = 0

    def _render(self, fid: int) -> np.ndarray:
        img = np.full((self.height, self.width, 4), self.background, dtype=np.uint8)
        img[:, :, 3] = 255
        size = min(self.block_size, self.width, self.height)
        if size > 0:
            span = max(self.width - size, 0) + 1
            x0 = (fid * self.move_px) % span
            y0 = (self.height - size) // 2
            img[y0 : y0 + size, x0 : x0 + size, :3] = self.block_level
        return img

    def read(self) -> Optional[Frame]:
        if not self._running:
            return None
        fid = self._frame_id
        self._frame_id += 1
        return Frame.from_array(self._render(fid), pts_ms=now_ms(), frame_id=fid)

    def close(self) -> None:
        self._running = False


class ReplayTransport:
    """Replays pre-recorded RGBA frames, in order, one per ``read()``."""

    def __init__(self, frames: Sequence[np.ndarray], loop: bool = False):
        self._frames: List[np.ndarray] = list(frames)
        self._loop = loop
        self._idx = 0
        self._frame_id = 0
        self._running = False

    @classmethod
    def from_directory(cls, path: str | Path, loop: bool = False) -> ReplayTransport:
        """Load every ``*.npy`` file under ``path`` in name order."""
        root = Path(path)
        files = sorted(root.glob("*.npy"))
        if not files:
            raise FileNotFoundError(f"No .npy frames found in {root}")
        frames = [np.load(f, allow_pickle=False) for f in files]
        _LOG.info("Loaded %d replay frames from %s", len(frames), root)
        return cls(frames, loop=loop)

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def exhausted(self) -> bool:
        return not self._loop and self._idx >= len(self._frames)

    def start(self) -> None:
        self._running = True

    def read(self) -> Optional[Frame]:
        if not self._running or not self._frames:
            return None
        if self._idx >= len(self._frames):
            if not self._loop:
                return None
            self._idx = 0
        img = self._frames[self._idx]
        self._idx += 1
        fid = self._frame_id
        self._frame_id += 1
        return Frame.from_array(img, pts_ms=now_ms(), frame_id=fid)

    def close(self) -> None:
        self._running = False


@dataclass
class ReaderConfig:
    prefer: SourceKind = "synthetic"
    width: int = 160
    height: int = 120
    move_px: int = 12
    replay_dir: Optional[str] = None
    loop: bool = False


class ReaderFactory:
    @staticmethod
    def from_config(cfg: ReaderConfig) -> FrameStream:
        if cfg.prefer == "synthetic":
            return SyntheticTransport(width=cfg.width, height=cfg.height, move_px=cfg.move_px)
        if cfg.prefer == "replay":
            if not cfg.replay_dir:
                raise ValueError("replay source requires replay_dir")
            return ReplayTransport.from_directory(cfg.replay_dir, loop=cfg.loop)
        raise ValueError(f"Unknown frame source: {cfg.prefer!r} (expected synthetic/replay)")
