# capture/__init__.py
"""Capture package: frame sources feeding the motion detector."""

from .reader import (
    FrameStream,
    ReaderConfig,
    ReaderFactory,
    ReplayTransport,
    SyntheticTransport,
)

__all__ = [
    "FrameStream",
    "ReaderFactory",
    "ReaderConfig",
    "ReplayTransport",
    "SyntheticTransport",
]

__version__ = "0.1.0"
