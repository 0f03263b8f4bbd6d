from __future__ import annotations

import json
import os
from contextlib import suppress
from pathlib import Path
from typing import Any, Mapping, Optional, TextIO


class SidecarWriter:
    """Append-only JSON Lines writer: one object per line, UTF-8."""

    def __init__(self, path: str | Path, append: bool = False):
        self.path = Path(path)
        self._mode = "a" if append else "w"
        self._fh: Optional[TextIO] = None
        self.records_written = 0

    def __enter__(self) -> SidecarWriter:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._fh is not None

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self.path.open(self._mode, encoding="utf-8", newline="")

    def write(self, rec: Mapping[str, Any]) -> None:
        if not self._fh:
            raise RuntimeError("SidecarWriter is not open")
        self._fh.write(json.dumps(dict(rec), ensure_ascii=False) + "\n")
        self.records_written += 1

    def flush(self) -> None:
        if self._fh:
            self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            with suppress(OSError):
                self._fh.flush()
            # fsync is best-effort; some file objects have no real descriptor
            with suppress(OSError, ValueError):
                os.fsync(self._fh.fileno())
            self._fh.close()
            self._fh = None
