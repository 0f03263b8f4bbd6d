from __future__ import annotations

import time
from datetime import datetime, timezone


def now_ms() -> float:
    return datetime.now(tz=timezone.utc).timestamp() * 1000.0


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0
