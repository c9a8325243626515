"""Wall-clock source shared by the tracking engine (ms epoch), injectable for tests."""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)
