import time
from typing import Callable

# Returns the current wall-clock time in epoch milliseconds
Clock = Callable[[], int]


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000
