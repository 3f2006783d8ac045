import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded polling schedule.

    ``backoff == 1.0`` gives a fixed interval; anything larger grows the wait
    geometrically, capped at ``max_interval`` when set.
    """

    attempts: int = 10
    interval: float = 0.5
    backoff: float = 1.0
    max_interval: Optional[float] = None

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.interval < 0:
            raise ValueError("interval must be >= 0")
        if self.backoff < 1.0:
            raise ValueError("backoff must be >= 1.0")

    def delays(self) -> Iterator[float]:
        """Yield the wait that precedes each attempt after the first."""
        delay = self.interval
        for _ in range(self.attempts - 1):
            if self.max_interval is not None:
                delay = min(delay, self.max_interval)
            yield delay
            delay *= self.backoff

    def poll(
        self,
        check: Callable[[], bool],
        cancel: Optional[threading.Event] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> bool:
        sleep = sleep or time.sleep
        if check():
            return True
        for delay in self.delays():
            if cancel is not None:
                if cancel.wait(delay):
                    return False
            else:
                sleep(delay)
            if check():
                return True
        return False
