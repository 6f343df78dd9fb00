import dataclasses
import math


@dataclasses.dataclass
class Backoff:
    """Exponential backoff for reconnecting a watch.

    Every call to delay() multiplies the next delay by factor until
    max_delay is reached. reset() starts over at base_delay.
    """

    base_delay: float = 0.8  # 800 Milliseconds
    max_delay: float = 30  # 30 Seconds
    factor: float = 2
    failures: int = dataclasses.field(default=0, init=False)

    def delay(self):
        current = self.failures
        self.failures = current + 1
        try:
            backoff = self.base_delay * math.pow(self.factor, current)
        except OverflowError:
            backoff = self.max_delay
        return min(backoff, self.max_delay)

    def reset(self):
        self.failures = 0
