from camplayer import settings


class Backoff:
    """
    Exponential delay between failed launch attempts.

    Each call to `next_delay()` returns the current delay and doubles it for
    the next consecutive failure, up to `maximum`. `reset()` goes back to
    `base` once a launch is confirmed running.
    """

    def __init__(self, base: float = settings.BACKOFF_BASE_SECONDS,
                 maximum: float = settings.BACKOFF_MAX_SECONDS) -> None:
        if base <= 0 or maximum < base:
            raise ValueError(f"Invalid backoff bounds: base={base}, maximum={maximum}")
        self.base = base
        self.maximum = maximum
        self.current = base

    def next_delay(self) -> float:
        delay = self.current
        self.current = min(self.current * 2, self.maximum)
        return delay

    def reset(self) -> None:
        self.current = self.base

    def __repr__(self) -> str:
        return f"Backoff(current={self.current}, base={self.base}, maximum={self.maximum})"
