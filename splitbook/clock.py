from datetime import datetime, timezone


class SystemClock:
    """Wall clock. Returns naive UTC datetimes, matching what we store."""

    def now(self):
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedClock:
    """Clock frozen at a given instant; advance() moves it forward."""

    def __init__(self, instant):
        self.instant = instant

    def now(self):
        return self.instant

    def advance(self, delta):
        self.instant = self.instant + delta
        return self.instant


system_clock = SystemClock()


def utcnow():
    return system_clock.now()
