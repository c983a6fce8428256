from __future__ import annotations

import time
from typing import Callable, Optional

Now = Callable[[], float]


class SessionClock:
    """Elapsed play time as start + accumulated pause, not a stop/resume wall clock.

    `offset` carries time already played before a restore from a save.
    """

    def __init__(self, now: Now = time.monotonic, offset: int = 0) -> None:
        self._now = now
        self.offset = int(offset)
        self.started_at: Optional[float] = None
        self.paused_total = 0.0
        self.pause_started_at: Optional[float] = None
        self.stopped_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self.started_at is not None and self.stopped_at is None

    @property
    def paused(self) -> bool:
        return self.pause_started_at is not None

    def start(self) -> None:
        self.started_at = self._now()
        self.paused_total = 0.0
        self.pause_started_at = None
        self.stopped_at = None

    def pause(self) -> bool:
        """Returns False (no-op) when already paused or not running."""
        if not self.running or self.paused:
            return False
        self.pause_started_at = self._now()
        return True

    def resume(self) -> bool:
        if not self.paused:
            return False
        assert self.pause_started_at is not None
        self.paused_total += self._now() - self.pause_started_at
        self.pause_started_at = None
        return True

    def stop(self) -> None:
        if not self.running:
            return
        now = self._now()
        if self.pause_started_at is not None:
            self.paused_total += now - self.pause_started_at
            self.pause_started_at = None
        self.stopped_at = now

    def elapsed_seconds(self) -> int:
        if self.started_at is None:
            return self.offset
        end = self.stopped_at if self.stopped_at is not None else self._now()
        paused = self.paused_total
        if self.pause_started_at is not None:
            paused += end - self.pause_started_at
        return self.offset + max(0, int(end - self.started_at - paused))
