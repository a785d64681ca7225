"""Wall-clock duration of a test run."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

log = logging.getLogger(__name__)

NO_DURATION = "—"


def format_duration(duration: timedelta) -> str:
    """Format as ``1 hr 20 min 5 sec``, ``3 min 2 sec`` or ``15 sec``."""
    seconds = int(duration.total_seconds())
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours} hr")
    if minutes > 0 or hours > 0:
        parts.append(f"{minutes} min")
    parts.append(f"{secs} sec")
    return " ".join(parts)


class RunClock:
    def __init__(self, now: Callable[[], datetime] | None = None) -> None:
        self._now = now or (lambda: datetime.now(timezone.utc))
        self.started: datetime | None = None
        self.finished: datetime | None = None

    def mark_start(self) -> None:
        self.started = self._now()
        log.info("Test run started at %s", self.started.isoformat())

    def mark_end(self) -> None:
        self.finished = self._now()
        log.info("Test run completed at %s", self.finished.isoformat())

    def duration(self) -> str:
        if self.started is None or self.finished is None:
            return NO_DURATION
        formatted = format_duration(self.finished - self.started)
        log.info("Test duration: %s", formatted)
        return formatted
