"""Decide whether the process behind a session record is still running."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable

import psutil

from cctop.models import SessionRecord, utc_now

if TYPE_CHECKING:
    from cctop.config import Config

logger = logging.getLogger(__name__)

# Start times from different probes (ps, psutil, a JS runtime's uptime) disagree
# by up to a second, so anything within this window counts as the same process.
DEFAULT_START_TOLERANCE = 2.0
DEFAULT_MAX_IDLE = timedelta(hours=4)


def pid_exists(pid: int) -> bool:
    """Probe a pid with signal 0. A permission error still means it exists."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


def process_start_time(pid: int) -> float | None:
    """Start time of ``pid`` in epoch seconds, or None if it can't be read."""
    try:
        return psutil.Process(pid).create_time()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess, ValueError):
        return None


class LivenessOracle:
    """Read-only alive/dead judgement for session records.

    Records with a pid are alive while that pid exists and, when a start time
    was captured, still belongs to the same process. Records without a pid
    are alive while their last activity is recent.
    """

    def __init__(
        self,
        pid_exists: Callable[[int], bool] = pid_exists,
        start_time: Callable[[int], float | None] = process_start_time,
        tolerance: float = DEFAULT_START_TOLERANCE,
        max_idle: timedelta = DEFAULT_MAX_IDLE,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._pid_exists = pid_exists
        self._start_time = start_time
        self._tolerance = tolerance
        self._max_idle = max_idle
        self._clock = clock

    @classmethod
    def from_config(cls, config: Config) -> LivenessOracle:
        return cls(
            tolerance=config.pid_start_tolerance,
            max_idle=timedelta(hours=config.no_pid_max_age_hours),
        )

    def is_alive(self, record: SessionRecord) -> bool:
        if record.pid is None:
            return self._clock() - record.last_activity <= self._max_idle

        if not self._pid_exists(record.pid):
            return False

        if record.pid_start_time is None:
            return True
        return not self.is_reused(record.pid, record.pid_start_time)

    def is_reused(self, pid: int, recorded_start: float) -> bool:
        """True when ``pid`` now belongs to a different process than recorded."""
        current = self._start_time(pid)
        if current is None:
            return False
        if abs(current - recorded_start) > self._tolerance:
            logger.debug(
                "pid %d reused: recorded start %.1f, current start %.1f",
                pid, recorded_start, current,
            )
            return True
        return False
