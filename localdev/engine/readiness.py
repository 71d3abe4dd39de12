"""Readiness polling helpers

Readiness in this harness is either delegated to ``kubectl wait`` or
detected by polling a probe with a fixed sleep between attempts. There is
no backoff: the intervals match what the cluster add-ons need locally.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from tenacity import Retrying, retry_if_result, stop_after_attempt, wait_fixed

logger = logging.getLogger(__name__)

Sleep = Callable[[float], None]


def poll(
    probe: Callable[[], bool],
    attempts: int,
    interval: float,
    sleep: Sleep = time.sleep,
) -> bool:
    """Call probe until it returns True or attempts run out

    Args:
        probe: Zero-argument readiness check
        attempts: Maximum number of probe calls
        interval: Seconds slept between failed probes
        sleep: Sleep function (injectable for tests)

    Returns:
        True if the probe succeeded within the attempt budget
    """
    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda ready: not ready),
        retry_error_callback=lambda state: False,
        sleep=sleep,
    )
    ready = bool(retrying(probe))
    logger.debug("probe ready=%s after %d attempt(s)", ready, retrying.statistics.get("attempt_number", 0))
    return ready


class SyncStatus(str, Enum):
    """ArgoCD Application sync states the deploy loop reacts to"""
    SYNCED = "Synced"
    OUT_OF_SYNC = "OutOfSync"
    UNKNOWN = "Unknown"


@dataclass
class SyncOutcome:
    synced: bool
    attempts: int
    last_status: str


class SyncWatcher:
    """Wait for an ArgoCD Application to reach ``Synced``

    Each attempt reads the sync status. ``OutOfSync`` triggers a manual
    sync, ``Unknown`` means ArgoCD has not picked the Application up yet.
    Every non-synced attempt sleeps ``interval`` seconds. Running out of
    attempts is reported, not raised: the caller decides how to proceed.
    """

    def __init__(
        self,
        get_status: Callable[[], str],
        trigger_sync: Callable[[], None],
        reporter=None,
        max_attempts: int = 30,
        interval: float = 5,
        sleep: Sleep = time.sleep,
    ):
        self.get_status = get_status
        self.trigger_sync = trigger_sync
        self.reporter = reporter
        self.max_attempts = max_attempts
        self.interval = interval
        self.sleep = sleep

    def _say(self, level: str, message: str):
        if self.reporter is not None:
            getattr(self.reporter, level)(message)
        else:
            logger.info(message)

    def wait(self) -> SyncOutcome:
        status: Optional[str] = None
        for attempt in range(1, self.max_attempts + 1):
            status = self.get_status() or SyncStatus.UNKNOWN.value

            if status == SyncStatus.SYNCED:
                self._say("info", "ArgoCD sync completed successfully")
                return SyncOutcome(synced=True, attempts=attempt, last_status=status)

            if status == SyncStatus.OUT_OF_SYNC:
                self._say("info", "Application is out of sync, triggering sync...")
                self.trigger_sync()
            elif status == SyncStatus.UNKNOWN:
                self._say("warning", "Waiting for ArgoCD to recognize the application...")
            else:
                self._say("info", f"Sync status: {status}, waiting...")

            self.sleep(self.interval)

        self._say("warning", "ArgoCD sync timeout, checking application status...")
        return SyncOutcome(synced=False, attempts=self.max_attempts, last_status=status or "")
