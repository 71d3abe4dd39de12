"""Sweep what interrupted or repeated runs leave on the host

Three kinds of leftovers accumulate outside the cluster:

* Docker build contexts under the temp dir, orphaned when ``app-build`` is
  killed before its ``TemporaryDirectory`` exits
* the ``argocd_port_forward.pid`` file the old shell deploy wrote
* one ``*-commands.log`` per CLI session under ``<work_dir>/logs``
"""

import logging
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from localdev.output import Reporter

logger = logging.getLogger(__name__)

BUILD_CONTEXT_PREFIX = "localdev-build-"
LEGACY_PID_FILE = "argocd_port_forward.pid"
KEEP_COMMAND_LOGS = 20


@dataclass
class Leftover:
    path: Path
    reason: str


def stale_build_contexts(temp_root: Path, max_age_minutes: int, now: Optional[float] = None) -> List[Path]:
    """Build contexts untouched for ``max_age_minutes``; younger ones may belong to a running build"""
    cutoff = (now or time.time()) - max_age_minutes * 60
    return sorted(
        path for path in temp_root.glob(f"{BUILD_CONTEXT_PREFIX}*")
        if path.is_dir() and path.stat().st_mtime < cutoff
    )


def surplus_command_logs(log_dir: Path, keep: int = KEEP_COMMAND_LOGS) -> List[Path]:
    """Session logs beyond the newest ``keep`` (names start with a sortable timestamp)"""
    if not log_dir.is_dir():
        return []
    logs = sorted(log_dir.glob("*-commands.log"), reverse=True)
    return sorted(logs[keep:])


class VacuumCommand:
    """Find and remove leftovers; ``work_dir=None`` limits the sweep to the temp dir"""

    def __init__(
        self,
        console: Console,
        work_dir: Optional[Path] = None,
        temp_root: Optional[Path] = None,
        max_age_minutes: int = 60,
        keep_logs: int = KEEP_COMMAND_LOGS,
    ):
        self.console = console
        self.reporter = Reporter(console)
        self.work_dir = work_dir
        self.temp_root = temp_root or Path(tempfile.gettempdir())
        self.max_age_minutes = max_age_minutes
        self.keep_logs = keep_logs

    def find(self) -> List[Leftover]:
        found = [
            Leftover(path, f"build context older than {self.max_age_minutes} minutes")
            for path in stale_build_contexts(self.temp_root, self.max_age_minutes)
        ]

        pid_file = self.temp_root / LEGACY_PID_FILE
        if pid_file.exists():
            found.append(Leftover(pid_file, "port-forward pid file from the shell deploy"))

        if self.work_dir is not None:
            found.extend(
                Leftover(path, f"command log beyond the newest {self.keep_logs}")
                for path in surplus_command_logs(self.work_dir / "logs", self.keep_logs)
            )
        return found

    def execute(self) -> List[Leftover]:
        """Returns the leftovers that were removed"""
        leftovers = self.find()
        if not leftovers:
            self.reporter.info("Nothing to clean up")
            return []

        removed = []
        for item in leftovers:
            try:
                if item.path.is_dir():
                    shutil.rmtree(item.path)
                else:
                    item.path.unlink()
            except OSError as e:
                self.reporter.warning(f"Could not remove {item.path}: {e}")
                continue
            logger.debug("removed %s (%s)", item.path, item.reason)
            self.reporter.info(f"Removed {item.path.name}: {item.reason}")
            removed.append(item)

        self.reporter.info(f"Removed {len(removed)}/{len(leftovers)} leftovers")
        return removed
