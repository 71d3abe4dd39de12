"""/etc/hosts management for the ingress hostnames"""

import logging
import os
from pathlib import Path
from typing import List, Optional

from localdev.engine.runner import CommandRunner

logger = logging.getLogger(__name__)

DEFAULT_HOSTS_FILE = Path("/etc/hosts")
LOOPBACK = "127.0.0.1"


class HostsFile:
    """Add and remove loopback entries for cluster ingress hosts

    Writes directly when the file is writable (tests, containers running as
    root) and falls back to ``sudo tee`` otherwise.
    """

    def __init__(self, runner: CommandRunner, path: Path = DEFAULT_HOSTS_FILE):
        self.runner = runner
        self.path = Path(path)

    def read(self) -> str:
        try:
            return self.path.read_text()
        except FileNotFoundError:
            return ""

    def contains(self, text: str) -> bool:
        return any(text in line for line in self._active_lines())

    def entries_matching(self, text: str) -> List[str]:
        return [line for line in self._active_lines() if text in line]

    def _active_lines(self) -> List[str]:
        return [
            line for line in self.read().splitlines()
            if line.strip() and not line.lstrip().startswith("#")
        ]

    def _host_listed(self, host: str) -> bool:
        for line in self._active_lines():
            if host in line.split()[1:]:
                return True
        return False

    def add(self, host: str, ip: str = LOOPBACK) -> bool:
        """Append ``ip host`` unless the host is already mapped

        Returns:
            True if an entry was written
        """
        if self._host_listed(host):
            logger.debug("hosts entry for %s already present", host)
            return False

        entry = f"{ip} {host}\n"
        current = self.read()
        if current and not current.endswith("\n"):
            entry = "\n" + entry

        if self._writable():
            with self.path.open("a") as f:
                f.write(entry)
        else:
            self.runner.run(
                ["sudo", "tee", "-a", str(self.path)],
                input=entry, check=True, action=f"Adding {host} to {self.path}",
            )
        return True

    def remove_matching(self, text: str) -> List[str]:
        """Drop every active line containing ``text``; keeps a ``.bak`` copy

        Returns:
            The removed lines
        """
        if not text.strip():
            raise ValueError("refusing to remove hosts entries with an empty pattern")
        content = self.read()
        removed = self.entries_matching(text)
        if not removed:
            return []

        kept = [
            line for line in content.splitlines()
            if line not in removed
        ]
        new_content = "\n".join(kept) + "\n"
        backup = self.path.with_name(self.path.name + ".bak")

        if self._writable():
            backup.write_text(content)
            self.path.write_text(new_content)
        else:
            self.runner.run(
                ["sudo", "cp", str(self.path), str(backup)],
                check=True, action=f"Backing up {self.path}",
            )
            self.runner.run(
                ["sudo", "tee", str(self.path)],
                input=new_content, check=True, action=f"Rewriting {self.path}",
            )
        return removed

    def _writable(self, path: Optional[Path] = None) -> bool:
        target = path or self.path
        if target.exists():
            return os.access(target, os.W_OK)
        return os.access(target.parent, os.W_OK)
