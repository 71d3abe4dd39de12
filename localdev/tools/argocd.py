"""argocd CLI wrapper"""

import json
import logging
from typing import Any, Dict, Optional

from localdev.engine.readiness import SyncStatus
from localdev.engine.runner import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


class ArgoCD:
    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def _run(self, *args, **kwargs) -> CommandResult:
        return self.runner.run(["argocd", *args], **kwargs)

    def installed(self) -> bool:
        return self.runner.which("argocd") is not None

    def login(self, server: str, password: str, username: str = "admin") -> CommandResult:
        return self._run(
            "login", server, "--username", username, "--password", password, "--insecure",
            check=True, action="Logging into ArgoCD",
        )

    def app_get(self, app: str) -> Optional[Dict[str, Any]]:
        result = self._run("app", "get", app, "--output", "json")
        if not result.ok:
            return None
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.debug("argocd app get returned non-JSON output")
            return None

    def app_exists(self, app: str) -> bool:
        return self._run("app", "get", app).ok

    def sync_status(self, app: str) -> str:
        """Current ``.status.sync.status`` or ``Unknown``"""
        data = self.app_get(app) or {}
        status = data.get("status", {}).get("sync", {}).get("status")
        return status or SyncStatus.UNKNOWN.value

    def app_sync(self, app: str, check: bool = False) -> CommandResult:
        return self._run("app", "sync", app, capture=False, check=check, action=f"Syncing {app}")

    def app_status(self, app: str) -> CommandResult:
        return self._run("app", "get", app, capture=False, check=True, action=f"Reading {app} status")

    def app_delete(self, app: str) -> CommandResult:
        return self._run("app", "delete", app, "--yes", check=True, action=f"Deleting {app}")
