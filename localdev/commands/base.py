"""Shared plumbing for command implementations"""

import logging
import time
from pathlib import Path
from typing import Callable, Iterable, Optional

from rich.console import Console

from localdev.config import Settings
from localdev.engine.runner import CommandRunner
from localdev.engine.templates import TemplateRenderer
from localdev.exceptions import DockerDaemonError, ReadinessTimeoutError, RuntimeDependencyError
from localdev.output import Reporter
from localdev.tools.argocd import ArgoCD
from localdev.tools.docker import Docker
from localdev.tools.golang import GoToolchain
from localdev.tools.helm import Helm
from localdev.tools.k3d import K3d
from localdev.tools.kubectl import Kubectl
from localdev.utils.hosts import DEFAULT_HOSTS_FILE, HostsFile

logger = logging.getLogger(__name__)


class BaseCommand:
    """Wires settings, runner, tool wrappers and console for a command

    Tests pass a scripted runner, a hosts file under tmp_path and a no-op
    sleep; the CLI uses the real ones.
    """

    def __init__(
        self,
        settings: Settings,
        console: Console,
        runner: Optional[CommandRunner] = None,
        hosts_path: Path = DEFAULT_HOSTS_FILE,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.cluster = settings.cluster
        self.app = settings.app
        self.console = console
        self.reporter = Reporter(console)
        self.runner = runner or CommandRunner(log_dir=settings.log_dir)
        self.sleep = sleep

        self.kubectl = Kubectl(self.runner)
        self.k3d = K3d(self.runner)
        self.helm = Helm(self.runner)
        self.docker = Docker(self.runner)
        self.argocd = ArgoCD(self.runner)
        self.go = GoToolchain(self.runner)
        self.hosts = HostsFile(self.runner, hosts_path)
        self.templates = TemplateRenderer(settings)

    def require_tools(self, tools: Iterable[str], required_for: Optional[str] = None):
        """Fail fast on the first tool missing from PATH"""
        for tool in tools:
            if self.runner.which(tool) is None:
                raise RuntimeDependencyError(tool, required_for=required_for)

    def require_docker_daemon(self):
        self.reporter.info("Checking Docker daemon status...")
        if not self.docker.daemon_running():
            raise DockerDaemonError()
        self.reporter.ok("Docker daemon is running")

    def wait_ready(
        self,
        target: str,
        condition: str,
        resource: str,
        namespace: Optional[str] = None,
        selector: Optional[str] = None,
        timeout: str = "300s",
        required: bool = True,
    ) -> bool:
        """``kubectl wait`` with fail-fast or warn-and-continue semantics

        Raises:
            ReadinessTimeoutError: If required and the condition was not met
        """
        ready = self.kubectl.wait(condition, resource, namespace=namespace, selector=selector, timeout=timeout)
        if ready:
            return True
        if required:
            raise ReadinessTimeoutError(target, timeout, namespace)
        self.reporter.warning(f"{target} not ready within timeout")
        return False

    def add_host(self, prefix: str):
        host = self.cluster.host(prefix)
        if self.hosts.add(host):
            self.reporter.info(f"Host entry added: 127.0.0.1 {host}")
        else:
            self.reporter.info(f"Host entry already exists: {host}")
