"""Day-2 operations on the deployed application"""

import platform
from typing import Optional

from localdev.commands.app_build import AppBuildCommand
from localdev.commands.app_deploy import AppDeployCommand
from localdev.commands.base import BaseCommand
from localdev.engine.http_probe import HttpProbe
from localdev.exceptions import CommandError, RuntimeDependencyError

REBUILD_SETTLE_SECONDS = 10


class AppLogsCommand(BaseCommand):
    def __init__(self, *args, follow: bool = True, tail: Optional[int] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.follow = follow
        self.tail = tail

    def execute(self):
        result = self.kubectl.logs(
            self.app.namespace, f"deployment/{self.app.name}", follow=self.follow, tail=self.tail
        )
        if not result.ok:
            raise CommandError(result.args, result.exit_code, result.stderr, action="Reading application logs")
        if not self.follow:
            self.reporter.raw(result.stdout)


class AppScaleCommand(BaseCommand):
    def __init__(self, *args, replicas: int = 3, **kwargs):
        super().__init__(*args, **kwargs)
        self.replicas = replicas

    def execute(self):
        self.reporter.step("Scaling application...")
        self.kubectl.scale(self.app.name, self.replicas, self.app.namespace)
        self.reporter.info(f"{self.app.name} scaled to {self.replicas} replicas")


class GitOpsSyncCommand(BaseCommand):
    def execute(self):
        if not self.argocd.installed():
            raise RuntimeDependencyError("argocd", required_for="GitOps sync")
        self.reporter.step("Syncing GitOps application...")
        self.argocd.app_sync(self.app.name, check=True)


class GitOpsStatusCommand(BaseCommand):
    def execute(self):
        if not self.argocd.installed():
            raise RuntimeDependencyError("argocd", required_for="GitOps status")
        self.reporter.step("Checking GitOps status...")
        self.argocd.app_status(self.app.name)


class RebuildCommand(BaseCommand):
    """Force-delete the namespace and image, then build and deploy again

    Used when pods crash-loop on an image built for the wrong CPU
    architecture.
    """

    def __init__(self, *args, probe: Optional[HttpProbe] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.probe = probe or HttpProbe()

    def _sub(self, command_cls):
        return command_cls(
            self.settings, self.console, runner=self.runner,
            hosts_path=self.hosts.path, sleep=self.sleep,
        )

    def execute(self):
        self.reporter.banner("Rebuilding Application")
        self.reporter.info(f"Current architecture: {platform.machine()}")

        self.reporter.info("Cleaning up existing deployment...")
        self.kubectl.delete_namespace(self.app.namespace, force=True)
        self.reporter.info("Removing existing Docker image...")
        self.docker.remove_image(self.app.image)

        self.reporter.info("Rebuilding application with correct architecture...")
        self._sub(AppBuildCommand).execute()
        self.reporter.success("Application rebuilt successfully!")

        self.reporter.info("Deploying application...")
        self._sub(AppDeployCommand).execute()
        self.reporter.success("Deployment completed successfully!")

        self.sleep(REBUILD_SETTLE_SECONDS)
        url = self.cluster.url(self.app.host_prefix)
        if self.probe.status_code(f"{url}/health") == "200":
            self.reporter.success("Application is responding correctly!")
            self.console.print(f"Access your application at:\n  {url}\n  {url}/api/v1/music-albums?key={self.app.test_key}")
        else:
            self.reporter.warning("Application may still be starting up...")
            self.console.print(f"Check status with: kubectl get pods -n {self.app.namespace}")
