"""k3d wrapper"""

from pathlib import Path
from typing import List

from localdev.config import ClusterConfig
from localdev.engine.runner import CommandResult, CommandRunner


class K3d:
    """Registry and cluster lifecycle through the k3d CLI"""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def _run(self, *args, **kwargs) -> CommandResult:
        return self.runner.run(["k3d", *args], **kwargs)

    def registry_delete(self, name: str) -> bool:
        return self._run("registry", "delete", name).ok

    def registry_create(self, name: str, port: int) -> CommandResult:
        return self._run(
            "registry", "create", name, "--port", str(port),
            check=True, action="Creating registry",
        )

    def cluster_create_args(self, config: ClusterConfig, volume_dir: Path) -> List[str]:
        return [
            "k3d", "cluster", "create", config.cluster_name,
            "--servers", str(config.servers),
            "--agents", str(config.agents),
            "--api-port", str(config.api_port),
            "--port", f"{config.http_port}:80@loadbalancer",
            "--port", f"{config.https_port}:443@loadbalancer",
            "--k3s-arg", "--disable=traefik@server:*",
            "--k3s-arg", "--tls-san=127.0.0.1@server:0",
            "--registry-use", config.registry_address,
            "--volume", f"{volume_dir.resolve()}:/k3dvol@all",
            "--wait",
        ]

    def cluster_create(self, config: ClusterConfig, volume_dir: Path) -> CommandResult:
        return self.runner.run(
            self.cluster_create_args(config, volume_dir),
            check=True, capture=False, action="Creating cluster",
        )

    def cluster_delete(self, name: str, check: bool = False) -> CommandResult:
        return self._run("cluster", "delete", name, check=check, action=f"Deleting cluster {name}")

    def cluster_list(self) -> str:
        result = self._run("cluster", "list")
        return result.stdout if result.ok else ""

    def cluster_line(self, name: str) -> str:
        """Row of ``k3d cluster list`` for the named cluster ('' if absent)"""
        for line in self.cluster_list().splitlines():
            columns = line.split()
            if columns and columns[0] == name:
                return line
        return ""

    def cluster_exists(self, name: str) -> bool:
        return bool(self.cluster_line(name))

    def cluster_running(self, name: str) -> bool:
        """A cluster counts as running when at least one server is up

        ``k3d cluster list`` prints ``SERVERS`` as ``up/total`` (e.g. ``1/1``).
        """
        columns = self.cluster_line(name).split()
        if len(columns) < 2 or "/" not in columns[1]:
            return False
        up, _, _total = columns[1].partition("/")
        return up.isdigit() and int(up) > 0

    def image_import(self, image: str, cluster: str) -> CommandResult:
        return self._run(
            "image", "import", image, "-c", cluster,
            check=True, capture=False, action="Loading image into K3D",
        )
