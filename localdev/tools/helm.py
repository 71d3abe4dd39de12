"""helm wrapper"""

from pathlib import Path
from typing import Dict, Optional

from localdev.engine.runner import CommandResult, CommandRunner

REPOSITORIES: Dict[str, str] = {
    "stable": "https://charts.helm.sh/stable",
    "kubernetes-dashboard": "https://kubernetes.github.io/dashboard/",
    "bitnami": "https://charts.bitnami.com/bitnami",
    "prometheus-community": "https://prometheus-community.github.io/helm-charts",
    "grafana": "https://grafana.github.io/helm-charts",
    "argo": "https://argoproj.github.io/argo-helm",
}


class Helm:
    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def repo_add(self, name: str, url: str) -> bool:
        return self.runner.run(["helm", "repo", "add", name, url]).ok

    def repo_update(self) -> bool:
        return self.runner.run(["helm", "repo", "update"]).ok

    def upgrade_install(
        self,
        release: str,
        chart: str,
        namespace: str,
        values: Optional[Path] = None,
        timeout: Optional[str] = None,
        check: bool = True,
    ) -> CommandResult:
        """``helm upgrade --install`` into a namespace created on demand"""
        args = [
            "helm", "upgrade", "--install", release, chart,
            "--namespace", namespace, "--create-namespace",
        ]
        if values is not None:
            args += ["--values", str(values)]
        if timeout:
            args += ["--timeout", timeout]
        return self.runner.run(args, check=check, capture=False, action=f"Installing {release}")
