"""Report which external tools are installed"""

import platform
from typing import List, Optional, Tuple

from localdev.commands.base import BaseCommand
from localdev.exceptions import LocalDevError

# (tool, version command)
REQUIRED: List[Tuple[str, List[str]]] = [
    ("kubectl", ["kubectl", "version", "--client"]),
    ("docker", ["docker", "--version"]),
    ("k3d", ["k3d", "version"]),
    ("helm", ["helm", "version", "--short"]),
    ("argocd", ["argocd", "version", "--client", "--short"]),
]

# (tool, version command, why it matters)
OPTIONAL: List[Tuple[str, List[str], str]] = [
    ("go", ["go", "version"], "required for building the application"),
    ("make", ["make", "--version"], "used by the Makefile shortcuts"),
]

MACOS_INSTALL = """macOS (using Homebrew):
  brew install kubectl docker k3d helm argocd go"""

LINUX_INSTALL = """Ubuntu/Debian:
  sudo apt update
  sudo apt install -y kubectl docker.io golang-go make

Install k3d:
  curl -s https://raw.githubusercontent.com/k3d-io/k3d/main/install.sh | bash

Install Helm:
  curl https://raw.githubusercontent.com/helm/helm/main/scripts/get-helm-3 | bash

Install ArgoCD CLI:
  curl -sSL -o argocd-linux-amd64 https://github.com/argoproj/argo-cd/releases/latest/download/argocd-linux-amd64
  sudo install -m 555 argocd-linux-amd64 /usr/local/bin/argocd
  rm argocd-linux-amd64"""


def install_instructions(system: Optional[str] = None) -> str:
    system = system or platform.system()
    return MACOS_INSTALL if system == "Darwin" else LINUX_INSTALL


class CheckDepsCommand(BaseCommand):
    """Print tool versions; missing required tools fail the command"""

    def _version(self, args: List[str]) -> str:
        result = self.runner.run(args)
        lines = (result.stdout or result.stderr).strip().splitlines()
        return lines[0] if lines else "installed"

    def execute(self) -> List[str]:
        self.reporter.banner("Dependency Check")

        self.reporter.section("Required Dependencies")
        missing = []
        for tool, version_args in REQUIRED:
            if self.runner.which(tool):
                self.reporter.info(f"{tool}: {self._version(version_args)}")
            else:
                self.reporter.error(f"{tool}: Not installed")
                missing.append(tool)

        self.reporter.section("Optional Dependencies")
        for tool, version_args, why in OPTIONAL:
            if self.runner.which(tool):
                self.reporter.info(f"{tool}: {self._version(version_args)}")
            else:
                self.reporter.warning(f"{tool}: Not installed ({why})")

        self.reporter.section("Docker Daemon Status")
        if "docker" not in missing and self.docker.daemon_running():
            self.reporter.info("Docker daemon is running")
        else:
            self.reporter.error("Docker daemon is not running")

        self.reporter.section("Summary")
        if missing:
            raise LocalDevError(
                f"Missing required dependencies: {' '.join(missing)}",
                f"Installation instructions:\n\n{install_instructions()}",
            )
        self.reporter.info("All required dependencies are installed!")
        return missing
