"""Go toolchain wrapper for cross-compiling the sample server"""

import platform
from pathlib import Path
from typing import Optional

from localdev.engine.runner import CommandResult, CommandRunner

ARM_MACHINES = ("arm64", "aarch64")


def detect_target_arch(machine: Optional[str] = None) -> str:
    """Map the host CPU to the GOARCH the cluster nodes will run

    k3d nodes are containers on the local Docker host, so they share its
    architecture.
    """
    machine = (machine or platform.machine()).lower()
    return "arm64" if machine in ARM_MACHINES else "amd64"


class GoToolchain:
    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def installed(self) -> bool:
        return self.runner.which("go") is not None

    def build(self, src_dir: Path, output: str, arch: str, main: str = "main.go") -> CommandResult:
        """Cross-compile ``main`` into ``src_dir/output`` for linux/arch"""
        return self.runner.run(
            ["go", "build", "-o", output, main],
            env={"GOOS": "linux", "GOARCH": arch},
            cwd=src_dir,
            check=True,
            capture=False,
            action="Building Go application",
        )
