"""Build the sample application image and load it into k3d"""

import shutil
import tempfile
from pathlib import Path

from localdev.commands.base import BaseCommand
from localdev.exceptions import BuildError, RuntimeDependencyError
from localdev.tools.golang import detect_target_arch
from localdev.utils.vacuum import BUILD_CONTEXT_PREFIX

BINARY_NAME = "server"


class AppBuildCommand(BaseCommand):
    """Cross-compile the Go server, build the image and import it into the cluster

    The binary is copied into a temporary Docker build context together with
    the Dockerfile directory, so neither the compiled server nor a leftover
    copy ends up in the application tree.
    """

    @property
    def src_dir(self) -> Path:
        return self.app.app_dir / "src"

    @property
    def docker_dir(self) -> Path:
        return self.app.app_dir / "k8s" / "docker"

    def execute(self):
        self.reporter.banner("Music App Build Script")
        binary = self.build_binary()
        self.build_image(binary)
        self.import_image()
        self.reporter.info("Application build completed successfully!")

    def build_binary(self) -> Path:
        if not self.go.installed():
            raise RuntimeDependencyError("go", required_for="building the application")

        self.reporter.info("Building Go application...")
        if not (self.src_dir / "main.go").is_file():
            raise BuildError(
                f"main.go not found in {self.src_dir}",
                help_text="Check app.app_dir in localdev.yaml points at the application root",
            )

        self.reporter.info("Detecting target architecture...")
        arch = detect_target_arch()
        self.reporter.info(f"Building for Linux {arch} architecture...")
        self.go.build(self.src_dir, BINARY_NAME, arch)

        binary = self.src_dir / BINARY_NAME
        if not binary.is_file():
            raise BuildError(f"binary '{BINARY_NAME}' not found after build")
        self.reporter.info("Go application built successfully")
        self.reporter.info(f"Binary: {binary} ({binary.stat().st_size} bytes)")
        return binary

    def build_image(self, binary: Path):
        if not (self.docker_dir / "Dockerfile").is_file():
            raise BuildError(f"Dockerfile not found in {self.docker_dir}")

        self.reporter.info("Building Docker image...")
        with tempfile.TemporaryDirectory(prefix=BUILD_CONTEXT_PREFIX) as scratch:
            context = Path(scratch) / "context"
            shutil.copytree(self.docker_dir, context)
            shutil.copy2(binary, context / BINARY_NAME)
            self.docker.build(self.app.image, context)
        self.reporter.info("Docker image built successfully")

    def import_image(self):
        self.reporter.info("Loading Docker image into K3D cluster...")
        self.k3d.image_import(self.app.image, self.cluster.cluster_name)
        self.reporter.info("Docker image loaded into K3D successfully")
