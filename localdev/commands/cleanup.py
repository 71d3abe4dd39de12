"""Teardown of the sample application and of the whole local cluster"""

import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

from rich.prompt import Confirm

from localdev.commands.base import BaseCommand
from localdev.commands.infra_setup import VOLUME_DIR
from localdev.utils.vacuum import LEGACY_PID_FILE


class AppCleanupCommand(BaseCommand):
    """Remove the ArgoCD Application, namespace, image, hosts entry and generated files

    Every step tolerates the resource already being gone.
    """

    def execute(self):
        self.reporter.banner("Music App Cleanup Script")
        self.delete_argocd_app()
        self.delete_namespace()
        self.remove_docker_image()
        self.remove_host_entry()
        removed = self.cleanup_generated_files()

        self.reporter.step("Cleanup completed successfully!")
        self.console.print("The following resources have been removed:")
        self.console.print(f"  - ArgoCD Application: {self.app.name}")
        self.console.print(f"  - Kubernetes namespace: {self.app.namespace}")
        self.console.print(f"  - Docker image: {self.app.image}")
        self.console.print(f"  - Host entry: {self.cluster.host(self.app.host_prefix)}")
        self.console.print(f"  - Generated files ({len(removed)})")

    def delete_argocd_app(self):
        self.reporter.step("Deleting ArgoCD Application...")
        if not self.argocd.installed():
            self.reporter.warning("ArgoCD CLI is not installed, skipping Application deletion")
            return
        if self.argocd.app_exists(self.app.name):
            self.reporter.info(f"Deleting {self.app.name} ArgoCD Application...")
            self.argocd.app_delete(self.app.name)
            self.reporter.info("ArgoCD Application deleted")
        else:
            self.reporter.info("ArgoCD Application not found")

    def delete_namespace(self):
        ns = self.app.namespace
        self.reporter.step(f"Deleting {ns} namespace...")
        if self.kubectl.namespace_exists(ns):
            self.reporter.info(f"Deleting {ns} namespace and all resources...")
            self.kubectl.delete_namespace(ns)
            self.reporter.info("Namespace deleted")
        else:
            self.reporter.info("Namespace not found")

    def remove_docker_image(self):
        self.reporter.step("Removing Docker image...")
        if self.docker.image_exists(self.app.image):
            self.reporter.info(f"Removing {self.app.image} Docker image...")
            if self.docker.remove_image(self.app.image):
                self.reporter.info("Docker image removed")
            else:
                self.reporter.warning(f"Could not remove {self.app.image}")
        else:
            self.reporter.info("Docker image not found")

    def remove_host_entry(self):
        self.reporter.step("Removing host entry...")
        host = self.cluster.host(self.app.host_prefix)
        removed = self.hosts.remove_matching(host)
        if removed:
            self.reporter.info(f"Removed host entry: {removed[0]}")
        else:
            self.reporter.info("Host entry not found")

    def cleanup_generated_files(self) -> List[Path]:
        self.reporter.step("Cleaning up generated files...")
        manifest_dir = self.settings.generated_dir / "manifests"
        removed = sorted(manifest_dir.glob("*.yaml")) if manifest_dir.is_dir() else []
        for path in removed:
            path.unlink()
            self.reporter.info(f"Removed: {path}")
        return removed


class InfraCleanupCommand(BaseCommand):
    """Delete the k3d cluster and everything setup left on the host"""

    def __init__(self, *args, assume_yes: bool = False, temp_root: Optional[Path] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.assume_yes = assume_yes
        self.temp_root = temp_root or Path(tempfile.gettempdir())

    def confirm(self) -> bool:
        if self.assume_yes:
            return True
        self.console.print(
            "[yellow]WARNING: This will delete the entire K3D cluster and all infrastructure![/yellow]"
        )
        return Confirm.ask("Are you sure you want to continue?", default=False, console=self.console)

    def execute(self) -> bool:
        """Returns False when the user cancelled"""
        self.reporter.banner("Infrastructure Cleanup")
        if not self.confirm():
            self.reporter.info("Cleanup cancelled")
            return False

        name = self.cluster.cluster_name
        self.reporter.info(f"Deleting K3D cluster '{name}'...")
        if self.k3d.cluster_exists(name):
            self.k3d.cluster_delete(name, check=True)
            self.reporter.info("K3D cluster deleted")
        else:
            self.reporter.warning(f"K3D cluster '{name}' not found")

        domain = self.cluster.cluster_domain
        self.reporter.info(f"Removing host entries for {domain}...")
        removed = self.hosts.remove_matching(domain)
        if removed:
            self.reporter.info(f"Host entries removed ({len(removed)})")
        else:
            self.reporter.warning(f"No host entries found for {domain}")

        self.reporter.info("Cleaning up Docker images...")
        self.docker.prune_images()
        self.reporter.info("Cleaning up Docker volumes...")
        self.docker.prune_volumes()

        self.reporter.info("Cleaning up temporary files...")
        shutil.rmtree(VOLUME_DIR, ignore_errors=True)
        (self.temp_root / LEGACY_PID_FILE).unlink(missing_ok=True)
        shutil.rmtree(self.settings.work_dir, ignore_errors=True)
        self.reporter.info("Temporary files cleaned")

        self.reporter.info("Infrastructure cleanup completed successfully!")
        return True
