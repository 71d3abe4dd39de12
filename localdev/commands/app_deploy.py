"""Direct (kubectl apply) deployment of the sample application"""

from pathlib import Path
from typing import Dict

from localdev.commands.base import BaseCommand
from localdev.exceptions import ClusterNotFoundError, ConfigError

REDIS_DATA_MANIFEST = "05-redis-data"
INGRESS_SETTLE_SECONDS = 10


class ManifestMixin:
    """Render the application manifests plus the Redis seed ConfigMap"""

    @property
    def manifest_dir(self) -> Path:
        return self.settings.generated_dir / "manifests"

    def prepare_manifests(self) -> Dict[str, Path]:
        self.reporter.info("Preparing manifests...")

        redis_data = self.app.redis_data
        if not redis_data.is_file():
            raise ConfigError(f"Redis data file not found: {redis_data}", source="app.redis_data")

        self.reporter.info("Creating Redis data ConfigMap...")
        configmap = self.kubectl.configmap_from_file(
            "redis-data", "dump.rdb", redis_data, self.app.namespace
        )
        manifests = self.templates.write_app_manifests(self.manifest_dir)
        data_path = self.manifest_dir / f"{REDIS_DATA_MANIFEST}.yaml"
        data_path.write_text(configmap)
        manifests[REDIS_DATA_MANIFEST] = data_path

        self.reporter.info(f"Updating ingress with cluster domain: {self.cluster.cluster_domain}")
        return manifests

    def print_access_info(self):
        app_url = self.cluster.url(self.app.host_prefix)
        self.reporter.key_values("Music App Access Information", [
            ("HTTP URL", app_url),
            ("API Endpoint", "/api/v1/music-albums?key=<INT>"),
            ("Example", f"{app_url}/api/v1/music-albums?key={self.app.test_key}"),
            ("Redis Password", self.app.redis_password.get_secret_value()),
        ])


class AppDeployCommand(ManifestMixin, BaseCommand):
    """Apply the manifests in dependency order, waiting on each workload"""

    def execute(self):
        self.reporter.banner("Music App Deployment Script")
        self.require_tools(["kubectl"], required_for="application deployment")

        self.reporter.info("Checking cluster connectivity...")
        if not self.kubectl.is_reachable():
            raise ClusterNotFoundError(self.cluster.cluster_name)

        manifests = self.prepare_manifests()
        self.apply(manifests)

        self.reporter.info(f"Adding host entry to {self.hosts.path}...")
        self.add_host(self.app.host_prefix)

        self.reporter.info("Waiting for ingress to be ready...")
        self.sleep(INGRESS_SETTLE_SECONDS)

        self.reporter.info("Deployment completed successfully!")
        self.print_access_info()

    def apply(self, manifests: Dict[str, Path]):
        self.reporter.info("Applying Kubernetes manifests...")
        ns = self.app.namespace

        self.kubectl.apply_file(manifests["01-namespace"])
        self.kubectl.apply_file(manifests["05-secrets-configmaps"])
        self.kubectl.apply_file(manifests[REDIS_DATA_MANIFEST])

        self.kubectl.apply_file(manifests["02-redis-deployment"])
        self.reporter.info("Waiting for Redis to be ready...")
        self.wait_ready("Redis", "ready", "pod", namespace=ns, selector="app=redis")

        self.kubectl.apply_file(manifests["03-music-app-deployment"])
        self.reporter.info("Waiting for music app to be ready...")
        self.wait_ready("Music app", "ready", "pod", namespace=ns, selector=f"app={self.app.name}")

        self.kubectl.apply_file(manifests["04-ingress"])
