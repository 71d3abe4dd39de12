"""Read-only status reports for the cluster and the sample application"""

from typing import Optional

from localdev.commands.base import BaseCommand
from localdev.engine.http_probe import HttpProbe

ADDON_NAMESPACES = (
    ("ArgoCD", "argocd", True),
    ("Nginx Ingress Controller", "ingress-nginx", False),
    ("Monitoring stack", "monitoring", False),
    ("Kubernetes Dashboard", "kubernetes-dashboard", False),
)


class InfraStatusCommand(BaseCommand):
    """Cluster, context, add-on namespaces, hosts entries and Docker

    Missing components are reported, never raised.
    """

    def execute(self):
        self.reporter.banner("Infrastructure Status Check")
        name = self.cluster.cluster_name

        self.reporter.section("K3D Cluster Status")
        line = self.k3d.cluster_line(name)
        if line:
            self.reporter.info(f"K3D cluster '{name}' found")
            self.reporter.raw(line)
        else:
            self.reporter.error(f"K3D cluster '{name}' not found")

        self.reporter.section("Kubernetes Context")
        self.reporter.info(f"Current context: {self.kubectl.current_context() or 'none'}")

        for title, namespace, critical in ADDON_NAMESPACES:
            self.reporter.section(f"{title} Status")
            if self.kubectl.namespace_exists(namespace):
                self.reporter.info(f"{title} found")
                self.reporter.raw(self.kubectl.get_table("pods", namespace=namespace))
            elif critical:
                self.reporter.error(f"{title} namespace not found")
            else:
                self.reporter.warning(f"{title} not found")

        report_hosts(self)

        self.reporter.section("Docker Status")
        if self.docker.daemon_running():
            self.reporter.info("Docker is running")
        else:
            self.reporter.error("Docker is not running")

        self.reporter.section("Infrastructure Status Complete")


def report_hosts(command: BaseCommand):
    domain = command.cluster.cluster_domain
    command.reporter.section("Host Entries")
    entries = command.hosts.entries_matching(domain)
    if entries:
        command.reporter.success(f"Host entries found for {domain}:")
        for entry in entries:
            command.reporter.raw(entry)
    else:
        command.reporter.warning(f"No host entries found for {domain}")


class StatusCommand(BaseCommand):
    """Overall project status: infrastructure, application and connectivity"""

    def __init__(self, *args, probe: Optional[HttpProbe] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.probe = probe or HttpProbe()

    def _pods(self, label: str, namespace: str, selector: Optional[str] = None):
        phases = self.kubectl.pod_phases(namespace, selector)
        running = phases.count("Running")
        if running:
            self.reporter.success(f"{label} pods: {running}/{len(phases)} running")
        else:
            self.reporter.warning(f"{label} pods not running")

    def execute(self):
        self.reporter.banner("Overall Project Status")
        c = self.cluster

        self.reporter.section("Infrastructure Status")
        if self.k3d.cluster_running(c.cluster_name):
            self.reporter.success(f"K3D cluster '{c.cluster_name}' is running")
            self.reporter.raw(self.k3d.cluster_line(c.cluster_name))
        else:
            self.reporter.error(f"K3D cluster '{c.cluster_name}' is not running")

        current = self.kubectl.current_context() or "none"
        if current == c.kube_context:
            self.reporter.success(f"Using correct kubectl context: {current}")
        else:
            self.reporter.warning(f"Using kubectl context: {current} (expected: {c.kube_context})")

        self.reporter.section("ArgoCD Status")
        if self.kubectl.namespace_exists("argocd"):
            self.reporter.success("ArgoCD namespace exists")
            self._pods("ArgoCD", "argocd")
        else:
            self.reporter.error("ArgoCD namespace not found")

        self.reporter.section("Ingress Controller Status")
        if self.kubectl.namespace_exists("ingress-nginx"):
            self.reporter.success("Nginx Ingress Controller found")
            self._pods("Ingress", "ingress-nginx")
        else:
            self.reporter.warning("Nginx Ingress Controller not found")

        self.report_application()
        report_hosts(self)

        self.reporter.section("Docker Status")
        if self.docker.daemon_running():
            self.reporter.success("Docker is running")
            if self.docker.image_exists(self.app.image):
                self.reporter.success("Music app Docker image exists")
            else:
                self.reporter.warning("Music app Docker image not found")
        else:
            self.reporter.error("Docker is not running")

        self.report_connectivity()

        self.reporter.section("Summary")
        self.reporter.info("Overall project status check completed")
        self.reporter.key_values("Access URLs", [
            ("Music App", c.url(self.app.host_prefix)),
            ("ArgoCD", c.url("argocd")),
            ("API", f"{c.url(self.app.host_prefix)}/api/v1/music-albums?key={self.app.test_key}"),
            ("Health", f"{c.url(self.app.host_prefix)}/health"),
        ])

    def report_application(self):
        ns = self.app.namespace
        self.reporter.section("Music App Status")
        if not self.kubectl.namespace_exists(ns):
            self.reporter.warning("Music app namespace not found")
            return

        self.reporter.success("Music app namespace exists")
        self._pods("Music app", ns, f"app={self.app.name}")
        self._pods("Redis", ns, "app=redis")
        for label, svc in (("Music app", self.app.name), ("Redis", "redis")):
            if self.kubectl.exists("svc", svc, ns):
                self.reporter.success(f"{label} service exists")
            else:
                self.reporter.warning(f"{label} service not found")
        if self.kubectl.exists("ingress", namespace=ns):
            self.reporter.success("Music app ingress exists")
        else:
            self.reporter.warning("Music app ingress not found")

    def report_connectivity(self):
        self.reporter.section("Application Connectivity")
        base = self.cluster.url(self.app.host_prefix)
        status = self.probe.status_code(f"{base}/health")
        if status == "200":
            self.reporter.success("Health endpoint responding (HTTP 200)")
        else:
            self.reporter.warning(f"Health endpoint failed (HTTP {status})")

        body = self.probe.text(f"{base}/api/v1/music-albums?key={self.app.test_key}")
        if body is not None and self.app.expected_artist in body:
            self.reporter.success("API endpoint working correctly")
        else:
            self.reporter.warning("API endpoint test failed")
