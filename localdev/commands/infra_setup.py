"""Infrastructure setup: k3d cluster, registry and cluster add-ons"""

from pathlib import Path
from typing import Dict, List, Optional

from rich.prompt import Confirm, Prompt

from localdev.commands.base import BaseCommand
from localdev.config import ClusterConfig
from localdev.engine.http_probe import HttpProbe
from localdev.engine.readiness import poll
from localdev.exceptions import CommandError, ConfigError
from localdev.tools.helm import REPOSITORIES

REQUIRED_TOOLS = ("docker", "k3d", "kubectl", "helm")

VOLUME_DIR = Path("k3dvol")

# The patched argocd-server service takes a few seconds to answer through ingress
ARGOCD_HTTP_ATTEMPTS = 6
ARGOCD_HTTP_INTERVAL = 5

# (prompt label, ClusterConfig field)
CONFIG_PROMPTS = (
    ("Cluster Name", "cluster_name"),
    ("Cluster Domain", "cluster_domain"),
    ("API Port", "api_port"),
    ("Servers (Masters)", "servers"),
    ("Agents (Workers)", "agents"),
    ("LoadBalancer HTTP Port", "http_port"),
    ("LoadBalancer HTTPS Port", "https_port"),
    ("Registry Port", "registry_port"),
)

COMPONENTS = (
    "Nginx Ingress Controller",
    "Kubernetes Dashboard",
    "ArgoCD",
    "Prometheus & Grafana Stack",
)

ARGOCD_SERVICE_PATCH = {
    "spec": {
        "ports": [
            {"name": "http", "port": 80, "targetPort": 8080},
            {"name": "https", "port": 443, "targetPort": 8080},
        ]
    }
}


class InfraSetupCommand(BaseCommand):
    """Create the local cluster and install ingress, dashboard, ArgoCD and monitoring

    The cluster and registry are always recreated: setup is meant to be
    re-run from scratch rather than reconciled.
    """

    def __init__(self, *args, interactive: bool = True, probe: Optional[HttpProbe] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.interactive = interactive
        self.probe = probe or HttpProbe()
        self.values_dir = self.settings.generated_dir / "helm-values"
        self.values: Dict[str, Path] = {}

    def execute(self):
        self.check_dependencies()
        self.configure()
        self.generate_helm_values()
        self.install_cluster()
        self.install_addons()

        self.reporter.header("Final Verification")
        self.kubectl.ensure_context(self.cluster.kube_context, self.reporter)
        self.reporter.ok("All components installed successfully")
        self.reporter.ok("Cluster is ready for use")

        self.verify_hosts_file()
        self.verify_argocd_access()
        self.show_summary()
        self.console.print("[bold green]Setup complete![/bold green]")

    def check_dependencies(self):
        self.require_tools(REQUIRED_TOOLS, required_for="infrastructure setup")
        self.require_docker_daemon()

        self.reporter.info("Adding Helm repositories...")
        for name, url in REPOSITORIES.items():
            if not self.helm.repo_add(name, url):
                self.reporter.warning(f"Failed to add {name} repo")
        if not self.helm.repo_update():
            self.reporter.warning("Failed to update helm repos")

    def _show_config(self):
        self.reporter.key_values("Cluster Configuration", [
            ("Cluster Name", self.cluster.cluster_name),
            ("Cluster Domain", self.cluster.cluster_domain),
            ("API Port", self.cluster.api_port),
            ("Servers (Masters)", self.cluster.servers),
            ("Agents (Workers)", self.cluster.agents),
            ("LoadBalancer HTTP Port", self.cluster.http_port),
            ("LoadBalancer HTTPS Port", self.cluster.https_port),
            ("Registry Port", self.cluster.registry_port),
        ])

    def configure(self):
        """Quick mode uses the resolved settings; otherwise prompt per field"""
        quick = True
        if self.interactive:
            quick = Confirm.ask(
                "Quick setup (use all defaults, install all components)?",
                default=True,
                console=self.console,
            )

        if quick:
            self.reporter.info("Quick setup mode - using configured values and installing all components")
            self._show_config()
            self.console.print("Components to be installed:")
            for component in COMPONENTS:
                self.console.print(f"  • {component}")
            return

        self.reporter.header("Cluster Configuration")
        values = self.cluster.model_dump()
        for label, field in CONFIG_PROMPTS:
            values[field] = Prompt.ask(label, default=str(values[field]), console=self.console)

        try:
            self.cluster = ClusterConfig(**values)
        except ValueError as e:
            raise ConfigError(str(e), source="interactive prompt")
        self.settings.cluster = self.cluster
        self.reporter.ok("Configuration complete")
        self.reporter.footer()

    def generate_helm_values(self):
        self.reporter.header("Generating Helm Values Files")
        for path in self.templates.write_helm_values(self.values_dir):
            self.values[path.stem] = path
            self.reporter.ok(f"Generated {path.name}")
        self.reporter.footer()

    def install_cluster(self):
        self.reporter.header("Creating PV local folder K3d")
        VOLUME_DIR.mkdir(parents=True, exist_ok=True)

        self.reporter.header("Creating K3D registry")
        self.k3d.registry_delete(self.cluster.registry_name)
        self.k3d.registry_create(self.cluster.registry_name, self.cluster.registry_port)

        self.reporter.header("Creating K3D cluster")
        self.k3d.cluster_delete(self.cluster.cluster_name)
        self.k3d.cluster_create(self.cluster, VOLUME_DIR)

        self.reporter.header("Setting kubectl context")
        context = self.cluster.kube_context
        if not self.kubectl.use_context(context):
            raise CommandError(["kubectl", "config", "use-context", context], 1,
                               action="Setting kubectl context")
        self.kubectl.verify_context(context)
        self.reporter.ok(f"Using kubectl context: {context}")

        info = self.kubectl.cluster_info()
        if not info.ok:
            raise CommandError(info.args, info.exit_code, info.stderr, action="Getting cluster info")
        self.reporter.raw(info.stdout)
        self.reporter.ok("Cluster connectivity verified")

        self.reporter.header("Creating PersistentVolume")
        self.kubectl.apply_yaml(self.templates.persistent_volume(), action="Creating PersistentVolume")
        self.reporter.raw(self.kubectl.get_table("pv"))
        self.reporter.footer()

    def install_addons(self):
        self.reporter.header("Installing All Components")

        self.install_ingress()

        self.add_host("dashboard")
        self.install_dashboard()

        self.add_host("argocd")
        self.install_argocd()

        for prefix in ("prometheus", "grafana", "alertmanager"):
            self.add_host(prefix)
        self.install_prometheus()

        self.reporter.ok("All components installed successfully")
        self.reporter.footer()

    def install_ingress(self):
        self.reporter.header("Installing Ingress")
        self.kubectl.ensure_context(self.cluster.kube_context, self.reporter)
        self.helm.upgrade_install(
            "ingress-nginx", "bitnami/nginx-ingress-controller",
            namespace="ingress-nginx", values=self.values["ingress-nginx"],
        )
        self.wait_ready(
            "Ingress controller", "ready", "pod",
            namespace="ingress-nginx",
            selector="app.kubernetes.io/component=controller",
            timeout="120s",
        )
        self.reporter.footer()

    def install_dashboard(self):
        self.reporter.header("Installing Dashboard")
        self.kubectl.ensure_context(self.cluster.kube_context, self.reporter)
        self.helm.upgrade_install(
            "kubernetes-dashboard", "kubernetes-dashboard/kubernetes-dashboard",
            namespace="kubernetes-dashboard", values=self.values["kubernetes-dashboard"],
        )

        # Already-exists errors are expected on re-runs
        self.kubectl.create_serviceaccount("dashboard-admin-sa", "kubernetes-dashboard")
        self.kubectl.create_clusterrolebinding(
            "dashboard-admin-sa", "cluster-admin", "kubernetes-dashboard:dashboard-admin-sa"
        )

        self.reporter.header("Dashboard Access Token:")
        token = self.kubectl.create_token("dashboard-admin-sa", "kubernetes-dashboard")
        self.reporter.raw(token or "Token not available yet")
        self.console.print(f"Dashboard URL: {self.cluster.url('dashboard')}")
        self.reporter.footer()

    def install_argocd(self):
        self.reporter.header("Installing ArgoCD")
        self.kubectl.ensure_context(self.cluster.kube_context, self.reporter)

        self.reporter.info("Installing ArgoCD with insecure configuration...")
        self.helm.upgrade_install(
            "argocd", "argo/argo-cd",
            namespace="argocd", values=self.values["argocd"], timeout="10m",
        )

        self.reporter.info("Waiting for ArgoCD server to be ready...")
        self.wait_ready(
            "ArgoCD server", "available", "deployment",
            namespace="argocd", selector="app.kubernetes.io/name=argocd-server", timeout="300s",
        )
        self.wait_ready(
            "ArgoCD pods", "ready", "pod",
            namespace="argocd", selector="app.kubernetes.io/name=argocd-server",
            timeout="120s", required=False,
        )

        if self.kubectl.exists("ingress", namespace="argocd"):
            self.reporter.raw(self.kubectl.get_table("ingress", namespace="argocd"))
        else:
            self.reporter.warning("ArgoCD ingress not found")

        self.reporter.info("Fixing ArgoCD service configuration...")
        if not self.kubectl.patch("service", "argocd-server", "argocd", ARGOCD_SERVICE_PATCH):
            self.reporter.warning("Could not patch ArgoCD service")

        password = self.kubectl.secret_value("argocd-initial-admin-secret", "password", "argocd")
        self.console.print(f"ArgoCD Initial Password: {password or 'Password not available yet'}")

        self.reporter.ok("ArgoCD installed successfully")
        self.reporter.ok(f"Access ArgoCD at: {self.cluster.url('argocd')}")
        self.reporter.ok("Username: admin")
        self.reporter.footer()

    def install_prometheus(self):
        self.reporter.header("Installing Prometheus & Grafana")
        self.kubectl.ensure_context(self.cluster.kube_context, self.reporter)

        self.reporter.info("Installing Prometheus stack...")
        try:
            self.helm.upgrade_install(
                "prometheus", "prometheus-community/kube-prometheus-stack",
                namespace="monitoring", values=self.values["prometheus-stack"], timeout="10m",
            )
        except CommandError:
            self.reporter.error("Failed to install Prometheus Stack")
            self.reporter.info("Checking for any partial installations...")
            self.reporter.raw(self.kubectl.get_table("pods", namespace="monitoring"))
            raise

        self.reporter.info("Waiting for Prometheus stack pods to be ready...")
        for name in ("grafana", "prometheus"):
            self.wait_ready(
                f"{name.title()} pod", "ready", "pod",
                namespace="monitoring", selector=f"app.kubernetes.io/name={name}",
                timeout="300s", required=False,
            )

        self.console.print(f"Grafana URL: {self.cluster.url('grafana')}")
        password = self.kubectl.secret_value("prometheus-grafana", "admin-password", "monitoring")
        self.console.print(f"Grafana admin password: {password or 'Password not available yet'}")
        self.reporter.footer()

    def verify_hosts_file(self) -> List[str]:
        """Report ingress hosts missing from the hosts file"""
        self.reporter.header("Verifying Hosts File Entries")
        missing = []
        for prefix in ("dashboard", "argocd", "grafana"):
            host = self.cluster.host(prefix)
            if self.hosts.contains(host):
                self.reporter.ok(f"{host} found in {self.hosts.path}")
            else:
                missing.append(host)

        if missing:
            self.reporter.warning(f"The following hosts are missing from {self.hosts.path}:")
            for host in missing:
                self.console.print(f"  - {host}")
            self.console.print("Please add them manually or run the setup again.")
        else:
            self.reporter.ok(f"All required hosts are present in {self.hosts.path}")
        self.reporter.footer()
        return missing

    def verify_argocd_access(self) -> bool:
        self.reporter.header("Verifying ArgoCD Access")
        self.reporter.raw(self.kubectl.get_table(
            "pods", namespace="argocd", selector="app.kubernetes.io/name=argocd-server"
        ))

        url = self.cluster.url("argocd")
        statuses: List[str] = []

        def argocd_responds() -> bool:
            statuses.append(self.probe.status_code(url))
            return statuses[-1] in ("200", "302")

        accessible = poll(argocd_responds, ARGOCD_HTTP_ATTEMPTS, ARGOCD_HTTP_INTERVAL, sleep=self.sleep)
        if accessible:
            self.reporter.ok("ArgoCD is accessible via HTTP")
        else:
            self.reporter.warning(
                f"ArgoCD not accessible via HTTP (HTTP {statuses[-1]} after {len(statuses)} attempts)"
            )
            self.console.print("Troubleshooting steps:")
            self.console.print("1. Check if ArgoCD pods are running: kubectl get pods -n argocd")
            self.console.print("2. Check ArgoCD service: kubectl get service argocd-server -n argocd")
            self.console.print("3. Check ArgoCD ingress: kubectl describe ingress -n argocd")
            self.console.print("4. Try port-forward: kubectl port-forward service/argocd-server -n argocd 8080:80")
        self.reporter.footer()
        return accessible

    def show_summary(self):
        self.reporter.header("SETUP SUMMARY")
        c = self.cluster
        self.reporter.key_values("Cluster Information", [
            ("Cluster Name", c.cluster_name),
            ("Domain", c.cluster_domain),
            ("API Port", c.api_port),
            ("HTTP Port", c.http_port),
            ("HTTPS Port", c.https_port),
            ("Registry", c.registry_address),
            ("Kubectl Context", self.kubectl.current_context() or "none"),
        ])
        self.reporter.key_values("Access URLs", [
            ("Kubernetes Dashboard", c.url("dashboard")),
            ("ArgoCD", c.url("argocd")),
            ("Grafana", c.url("grafana")),
        ])

        argocd_password = self.kubectl.secret_value("argocd-initial-admin-secret", "password", "argocd")
        grafana_password = self.kubectl.secret_value("prometheus-grafana", "admin-password", "monitoring")
        self.reporter.key_values("Credentials", [
            ("Dashboard", "token: kubectl -n kubernetes-dashboard create token dashboard-admin-sa"),
            ("ArgoCD", f"admin / {argocd_password or '(not available yet)'}"),
            ("Grafana", f"admin / {grafana_password or '(not available yet)'}"),
        ])

        self.console.print("\n[bold]Registry Usage:[/bold]")
        self.console.print(f"  • Push image: docker tag myimage:latest {c.registry_address}/myimage:latest")
        self.console.print(f"  • Pull image: docker pull {c.registry_address}/myimage:latest")
        self.console.print("\n[bold]Useful Commands:[/bold]")
        self.console.print(f"  • Switch context: kubectl config use-context {c.kube_context}")
        self.console.print("  • View pods: kubectl get pods --all-namespaces")
        self.console.print(f"  • Delete cluster: k3d cluster delete {c.cluster_name}")
        self.reporter.footer()
