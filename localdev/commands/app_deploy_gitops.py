"""GitOps deployment through an ArgoCD Application"""

from localdev.commands.app_build import BINARY_NAME, AppBuildCommand
from localdev.commands.app_deploy import ManifestMixin
from localdev.commands.base import BaseCommand
from localdev.engine.readiness import SyncOutcome, SyncWatcher
from localdev.exceptions import BuildError, ClusterNotFoundError, LocalDevError

REQUIRED_TOOLS = ("kubectl", "docker", "k3d", "argocd")

ARGOCD_LOCAL_PORT = 8080
APPLICATION_SETTLE_SECONDS = 10


class AppDeployGitOpsCommand(ManifestMixin, BaseCommand):
    """Register the app with ArgoCD and wait for it to sync and become ready

    The ArgoCD API is reached through a ``kubectl port-forward`` that lives
    for the rest of the command and is always torn down on exit.
    """

    def execute(self):
        self.reporter.banner("Music App GitOps Deployment Script")
        self.console.print("This will deploy the music app using ArgoCD GitOps\n")

        self.check_dependencies()
        self.check_cluster()
        self.reporter.step("Checking kubectl context...")
        context = self.kubectl.ensure_context(self.cluster.kube_context, self.reporter)
        self.reporter.info(f"Using kubectl context: {context}")
        self.check_argocd()

        with self.kubectl.port_forward(
            "svc/argocd-server", f"{ARGOCD_LOCAL_PORT}:80", "argocd", sleep=self.sleep
        ):
            self.login()
            self.build_application()

            self.reporter.step("Preparing manifests for GitOps...")
            self.prepare_manifests()
            self.reporter.info("Manifests prepared successfully")

            self.deploy_with_argocd()
            self.wait_for_application()

            self.reporter.step("Setting up host entry...")
            self.add_host(self.app.host_prefix)
            self.show_final_status()

    def check_dependencies(self):
        self.reporter.step("Checking dependencies...")
        self.require_tools(REQUIRED_TOOLS, required_for="GitOps deployment")
        if not self.go.installed():
            self.reporter.warning("Go is not installed. Will use existing server binary if available.")
        self.require_docker_daemon()
        self.reporter.info("All dependencies are available")

    def check_cluster(self):
        self.reporter.step("Checking K3D cluster...")
        name = self.cluster.cluster_name
        if not self.k3d.cluster_exists(name):
            raise ClusterNotFoundError(name)
        if not self.k3d.cluster_running(name):
            raise ClusterNotFoundError(name, running=True)
        self.reporter.info("K3D cluster is running")

    def check_argocd(self):
        self.reporter.step("Checking ArgoCD...")
        if not self.kubectl.namespace_exists("argocd"):
            raise LocalDevError(
                "ArgoCD namespace not found",
                "Run the infrastructure setup first: localdev infra-setup",
            )
        self.reporter.info("Waiting for ArgoCD to be ready...")
        self.wait_ready(
            "ArgoCD server", "ready", "pod",
            namespace="argocd", selector="app.kubernetes.io/name=argocd-server",
        )

    def login(self):
        self.reporter.info("Logging into ArgoCD...")
        password = self.kubectl.secret_value("argocd-initial-admin-secret", "password", "argocd")
        if not password:
            raise LocalDevError(
                "ArgoCD initial admin password not available",
                "Check the secret: kubectl -n argocd get secret argocd-initial-admin-secret",
            )
        self.argocd.login(f"localhost:{ARGOCD_LOCAL_PORT}", password)
        self.reporter.info("ArgoCD is ready and authenticated")

    def build_application(self):
        """Build and import the image, reusing a prebuilt binary when Go is absent"""
        self.reporter.step("Building the music application...")
        builder = AppBuildCommand(
            self.settings, self.console, runner=self.runner,
            hosts_path=self.hosts.path, sleep=self.sleep,
        )

        if self.go.installed():
            binary = builder.build_binary()
        else:
            binary = builder.src_dir / BINARY_NAME
            if not binary.is_file():
                raise BuildError(
                    "server binary not found and Go is not installed",
                    help_text="Install Go or build the server manually",
                )
        builder.build_image(binary)
        builder.import_image()
        self.reporter.info("Application built and loaded successfully")

    def deploy_with_argocd(self) -> SyncOutcome:
        self.reporter.step("Deploying with ArgoCD...")
        self.reporter.info("Creating ArgoCD Application...")
        self.kubectl.apply_yaml(self.templates.application(), action="Creating ArgoCD Application")

        self.reporter.info("Waiting for ArgoCD to sync the application...")
        self.sleep(APPLICATION_SETTLE_SECONDS)

        watcher = SyncWatcher(
            get_status=lambda: self.argocd.sync_status(self.app.name),
            trigger_sync=lambda: self.argocd.app_sync(self.app.name),
            reporter=self.reporter,
            sleep=self.sleep,
        )
        return watcher.wait()

    def wait_for_application(self):
        self.reporter.step("Waiting for application to be ready...")
        ns = self.app.namespace
        self.wait_ready(f"Namespace {ns}", "active", f"namespace/{ns}", timeout="60s")
        self.reporter.info("Waiting for Redis to be ready...")
        self.wait_ready("Redis", "ready", "pod", namespace=ns, selector="app=redis")
        self.reporter.info("Waiting for music app to be ready...")
        self.wait_ready("Music app", "ready", "pod", namespace=ns, selector=f"app={self.app.name}")
        self.reporter.info("Application is ready")

    def show_final_status(self):
        self.reporter.step("Deployment completed successfully!")
        c = self.cluster
        password = self.kubectl.secret_value("argocd-initial-admin-secret", "password", "argocd")
        self.reporter.key_values("Music App GitOps Deployment Summary", [
            ("HTTPS URL", c.url(self.app.host_prefix, https=True)),
            ("HTTP URL", c.url(self.app.host_prefix)),
            ("API Endpoint", "/api/v1/music-albums?key=<INT>"),
            ("ArgoCD URL", c.url("argocd")),
            ("ArgoCD Login", f"admin / {password or '(not available)'}"),
            ("Redis Password", self.app.redis_password.get_secret_value()),
        ])
        self.console.print("[bold]Management Commands:[/bold]")
        self.console.print(f"  Check ArgoCD status: argocd app get {self.app.name}")
        self.console.print(f"  Sync application: argocd app sync {self.app.name}")
        self.console.print(f"  View logs: kubectl logs -f deployment/{self.app.name} -n {self.app.namespace}")
        self.console.print(f"  Check pods: kubectl get pods -n {self.app.namespace}")
