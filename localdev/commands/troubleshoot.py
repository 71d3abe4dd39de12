"""Diagnostic report for a failing application deployment"""

from localdev.commands.base import BaseCommand

COMMON_SOLUTIONS = """If you're experiencing issues, try these solutions in order:

1. Build the application first:
   localdev app-build

2. Then deploy:
   localdev app-deploy

3. Or run the complete workflow:
   localdev all

4. If pods are stuck, check events:
   kubectl get events -n {namespace} --sort-by='.lastTimestamp'

5. If image pull issues, rebuild and reload:
   localdev rebuild

6. Clean up and start fresh:
   localdev clean-all && localdev all"""


class TroubleshootCommand(BaseCommand):
    """Walk cluster, image, context and workload state and print remedies

    Stops early when the cluster itself is missing, since nothing below it
    can be inspected.
    """

    def execute(self):
        self.reporter.banner("Music App Deployment Troubleshooting")
        name = self.cluster.cluster_name
        ns = self.app.namespace

        self.reporter.section("1. Checking K3D Cluster Status")
        if not self.runner.which("k3d"):
            self.reporter.error("k3d is not installed")
            return
        if not self.k3d.cluster_exists(name):
            self.reporter.error(f"K3D cluster '{name}' does not exist")
            self.console.print("Create with: localdev infra-setup")
            return
        if not self.k3d.cluster_running(name):
            self.reporter.error("Cluster is not running")
            self.console.print(f"Start with: k3d cluster start {name}")
            return
        self.reporter.success(f"K3D cluster '{name}' exists and is running")

        self.reporter.section("2. Checking Docker Image")
        if self.docker.image_exists(self.app.image):
            self.reporter.success(f"Docker image '{self.app.image}' exists locally")
        else:
            self.reporter.warning(f"Docker image '{self.app.image}' not found locally")
            self.console.print("Build with: localdev app-build")

        self.reporter.section("3. Checking Kubernetes Context")
        current = self.kubectl.current_context()
        if current == self.cluster.kube_context:
            self.reporter.success("Kubernetes context is set to K3D cluster")
        else:
            self.reporter.warning("Kubernetes context may not be set correctly")
            self.console.print(f"Current context: {current or 'none'}")
            self.console.print(f"Expected: {self.cluster.kube_context}")

        self.reporter.section("4. Checking Namespace and Resources")
        if self.kubectl.namespace_exists(ns):
            self.reporter.success(f"Namespace '{ns}' exists")
            for title, kind in (("Pod", "pods"), ("Service", "svc"), ("Ingress", "ingress")):
                self.reporter.info(f"{title} Status:")
                self.reporter.raw(self.kubectl.get_table(kind, namespace=ns))
        else:
            self.reporter.warning(f"Namespace '{ns}' does not exist")
            self.console.print("Deploy with: localdev app-deploy")

        self.reporter.section("5. Checking Pod Details (if any exist)")
        selector = f"app={self.app.name}"
        if self.kubectl.pod_phases(ns, selector):
            self.reporter.info("Music App Pod Details:")
            self.reporter.raw(self.kubectl.describe("pods", ns, selector))
            self.reporter.info("Music App Pod Logs:")
            self.reporter.raw(self.kubectl.logs(ns, f"-l {selector}", tail=20).stdout)
            self.reporter.info("Recent Events:")
            self.reporter.raw(self.kubectl.events(ns))
        else:
            self.reporter.warning("No music app pods found")

        self.reporter.section("6. Common Solutions")
        self.console.print(COMMON_SOLUTIONS.format(namespace=ns), markup=False)
