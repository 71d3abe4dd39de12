"""localdev Exception Classes

Base exception hierarchy for the local cluster harness.
All custom exceptions include help_text for actionable user guidance.
"""

from typing import List, Optional


class LocalDevError(Exception):
    """Base exception for all localdev errors

    All localdev exceptions inherit from this class so the CLI can render
    them uniformly and exit with a non-zero status.

    Attributes:
        message: Human-readable error description
        help_text: Optional actionable guidance for resolving the error
    """

    def __init__(self, message: str, help_text: Optional[str] = None):
        """Initialize error with message and optional help text

        Args:
            message: Error description
            help_text: Optional remediation guidance
        """
        self.message = message
        self.help_text = help_text
        super().__init__(message)

    def __str__(self) -> str:
        """Format error message with help text if available"""
        if self.help_text:
            return f"{self.message}\n\nHelp: {self.help_text}"
        return self.message


class ConfigError(LocalDevError):
    """Raised when cluster or application configuration is invalid"""

    def __init__(self, reason: str, source: Optional[str] = None):
        message = f"Invalid configuration: {reason}"
        help_text = "Check localdev.yaml and the CLUSTER_* / HTTP_PORT / HTTPS_PORT environment variables"
        if source:
            help_text += f"\n\nValue came from: {source}"
        super().__init__(message, help_text)
        self.reason = reason
        self.source = source


INSTALL_HINTS = {
    "docker": "Install Docker Desktop (macOS) or run: sudo apt install -y docker.io (Linux)",
    "k3d": "Install with: curl -s https://raw.githubusercontent.com/k3d-io/k3d/main/install.sh | bash",
    "kubectl": "Install from: https://kubernetes.io/docs/tasks/tools/",
    "helm": "Install with: curl https://raw.githubusercontent.com/helm/helm/main/scripts/get-helm-3 | bash",
    "argocd": (
        "Install with: brew install argocd (macOS) or download "
        "https://github.com/argoproj/argo-cd/releases/latest/download/argocd-linux-amd64 (Linux)"
    ),
    "go": "Install with: brew install go (macOS) or sudo apt install golang-go (Linux)",
    "jq": "Install with: brew install jq (macOS) or apt-get install jq (Linux)",
}


class RuntimeDependencyError(LocalDevError):
    """Raised when required external tools are missing

    The harness delegates every operation to external binaries
    (docker, k3d, kubectl, helm, argocd, go), so a missing tool is fatal.
    """

    def __init__(
        self,
        tool_name: str,
        required_for: Optional[str] = None,
        install_instructions: Optional[str] = None
    ):
        """Initialize runtime dependency error

        Args:
            tool_name: Name of the missing tool
            required_for: What operation requires this tool
            install_instructions: Optional installation guidance
        """
        message = f"Required tool '{tool_name}' not found in PATH"

        if required_for:
            message += f" (required for {required_for})"

        help_text = f"Install '{tool_name}' before running this command"

        if install_instructions:
            help_text += f"\n\n{install_instructions}"
        elif tool_name in INSTALL_HINTS:
            help_text += f"\n\n{INSTALL_HINTS[tool_name]}"

        super().__init__(message, help_text)
        self.tool_name = tool_name
        self.required_for = required_for


class DockerDaemonError(LocalDevError):
    """Raised when the docker binary exists but the daemon is not reachable"""

    def __init__(self):
        super().__init__(
            "Docker daemon is not running",
            "Start Docker Desktop (macOS/Windows) or run: sudo systemctl start docker (Linux)"
        )


class CommandError(LocalDevError):
    """Raised when an external command exits with a non-zero status"""

    def __init__(
        self,
        command: List[str],
        exit_code: int,
        stderr: str = "",
        action: Optional[str] = None
    ):
        """Initialize command error

        Args:
            command: Argument vector that failed
            exit_code: Process exit status
            stderr: Captured standard error (may be empty when streamed)
            action: Human description of what the command was doing
        """
        what = action or f"Command '{' '.join(command)}'"
        message = f"{what} failed with exit code {exit_code}"

        help_text = f"Re-run manually to inspect: {' '.join(command)}"
        if stderr.strip():
            help_text = f"{stderr.strip()}\n\n{help_text}"

        super().__init__(message, help_text)
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        self.action = action


class ReadinessTimeoutError(LocalDevError):
    """Raised when a required readiness wait does not succeed in time"""

    def __init__(self, target: str, timeout: str, namespace: Optional[str] = None):
        where = f" in namespace '{namespace}'" if namespace else ""
        message = f"{target}{where} not ready within {timeout}"

        help_text = "Inspect the workload with: kubectl get pods"
        if namespace:
            help_text += f" -n {namespace}"
            help_text += f"\nRecent events: kubectl get events -n {namespace} --sort-by='.lastTimestamp'"

        super().__init__(message, help_text)
        self.target = target
        self.timeout = timeout
        self.namespace = namespace


class ClusterNotFoundError(LocalDevError):
    """Raised when the k3d cluster is missing or stopped"""

    def __init__(self, cluster_name: str, running: bool = False):
        if running:
            message = f"K3D cluster '{cluster_name}' is not running properly"
            help_text = f"Start the cluster with: k3d cluster start {cluster_name}"
        else:
            message = f"K3D cluster '{cluster_name}' not found"
            help_text = "Run the infrastructure setup first: localdev infra-setup (or make infra_setup)"
        super().__init__(message, help_text)
        self.cluster_name = cluster_name


class ContextError(LocalDevError):
    """Raised when the kubectl context cannot be switched or verified"""

    def __init__(self, expected: str, actual: Optional[str] = None, available: Optional[str] = None):
        if actual:
            message = f"Context verification failed. Expected: {expected}, Got: {actual}"
        else:
            message = f"Failed to switch to context {expected}"

        help_text = f"Switch manually with: kubectl config use-context {expected}"
        if available:
            help_text += f"\n\nAvailable contexts:\n{available}"

        super().__init__(message, help_text)
        self.expected = expected
        self.actual = actual


class BuildError(LocalDevError):
    """Raised when the sample application cannot be built or packaged"""

    def __init__(self, reason: str, help_text: Optional[str] = None):
        super().__init__(f"Build failed: {reason}", help_text or "Run: localdev app-build --verbose")
        self.reason = reason


class SmokeTestFailure(LocalDevError):
    """Raised when one or more smoke test checks fail"""

    def __init__(self, failed: List[str], total: int):
        message = f"{len(failed)}/{total} smoke test checks failed"
        help_text = "Failed checks:\n" + "\n".join(f"  - {name}" for name in failed)
        help_text += "\n\nRun 'localdev troubleshoot' for a diagnostic report"
        super().__init__(message, help_text)
        self.failed = failed
        self.total = total
