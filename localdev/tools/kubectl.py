"""kubectl wrapper"""

import base64
import binascii
import json
import logging
import signal
import subprocess
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from localdev.engine.runner import CommandResult, CommandRunner
from localdev.exceptions import ContextError

logger = logging.getLogger(__name__)


class Kubectl:
    """Typed helpers over the kubectl invocations the harness needs"""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def _run(self, *args, **kwargs) -> CommandResult:
        return self.runner.run(["kubectl", *args], **kwargs)

    # Contexts

    def current_context(self) -> Optional[str]:
        result = self._run("config", "current-context")
        return result.stdout.strip() if result.ok and result.stdout.strip() else None

    def get_contexts(self) -> str:
        return self._run("config", "get-contexts").stdout

    def use_context(self, context: str) -> bool:
        return self._run("config", "use-context", context).ok

    def ensure_context(self, expected: str, reporter=None) -> str:
        """Switch to the expected context if another one is active

        Raises:
            ContextError: If the switch fails
        """
        current = self.current_context()
        if current == expected:
            if reporter:
                reporter.ok(f"Using correct context: {current}")
            return current

        if reporter:
            reporter.warning(f"Using incorrect kubectl context: {current}")
            reporter.info(f"Switching to correct context: {expected}")
        if not self.use_context(expected):
            raise ContextError(expected, available=self.get_contexts())
        if reporter:
            reporter.ok(f"Switched to context: {expected}")
        return expected

    def verify_context(self, expected: str) -> str:
        """Raise unless the active context is exactly ``expected``"""
        current = self.current_context()
        if current != expected:
            raise ContextError(expected, actual=current or "none")
        return current

    def cluster_info(self) -> CommandResult:
        return self._run("cluster-info")

    def is_reachable(self) -> bool:
        return self.cluster_info().ok

    # Apply / create

    def apply_file(self, path: Path, check: bool = True) -> CommandResult:
        return self._run("apply", "-f", str(path), check=check, action=f"Applying {Path(path).name}")

    def apply_yaml(self, manifest: str, check: bool = True, action: Optional[str] = None) -> CommandResult:
        return self._run("apply", "-f", "-", input=manifest, check=check, action=action)

    def configmap_from_file(self, name: str, key: str, path: Path, namespace: str) -> str:
        """Render a ConfigMap manifest client-side without touching the cluster"""
        result = self._run(
            "create", "configmap", name,
            f"--from-file={key}={path}",
            "-n", namespace,
            "--dry-run=client", "-o", "yaml",
            check=True,
            action=f"Generating ConfigMap {name}",
        )
        return result.stdout

    def create_serviceaccount(self, name: str, namespace: str) -> bool:
        return self._run("create", "serviceaccount", name, "--namespace", namespace).ok

    def create_clusterrolebinding(self, name: str, clusterrole: str, serviceaccount: str) -> bool:
        return self._run(
            "create", "clusterrolebinding", name,
            f"--clusterrole={clusterrole}",
            f"--serviceaccount={serviceaccount}",
        ).ok

    def create_token(self, serviceaccount: str, namespace: str) -> Optional[str]:
        result = self._run("-n", namespace, "create", "token", serviceaccount, sensitive=True)
        return result.stdout.strip() if result.ok else None

    def patch(self, kind: str, name: str, namespace: str, patch: Dict[str, Any]) -> bool:
        return self._run("patch", kind, name, "-n", namespace, "-p", json.dumps(patch)).ok

    # Waits

    def wait(
        self,
        condition: str,
        resource: str,
        namespace: Optional[str] = None,
        selector: Optional[str] = None,
        timeout: str = "300s",
    ) -> bool:
        """Run ``kubectl wait`` and report whether the condition was met"""
        args = ["wait", f"--for=condition={condition}", resource]
        if selector:
            args += ["-l", selector]
        if namespace:
            args += ["-n", namespace]
        args.append(f"--timeout={timeout}")
        return self._run(*args, capture=False).ok

    # Reads

    def exists(self, kind: str, name: Optional[str] = None, namespace: Optional[str] = None) -> bool:
        args = ["get", kind]
        if name:
            args.append(name)
        if namespace:
            args += ["-n", namespace]
        result = self._run(*args)
        if not result.ok:
            return False
        # `kubectl get ingress -n x` succeeds with "No resources found" on stderr
        return bool(result.stdout.strip())

    def namespace_exists(self, namespace: str) -> bool:
        return self.exists("namespace", namespace)

    def get_table(self, kind: str, namespace: Optional[str] = None, selector: Optional[str] = None) -> str:
        args = ["get", kind]
        if namespace:
            args += ["-n", namespace]
        if selector:
            args += ["-l", selector]
        result = self._run(*args)
        return result.stdout if result.ok else result.stderr

    def pod_phases(self, namespace: str, selector: Optional[str] = None) -> List[str]:
        """Return the phase of every pod matching the selector"""
        args = ["get", "pods", "-n", namespace, "--no-headers"]
        if selector:
            args += ["-l", selector]
        result = self._run(*args)
        if not result.ok:
            return []
        phases = []
        for line in result.stdout.splitlines():
            columns = line.split()
            if len(columns) >= 3:
                phases.append(columns[2])
        return phases

    def secret_value(self, secret: str, key: str, namespace: str) -> Optional[str]:
        """Read and base64-decode a single secret field"""
        result = self._run(
            "-n", namespace, "get", "secret", secret,
            "-o", f"jsonpath={{.data.{key}}}",
            sensitive=True,
        )
        if not result.ok or not result.stdout.strip():
            return None
        try:
            return base64.b64decode(result.stdout.strip()).decode()
        except (binascii.Error, UnicodeDecodeError):
            return None

    def describe(self, kind: str, namespace: str, selector: Optional[str] = None) -> str:
        args = ["describe", kind, "-n", namespace]
        if selector:
            args += ["-l", selector]
        return self._run(*args).stdout

    def events(self, namespace: str) -> str:
        return self._run("get", "events", "-n", namespace, "--sort-by=.lastTimestamp").stdout

    def logs(self, namespace: str, target: str, follow: bool = False, tail: Optional[int] = None) -> CommandResult:
        args = ["logs", "-n", namespace]
        if follow:
            args.append("-f")
        if tail is not None:
            args.append(f"--tail={tail}")
        args += target.split()
        return self._run(*args, capture=not follow)

    def exec(self, namespace: str, target: str, command: List[str]) -> CommandResult:
        return self._run("exec", target, "-n", namespace, "--", *command)

    # Mutations

    def delete_namespace(self, namespace: str, force: bool = False) -> CommandResult:
        args = ["delete", "namespace", namespace]
        if force:
            args += ["--force", "--grace-period=0"]
        return self._run(*args, capture=False)

    def scale(self, deployment: str, replicas: int, namespace: str) -> CommandResult:
        return self._run(
            "scale", f"deployment/{deployment}", f"--replicas={replicas}", "-n", namespace,
            check=True, action=f"Scaling {deployment}",
        )

    def port_forward(self, target: str, ports: str, namespace: str, sleep=time.sleep) -> "PortForward":
        return PortForward(self.runner, ["kubectl", "port-forward", target, ports, "-n", namespace], sleep=sleep)


class PortForward:
    """Background ``kubectl port-forward`` bound to a ``with`` block

    The process is terminated on normal exit, on exceptions and when
    SIGTERM arrives while the block is active.
    """

    def __init__(self, runner: CommandRunner, args: List[str], settle_seconds: float = 3, sleep=time.sleep):
        self.runner = runner
        self.args = args
        self.settle_seconds = settle_seconds
        self.sleep = sleep
        self.process: Optional[subprocess.Popen] = None
        self._original_sigterm_handler = None

    def __enter__(self) -> "PortForward":
        self.process = self.runner.start_background(self.args)
        try:
            self._original_sigterm_handler = signal.signal(signal.SIGTERM, self._signal_handler)
            # Give kubectl time to bind the local port
            self.sleep(self.settle_seconds)
        except BaseException:
            self.stop()
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def stop(self):
        """Terminate the port-forward (idempotent)"""
        if self.running:
            self.process.terminate()
            try:
                self.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.process.kill()
            logger.debug("Stopped port-forward: %s", " ".join(self.args))
        self.process = None
        if self._original_sigterm_handler is not None:
            signal.signal(signal.SIGTERM, self._original_sigterm_handler)
            self._original_sigterm_handler = None

    def _signal_handler(self, signum, frame):
        self.stop()
        raise SystemExit(128 + signum)
