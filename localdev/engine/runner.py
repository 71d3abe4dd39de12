"""Command runner for the external tools the harness drives"""

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from localdev.exceptions import CommandError

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124
NOT_FOUND_EXIT_CODE = 127

SENSITIVE_FLAGS = ("--password", "--token", "-a")
REDACTED = "***REDACTED***"


@dataclass
class CommandResult:
    """Result from a single external command"""
    args: List[str]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def redact(args: Sequence[str]) -> List[str]:
    """Mask values that follow password-style flags"""
    redacted = []
    hide_next = False
    for arg in args:
        if hide_next:
            redacted.append(REDACTED)
            hide_next = False
            continue
        if arg in SENSITIVE_FLAGS:
            hide_next = True
        elif any(arg.startswith(f"{flag}=") for flag in SENSITIVE_FLAGS if flag.startswith("--")):
            arg = arg.split("=", 1)[0] + "=" + REDACTED
        redacted.append(arg)
    return redacted


class CommandRunner:
    """Execute external commands synchronously and record them

    Every invocation is logged at DEBUG. Output is captured unless
    ``capture=False``, in which case it streams to the terminal (used for
    long Helm / docker operations so the user sees progress).
    """

    def __init__(self, working_dir: Optional[Path] = None, log_dir: Optional[Path] = None):
        """Initialize runner

        Args:
            working_dir: Working directory for commands (defaults to current dir)
            log_dir: Directory for the session command log (disabled when None)
        """
        self.working_dir = working_dir or Path.cwd()
        self.log_dir = log_dir
        self._log_path: Optional[Path] = None

    def which(self, tool: str) -> Optional[str]:
        return shutil.which(tool)

    def run(
        self,
        args: Sequence[str],
        check: bool = False,
        capture: bool = True,
        input: Optional[str] = None,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[Path] = None,
        action: Optional[str] = None,
        sensitive: bool = False,
    ) -> CommandResult:
        """Run a command to completion

        Args:
            args: Argument vector (never passed through a shell)
            check: Raise CommandError on non-zero exit
            capture: Capture stdout/stderr instead of streaming them
            input: Text written to the process stdin
            timeout: Seconds before the process is killed
            env: Extra environment variables layered over os.environ
            cwd: Directory to run in (defaults to the runner working dir)
            action: Human description used in error messages
            sensitive: Keep stdout out of the command log (tokens, passwords)

        Returns:
            CommandResult with exit code and captured output

        Raises:
            CommandError: If check is True and the command failed
        """
        args = [str(a) for a in args]
        logger.debug("$ %s", shlex.join(redact(args)))

        full_env = None
        if env:
            full_env = os.environ.copy()
            full_env.update(env)

        try:
            proc = subprocess.run(
                args,
                cwd=cwd or self.working_dir,
                env=full_env,
                input=input,
                capture_output=capture,
                text=True,
                timeout=timeout,
            )
            result = CommandResult(
                args=args,
                exit_code=proc.returncode,
                stdout=proc.stdout or "",
                stderr=proc.stderr or "",
            )
        except FileNotFoundError:
            result = CommandResult(
                args=args,
                exit_code=NOT_FOUND_EXIT_CODE,
                stdout="",
                stderr=f"{args[0]}: command not found",
            )
        except subprocess.TimeoutExpired:
            result = CommandResult(
                args=args,
                exit_code=TIMEOUT_EXIT_CODE,
                stdout="",
                stderr=f"Command timed out after {timeout} seconds",
            )

        self._log_execution(result, sensitive=sensitive)

        if not result.ok:
            if check:
                logger.warning("%s exited with %s: %s", args[0], result.exit_code, result.stderr.strip())
                raise CommandError(args, result.exit_code, result.stderr, action=action)
            # Unchecked calls are existence tests; a non-zero exit is an answer
            logger.debug("exit %s: %s", result.exit_code, result.stderr.strip())

        return result

    def start_background(self, args: Sequence[str]) -> subprocess.Popen:
        """Start a long-running helper process (e.g. kubectl port-forward)"""
        args = [str(a) for a in args]
        logger.debug("$ %s &", shlex.join(redact(args)))
        return subprocess.Popen(
            args,
            cwd=self.working_dir,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    def _log_execution(self, result: CommandResult, sensitive: bool = False):
        """Append the command and its output to the session log"""
        if self.log_dir is None:
            return

        if self._log_path is None:
            timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
            self._log_path = self.log_dir / f"{timestamp}-commands.log"

        stdout = REDACTED if sensitive else result.stdout
        entry = (
            f"=== {datetime.now().isoformat()} ===\n"
            f"$ {shlex.join(redact(result.args))}\n"
            f"Exit Code: {result.exit_code}\n"
            f"--- stdout ---\n{stdout}\n"
            f"--- stderr ---\n{result.stderr}\n"
        )

        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self._log_path.open("a") as f:
                f.write(entry)
        except OSError as e:
            # Logging must not break the operation being logged
            logger.warning("Failed to write command log: %s", e)
