"""Shared fixtures: a scripted CommandRunner and quiet settings"""

from pathlib import Path
from typing import List, Optional, Sequence

import pytest
from rich.console import Console

from localdev.config import AppConfig, ClusterConfig, Settings
from localdev.engine.runner import CommandResult, CommandRunner
from localdev.exceptions import CommandError


class FakeProcess:
    """Stand-in for the Popen returned by start_background"""

    def __init__(self):
        self.returncode = None
        self.terminated = False

    def poll(self):
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15

    def kill(self):
        self.returncode = -9

    def wait(self, timeout=None):
        return self.returncode


class FakeRunner(CommandRunner):
    """Records every invocation and answers from scripted responses

    Unscripted commands succeed with empty output. Later ``on()`` calls take
    precedence over earlier ones for the same command.
    """

    def __init__(self, missing: Sequence[str] = ()):
        super().__init__()
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self.sensitive: List[List[str]] = []
        self.background: List[List[str]] = []
        self.processes: List[FakeProcess] = []
        self.missing = set(missing)
        self._responses = []

    def on(self, *prefix, contains: Sequence[str] = (), exit_code=0, stdout="", stderr=""):
        self._responses.insert(0, (list(prefix), list(contains), exit_code, stdout, stderr))
        return self

    def which(self, tool):
        return None if tool in self.missing else f"/usr/bin/{tool}"

    def run(
        self, args, check=False, capture=True, input=None, timeout=None, env=None, cwd=None, action=None,
        sensitive=False,
    ):
        args = [str(a) for a in args]
        self.calls.append(args)
        self.inputs.append(input)
        if sensitive:
            self.sensitive.append(args)

        result = CommandResult(args, 0, "", "")
        for prefix, contains, exit_code, stdout, stderr in self._responses:
            if args[:len(prefix)] == prefix and all(tok in args for tok in contains):
                result = CommandResult(args, exit_code, stdout, stderr)
                break

        if check and not result.ok:
            raise CommandError(args, result.exit_code, result.stderr, action=action)
        return result

    def start_background(self, args):
        self.background.append([str(a) for a in args])
        process = FakeProcess()
        self.processes.append(process)
        return process

    def matching(self, *prefix, contains: Sequence[str] = ()) -> List[List[str]]:
        return [
            call for call in self.calls
            if call[:len(prefix)] == list(prefix) and all(tok in call for tok in contains)
        ]

    def index(self, *prefix, contains: Sequence[str] = ()) -> int:
        """Position of the first matching call (fails the test when absent)"""
        for i, call in enumerate(self.calls):
            if call[:len(prefix)] == list(prefix) and all(tok in call for tok in contains):
                return i
        raise AssertionError(f"no call matching {prefix} {contains}; calls: {self.calls}")


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def console():
    return Console(record=True, width=200, force_terminal=False, color_system=None)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        cluster=ClusterConfig(),
        app=AppConfig(
            app_dir=tmp_path / "apps" / "music-app",
            redis_data=tmp_path / "configs" / "data.rdb",
        ),
        work_dir=tmp_path / ".localdev-cache",
    )


@pytest.fixture
def hosts_file(tmp_path) -> Path:
    path = tmp_path / "hosts"
    path.write_text("127.0.0.1 localhost\n")
    return path


@pytest.fixture
def sleeps():
    """Sleep replacement that records requested durations"""
    return []


@pytest.fixture
def command_kwargs(fake_runner, hosts_file, sleeps):
    """Constructor kwargs wiring a command to the fakes above"""
    return {"runner": fake_runner, "hosts_path": hosts_file, "sleep": sleeps.append}
