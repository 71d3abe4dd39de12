"""Unit tests for the smoke test command and its report"""

import pytest
import requests

from localdev.commands.app_test import AppTestCommand, TestReport
from localdev.engine.http_probe import HttpProbe
from localdev.exceptions import SmokeTestFailure

BASE = "http://music.local.io:44134"

PODS = (
    "music-app-1   1/1   Running   0   1m\n"
    "music-app-2   1/1   Running   0   1m\n"
)
REDIS_POD = "redis-1   1/1   Running   0   1m\n"


class FakeProbe(HttpProbe):
    def __init__(self, healthy=True, api=True):
        super().__init__()
        self.healthy = healthy
        self.api = api
        self.requested = []

    def status_code(self, url, follow_redirects=False):
        self.requested.append(url)
        return "200" if self.healthy else "000"

    def text(self, url):
        self.requested.append(url)
        if not self.api:
            return None
        key = url.rsplit("=", 1)[-1]
        return f'{{"key": {key}, "artist": "Iron Maiden", "album": "Album {key}"}}'


def _healthy_cluster(runner):
    runner.on("kubectl", "get", "pods", stdout=PODS + REDIS_POD)
    runner.on("kubectl", "get", "pods", contains=["app=music-app"], stdout=PODS)
    runner.on("kubectl", "get", "pods", contains=["app=redis"], stdout=REDIS_POD)
    runner.on("kubectl", "get", "svc", stdout="svc\n")
    runner.on("kubectl", "get", "ingress", stdout="music-app   nginx   music.local.io\n")
    runner.on("kubectl", "exec", contains=["ping"], stdout="PONG\n")
    runner.on("kubectl", "exec", contains=["KEYS"], stdout="1\n2\n3\n")


def test_report_tracks_failures():
    report = TestReport()
    report.add("a", True)
    report.add("b", False, "broken")

    assert report.failed == ["b"]
    assert not report.passed
    assert report.to_table().row_count == 2


def test_all_checks_pass(settings, console, command_kwargs, fake_runner):
    _healthy_cluster(fake_runner)
    probe = FakeProbe()

    report = AppTestCommand(settings, console, probe=probe, **command_kwargs).execute()

    assert report.passed
    assert len(report.checks) == 8
    assert f"{BASE}/health" in probe.requested
    assert f"{BASE}/api/v1/music-albums?key=100" in probe.requested
    for key in (1, 50, 200):
        assert f"{BASE}/api/v1/music-albums?key={key}" in probe.requested
    output = console.export_text()
    assert "Key 50: Album 50" in output
    assert "Redis contains 3 keys" in output


def test_redis_password_passed_to_cli(settings, console, command_kwargs, fake_runner):
    _healthy_cluster(fake_runner)

    AppTestCommand(settings, console, probe=FakeProbe(), **command_kwargs).execute()

    ping = fake_runner.matching("kubectl", "exec", contains=["ping"])[0]
    assert ping[:5] == ["kubectl", "exec", "deployment/redis", "-n", "music-app"]
    assert ping[-4:] == ["redis-cli", "-a", "musicapp123", "ping"]


def test_failures_are_collected_then_raised(settings, console, command_kwargs, fake_runner):
    _healthy_cluster(fake_runner)
    fake_runner.on("kubectl", "exec", contains=["ping"], exit_code=1)

    command = AppTestCommand(settings, console, probe=FakeProbe(healthy=False, api=False), **command_kwargs)
    with pytest.raises(SmokeTestFailure) as exc_info:
        command.execute()

    assert exc_info.value.total == 8
    assert exc_info.value.failed == ["Health endpoint", "API lookup", "Multiple API keys", "Redis ping"]
    output = console.export_text()
    assert "Health endpoint failed (HTTP 000)" in output
    assert "Response: ERROR" in output


def test_not_all_pods_running(settings, console, command_kwargs, fake_runner):
    _healthy_cluster(fake_runner)
    fake_runner.on("kubectl", "get", "pods", stdout=PODS + "redis-1   0/1   CrashLoopBackOff   3   1m\n")
    # re-register labelled queries so they take precedence over the catch-all again
    fake_runner.on("kubectl", "get", "pods", contains=["app=music-app"], stdout=PODS)
    fake_runner.on("kubectl", "get", "pods", contains=["app=redis"], stdout=REDIS_POD)

    command = AppTestCommand(settings, console, probe=FakeProbe(), **command_kwargs)
    with pytest.raises(SmokeTestFailure):
        command.execute()

    assert command.report.failed == ["Pod status"]
    assert "Only 2/3 pods are running" in console.export_text()


def test_no_pods(settings, console, command_kwargs, fake_runner):
    _healthy_cluster(fake_runner)
    fake_runner.on("kubectl", "get", "pods", contains=["app=redis"], stdout="")

    command = AppTestCommand(settings, console, probe=FakeProbe(), **command_kwargs)
    with pytest.raises(SmokeTestFailure):
        command.execute()

    assert "No pods found in music-app namespace" in console.export_text()


class TestHttpProbe:
    def test_connection_error_is_000(self, monkeypatch):
        probe = HttpProbe(timeout=1)

        def boom(*args, **kwargs):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(probe.session, "get", boom)

        assert probe.status_code("http://music.local.io:44134/health") == "000"
        assert probe.text("http://music.local.io:44134/health") is None

    def test_redirect_not_followed(self, monkeypatch):
        probe = HttpProbe()
        seen = {}

        class Response:
            status_code = 302
            text = ""

        def fake_get(url, timeout, allow_redirects=True):
            seen["allow_redirects"] = allow_redirects
            return Response()

        monkeypatch.setattr(probe.session, "get", fake_get)

        assert probe.status_code("http://argocd.local.io:44134") == "302"
        assert seen["allow_redirects"] is False
