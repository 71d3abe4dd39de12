"""Integration tests for the direct deployment and build workflows"""

from pathlib import Path

import pytest

from localdev.commands.app_build import AppBuildCommand
from localdev.commands.app_deploy import AppDeployCommand
from localdev.exceptions import BuildError, ClusterNotFoundError, ConfigError, ReadinessTimeoutError, RuntimeDependencyError
from localdev.utils.vacuum import BUILD_CONTEXT_PREFIX

CONFIGMAP_YAML = "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: redis-data\n"


@pytest.fixture
def redis_dump(settings):
    settings.app.redis_data.parent.mkdir(parents=True)
    settings.app.redis_data.write_bytes(b"REDIS0009")
    return settings.app.redis_data


@pytest.fixture
def deploy(settings, console, command_kwargs, fake_runner, redis_dump):
    fake_runner.on("kubectl", "create", "configmap", stdout=CONFIGMAP_YAML)
    return AppDeployCommand(settings, console, **command_kwargs)


def _apply_index(runner, manifest):
    for i, call in enumerate(runner.calls):
        if call[:2] == ["kubectl", "apply"] and call[-1].endswith(f"{manifest}.yaml"):
            return i
    raise AssertionError(f"{manifest} was never applied")


class TestAppDeploy:
    def test_apply_order(self, deploy, fake_runner):
        deploy.execute()

        order = [
            "01-namespace", "05-secrets-configmaps", "05-redis-data", "02-redis-deployment",
        ]
        positions = [_apply_index(fake_runner, name) for name in order]
        assert positions == sorted(positions)

        redis_wait = fake_runner.index("kubectl", "wait", contains=["app=redis"])
        app_apply = _apply_index(fake_runner, "03-music-app-deployment")
        app_wait = fake_runner.index("kubectl", "wait", contains=["app=music-app"])
        ingress_apply = _apply_index(fake_runner, "04-ingress")

        assert positions[-1] < redis_wait < app_apply < app_wait < ingress_apply

    def test_waits_use_300s_timeout(self, deploy, fake_runner):
        deploy.execute()

        for wait in fake_runner.matching("kubectl", "wait"):
            assert "--timeout=300s" in wait
            assert "music-app" in wait

    def test_configmap_written_from_dry_run(self, deploy, fake_runner, settings, redis_dump):
        deploy.execute()

        create = fake_runner.matching("kubectl", "create", "configmap")[0]
        assert f"--from-file=dump.rdb={redis_dump}" in create
        assert "--dry-run=client" in create
        written = settings.generated_dir / "manifests" / "05-redis-data.yaml"
        assert written.read_text() == CONFIGMAP_YAML

    def test_host_entry_and_settle(self, deploy, hosts_file, sleeps, console):
        deploy.execute()

        assert "127.0.0.1 music.local.io" in hosts_file.read_text()
        assert sleeps == [10]
        output = console.export_text()
        assert "http://music.local.io:44134" in output
        assert "musicapp123" in output

    def test_redis_not_ready_aborts(self, deploy, fake_runner):
        fake_runner.on("kubectl", "wait", contains=["app=redis"], exit_code=1)

        with pytest.raises(ReadinessTimeoutError, match="Redis in namespace 'music-app'"):
            deploy.execute()

        assert not fake_runner.matching("kubectl", "wait", contains=["app=music-app"])

    def test_unreachable_cluster(self, deploy, fake_runner):
        fake_runner.on("kubectl", "cluster-info", exit_code=1)

        with pytest.raises(ClusterNotFoundError):
            deploy.execute()

        assert not fake_runner.matching("kubectl", "apply")

    def test_missing_kubectl(self, deploy, fake_runner):
        fake_runner.missing.add("kubectl")

        with pytest.raises(RuntimeDependencyError, match="kubectl"):
            deploy.execute()

    def test_missing_redis_dump(self, settings, console, command_kwargs):
        with pytest.raises(ConfigError, match="Redis data file not found"):
            AppDeployCommand(settings, console, **command_kwargs).execute()


class TestAppBuild:
    @pytest.fixture
    def app_tree(self, settings):
        src = settings.app.app_dir / "src"
        src.mkdir(parents=True)
        (src / "main.go").write_text("package main\n")
        docker_dir = settings.app.app_dir / "k8s" / "docker"
        docker_dir.mkdir(parents=True)
        (docker_dir / "Dockerfile").write_text("FROM scratch\nCOPY server /server\n")
        return settings.app.app_dir

    def test_build_sequence(self, settings, console, command_kwargs, fake_runner, app_tree, monkeypatch):
        built = {}

        def fake_run(args, **kwargs):
            result = type(fake_runner).run(fake_runner, args, **kwargs)
            if args[:2] == ["go", "build"]:
                (kwargs["cwd"] / "server").write_bytes(b"\x7fELF")
            if args[:2] == ["docker", "build"]:
                built["context"] = Path(args[-1])
                built["files"] = sorted(p.name for p in built["context"].iterdir())
            return result

        monkeypatch.setattr(fake_runner, "run", fake_run)
        monkeypatch.setattr("localdev.commands.app_build.detect_target_arch", lambda: "arm64")

        AppBuildCommand(settings, console, **command_kwargs).execute()

        go_build = fake_runner.index("go", "build")
        docker_build = fake_runner.index("docker", "build", "-t", "music-app:latest")
        image_import = fake_runner.index("k3d", "image", "import", "music-app:latest", "-c", "localdev")
        assert go_build < docker_build < image_import
        assert built["files"] == ["Dockerfile", "server"]
        assert built["context"].parent.name.startswith(BUILD_CONTEXT_PREFIX)
        assert not built["context"].parent.exists()
        # the source tree only holds what the go build produced
        assert not (app_tree / "k8s" / "docker" / "server").exists()

    def test_missing_go(self, settings, console, command_kwargs, fake_runner, app_tree):
        fake_runner.missing.add("go")

        with pytest.raises(RuntimeDependencyError, match="'go'"):
            AppBuildCommand(settings, console, **command_kwargs).execute()

    def test_missing_main_go(self, settings, console, command_kwargs):
        with pytest.raises(BuildError, match="main.go not found"):
            AppBuildCommand(settings, console, **command_kwargs).execute()

    def test_binary_missing_after_build(self, settings, console, command_kwargs, app_tree):
        with pytest.raises(BuildError, match="binary 'server' not found"):
            AppBuildCommand(settings, console, **command_kwargs).execute()
