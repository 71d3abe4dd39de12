"""Cluster and application configuration

Values are resolved in order of increasing precedence: model defaults,
``localdev.yaml`` in the working directory, environment variables, then
explicit CLI overrides.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from localdev.exceptions import ConfigError

CONFIG_FILE = "localdev.yaml"

PROFILES = ("dev", "staging", "prod")

# env var -> ClusterConfig field
CLUSTER_ENV_VARS = {
    "CLUSTER_NAME": "cluster_name",
    "CLUSTER_DOMAIN": "cluster_domain",
    "API_PORT": "api_port",
    "HTTP_PORT": "http_port",
    "HTTPS_PORT": "https_port",
    "SERVERS": "servers",
    "AGENTS": "agents",
    "REGISTRY_PORT": "registry_port",
    "GIT_REPO_URL": "git_repo_url",
}

DEFAULT_REPO_URL = "https://github.com/your-username/your-repo.git"


class ClusterConfig(BaseModel):
    """k3d cluster layout and the ports exposed on the host"""

    cluster_name: str = Field("localdev", min_length=1, pattern=r"^[a-z0-9][a-z0-9-]*$")
    cluster_domain: str = Field("local.io", min_length=1)
    api_port: int = Field(6550, ge=1, le=65535)
    http_port: int = Field(44134, ge=1, le=65535)
    https_port: int = Field(6600, ge=1, le=65535)
    servers: int = Field(1, ge=1)
    agents: int = Field(2, ge=0)
    registry_port: int = Field(7979, ge=1, le=65535)
    git_repo_url: str = DEFAULT_REPO_URL

    @field_validator("cluster_domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        """Reject URLs; the domain is used as a bare hostname suffix"""
        if "://" in v or "/" in v or " " in v:
            raise ValueError("cluster_domain must be a bare domain such as 'local.io'")
        domain = v.strip(".")
        if not domain:
            raise ValueError("cluster_domain must contain at least one label")
        return domain

    @property
    def kube_context(self) -> str:
        return f"k3d-{self.cluster_name}"

    @property
    def registry_name(self) -> str:
        return f"registry.{self.cluster_domain}"

    @property
    def registry_address(self) -> str:
        return f"{self.registry_name}:{self.registry_port}"

    def host(self, prefix: str) -> str:
        """Ingress hostname for a service, e.g. ``argocd.local.io``"""
        return f"{prefix}.{self.cluster_domain}"

    def url(self, prefix: str, https: bool = False) -> str:
        """Browser URL for a service behind the k3d load balancer"""
        if https:
            return f"https://{self.host(prefix)}:{self.https_port}"
        return f"http://{self.host(prefix)}:{self.http_port}"


class AppConfig(BaseModel):
    """Sample application deployed on top of the cluster"""

    name: str = "music-app"
    namespace: str = "music-app"
    image: str = "music-app:latest"
    app_dir: Path = Path("apps/music-app")
    redis_data: Path = Path("configs/data.rdb")
    redis_password: SecretStr = SecretStr("musicapp123")
    host_prefix: str = "music"
    gitops_path: str = "apps/music-app/k8s/k8s"
    test_key: int = 100
    expected_artist: str = "Iron Maiden"
    probe_keys: List[int] = Field(default_factory=lambda: [1, 50, 100, 200])


class Settings(BaseModel):
    """Top-level settings handed to every command"""

    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    app: AppConfig = Field(default_factory=AppConfig)
    work_dir: Path = Path(".localdev-cache")

    @property
    def generated_dir(self) -> Path:
        return self.work_dir / "generated"

    @property
    def log_dir(self) -> Path:
        return self.work_dir / "logs"

    def as_env(self) -> Dict[str, str]:
        """Flatten cluster settings back into the env var names used by make"""
        data = self.cluster.model_dump()
        return {env: str(data[field]) for env, field in CLUSTER_ENV_VARS.items()}


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"cannot parse {path}: {e}", source=str(path))
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping", source=str(path))
    return data


def _env_overrides(environ: Dict[str, str]) -> Dict[str, str]:
    return {
        field: environ[env]
        for env, field in CLUSTER_ENV_VARS.items()
        if environ.get(env)
    }


def load_settings(
    overrides: Optional[Dict[str, Any]] = None,
    profile: Optional[str] = None,
    config_path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Settings:
    """Resolve settings from file, environment and explicit overrides

    Args:
        overrides: ClusterConfig field values from the command line (None values ignored)
        profile: Optional environment profile (dev/staging/prod), sets the domain
        config_path: Path to the YAML config file (defaults to ./localdev.yaml)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated Settings

    Raises:
        ConfigError: If any source provides an invalid value
    """
    environ = os.environ if environ is None else environ
    path = config_path or Path(CONFIG_FILE)
    file_data = _load_file(path)

    cluster_data: Dict[str, Any] = dict(file_data.get("cluster") or {})
    cluster_data.update(_env_overrides(environ))
    # A profile pins the domain even when CLUSTER_DOMAIN is exported
    if profile:
        if profile not in PROFILES:
            raise ConfigError(f"unknown profile '{profile}' (expected one of {', '.join(PROFILES)})")
        cluster_data["cluster_domain"] = f"{profile}.local.io"
    cluster_data.update({k: v for k, v in (overrides or {}).items() if v is not None})

    settings_data: Dict[str, Any] = {
        "cluster": cluster_data,
        "app": dict(file_data.get("app") or {}),
    }
    work_dir = environ.get("LOCALDEV_WORK_DIR") or file_data.get("work_dir")
    if work_dir:
        settings_data["work_dir"] = work_dir

    try:
        return Settings(**settings_data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(errors, source=str(path) if file_data else "environment/CLI")
