"""Jinja2 rendering for Helm values and Kubernetes manifests"""

from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Environment, PackageLoader, StrictUndefined

from localdev.config import Settings

HELM_VALUES = (
    "ingress-nginx",
    "kubernetes-dashboard",
    "argocd",
    "prometheus-stack",
)

# Apply order matters: namespace first, data before the workloads reading it
APP_MANIFESTS = (
    "01-namespace",
    "05-secrets-configmaps",
    "02-redis-deployment",
    "03-music-app-deployment",
    "04-ingress",
)


class TemplateRenderer:
    """Render bundled templates with the resolved settings

    Templates live in ``localdev/templates`` and are loaded through
    ``PackageLoader`` so they ship inside the wheel. Undefined variables
    are errors rather than silently empty strings.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.env = Environment(
            loader=PackageLoader("localdev", "templates"),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            auto_reload=False,
        )

    def context(self) -> Dict[str, Any]:
        cluster = self.settings.cluster
        return {
            "CLUSTER_DOMAIN": cluster.cluster_domain,
            "CLUSTER_NAME": cluster.cluster_name,
            "GIT_REPO_URL": cluster.git_repo_url,
            "cluster": cluster,
            "app": self.settings.app,
            "redis_password": self.settings.app.redis_password.get_secret_value(),
        }

    def render(self, template: str) -> str:
        return self.env.get_template(template).render(**self.context())

    def render_to(self, template: str, dest: Path) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(self.render(template))
        return dest

    def write_helm_values(self, out_dir: Path) -> List[Path]:
        """Render every Helm values file into ``out_dir``"""
        return [
            self.render_to(f"helm/{name}.yaml.j2", out_dir / f"{name}.yaml")
            for name in HELM_VALUES
        ]

    def write_app_manifests(self, out_dir: Path) -> Dict[str, Path]:
        """Render the application manifests, keyed by manifest name"""
        return {
            name: self.render_to(f"manifests/app/{name}.yaml.j2", out_dir / f"{name}.yaml")
            for name in APP_MANIFESTS
        }

    def application(self) -> str:
        return self.render("manifests/app/application.yaml.j2")

    def persistent_volume(self) -> str:
        return self.render("manifests/infra/persistent-volume.yaml.j2")
