"""CLI entry point for localdev"""

from pathlib import Path
from typing import Callable, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from localdev.config import PROFILES, Settings, load_settings
from localdev.exceptions import LocalDevError
from localdev.output import configure_logging

app = typer.Typer(
    name="localdev",
    help="Local k3d cluster with ArgoCD, ingress and monitoring, plus a sample app to deploy on it",
    add_completion=False,
)
console = Console()


def handle_localdev_error(error: LocalDevError, exit_code: int = 1):
    """Handle localdev errors with Rich formatting

    Args:
        error: localdev exception to handle
        exit_code: Exit code to use
    """
    if error.help_text:
        panel_content = f"{error.message}\n\n[bold cyan]Help:[/bold cyan]\n{error.help_text}"
    else:
        panel_content = error.message

    panel = Panel(
        panel_content,
        title="[bold red]Error[/bold red]",
        border_style="red",
        expand=False,
    )
    console.print(panel)
    raise typer.Exit(exit_code)


def handle_unexpected_error(error: Exception, exit_code: int = 1):
    """Handle unexpected errors with Rich formatting

    Args:
        error: Exception to handle
        exit_code: Exit code to use
    """
    error_text = Text()
    error_text.append("✗ Unexpected Error: ", style="bold red")
    error_text.append(str(error))

    console.print(error_text)
    console.print("\n[yellow]This is an unexpected error. Re-run with --verbose for details.[/yellow]")
    console.print(f"[dim]Error type: {type(error).__name__}[/dim]")

    raise typer.Exit(exit_code)


def _run_automatic_vacuum():
    """Sweep build contexts and pid files left in the temp dir by killed runs"""
    from localdev.utils.vacuum import VacuumCommand

    vacuum_cmd = VacuumCommand(console)
    if vacuum_cmd.find():
        vacuum_cmd.execute()


@app.callback()
def main_callback(
    ctx: typer.Context,
    cluster_name: Optional[str] = typer.Option(None, "--cluster-name", help="k3d cluster name [env: CLUSTER_NAME]"),
    cluster_domain: Optional[str] = typer.Option(None, "--cluster-domain", help="Ingress domain [env: CLUSTER_DOMAIN]"),
    http_port: Optional[int] = typer.Option(None, "--http-port", help="Load balancer HTTP port [env: HTTP_PORT]"),
    https_port: Optional[int] = typer.Option(None, "--https-port", help="Load balancer HTTPS port [env: HTTPS_PORT]"),
    git_repo_url: Optional[str] = typer.Option(None, "--git-repo-url", help="Repo ArgoCD tracks [env: GIT_REPO_URL]"),
    profile: Optional[str] = typer.Option(None, "--profile", help=f"Environment profile ({'/'.join(PROFILES)})"),
    config: Optional[Path] = typer.Option(None, "--config", help="Config file (default: ./localdev.yaml)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip prompts and confirmations"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every external command"),
):
    configure_logging(verbose, console)
    ctx.obj = {
        "overrides": {
            "cluster_name": cluster_name,
            "cluster_domain": cluster_domain,
            "http_port": http_port,
            "https_port": https_port,
            "git_repo_url": git_repo_url,
        },
        "profile": profile,
        "config": config,
        "yes": yes,
    }


def _settings(ctx: typer.Context) -> Settings:
    state = ctx.obj or {}
    return load_settings(
        overrides=state.get("overrides"),
        profile=state.get("profile"),
        config_path=state.get("config"),
    )


def _assume_yes(ctx: typer.Context) -> bool:
    return bool((ctx.obj or {}).get("yes"))


def _execute(ctx: typer.Context, *steps: Callable[[Settings], object]):
    """Resolve settings and run each command factory's execute() in order

    A step returning False (a cancelled confirmation) stops the sequence.
    """
    try:
        settings = _settings(ctx)
        for build in steps:
            if build(settings).execute() is False:
                break
    except LocalDevError as e:
        handle_localdev_error(e)
    except typer.Exit:
        raise
    except Exception as e:
        handle_unexpected_error(e)


# Command factories, shared by single and composite commands

def _infra_setup(ctx: typer.Context):
    from localdev.commands.infra_setup import InfraSetupCommand
    return lambda s: InfraSetupCommand(s, console, interactive=not _assume_yes(ctx))


def _infra_cleanup(ctx: typer.Context):
    from localdev.commands.cleanup import InfraCleanupCommand
    return lambda s: InfraCleanupCommand(s, console, assume_yes=_assume_yes(ctx))


def _app_build(s: Settings):
    from localdev.commands.app_build import AppBuildCommand
    return AppBuildCommand(s, console)


def _app_deploy(s: Settings):
    from localdev.commands.app_deploy import AppDeployCommand
    return AppDeployCommand(s, console)


def _app_test(s: Settings):
    from localdev.commands.app_test import AppTestCommand
    return AppTestCommand(s, console)


def _app_cleanup(s: Settings):
    from localdev.commands.cleanup import AppCleanupCommand
    return AppCleanupCommand(s, console)


@app.command("infra-setup")
def infra_setup(ctx: typer.Context):
    """Create the k3d cluster and install ingress, dashboard, ArgoCD and monitoring"""
    _execute(ctx, _infra_setup(ctx))


@app.command("infra-status")
def infra_status(ctx: typer.Context):
    """Show cluster, add-on, hosts and Docker status"""
    from localdev.commands.status import InfraStatusCommand
    _execute(ctx, lambda s: InfraStatusCommand(s, console))


@app.command("infra-cleanup")
def infra_cleanup(ctx: typer.Context):
    """Delete the cluster, hosts entries and local leftovers"""
    _execute(ctx, _infra_cleanup(ctx))


@app.command("app-build")
def app_build(ctx: typer.Context):
    """Build the music app image and import it into k3d"""
    _execute(ctx, _app_build)


@app.command("app-deploy")
def app_deploy(ctx: typer.Context):
    """Deploy the music app with kubectl apply"""
    _execute(ctx, _app_deploy)


@app.command("app-deploy-gitops")
def app_deploy_gitops(ctx: typer.Context):
    """Deploy the music app through an ArgoCD Application"""
    from localdev.commands.app_deploy_gitops import AppDeployGitOpsCommand
    _execute(ctx, lambda s: AppDeployGitOpsCommand(s, console))


@app.command("app-test")
def app_test(ctx: typer.Context):
    """Run smoke tests against the deployed app"""
    _execute(ctx, _app_test)


@app.command("app-cleanup")
def app_cleanup(ctx: typer.Context):
    """Remove the deployed app and its generated files"""
    _execute(ctx, _app_cleanup)


@app.command("app-logs")
def app_logs(
    ctx: typer.Context,
    follow: bool = typer.Option(True, "--follow/--no-follow", help="Stream logs"),
    tail: Optional[int] = typer.Option(None, "--tail", help="Number of recent lines"),
):
    """Show music app logs"""
    from localdev.commands.operations import AppLogsCommand
    _execute(ctx, lambda s: AppLogsCommand(s, console, follow=follow, tail=tail))


@app.command("app-scale")
def app_scale(
    ctx: typer.Context,
    replicas: int = typer.Option(3, "--replicas", min=0, help="Desired replica count"),
):
    """Scale the music app deployment"""
    from localdev.commands.operations import AppScaleCommand
    _execute(ctx, lambda s: AppScaleCommand(s, console, replicas=replicas))


@app.command("check-deps")
def check_deps(ctx: typer.Context):
    """Check that required external tools are installed"""
    from localdev.commands.check_deps import CheckDepsCommand
    _execute(ctx, lambda s: CheckDepsCommand(s, console))


@app.command()
def status(ctx: typer.Context):
    """Show overall infrastructure and application status"""
    from localdev.commands.status import StatusCommand
    _execute(ctx, lambda s: StatusCommand(s, console))


@app.command()
def troubleshoot(ctx: typer.Context):
    """Print a diagnostic report for the application deployment"""
    from localdev.commands.troubleshoot import TroubleshootCommand
    _execute(ctx, lambda s: TroubleshootCommand(s, console))


@app.command()
def rebuild(ctx: typer.Context):
    """Delete the app and image, then build and deploy from scratch"""
    from localdev.commands.operations import RebuildCommand
    _execute(ctx, lambda s: RebuildCommand(s, console))


@app.command("gitops-sync")
def gitops_sync(ctx: typer.Context):
    """Trigger an ArgoCD sync of the music app"""
    from localdev.commands.operations import GitOpsSyncCommand
    _execute(ctx, lambda s: GitOpsSyncCommand(s, console))


@app.command("gitops-status")
def gitops_status(ctx: typer.Context):
    """Show the ArgoCD Application status"""
    from localdev.commands.operations import GitOpsStatusCommand
    _execute(ctx, lambda s: GitOpsStatusCommand(s, console))


@app.command()
def monitor(ctx: typer.Context):
    """Print monitoring URLs"""
    try:
        cluster = _settings(ctx).cluster
    except LocalDevError as e:
        handle_localdev_error(e)
    console.print("Access monitoring at:")
    console.print(f"  Grafana: {cluster.url('grafana')}")
    console.print(f"  Prometheus: {cluster.url('prometheus')}")
    console.print(f"  Alertmanager: {cluster.url('alertmanager')}")


@app.command("print-vars")
def print_vars(ctx: typer.Context):
    """Print the resolved configuration variables"""
    try:
        settings = _settings(ctx)
    except LocalDevError as e:
        handle_localdev_error(e)
    for name, value in settings.as_env().items():
        console.print(f"{name}: {value}", markup=False, highlight=False)
    console.print(f"WORK_DIR: {settings.work_dir}", markup=False, highlight=False)


@app.command("all")
def all_(ctx: typer.Context):
    """Complete workflow: infra-setup, app-build, app-deploy, app-test"""
    _execute(ctx, _infra_setup(ctx), _app_build, _app_deploy, _app_test)


@app.command("quick-deploy")
def quick_deploy(ctx: typer.Context):
    """Build and deploy the app (skip infrastructure setup)"""
    _execute(ctx, _app_build, _app_deploy)


@app.command()
def restart(ctx: typer.Context):
    """Clean up and redeploy the app"""
    _execute(ctx, _app_cleanup, _app_deploy)


@app.command()
def clean(ctx: typer.Context):
    """Clean the application only"""
    _execute(ctx, _app_cleanup)


@app.command("clean-all")
def clean_all(ctx: typer.Context):
    """Clean the application and the infrastructure"""
    _execute(ctx, _app_cleanup, _infra_cleanup(ctx))


@app.command()
def vacuum(ctx: typer.Context):
    """Remove leftovers from killed or repeated runs

    Build contexts older than 60 minutes and the old port-forward pid file
    are swept from the temp dir on every start; this command also trims
    command logs under the work dir to the newest 20.
    """
    from localdev.utils.vacuum import VacuumCommand

    _execute(ctx, lambda s: VacuumCommand(console, work_dir=s.work_dir))


@app.command()
def version():
    """Display CLI and external tool versions"""
    import importlib.metadata
    from rich.table import Table

    from localdev.engine.runner import CommandRunner

    try:
        cli_version = importlib.metadata.version("localdev")
    except importlib.metadata.PackageNotFoundError:
        cli_version = "0.1.0-dev"
    console.print(f"CLI Version: [green]{cli_version}[/green]\n")

    runner = CommandRunner()
    checks: List[tuple] = [
        ("docker", ["docker", "--version"]),
        ("k3d", ["k3d", "version"]),
        ("kubectl", ["kubectl", "version", "--client"]),
        ("helm", ["helm", "version", "--short"]),
    ]
    table = Table(title="External Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Version", style="green")
    for tool, args in checks:
        if runner.which(tool) is None:
            table.add_row(tool, "[red]not installed[/red]")
            continue
        lines = runner.run(args).stdout.strip().splitlines()
        table.add_row(tool, lines[0] if lines else "unknown")
    console.print(table)


def main():
    _run_automatic_vacuum()
    app()


if __name__ == "__main__":
    main()
