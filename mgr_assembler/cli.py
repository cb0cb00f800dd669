"""Main CLI entry point for rendering manager descriptors."""

from pathlib import Path

import typer
from rich.console import Console

from mgr_assembler.exceptions import AssemblerError
from mgr_assembler.logging_config import get_logger, setup_logging

app = typer.Typer(
    name="mgr-assembler",
    help="Render Kubernetes descriptors for the Ceph manager daemon",
    add_completion=False,
)

# Manifests go to stdout; messages go to stderr
console = Console(stderr=True)
logger = get_logger(__name__)


def _fail(e: AssemblerError) -> None:
    logger.error(f"{type(e).__name__}: {e.message}")
    console.print(f"[red]{type(e).__name__}:[/red] {e.message}")
    if e.details:
        console.print(f"\n{e.details}")
    raise typer.Exit(code=1)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: str | None = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Global options for all commands."""
    log_path = Path(log_file) if log_file else None
    setup_logging(verbose=verbose, log_file=log_path)
    logger.debug("Logging initialized")


@app.command()
def version() -> None:
    """Show version information."""
    from mgr_assembler import __version__

    typer.echo(f"mgr-assembler version {__version__}")


@app.command()
def deployments(
    cluster_file: str = typer.Argument(..., help="Path to the cluster YAML file"),
    daemon_id: list[str] | None = typer.Option(
        None,
        "--daemon-id",
        "-d",
        help="Daemon ID to render (repeatable); defaults to one per mgr.count",
    ),
) -> None:
    """
    Render one manager deployment per daemon.

    Each manager is a separate single-replica deployment (a, b, ...).
    """
    from pydantic import ValidationError

    from mgr_assembler.config import load_cluster
    from mgr_assembler.containers import APP_NAME
    from mgr_assembler.exceptions import ConfigurationError
    from mgr_assembler.models.daemon import DaemonInstanceConfig, index_to_name
    from mgr_assembler.render import dump_manifests
    from mgr_assembler.workload import WorkloadAssembler

    try:
        spec, info = load_cluster(cluster_file)
        ids = daemon_id or [index_to_name(i) for i in range(max(spec.mgr.count, 1))]
        assembler = WorkloadAssembler(spec, info)

        manifests = []
        for mgr_id in ids:
            try:
                config = DaemonInstanceConfig.for_mgr(
                    mgr_id, info.namespace, spec.data_dir_host_path, APP_NAME
                )
            except ValidationError as e:
                raise ConfigurationError(f"Invalid daemon ID '{mgr_id}'", str(e))
            manifests.append(assembler.build_deployment(config))
        typer.echo(dump_manifests(manifests), nl=False)
        logger.info(f"Rendered {len(manifests)} mgr deployment(s)")
    except AssemblerError as e:
        _fail(e)


@app.command()
def services(
    cluster_file: str = typer.Argument(..., help="Path to the cluster YAML file"),
    active: str = typer.Option("", "--active", "-a", help="Daemon ID of the active manager"),
    external: bool = typer.Option(
        False, "--external", help="Render the metrics service of an external cluster"
    ),
) -> None:
    """Render the metrics service and, when enabled, the dashboard service."""
    from mgr_assembler.config import load_cluster
    from mgr_assembler.containers import APP_NAME, EXTERNAL_MGR_APP_NAME, METRICS_PORT_NAME
    from mgr_assembler.exposure import ExposureAssembler
    from mgr_assembler.render import dump_manifests

    try:
        spec, info = load_cluster(cluster_file)
        assembler = ExposureAssembler(spec, info)

        name = EXTERNAL_MGR_APP_NAME if external else APP_NAME
        manifests = [assembler.build_metrics_service(name, active, METRICS_PORT_NAME)]
        if spec.dashboard.enabled and not external:
            manifests.append(assembler.build_dashboard_service(APP_NAME, active))
        typer.echo(dump_manifests(manifests), nl=False)
    except AssemblerError as e:
        _fail(e)


@app.command()
def alerts(
    overrides_file: str | None = typer.Option(
        None, "--overrides", "-o", help="YAML file with per-alert overrides"
    ),
) -> None:
    """Render the alert rule parameters, with optional overrides applied."""
    import yaml

    from mgr_assembler.alerts import parameterize_alert_rules, render_alert_rules
    from mgr_assembler.config import load_alert_overrides

    try:
        overrides = load_alert_overrides(overrides_file) if overrides_file else {}
        rule_set = parameterize_alert_rules(overrides)
        typer.echo(yaml.safe_dump(render_alert_rules(rule_set), sort_keys=False), nl=False)
    except AssemblerError as e:
        _fail(e)


if __name__ == "__main__":
    app()
