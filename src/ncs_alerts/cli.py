import logging
from pathlib import Path

import click
import yaml

from .config import PASSWORD_ENV, USERNAME_ENV, load_config, resolve_credential
from .errors import ArtifactExistsError, ConfigurationError
from .history import write_index
from .normalization import normalize_many
from .pipeline import run_pipeline
from .summary import total_counts
from .table_parser import parse_pipe_table

logger = logging.getLogger("ncs_alerts")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug-level logging.")
def main(verbose: bool) -> None:
    """NCS Alerts: unresolved-alert reports for Prism management endpoints."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )


# ---------------------------------------------------------------------------
# run command
# ---------------------------------------------------------------------------


@main.command()
@click.option(
    "--config", "-c", "config_file", type=click.Path(exists=True, dir_okay=False), help="Path to config YAML."
)
@click.option("--target", "-t", "targets", multiple=True, metavar="HOST", help="Endpoint to query (repeatable).")
@click.option("--grouping", type=click.Choice(["endpoint", "cluster"]), default=None, help="Report grouping strategy.")
@click.option("--insecure", is_flag=True, default=False, help="Skip TLS certificate validation.")
@click.option("--ca-bundle", type=click.Path(exists=True, dir_okay=False), help="CA bundle for TLS validation.")
@click.option("--output-root", "-o", type=click.Path(file_okay=False), help="Root directory for run artifacts.")
@click.option("--prefix", default=None, help="Run directory prefix (default: alerts).")
@click.option("--username", "-u", envvar=USERNAME_ENV, help=f"API username (or {USERNAME_ENV}).")
@click.option("--password", "-p", envvar=PASSWORD_ENV, help=f"API password (or {PASSWORD_ENV}).")
def run(
    config_file: str | None,
    targets: tuple[str, ...],
    grouping: str | None,
    insecure: bool,
    ca_bundle: str | None,
    output_root: str | None,
    prefix: str | None,
    username: str | None,
    password: str | None,
) -> None:
    """Query every target for unresolved alerts and publish a new report run."""
    try:
        config = load_config(
            config_file,
            targets=targets,
            grouping=grouping,
            verify_tls=False if insecure else None,
            ca_bundle=ca_bundle,
            output_root=output_root,
            artifact_prefix=prefix,
        )
        credential = resolve_credential(username, password)
        report = run_pipeline(config, credential)
    except (ConfigurationError, ArtifactExistsError) as exc:
        raise click.ClickException(str(exc)) from exc

    totals = total_counts(report.groups)
    failed = [g.key for g in report.groups if g.failed]
    logger.info("Run complete: %d group(s), %d failed", len(report.groups), len(failed))
    click.echo(
        f"Alerts: {totals.critical} critical, {totals.warning} warning, "
        f"{totals.info} info, {totals.other} other across {len(report.groups)} group(s)"
    )
    if failed:
        click.echo(f"Failed: {', '.join(failed)}", err=True)
    click.echo(f"Report: {report.artifact_path}")
    click.echo(f"Index:  {report.index_path}")


# ---------------------------------------------------------------------------
# index command
# ---------------------------------------------------------------------------


@main.command()
@click.option(
    "--config", "-c", "config_file", type=click.Path(exists=True, dir_okay=False), help="Path to config YAML."
)
@click.option("--output-root", "-o", type=click.Path(file_okay=False), help="Root directory for run artifacts.")
@click.option("--prefix", default=None, help="Run directory prefix (default: alerts).")
def index(config_file: str | None, output_root: str | None, prefix: str | None) -> None:
    """Rebuild the master history index from the run directories on disk."""
    try:
        config = load_config(config_file, output_root=output_root, artifact_prefix=prefix)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    root = Path(config.output_root)
    if not root.is_dir():
        raise click.ClickException(f"Output root not found: {root}")
    path = write_index(
        root,
        prefix=config.artifact_prefix,
        report_name=config.report_name,
        index_name=config.index_name,
    )
    click.echo(f"Index: {path}")


# ---------------------------------------------------------------------------
# parse-table command
# ---------------------------------------------------------------------------


@main.command("parse-table")
@click.argument("table_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--endpoint", "-e", default="local", show_default=True, help="Endpoint label for parsed alerts.")
def parse_table(table_file: Path, endpoint: str) -> None:
    """Parse a pipe-delimited alert table and print the normalized alerts as YAML."""
    rows = parse_pipe_table(table_file.read_text(encoding="utf-8"))
    alerts = normalize_many(rows, endpoint)
    payload = [a.model_dump(mode="json", exclude={"raw"}) for a in alerts]
    click.echo(yaml.safe_dump(payload, default_flow_style=False, sort_keys=False), nl=False)
    click.echo(f"# {len(alerts)} alert(s) parsed from {table_file}", err=True)


# ---------------------------------------------------------------------------
# show-config command
# ---------------------------------------------------------------------------


@main.command("show-config")
@click.option(
    "--config", "-c", "config_file", type=click.Path(exists=True, dir_okay=False), help="Path to config YAML."
)
def show_config(config_file: str | None) -> None:
    """Print the effective configuration, defaults included."""
    try:
        config = load_config(config_file)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(yaml.safe_dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False), nl=False)


if __name__ == "__main__":
    main()
