"""
Asset Normalizer — CLI entrypoint.

Usage:
    asset-normalizer --help
    asset-normalizer health
    asset-normalizer media process photo.png
    asset-normalizer serve --port 8000
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from asset_normalizer import __version__
from asset_normalizer.core.config.loader import ConfigError, load_settings
from asset_normalizer.core.observability.logging_config import (
    resolve_level,
    resolve_log_file,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="asset-normalizer")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to normalizer.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Asset Normalizer — fit images and videos to publishing formats."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    settings = None
    try:
        settings = load_settings(ctx.obj["config_path"])
        ctx.obj["settings"] = settings
    except ConfigError as e:
        ctx.obj["settings"] = None
        ctx.obj["config_error"] = str(e)

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        flag = "DEBUG"
    elif verbose:
        flag = "INFO"
    elif quiet:
        flag = "ERROR"
    else:
        flag = None

    log_file, log_file_level = resolve_log_file(
        settings.log_file if settings else None,
        settings.log_file_level if settings else None,
    )
    setup_logging(
        level=resolve_level(flag, settings.log_level if settings else None),
        log_file=log_file,
        log_file_level=log_file_level,
        quiet_third_party=not debug,
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--mock", is_flag=True, help="Check the mock adapters instead of ffmpeg.")
@click.pass_context
def health(ctx: click.Context, as_json: bool, mock: bool) -> None:
    "Show system health — encoder, prober, format catalog."
    from asset_normalizer.core.observability.health import check_system_health
    from asset_normalizer.ui.cli.common import get_pipeline

    pipeline = get_pipeline(ctx, mock=mock)
    system_health = check_system_health(pipeline.encoder, pipeline.prober, pipeline.catalog)

    if as_json:
        click.echo(json.dumps(system_health.to_dict(), indent=2))
        sys.exit(1 if system_health.status == "unhealthy" else 0)

    status_icons = {
        "healthy": ("💚", "green"),
        "degraded": ("🟡", "yellow"),
        "unhealthy": ("🔴", "red"),
        "unknown": ("❔", "white"),
    }
    icon, color = status_icons.get(system_health.status, ("❔", "white"))

    click.echo()
    click.secho(f"{icon} System Health: {system_health.status.upper()}", fg=color, bold=True)
    click.echo(f"   {system_health.timestamp}")
    click.echo()

    for component in system_health.components:
        c_icon, c_color = status_icons.get(component.status, ("❔", "white"))
        click.secho(f"   {c_icon} {component.name}", fg=c_color, bold=True)
        click.echo(f"      {component.message}")

        if ctx.obj.get("verbose") and component.details:
            for key, val in component.details.items():
                click.echo(f"      {key}: {val}")

    click.echo()
    if system_health.status == "unhealthy":
        sys.exit(1)


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address.")
@click.option("--port", "-p", default=8000, type=int, help="Port number.")
@click.option("--mock", is_flag=True, help="Use mock encoder/prober (no ffmpeg).")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, mock: bool) -> None:
    "Start the upload API server."
    from asset_normalizer.ui.cli.common import get_settings
    from asset_normalizer.ui.web.server import create_app, run_server

    settings = get_settings(ctx)
    app = create_app(settings=settings, config_path=ctx.obj.get("config_path"), mock_mode=mock)
    debug = ctx.obj.get("debug", False)

    click.echo()
    click.secho("⚡ Asset Normalizer — Upload API", bold=True)
    click.echo(f"   Endpoint: http://{host}:{port}/api/upload")
    click.echo(f"   Storage:  {Path(settings.storage.upload_dir).resolve()}")
    if mock:
        click.secho("   Mode: mock (no ffmpeg)", fg="yellow")
    if debug:
        click.secho("   Logging: DEBUG (all output)", fg="yellow")
    click.echo()

    run_server(app, host=host, port=port, debug=debug)


# ── Register sub-command groups from asset_normalizer/ui/cli/ ────────

from asset_normalizer.ui.cli.media import media  # noqa: E402

cli.add_command(media)


if __name__ == "__main__":
    cli()
