"""
CLI commands for media normalization.

Thin wrappers over ``core.services.pipeline``, ``video_transform`` and
``probe``. Files are read from and written to local paths; nothing is
uploaded from the CLI.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from asset_normalizer.core.errors import EncoderUnavailable, NormalizationError
from asset_normalizer.core.services.pipeline import MODES, PipelineResult
from asset_normalizer.ui.cli.common import get_pipeline, get_settings


def _default_output(source: Path, extension: str, suffix: str) -> Path:
    return source.with_name(f"{source.stem}_{suffix}{extension or source.suffix}")


def _print_result(result: PipelineResult, source: Path) -> None:
    report = result.report
    if not result.ok:
        failure = result.failure
        assert failure is not None
        click.secho(f"❌ {source.name}: {failure.message}", fg="red", bold=True)
        click.echo(f"   Stage: {failure.stage} ({failure.error})")
        if failure.diagnostic:
            for line in failure.diagnostic.strip().splitlines()[-5:]:
                click.echo(f"     │ {line}")
        return

    click.secho(f"📐 {source.name}", fg="cyan", bold=True)
    click.echo(f"   Type: {report.file_type} ({report.mime_type})")
    if report.width and report.height:
        click.echo(f"   Size: {report.width}x{report.height}  ratio {report.aspect_ratio}")
    if report.matched_format:
        click.echo(f"   Matched format: {report.matched_format}")
    if report.duration:
        click.echo(f"   Duration: {report.duration:.2f}s")
    click.echo(f"   {report.summary}")


@click.group()
def media() -> None:
    """Normalize images and videos to the publishing format catalog."""


@media.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None,
              help="Output path (default: <file>_normalized.<ext>).")
@click.option("--mode", type=click.Choice(MODES), default=None, help="Processing mode (default: from config).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--mock", is_flag=True, help="Use mock encoder/prober (no ffmpeg).")
@click.pass_context
def process(
    ctx: click.Context,
    file: str,
    output: str | None,
    mode: str | None,
    as_json: bool,
    mock: bool,
) -> None:
    """Normalize FILE and write the result next to it."""
    source = Path(file).resolve()
    pipeline = get_pipeline(ctx, mock=mock)

    try:
        result = pipeline.process_path(source, mode)  # type: ignore[arg-type]
    except EncoderUnavailable as e:
        click.secho(f"❌ {e.message}", fg="red")
        sys.exit(2)

    written: Path | None = None
    if result.ok and result.outcome is not None and result.outcome.was_transformed:
        written = Path(output) if output else _default_output(source, result.outcome.extension, "normalized")
        written.write_bytes(result.outcome.output_bytes)

    if as_json:
        payload = {
            "ok": result.ok,
            "report": result.report.model_dump(),
            "failure": result.failure.model_dump() if result.failure else None,
            "output": str(written) if written else None,
        }
        click.echo(json.dumps(payload, indent=2))
    else:
        _print_result(result, source)
        if written:
            click.secho(f"   ✅ Written: {written} ({result.outcome.size:,} bytes)", fg="green")  # type: ignore[union-attr]

    if not result.ok:
        sys.exit(1)


@media.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--mock", is_flag=True, help="Use mock prober (no ffprobe).")
@click.pass_context
def inspect(ctx: click.Context, file: str, as_json: bool, mock: bool) -> None:
    """Report type, size, ratio and matched format without transforming."""
    source = Path(file).resolve()
    result = get_pipeline(ctx, mock=mock).process_path(source, "metadata")

    if as_json:
        click.echo(json.dumps({
            "ok": result.ok,
            "report": result.report.model_dump(),
            "failure": result.failure.model_dump() if result.failure else None,
        }, indent=2))
    else:
        _print_result(result, source)

    if not result.ok:
        sys.exit(1)


@media.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--seconds", "-s", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Length to keep (default: from the video profile).")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None,
              help="Output path (default: <file>_trimmed.<ext>).")
@click.option("--mock", is_flag=True, help="Use mock encoder (no ffmpeg).")
@click.pass_context
def trim(ctx: click.Context, file: str, seconds: float | None, output: str | None, mock: bool) -> None:
    """Stream-copy the first seconds of a video (no re-encode)."""
    source = Path(file).resolve()
    pipeline = get_pipeline(ctx, mock=mock)
    dst = Path(output) if output else _default_output(source, source.suffix, "trimmed")

    try:
        result = pipeline.videos.trim(source, dst, seconds=seconds)
    except EncoderUnavailable as e:
        click.secho(f"❌ {e.message}", fg="red")
        sys.exit(2)
    except NormalizationError as e:
        click.secho(f"❌ {e.message}", fg="red")
        if e.diagnostic:
            for line in e.diagnostic.strip().splitlines()[-5:]:
                click.echo(f"     │ {line}")
        sys.exit(1)

    click.secho(f"✅ Trimmed: {source.name}", fg="green", bold=True)
    click.echo(f"   Output: {result.output_path}")
    click.echo(f"   {', '.join(result.summary())}")


@media.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def formats(ctx: click.Context, as_json: bool) -> None:
    """List the target format catalog in match order."""
    catalog = get_settings(ctx).catalog()

    if as_json:
        click.echo(json.dumps(catalog.to_list(), indent=2))
        return

    click.secho(f"\n📋 Formats: {len(catalog)}", fg="cyan", bold=True)
    for fmt in catalog:
        click.echo(f"   • {fmt.name:<10} {fmt.target_width}x{fmt.target_height}  ({fmt.formatted_ratio})")
    click.echo()


@media.command()
@click.argument("url")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--mock", is_flag=True, help="Use mock prober (no ffprobe).")
@click.pass_context
def ratio(ctx: click.Context, url: str, as_json: bool, mock: bool) -> None:
    """Probe the head of a remote video and report its aspect ratio."""
    from asset_normalizer.core.services.probe import probe_remote

    if not url.startswith(("http://", "https://")):
        click.secho("❌ URL must start with http:// or https://", fg="red")
        sys.exit(1)

    pipeline = get_pipeline(ctx, mock=mock)
    try:
        report = probe_remote(url, pipeline.prober, pipeline.catalog)
    except NormalizationError as e:
        click.secho(f"❌ {e.message}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(report.model_dump(), indent=2))
        return

    click.secho(f"📐 {url}", fg="cyan", bold=True)
    click.echo(f"   Size: {report.width}x{report.height}")
    click.echo(f"   Ratio: {report.formatted_ratio} ({report.original_ratio:.4f})")
    click.echo(f"   Standard format: {report.standard_format}")
    if report.duration:
        click.echo(f"   Duration: {report.duration:.2f}s")
