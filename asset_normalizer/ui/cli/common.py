"""Shared helpers for CLI command groups."""

from __future__ import annotations

import sys

import click

from asset_normalizer.core.config.loader import Settings
from asset_normalizer.core.services.pipeline import MediaPipeline


def get_settings(ctx: click.Context) -> Settings:
    """Settings loaded by the root group; exits if the config was invalid."""
    settings: Settings | None = ctx.obj.get("settings")
    if settings is None:
        click.secho(f"❌ {ctx.obj.get('config_error', 'No configuration loaded')}", fg="red")
        sys.exit(1)
    return settings


def get_pipeline(ctx: click.Context, mock: bool = False) -> MediaPipeline:
    return MediaPipeline.from_settings(get_settings(ctx), mock_mode=mock)
