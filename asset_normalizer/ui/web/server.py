"""
Upload server — Flask app factory.

Builds the pipeline and uploader once per app and exposes them to the
route blueprints through ``app.extensions``. The encoder is checked at
start-up so a missing ffmpeg is logged before the first upload.
"""

from __future__ import annotations

import logging
from pathlib import Path

from flask import Flask

from asset_normalizer.adapters.storage.filesystem import LocalDirectoryUploader
from asset_normalizer.core.config.loader import Settings, load_settings
from asset_normalizer.core.observability.health import check_encoder
from asset_normalizer.core.services.pipeline import MediaPipeline

logger = logging.getLogger(__name__)

EXTENSION_KEY = "asset_normalizer"


def create_app(
    settings: Settings | None = None,
    config_path: Path | None = None,
    mock_mode: bool = False,
    pipeline: MediaPipeline | None = None,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        settings: Pre-loaded settings (default: ``load_settings(config_path)``).
        config_path: Path to normalizer.yml.
        mock_mode: Use in-memory mock encoder/prober instead of ffmpeg.
        pipeline: Pre-built pipeline (tests inject one with configured mocks).

    Returns:
        Configured Flask application.
    """
    if settings is None:
        settings = pipeline.settings if pipeline is not None else load_settings(config_path)
    if pipeline is None:
        pipeline = MediaPipeline.from_settings(settings, mock_mode=mock_mode)

    app = Flask(__name__)
    app.config["CONFIG_PATH"] = str(config_path) if config_path else None
    app.config["MOCK_MODE"] = mock_mode
    app.config["MAX_CONTENT_LENGTH"] = settings.storage.max_upload_mb * 1024 * 1024

    storage = settings.storage
    app.extensions[EXTENSION_KEY] = {
        "settings": settings,
        "pipeline": pipeline,
        "uploader": LocalDirectoryUploader(storage.upload_dir, storage.public_base_url),
    }

    encoder = check_encoder(pipeline.encoder)
    if encoder.status != "healthy":
        logger.error("%s; video uploads will return 503", encoder.message)

    from asset_normalizer.ui.web.routes_upload import upload_bp

    app.register_blueprint(upload_bp, url_prefix="/api")

    logger.info("Upload app created (mock=%s, upload_dir=%s)", mock_mode, storage.upload_dir)
    return app


def run_server(
    app: Flask,
    host: str = "127.0.0.1",
    port: int = 8000,
    debug: bool = False,
) -> None:
    """Run the Flask development server."""
    logger.info("Starting upload server on %s:%d", host, port)
    app.run(host=host, port=port, debug=debug, use_reloader=False)
