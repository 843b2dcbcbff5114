"""
Upload API — normalize an uploaded asset and store the result.

Blueprint: upload_bp
Prefix: /api
Routes:
    /api/upload         — multipart upload, runs the pipeline, stores output
    /api/aspect-ratio   — probe the head of a remote video by URL
    /api/formats        — the configured format catalog
    /api/health         — encoder / prober / catalog health
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from urllib.parse import urlparse

from flask import Blueprint, current_app, jsonify, request

from asset_normalizer.core.errors import EncoderUnavailable, NormalizationError, ProbeFormatError
from asset_normalizer.core.observability.health import check_system_health
from asset_normalizer.core.services.pipeline import MODES, MediaPipeline
from asset_normalizer.core.services.probe import probe_remote

logger = logging.getLogger(__name__)

upload_bp = Blueprint("upload", __name__)


def _pipeline() -> MediaPipeline:
    return current_app.extensions["asset_normalizer"]["pipeline"]


def _uploader():  # type: ignore[no-untyped-def]
    return current_app.extensions["asset_normalizer"]["uploader"]


# ── Upload ──────────────────────────────────────────────────────────


@upload_bp.route("/upload", methods=["POST"])
def upload():  # type: ignore[no-untyped-def]
    """Normalize and store one file.

    Multipart form data:
        file: the file to upload (required)
        mode: normalize | metadata | trim (default: configured mode)
    """
    from werkzeug.utils import secure_filename

    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    uploaded = request.files["file"]
    if not uploaded.filename:
        return jsonify({"error": "No filename"}), 400

    pipeline = _pipeline()
    mode = request.form.get("mode", "").strip() or pipeline.settings.mode
    if mode not in MODES:
        return jsonify({"error": f"Invalid mode '{mode}'. Valid: {', '.join(MODES)}"}), 400

    safe_name = secure_filename(uploaded.filename) or "upload"
    raw_data = uploaded.read()

    try:
        result = pipeline.process(raw_data, safe_name, mode)  # type: ignore[arg-type]
    except EncoderUnavailable as e:
        logger.error("Upload rejected: %s", e.message)
        return jsonify({"error": e.message, "failure": e.to_dict()}), 503

    if not result.ok:
        assert result.failure is not None
        return jsonify({
            "error": result.failure.message,
            "file_name": safe_name,
            "file_type": result.report.file_type,
            "failure": result.failure.model_dump(),
        }), 422

    outcome = result.outcome
    assert outcome is not None

    # Keep the original name unless the container changed
    if outcome.extension and Path(safe_name).suffix.lower() != outcome.extension:
        final_name = Path(safe_name).stem + outcome.extension
    else:
        final_name = safe_name

    try:
        file_url = _uploader().upload(io.BytesIO(outcome.output_bytes), final_name)
    except (OSError, ValueError) as e:
        logger.error("Storing %s failed: %s", final_name, e)
        return jsonify({"error": f"Failed to store file: {e}"}), 500

    report = result.report
    logger.info(
        "Upload: %s → %s  (%s → %s, %s)",
        safe_name, final_name,
        f"{len(raw_data):,}", f"{outcome.size:,}",
        report.summary,
    )

    return jsonify({
        "file_name": final_name,
        "original_name": safe_name,
        "file_url": file_url,
        "file_type": report.file_type,
        "mime_type": report.mime_type,
        "file_size": outcome.size,
        "original_size": len(raw_data),
        "width": report.width,
        "height": report.height,
        "original_ratio": round(report.width / report.height, 4) if report.height else 0,
        "aspect_ratio": report.aspect_ratio,
        "matched_format": report.matched_format,
        "duration": report.duration,
        "processed": outcome.was_transformed,
        "summary": list(outcome.summary),
        "message": (
            "File processed and uploaded successfully"
            if outcome.was_transformed
            else "File uploaded successfully without processing"
        ),
    })


@upload_bp.errorhandler(413)
def too_large(_e):  # type: ignore[no-untyped-def]
    limit = current_app.config.get("MAX_CONTENT_LENGTH") or 0
    return jsonify({"error": f"File exceeds the {limit // (1024 * 1024)} MB upload limit"}), 413


# ── Remote aspect ratio ─────────────────────────────────────────────


@upload_bp.route("/aspect-ratio")
def aspect_ratio():  # type: ignore[no-untyped-def]
    """Probe the first megabyte of a remote video."""
    url = request.args.get("url", "").strip()
    if not url:
        return jsonify({"error": "Missing 'url'"}), 400

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return jsonify({"error": "Invalid URL format"}), 400

    pipeline = _pipeline()
    try:
        report = probe_remote(url, pipeline.prober, pipeline.catalog)
    except NormalizationError as e:
        status = 422 if isinstance(e, ProbeFormatError) else 502
        return jsonify({"error": e.message, "failure": e.to_dict()}), status

    return jsonify(report.model_dump())


# ── Catalog / health ────────────────────────────────────────────────


@upload_bp.route("/formats")
def formats():  # type: ignore[no-untyped-def]
    return jsonify({"formats": _pipeline().catalog.to_list()})


@upload_bp.route("/health")
def health():  # type: ignore[no-untyped-def]
    pipeline = _pipeline()
    system = check_system_health(pipeline.encoder, pipeline.prober, pipeline.catalog)
    return jsonify(system.to_dict()), 503 if system.status == "unhealthy" else 200
