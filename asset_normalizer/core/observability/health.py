"""
Health checker — is this instance able to normalize media?

Reports the encoder, the prober and the format catalog. The encoder is
required (missing → unhealthy); the prober only degrades results
(missing → degraded, videos are handled with unknown dimensions). Used
by the CLI ``health`` command, ``GET /api/health`` and web start-up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from asset_normalizer.adapters.base import MediaEncoder, MediaProber
from asset_normalizer.core.models.media import FormatCatalog

logger = logging.getLogger(__name__)


@dataclass
class ComponentHealth:
    """Health of a single component."""

    name: str
    status: str = "unknown"  # healthy, degraded, unhealthy, unknown
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class SystemHealth:
    """Aggregate health; the worst component status wins."""

    status: str = "healthy"
    timestamp: str = ""
    components: list[ComponentHealth] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now(UTC).isoformat()

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"

    def add(self, component: ComponentHealth) -> None:
        self.components.append(component)
        self._recalculate()

    def get(self, name: str) -> ComponentHealth | None:
        return next((c for c in self.components if c.name == name), None)

    def _recalculate(self) -> None:
        statuses = [c.status for c in self.components]
        if "unhealthy" in statuses:
            self.status = "unhealthy"
        elif "degraded" in statuses:
            self.status = "degraded"
        elif all(s == "healthy" for s in statuses):
            self.status = "healthy"
        else:
            self.status = "unknown"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "components": [c.to_dict() for c in self.components],
        }


def check_encoder(encoder: MediaEncoder) -> ComponentHealth:
    """The encoder is mandatory for video normalization."""
    if encoder.is_available():
        return ComponentHealth(
            name="encoder",
            status="healthy",
            message=f"{encoder.name} available",
            details={"adapter": encoder.name},
        )
    return ComponentHealth(
        name="encoder",
        status="unhealthy",
        message=f"{encoder.name} not found; video processing disabled",
        details={"adapter": encoder.name},
    )


def check_prober(prober: MediaProber) -> ComponentHealth:
    if prober.is_available():
        return ComponentHealth(
            name="prober",
            status="healthy",
            message=f"{prober.name} available",
            details={"adapter": prober.name},
        )
    return ComponentHealth(
        name="prober",
        status="degraded",
        message=f"{prober.name} not found; video dimensions will be unknown",
        details={"adapter": prober.name},
    )


def check_catalog(catalog: FormatCatalog) -> ComponentHealth:
    if len(catalog) == 0:
        return ComponentHealth(name="catalog", status="unhealthy", message="No formats configured")
    return ComponentHealth(
        name="catalog",
        status="healthy",
        message=f"{len(catalog)} formats",
        details={"formats": catalog.names()},
    )


def check_system_health(
    encoder: MediaEncoder,
    prober: MediaProber,
    catalog: FormatCatalog,
) -> SystemHealth:
    """Run all health checks and return aggregate status."""
    health = SystemHealth()
    health.add(check_encoder(encoder))
    health.add(check_prober(prober))
    health.add(check_catalog(catalog))
    if not health.healthy:
        logger.warning("System health: %s", health.status)
    return health
