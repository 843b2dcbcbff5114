"""
Tool receipts — the result contract between core services and adapters.

Adapters that shell out to ffmpeg/ffprobe never raise for tool
failures. They return a ``ToolReceipt`` and the core decides what the
failure means for the asset (fallback, corrupt input, transcode error).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ToolReceipt(BaseModel):
    """Outcome of one external tool invocation."""

    adapter: str
    operation: str
    status: Literal["ok", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    return_code: int | None = None
    output: str = ""
    stderr: str = ""
    error: str | None = None
    timed_out: bool = False

    command: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def diagnostic(self) -> str:
        """Best available failure text: stderr, else the error summary."""
        return self.stderr.strip() or (self.error or "")

    @classmethod
    def success(
        cls,
        adapter: str,
        operation: str,
        output: str = "",
        **kwargs: Any,
    ) -> ToolReceipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            operation=operation,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        operation: str,
        error: str,
        **kwargs: Any,
    ) -> ToolReceipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            operation=operation,
            status="failed",
            error=error,
            **kwargs,
        )
