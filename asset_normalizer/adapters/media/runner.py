"""
Tool runner — execute an external media tool and capture its output.

Every ffmpeg/ffprobe call goes through ``run_tool`` so that timeouts,
missing binaries and non-zero exits all come back the same way: as a
failed ``ToolReceipt``, never as an exception.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time

from asset_normalizer.core.models.receipt import ToolReceipt

logger = logging.getLogger(__name__)

# Keep receipts small; ffmpeg can print megabytes of progress
_MAX_CAPTURE = 8000


def _tail(text: str | bytes | None) -> str:
    if text is None:
        return ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    return text[-_MAX_CAPTURE:]


def run_tool(
    argv: list[str],
    *,
    adapter: str,
    operation: str,
    timeout: int,
) -> ToolReceipt:
    """Run ``argv`` with a bounded timeout and return a receipt."""
    logger.debug("Executing: %s (timeout=%ss)", shlex.join(argv), timeout)
    start = time.monotonic()

    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.warning("%s %s timed out after %ss", adapter, operation, timeout)
        return ToolReceipt.failure(
            adapter=adapter,
            operation=operation,
            error=f"{operation} timed out after {timeout}s",
            stderr=_tail(e.stderr),
            timed_out=True,
            duration_ms=elapsed_ms,
            command=argv,
            metadata={"timeout": timeout},
        )
    except OSError as e:
        return ToolReceipt.failure(
            adapter=adapter,
            operation=operation,
            error=f"{operation} could not start: {e}",
            command=argv,
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    output = _tail(result.stdout).strip()
    stderr = _tail(result.stderr).strip()

    if result.returncode == 0:
        return ToolReceipt.success(
            adapter=adapter,
            operation=operation,
            output=output,
            stderr=stderr,
            return_code=result.returncode,
            duration_ms=elapsed_ms,
            command=argv,
        )

    return ToolReceipt.failure(
        adapter=adapter,
        operation=operation,
        error=f"{operation} exited with code {result.returncode}",
        output=output,
        stderr=stderr,
        return_code=result.returncode,
        duration_ms=elapsed_ms,
        command=argv,
    )
