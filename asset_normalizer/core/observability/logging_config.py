"""
Logging setup for the normalizer CLI and upload server.

One call per process: ``main.cli`` runs it before any command. Modules
only ever do ``logger = logging.getLogger(__name__)``.

Console level, highest precedence first:
    --debug / -v / -q  >  ANORM_LOG_LEVEL  >  log_level in normalizer.yml  >  WARNING

File output comes from ANORM_LOG_FILE / ANORM_LOG_FILE_LEVEL, else from
``log_file`` / ``log_file_level`` in normalizer.yml. Encoder stderr
attached to a record is clipped on the console; the file keeps all of it.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

_FMT_MINIMAL = "%(message)s"
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_FMT_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"

_DATEFMT_CONSOLE = "%H:%M:%S"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# Lines of a multi-line record (ffmpeg stderr) shown on the console
CONSOLE_MAX_LINES = 12

# PIL logs every plugin import at DEBUG; werkzeug logs every request at INFO
_NOISY_LOGGERS = ("PIL", "werkzeug", "urllib3")


class ClippingFormatter(logging.Formatter):
    """Formatter that keeps the head and tail of long multi-line messages."""

    def __init__(self, fmt: str, datefmt: str | None = None, max_lines: int = CONSOLE_MAX_LINES):
        super().__init__(fmt, datefmt=datefmt)
        self.max_lines = max_lines

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        lines = text.splitlines()
        if len(lines) <= self.max_lines:
            return text
        head = self.max_lines // 2
        tail = self.max_lines - head
        skipped = len(lines) - self.max_lines
        return "\n".join([*lines[:head], f"    … {skipped} lines clipped …", *lines[-tail:]])


def resolve_level(
    cli_level: str | None = None,
    configured: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the effective console level name."""
    env = os.environ if environ is None else environ
    return (cli_level or env.get("ANORM_LOG_LEVEL") or configured or "WARNING").upper()


def resolve_log_file(
    configured_file: str | None = None,
    configured_level: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> tuple[str | None, str | None]:
    """Log file path and level; the environment beats normalizer.yml."""
    env = os.environ if environ is None else environ
    return (
        env.get("ANORM_LOG_FILE") or configured_file,
        env.get("ANORM_LOG_FILE_LEVEL") or configured_level,
    )


def _console_handler(numeric_level: int) -> logging.Handler:
    if numeric_level <= logging.DEBUG:
        formatter = ClippingFormatter(_FMT_DETAILED, _DATEFMT_CONSOLE)
    elif numeric_level <= logging.INFO:
        formatter = ClippingFormatter(_FMT_VERBOSE, _DATEFMT_CONSOLE)
    else:
        formatter = ClippingFormatter(_FMT_MINIMAL)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(formatter)
    return handler


def _file_handler(path: str, numeric_level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(_FMT_DETAILED, datefmt=_DATEFMT_FILE))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Replace the root logger's handlers.

    Args:
        level: Console level name; unknown names mean WARNING.
        log_file: Optional log file path.
        log_file_level: Level for the file; defaults to ``level``.
        quiet_third_party: Hold PIL/werkzeug/urllib3 at WARNING unless
            the console is at DEBUG.
    """
    console_level = _parse_level(level)

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
        old.close()
    root.addHandler(_console_handler(console_level))
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        root.addHandler(_file_handler(log_file, file_level))
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
