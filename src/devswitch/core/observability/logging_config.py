"""
Logging configuration — one setup call per process.

``devswitch.main`` calls ``setup_logging`` once, after resolving the
level with ``resolve_level``. Every other module only does
``logger = logging.getLogger(__name__)``.

Level precedence:
    --debug  >  --verbose  >  --quiet  >  DEVSWITCH_LOG_LEVEL  >  WARNING

File output (always full detail) is opt-in through DEVSWITCH_LOG_FILE,
with its own threshold in DEVSWITCH_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import os
import sys

LEVEL_ENV = "DEVSWITCH_LOG_LEVEL"
FILE_ENV = "DEVSWITCH_LOG_FILE"
FILE_LEVEL_ENV = "DEVSWITCH_LOG_FILE_LEVEL"

# ── Formats ─────────────────────────────────────────────────────────

# Console output shares the terminal with streamed package-manager
# text, so the default stays bare.
_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
}
_CONSOLE_DEFAULT = ("%(levelname)s: %(message)s", None)

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(threadName)s %(name)s:%(lineno)d — %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Scan workers run on a thread pool; its logger chatters at DEBUG
_NOISY_LOGGERS = ("concurrent.futures", "asyncio")


def resolve_level(*, debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LEVEL_ENV, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger for the whole process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file path. Defaults to $DEVSWITCH_LOG_FILE.
        log_file_level: File threshold. Defaults to
            $DEVSWITCH_LOG_FILE_LEVEL, then to ``level``.
        quiet_third_party: Hold noisy stdlib loggers at WARNING unless
            the console is at DEBUG.
    """
    console_level = _parse_level(level)
    log_file = log_file or os.environ.get(FILE_ENV)
    log_file_level = log_file_level or os.environ.get(FILE_LEVEL_ENV)

    fmt, datefmt = _CONSOLE_DEFAULT
    for threshold in sorted(_CONSOLE_FORMATS):
        if console_level <= threshold:
            fmt, datefmt = _CONSOLE_FORMATS[threshold]
            break

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        root_level = min(root_level, file_level)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(file_level)
        handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        root.addHandler(handler)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Level name → numeric constant (WARNING when unrecognised)."""
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.strip().upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
