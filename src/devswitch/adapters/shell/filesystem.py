"""
Filesystem probe — read-only existence and listing checks.

Every scanner looks at the disk through this class and nothing else.
Missing, unreadable, or oddly-typed paths are answered with "not
there" (``False`` / ``[]`` / ``None``); the probe never raises.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class FilesystemProbe:
    """Stateless filesystem checks."""

    def exists(self, root: str, relative: str = "") -> bool:
        """Whether ``root/relative`` exists (file or directory)."""
        try:
            return (Path(root) / relative).exists() if relative else Path(root).exists()
        except OSError:
            return False

    def is_dir(self, path: str) -> bool:
        try:
            return Path(path).is_dir()
        except OSError:
            return False

    def list_child_directories(self, root: str) -> list[str]:
        """Names of the immediate subdirectories of ``root``, sorted.

        Hidden entries are included; callers that skip them do so
        explicitly.
        """
        try:
            entries = os.scandir(root)
        except OSError as e:
            logger.debug("Cannot list %s: %s", root, e)
            return []

        names: list[str] = []
        with entries:
            for entry in entries:
                try:
                    if entry.is_dir():
                        names.append(entry.name)
                except OSError:
                    continue
        return sorted(names)

    def read_text(self, path: str) -> str | None:
        """File content, or ``None`` if it can't be read."""
        try:
            return Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Cannot read %s: %s", path, e)
            return None

    def realpath(self, path: str) -> str:
        try:
            return os.path.realpath(path)
        except (OSError, ValueError):
            return path
