"""
Environment fragments — the persisted "active installation" per ecosystem.

A fragment is a tiny POSIX shell file (``java_env.sh``, ``node_env.sh``,
...) the user sources from their shell start-up. Its content is the
only source of truth for which installation is active. It is always
rewritten whole, through a temp file in the same directory followed by
a rename, so a crash mid-write leaves either the old or the new file.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from devswitch.core.config.loader import Settings
from devswitch.core.models.ecosystem import EcosystemDescriptor

logger = logging.getLogger(__name__)

_HEADER = "# Generated by devswitch. Changes are overwritten on the next switch.\n"


def read_fragment(path: Path) -> str | None:
    """Fragment content, or ``None`` if missing or unreadable."""
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Cannot read fragment %s: %s", path, e)
        return None


def render_fragment(descriptor: EcosystemDescriptor, install_root: str) -> str:
    """Full fragment text for making ``install_root`` active."""
    return _HEADER + descriptor.render_exports(install_root)


def write_fragment(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` atomically.

    Raises:
        OSError: If the directory can't be created or the file can't
            be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
    logger.debug("Fragment written: %s", path)


def write_active(settings: Settings, descriptor: EcosystemDescriptor, install_root: str) -> bool:
    """Persist ``install_root`` as the active installation.

    Returns:
        True on success. False (logged) if the fragment couldn't be
        written; the previous fragment is then untouched.
    """
    path = settings.fragment_path(descriptor.id)
    try:
        write_fragment(path, render_fragment(descriptor, install_root))
    except OSError as e:
        logger.error("Failed to write %s: %s", path, e)
        return False
    return True
