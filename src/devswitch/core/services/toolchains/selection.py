"""
Active-selection resolver.

The environment fragment is free-form shell text, and the variables it
sets differ per ecosystem, so the active installation is found by
looking for install roots inside the text. A root only counts when it
is delimited: preceded by start of text, a quote, ``=``, ``:`` or
whitespace, and followed by end of text, a quote, ``:``, ``/`` or
whitespace. When several roots qualify (``.../1.21`` and
``.../1.21/go``), the longest wins.
"""

from __future__ import annotations

import logging
from typing import Iterable

from devswitch.core.config.loader import Settings
from devswitch.core.models.ecosystem import EcosystemDescriptor, shell_escape
from devswitch.core.models.toolchain import InstalledVersion
from devswitch.core.persistence.env_fragment import read_fragment

logger = logging.getLogger(__name__)

_BEFORE = frozenset("\"'=:")
_AFTER = frozenset("\"':/")


def _is_delimited(text: str, needle: str) -> bool:
    start = text.find(needle)
    while start != -1:
        end = start + len(needle)
        before = text[start - 1] if start > 0 else ""
        after = text[end] if end < len(text) else ""
        if (not before or before in _BEFORE or before.isspace()) and (
            not after or after in _AFTER or after.isspace()
        ):
            return True
        start = text.find(needle, start + 1)
    return False


def match_active(content: str, versions: Iterable[InstalledVersion]) -> InstalledVersion | None:
    """The installation whose root the fragment text references, if any."""
    best: InstalledVersion | None = None
    best_len = -1
    for version in versions:
        root = version.install_root.rstrip("/") or "/"
        if len(root) <= best_len:
            continue
        if _is_delimited(content, root) or _is_delimited(content, shell_escape(root)):
            best, best_len = version, len(root)
    return best


def resolve_active(
    settings: Settings,
    descriptor: EcosystemDescriptor,
    versions: Iterable[InstalledVersion],
) -> InstalledVersion | None:
    """Active installation for an ecosystem, or ``None``.

    A missing or unreadable fragment means nothing is active.
    """
    content = read_fragment(settings.fragment_path(descriptor.id))
    if content is None:
        return None
    active = match_active(content, versions)
    if active is None:
        logger.debug("%s fragment references no known installation", descriptor.display_name)
    return active
