"""Path helpers shared by the scanners, the guard and the executor."""

from __future__ import annotations

import os

CELLAR_MARKER = "/Cellar/"


def is_path_inside(path: str, root: str, *, strict: bool = True) -> bool:
    """Whether ``path`` lies under ``root`` (path-boundary aware).

    With ``strict`` the root itself does not count as inside.
    Both sides are normalized lexically; callers that care about
    symlinks resolve them first.
    """
    if not path or not root:
        return False
    path = os.path.normpath(path)
    root = os.path.normpath(root)
    if path == root:
        return not strict
    prefix = root if root.endswith(os.sep) else root + os.sep
    return path.startswith(prefix)


def formula_from_path(install_root: str) -> str | None:
    """Formula name from a cellar path.

    ``/opt/homebrew/Cellar/node@20/20.11.1`` → ``node@20``.
    """
    _, marker, rest = install_root.partition(CELLAR_MARKER)
    if not marker:
        return None
    formula = rest.split("/", 1)[0]
    return formula or None
