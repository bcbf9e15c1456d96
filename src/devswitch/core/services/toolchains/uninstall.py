"""
Uninstall guard and executor.

``can_uninstall`` is the pure eligibility rule the front end asks before
offering deletion. ``UninstallExecutor`` performs the deletion and
re-checks the hard preconditions itself: it never trusts an earlier
``can_uninstall`` answer.
"""

from __future__ import annotations

import logging
import os
import shutil
from typing import Callable

from devswitch.core.config.loader import Settings
from devswitch.core.models.ecosystem import EcosystemDescriptor
from devswitch.core.models.toolchain import InstalledVersion, Provenance
from devswitch.core.services.toolchains.brew_client import HomebrewClient
from devswitch.core.services.toolchains.paths import formula_from_path, is_path_inside

logger = logging.getLogger(__name__)


def _is_active(candidate: InstalledVersion, active: InstalledVersion | None) -> bool:
    """Same entry, or the same install root under a newer id."""
    if active is None:
        return False
    if candidate.id == active.id:
        return True
    return os.path.normpath(candidate.install_root) == os.path.normpath(active.install_root)


def _inside_manager_root(candidate: InstalledVersion) -> bool:
    if not candidate.manager_root:
        return False
    return is_path_inside(
        os.path.realpath(candidate.install_root),
        os.path.realpath(candidate.manager_root),
    )


def can_uninstall(
    candidate: InstalledVersion,
    active: InstalledVersion | None,
    settings: Settings,
    descriptor: EcosystemDescriptor,
) -> bool:
    """Whether ``candidate`` may be deleted.

    Never the active installation, never a system or custom one, never
    anything under a platform-reserved path. Homebrew entries must lie
    inside a configured cellar; version-manager entries strictly inside
    their manager's own root.
    """
    if _is_active(candidate, active):
        return False
    if candidate.provenance is Provenance.SYSTEM:
        return False
    if any(
        is_path_inside(candidate.install_root, reserved, strict=False)
        for reserved in descriptor.reserved_paths
    ):
        return False

    if candidate.provenance is Provenance.HOMEBREW:
        return any(is_path_inside(candidate.install_root, root) for root in settings.cellar_roots)
    if candidate.provenance.is_version_manager:
        return _inside_manager_root(candidate)
    return False


class UninstallExecutor:
    """Removes an installation through the backend its provenance calls for."""

    def __init__(self, client: HomebrewClient):
        self._client = client

    def uninstall(
        self,
        candidate: InstalledVersion,
        active: InstalledVersion | None,
        on_output: Callable[[str], None],
        on_progress: Callable[[float], None] | None = None,
    ) -> bool:
        """Delete ``candidate``. Failures are reported through ``on_output``."""
        if _is_active(candidate, active):
            on_output(f"Error: {candidate.version} is the active installation; switch away first")
            return False
        if candidate.provenance is Provenance.SYSTEM:
            on_output(f"Error: {candidate.install_root} is a system installation and is not managed here")
            return False

        if candidate.provenance is Provenance.HOMEBREW:
            return self._uninstall_formula(candidate, on_output, on_progress)
        if candidate.provenance.is_version_manager:
            return self._remove_directory(candidate, on_output)

        on_output(f"Error: uninstall is not supported for {candidate.provenance.display_name} installations")
        return False

    def _uninstall_formula(
        self,
        candidate: InstalledVersion,
        on_output: Callable[[str], None],
        on_progress: Callable[[float], None] | None,
    ) -> bool:
        formula = formula_from_path(candidate.install_root)
        if formula is None:
            on_output(f"Error: cannot determine the Homebrew formula for {candidate.install_root}")
            return False
        return self._client.uninstall(formula).run(on_output, on_progress)

    def _remove_directory(self, candidate: InstalledVersion, on_output: Callable[[str], None]) -> bool:
        if not _inside_manager_root(candidate):
            on_output(
                f"Error: {candidate.install_root} is not inside "
                f"{candidate.manager_root or 'a version manager directory'}; refusing to delete"
            )
            return False

        # Nested layouts (asdf's <version>/go) are removed from the version dir down
        relative = os.path.relpath(candidate.install_root, candidate.manager_root)
        target = os.path.join(candidate.manager_root, relative.split(os.sep, 1)[0])

        on_output(f"Removing {target}")
        try:
            shutil.rmtree(target)
        except OSError as e:
            logger.warning("Failed to remove %s: %s", candidate.install_root, e)
            on_output(f"Error: {e}")
            return False
        on_output(f"Removed {candidate.provenance.display_name} {candidate.version}")
        return True
