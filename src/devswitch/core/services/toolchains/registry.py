"""
Toolchain registry — the set of managers the front end works with.

Managers are independent; the registry only keeps them in display
order and fans out whole-machine operations like ``refresh_all``.
"""

from __future__ import annotations

import concurrent.futures
import logging
from typing import Iterator

from devswitch.adapters.base import CommandRunner
from devswitch.adapters.shell.command import SubprocessRunner
from devswitch.adapters.shell.filesystem import FilesystemProbe
from devswitch.core.config.loader import Settings
from devswitch.core.data.ecosystems import ordered_descriptors
from devswitch.core.models.toolchain import Ecosystem
from devswitch.core.persistence.audit import AuditWriter
from devswitch.core.services.event_bus import EventBus
from devswitch.core.services.toolchains.brew_client import HomebrewClient
from devswitch.core.services.toolchains.manager import Dispatch, ToolchainManager

logger = logging.getLogger(__name__)


class ToolchainRegistry:
    """Managers keyed by ecosystem, iterated in descriptor order."""

    def __init__(self, bus: EventBus | None = None):
        self.bus = bus or EventBus()
        self._managers: dict[Ecosystem, ToolchainManager] = {}

    def register(self, manager: ToolchainManager) -> None:
        if manager.ecosystem in self._managers:
            logger.debug("Replacing manager for %s", manager.ecosystem.value)
        self._managers[manager.ecosystem] = manager

    def unregister(self, ecosystem: Ecosystem) -> ToolchainManager | None:
        return self._managers.pop(ecosystem, None)

    def get(self, ecosystem: Ecosystem) -> ToolchainManager | None:
        return self._managers.get(ecosystem)

    def managers(self) -> list[ToolchainManager]:
        return sorted(self._managers.values(), key=lambda m: m.descriptor.order)

    def __iter__(self) -> Iterator[ToolchainManager]:
        return iter(self.managers())

    def __len__(self) -> int:
        return len(self._managers)

    def refresh_all(self, *, wait: bool = True) -> dict[Ecosystem, concurrent.futures.Future]:
        """Rescan every ecosystem in parallel (one worker each)."""
        futures = {m.ecosystem: m.refresh() for m in self.managers()}
        if wait:
            concurrent.futures.wait(futures.values())
        return futures

    def close(self) -> None:
        for manager in self._managers.values():
            manager.shutdown()


def build_registry(
    settings: Settings,
    runner: CommandRunner | None = None,
    *,
    probe: FilesystemProbe | None = None,
    bus: EventBus | None = None,
    audit: AuditWriter | None = None,
    dispatch: Dispatch | None = None,
) -> ToolchainRegistry:
    """One manager per supported ecosystem, sharing a Homebrew client."""
    runner = runner or SubprocessRunner()
    probe = probe or FilesystemProbe()
    audit = audit or AuditWriter(settings.audit_path)
    registry = ToolchainRegistry(bus)
    client = HomebrewClient(runner, settings, probe)

    for descriptor in ordered_descriptors():
        registry.register(ToolchainManager(
            descriptor,
            settings,
            runner,
            probe=probe,
            client=client,
            bus=registry.bus,
            audit=audit,
            dispatch=dispatch,
        ))
    return registry
