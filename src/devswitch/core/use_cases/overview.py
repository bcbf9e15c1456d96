"""
Overview use case — one-line status per ecosystem for the dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from devswitch.core.services.toolchains.registry import ToolchainRegistry


@dataclass
class EcosystemStatus:
    """Summary of one ecosystem."""

    ecosystem: str
    display_name: str
    installed_count: int = 0
    active_version: str | None = None
    active_source: str | None = None
    active_root: str | None = None
    busy: bool = False

    @property
    def is_configured(self) -> bool:
        return self.active_version is not None


@dataclass
class OverviewResult:
    """Status of every registered ecosystem, in display order."""

    ecosystems: list[EcosystemStatus] = field(default_factory=list)

    @property
    def has_any_configured(self) -> bool:
        return any(s.is_configured for s in self.ecosystems)

    @property
    def total_installed(self) -> int:
        return sum(s.installed_count for s in self.ecosystems)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "has_any_configured": self.has_any_configured,
            "total_installed": self.total_installed,
            "ecosystems": [
                {
                    "ecosystem": s.ecosystem,
                    "display_name": s.display_name,
                    "installed_count": s.installed_count,
                    "active": {
                        "version": s.active_version,
                        "source": s.active_source,
                        "install_root": s.active_root,
                    } if s.is_configured else None,
                    "busy": s.busy,
                }
                for s in self.ecosystems
            ],
        }


def get_overview(registry: ToolchainRegistry) -> OverviewResult:
    """Summarize the registry's current inventories (no rescan)."""
    result = OverviewResult()
    for manager in registry.managers():
        inventory = manager.inventory
        active = inventory.active
        result.ecosystems.append(EcosystemStatus(
            ecosystem=manager.ecosystem.value,
            display_name=manager.descriptor.display_name,
            installed_count=len(inventory.versions),
            active_version=active.version if active else None,
            active_source=(active.source or active.provenance.display_name) if active else None,
            active_root=active.install_root if active else None,
            busy=manager.is_busy,
        ))
    return result
