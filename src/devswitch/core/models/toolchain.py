"""
Toolchain models — installations, inventories, and catalog entries.

An ``InstalledVersion`` is one discovered toolchain on disk. An
``EcosystemInventory`` is the complete result of one scan for one
ecosystem plus the active pointer resolved from the environment
fragment. Inventories are rebuilt wholesale on every refresh and
never mutated in place.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class Ecosystem(str, Enum):
    """A managed language toolchain family."""

    JDK = "jdk"
    NODE = "node"
    PYTHON = "python"
    GO = "go"

    @classmethod
    def parse(cls, value: str) -> Ecosystem:
        """Resolve a user-supplied name (accepts ``java`` / ``nodejs`` / ``golang``)."""
        key = value.strip().lower()
        aliases = {"java": "jdk", "openjdk": "jdk", "nodejs": "node", "golang": "go"}
        return cls(aliases.get(key, key))


class Provenance(str, Enum):
    """Where an installation was discovered.

    Decides both uninstall eligibility and the uninstall backend.
    """

    HOMEBREW = "homebrew"       # package-manager cellar
    NVM = "nvm"
    PYENV = "pyenv"
    GVM = "gvm"
    ASDF = "asdf"
    JAVA_HOME = "java_home"     # platform JDK registry
    SYSTEM = "system"           # reachable through PATH
    CUSTOM = "custom"           # user-configured scan path

    @property
    def is_package_manager(self) -> bool:
        return self is Provenance.HOMEBREW

    @property
    def is_version_manager(self) -> bool:
        return self in (Provenance.NVM, Provenance.PYENV, Provenance.GVM, Provenance.ASDF)

    @property
    def display_name(self) -> str:
        return {
            Provenance.HOMEBREW: "Homebrew",
            Provenance.NVM: "nvm",
            Provenance.PYENV: "pyenv",
            Provenance.GVM: "gvm",
            Provenance.ASDF: "asdf",
            Provenance.JAVA_HOME: "Java Home",
            Provenance.SYSTEM: "System",
            Provenance.CUSTOM: "Custom",
        }[self]


class InstalledVersion(BaseModel):
    """One discovered toolchain installation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    ecosystem: Ecosystem
    install_root: str               # directory that identifies the installation
    version: str                    # display-normalized
    provenance: Provenance
    source: str = ""                # human label, e.g. "Homebrew (node@18)"
    manager_root: str | None = None  # version manager's own root (containment checks)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ecosystem": self.ecosystem.value,
            "install_root": self.install_root,
            "version": self.version,
            "provenance": self.provenance.value,
            "source": self.source or self.provenance.display_name,
        }


class EcosystemInventory(BaseModel):
    """All installations for one ecosystem plus at most one active pointer.

    The pointer is an ``id``; a pointer that does not name an entry of
    ``versions`` is treated as "no active version".
    """

    model_config = ConfigDict(frozen=True)

    ecosystem: Ecosystem
    versions: tuple[InstalledVersion, ...] = ()
    active_id: str | None = None
    scanned_at: str = Field(default_factory=_now_iso)

    @property
    def active(self) -> InstalledVersion | None:
        if self.active_id is None:
            return None
        return self.get(self.active_id)

    def get(self, version_id: str) -> InstalledVersion | None:
        """Look up an installation by id."""
        for v in self.versions:
            if v.id == version_id:
                return v
        return None

    def with_active(self, active: InstalledVersion | None) -> EcosystemInventory:
        """Same inventory with a different active pointer."""
        return self.model_copy(update={"active_id": active.id if active else None})

    def to_dict(self) -> dict:
        active = self.active
        return {
            "ecosystem": self.ecosystem.value,
            "scanned_at": self.scanned_at,
            "active": active.id if active else None,
            "versions": [v.to_dict() for v in self.versions],
        }


class RemoteCatalogEntry(BaseModel):
    """A formula the package manager knows about, installed or not.

    Ephemeral: fetched on demand, never persisted.
    """

    model_config = ConfigDict(frozen=True)

    formula: str
    resolved_version: str
    is_installed: bool = False
    display_name: str = ""

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
