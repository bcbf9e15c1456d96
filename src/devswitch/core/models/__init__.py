"""
Domain models — Pydantic types for devswitch.

All models are re-exported here for convenient access:

    from devswitch.core.models import Ecosystem, InstalledVersion, Receipt
"""

from devswitch.core.models.ecosystem import (
    CellarLayout,
    EcosystemDescriptor,
    SystemProbe,
    VersionManagerSource,
)
from devswitch.core.models.receipt import Receipt
from devswitch.core.models.toolchain import (
    Ecosystem,
    EcosystemInventory,
    InstalledVersion,
    Provenance,
    RemoteCatalogEntry,
)

__all__ = [
    # ecosystem.py
    "CellarLayout",
    "Ecosystem",
    "EcosystemDescriptor",
    # toolchain.py
    "EcosystemInventory",
    "InstalledVersion",
    "Provenance",
    # receipt.py
    "Receipt",
    "RemoteCatalogEntry",
    "SystemProbe",
    "VersionManagerSource",
]
