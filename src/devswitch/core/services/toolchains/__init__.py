"""
Toolchain services — discovery, selection and lifecycle per ecosystem.
"""

from devswitch.core.services.toolchains.brew_client import FormulaInfo, HomebrewClient
from devswitch.core.services.toolchains.manager import ToolchainManager
from devswitch.core.services.toolchains.operation import (
    OperationState,
    OutputChunk,
    StreamedOperation,
    filter_output_lines,
    parse_progress,
)
from devswitch.core.services.toolchains.registry import ToolchainRegistry, build_registry
from devswitch.core.services.toolchains.scanners import merge_installations, scan_ecosystem
from devswitch.core.services.toolchains.selection import match_active, resolve_active
from devswitch.core.services.toolchains.uninstall import UninstallExecutor, can_uninstall

__all__ = [
    "FormulaInfo",
    "HomebrewClient",
    "OperationState",
    "OutputChunk",
    "StreamedOperation",
    "ToolchainManager",
    "ToolchainRegistry",
    "UninstallExecutor",
    "build_registry",
    "can_uninstall",
    "filter_output_lines",
    "match_active",
    "merge_installations",
    "parse_progress",
    "resolve_active",
    "scan_ecosystem",
]
