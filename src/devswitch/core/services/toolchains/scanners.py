"""
Source scanners — discover installed toolchains for one ecosystem.

Each scanner looks at one kind of source and returns the installations
it can prove are real (the expected binary exists). Missing or
unreadable sources contribute nothing; no scanner raises.

Merge priority (first occurrence of an install root wins):

    Homebrew cellar → version managers → JDK registry → custom paths → system
"""

from __future__ import annotations

import logging
import os
import plistlib
import re
from xml.parsers.expat import ExpatError

from devswitch.adapters.base import CommandRunner
from devswitch.adapters.shell.filesystem import FilesystemProbe
from devswitch.core.config.loader import Settings
from devswitch.core.models.ecosystem import EcosystemDescriptor
from devswitch.core.models.toolchain import InstalledVersion, Provenance
from devswitch.core.services.toolchains.paths import is_path_inside

logger = logging.getLogger(__name__)

_REVISION_RE = re.compile(r"_\d+$")
_JAVA_VERSION_RE = re.compile(r'^JAVA_VERSION="([^"]+)"', re.MULTILINE)


def normalize_version(name: str) -> str:
    """Strip a Homebrew revision suffix: ``18.16.0_1`` → ``18.16.0``."""
    return _REVISION_RE.sub("", name)


def read_jdk_release_version(home: str, probe: FilesystemProbe) -> str | None:
    """``JAVA_VERSION`` from a JDK's ``release`` file, if present."""
    text = probe.read_text(os.path.join(home, "release"))
    if text is None:
        return None
    match = _JAVA_VERSION_RE.search(text)
    return match.group(1) if match else None


def _has_any(probe: FilesystemProbe, home: str, binaries: list[str]) -> bool:
    return any(probe.exists(home, b) for b in binaries)


def _visible_children(probe: FilesystemProbe, root: str) -> list[str]:
    return [name for name in probe.list_child_directories(root) if not name.startswith(".")]


# ── Homebrew cellar ─────────────────────────────────────────────────


def scan_cellar(
    descriptor: EcosystemDescriptor,
    cellar_roots: list[str],
    probe: FilesystemProbe,
) -> list[InstalledVersion]:
    """``<cellar>/<formula>/<version>`` trees for every matching formula."""
    found: list[InstalledVersion] = []

    for cellar in cellar_roots:
        for formula in _visible_children(probe, cellar):
            if not descriptor.matches_formula(formula):
                continue
            suffix = formula.partition("@")[2]

            for version_dir in _visible_children(probe, os.path.join(cellar, formula)):
                keg = os.path.join(cellar, formula, version_dir)

                for layout in descriptor.cellar_layouts:
                    home = os.path.join(keg, layout.home) if layout.home else keg
                    binaries = [b.format(suffix=suffix) for b in layout.binaries]
                    if not _has_any(probe, home, binaries):
                        continue

                    version = normalize_version(version_dir)
                    if descriptor.read_release_version:
                        version = read_jdk_release_version(home, probe) or version

                    found.append(InstalledVersion(
                        ecosystem=descriptor.id,
                        install_root=home,
                        version=version,
                        provenance=Provenance.HOMEBREW,
                        source=f"Homebrew ({formula})",
                    ))
                    break
                else:
                    logger.debug("Skipping %s: no %s binary", keg, descriptor.id.value)

    return found


# ── Version managers ────────────────────────────────────────────────


def scan_version_managers(
    descriptor: EcosystemDescriptor,
    settings: Settings,
    probe: FilesystemProbe,
) -> list[InstalledVersion]:
    """One entry per valid child of each version manager directory.

    The child directory name is the version label, verbatim.
    """
    found: list[InstalledVersion] = []

    for manager in descriptor.version_managers:
        root = settings.expand(manager.path)
        for child in _visible_children(probe, root):
            for nested in manager.nested:
                home = os.path.join(root, child, nested) if nested else os.path.join(root, child)
                if _has_any(probe, home, manager.binaries):
                    found.append(InstalledVersion(
                        ecosystem=descriptor.id,
                        install_root=home,
                        version=child,
                        provenance=manager.provenance,
                        source=manager.provenance.display_name,
                        manager_root=root,
                    ))
                    break

    return found


# ── JDK registry ────────────────────────────────────────────────────


def scan_jdk_registry(
    descriptor: EcosystemDescriptor,
    settings: Settings,
    runner: CommandRunner,
    probe: FilesystemProbe,
) -> list[InstalledVersion]:
    """JDKs known to the platform's ``java_home -X`` helper."""
    if not descriptor.uses_jdk_registry:
        return []

    helper = settings.java_home_helper
    if not probe.exists(helper):
        return []

    receipt = runner.run([helper, "-X"], timeout=settings.command_timeout)
    if not receipt.ok or not receipt.stdout.strip():
        logger.debug("java_home -X failed: %s", receipt.error)
        return []

    try:
        entries = plistlib.loads(receipt.stdout.encode("utf-8"))
    except (plistlib.InvalidFileException, ExpatError, ValueError) as e:
        logger.debug("Cannot parse java_home output: %s", e)
        return []
    if not isinstance(entries, list):
        return []

    found: list[InstalledVersion] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        home = entry.get("JVMHomePath")
        version = entry.get("JVMVersion")
        if not isinstance(home, str) or not isinstance(version, str):
            continue
        found.append(InstalledVersion(
            ecosystem=descriptor.id,
            install_root=home,
            version=version,
            provenance=Provenance.JAVA_HOME,
            source=str(entry.get("JVMName") or Provenance.JAVA_HOME.display_name),
        ))
    return found


# ── Custom scan paths ───────────────────────────────────────────────


def _custom_home(descriptor: EcosystemDescriptor, directory: str, probe: FilesystemProbe) -> str | None:
    for sub in descriptor.custom_homes:
        home = os.path.join(directory, sub) if sub else directory
        if _has_any(probe, home, descriptor.binaries):
            return home
    return None


def scan_custom_paths(
    descriptor: EcosystemDescriptor,
    settings: Settings,
    probe: FilesystemProbe,
) -> list[InstalledVersion]:
    """User-configured paths: an installation itself, or a parent of several."""
    found: list[InstalledVersion] = []

    for configured in settings.custom_paths_for(descriptor.id):
        path = settings.expand(configured)

        home = _custom_home(descriptor, path, probe)
        if home is not None:
            candidates = [(path, home)]
        else:
            candidates = []
            for child in _visible_children(probe, path):
                directory = os.path.join(path, child)
                child_home = _custom_home(descriptor, directory, probe)
                if child_home is not None:
                    candidates.append((directory, child_home))

        for directory, home in candidates:
            version = os.path.basename(directory)
            if descriptor.read_release_version:
                version = read_jdk_release_version(home, probe) or version
            found.append(InstalledVersion(
                ecosystem=descriptor.id,
                install_root=home,
                version=version,
                provenance=Provenance.CUSTOM,
                source=f"Custom ({configured})",
            ))

    return found


# ── System (PATH) ───────────────────────────────────────────────────


def scan_system(
    descriptor: EcosystemDescriptor,
    settings: Settings,
    runner: CommandRunner,
    probe: FilesystemProbe,
) -> list[InstalledVersion]:
    """The toolchain reachable through PATH, if its output looks right."""
    system_probe = descriptor.system_probe
    if system_probe is None:
        return []

    binary = runner.which(system_probe.binary)
    if not binary:
        return []

    receipt = runner.run([binary, *system_probe.version_args], timeout=settings.command_timeout)
    if not receipt.ok:
        return []

    output = (receipt.stdout.strip() or receipt.stderr.strip())
    if not output.startswith(system_probe.expected_prefix):
        logger.debug("Ignoring %s: unexpected version output %r", binary, output[:80])
        return []
    match = re.match(system_probe.version_regex, output)
    if not match:
        return []

    if system_probe.root_args:
        root_receipt = runner.run([binary, *system_probe.root_args], timeout=settings.command_timeout)
        root = root_receipt.stdout.strip() if root_receipt.ok else ""
        if not root:
            return []
    else:
        bin_dir = os.path.dirname(probe.realpath(binary))
        root = os.path.dirname(bin_dir)

    return [InstalledVersion(
        ecosystem=descriptor.id,
        install_root=root,
        version=match.group(1),
        provenance=Provenance.SYSTEM,
        source=Provenance.SYSTEM.display_name,
    )]


# ── Merge ───────────────────────────────────────────────────────────


def merge_installations(groups: list[list[InstalledVersion]]) -> list[InstalledVersion]:
    """Concatenate scanner outputs and drop duplicate install roots.

    Groups are given in priority order; the first occurrence of a root
    is kept. A system entry pointing inside an already-kept installation
    (``/opt/homebrew/bin/node`` resolving into the cellar) is dropped in
    favour of that installation.
    """
    merged: list[InstalledVersion] = []
    seen: set[str] = set()

    for group in groups:
        for version in group:
            root = os.path.normpath(version.install_root)
            if root in seen:
                continue
            if version.provenance is Provenance.SYSTEM and any(
                is_path_inside(root, kept.install_root) for kept in merged
            ):
                continue
            seen.add(root)
            merged.append(version)

    return merged


def scan_ecosystem(
    descriptor: EcosystemDescriptor,
    settings: Settings,
    runner: CommandRunner,
    probe: FilesystemProbe,
) -> list[InstalledVersion]:
    """Run every applicable scanner and merge the results."""
    groups = [
        scan_cellar(descriptor, settings.cellar_roots, probe),
        scan_version_managers(descriptor, settings, probe),
        scan_jdk_registry(descriptor, settings, runner, probe),
        scan_custom_paths(descriptor, settings, probe),
    ]
    if settings.scan_system:
        groups.append(scan_system(descriptor, settings, runner, probe))

    merged = merge_installations(groups)
    logger.info(
        "%s: %d installation(s) from %d candidate(s)",
        descriptor.display_name, len(merged), sum(len(g) for g in groups),
    )
    return merged
