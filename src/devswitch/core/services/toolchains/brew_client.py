"""
Homebrew client — queries and mutations against the ``brew`` CLI.

Read-only queries (``search``, ``info --json=v2``) run to completion
through the command runner and are parsed here. Mutations (``install``,
``uninstall``) come back as a ``StreamedOperation`` the caller drives.

``brew search`` only does substring matching, so every search is a
two-stage filter: a broad search on the formula base name, then a local
re-check of each token against the ecosystem's formula pattern.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from devswitch.adapters.base import CommandRunner, CommandStream
from devswitch.adapters.shell.filesystem import FilesystemProbe
from devswitch.core.config.loader import Settings
from devswitch.core.models.ecosystem import EcosystemDescriptor
from devswitch.core.models.toolchain import RemoteCatalogEntry
from devswitch.core.services.toolchains.operation import StreamedOperation

logger = logging.getLogger(__name__)

BREW_CANDIDATES = ("/opt/homebrew/bin/brew", "/usr/local/bin/brew")


@dataclass(frozen=True)
class FormulaInfo:
    version: str
    is_installed: bool


def version_sort_key(version: str) -> tuple:
    """Numeric-aware key: ``"1.21.10"`` sorts after ``"1.21.9"``."""
    return tuple(
        (int(token), "") if token.isdigit() else (-1, token)
        for token in re.findall(r"\d+|[A-Za-z]+", version)
    )


class HomebrewClient:
    """Thin wrapper over the ``brew`` executable."""

    def __init__(
        self,
        runner: CommandRunner,
        settings: Settings,
        probe: FilesystemProbe | None = None,
    ):
        self._runner = runner
        self._settings = settings
        self._probe = probe or FilesystemProbe()
        self._brew_path: str | None = None
        self._resolved = False

    # ── Discovery ───────────────────────────────────────────────

    def resolve_brew_path(self) -> str | None:
        """Locate ``brew``: configured path, well-known prefixes, then PATH.

        An explicitly configured path is authoritative; if it doesn't
        exist, Homebrew is treated as absent.
        """
        if self._resolved:
            return self._brew_path
        self._resolved = True

        configured = self._settings.brew_path
        if configured:
            path = self._settings.expand(configured)
            self._brew_path = path if self._probe.exists(path) else None
        else:
            self._brew_path = next(
                (c for c in BREW_CANDIDATES if self._probe.exists(c)), None,
            ) or self._runner.which("brew")

        if self._brew_path:
            logger.debug("Homebrew at %s", self._brew_path)
        else:
            logger.debug("Homebrew not found")
        return self._brew_path

    @property
    def is_available(self) -> bool:
        return self.resolve_brew_path() is not None

    # ── Queries ─────────────────────────────────────────────────

    def search(self, descriptor: EcosystemDescriptor) -> list[str]:
        """Formula names matching the ecosystem's pattern, in output order."""
        brew = self.resolve_brew_path()
        if brew is None:
            return []

        receipt = self._runner.run(
            [brew, "search", descriptor.formula_base],
            timeout=self._settings.command_timeout,
        )
        if not receipt.ok:
            logger.debug("brew search %s failed: %s", descriptor.formula_base, receipt.error)
            return []

        pattern = re.compile(descriptor.formula_pattern)
        found: list[str] = []
        for line in receipt.stdout.splitlines():
            if not line.strip() or "==>" in line:
                continue
            for token in line.split():
                if token == "✔" or token in found:
                    continue
                if pattern.search(token):
                    found.append(token)

        logger.debug("brew search %s → %s", descriptor.formula_base, found)
        return found

    def batch_info(self, formulae: list[str]) -> dict[str, FormulaInfo]:
        """Stable version and install state for each formula.

        One batched query first; if it yields nothing and more than one
        formula was asked for, each is queried on its own so a single
        bad name can't blank the whole result.
        """
        if not formulae:
            return {}

        result = self._info(formulae)
        if result or len(formulae) == 1:
            return result

        logger.debug("Batched brew info empty, querying %d formulae one by one", len(formulae))
        merged: dict[str, FormulaInfo] = {}
        for formula in formulae:
            for name, info in self._info([formula]).items():
                merged.setdefault(name, info)
        return merged

    def _info(self, formulae: list[str]) -> dict[str, FormulaInfo]:
        brew = self.resolve_brew_path()
        if brew is None:
            return {}

        receipt = self._runner.run(
            [brew, "info", "--json=v2", *formulae],
            timeout=self._settings.command_timeout,
        )
        if not receipt.ok or not receipt.stdout.strip():
            logger.debug("brew info %s failed: %s", formulae, receipt.error or "empty output")
            return {}

        try:
            data = json.loads(receipt.stdout)
        except json.JSONDecodeError as e:
            logger.debug("brew info %s returned invalid JSON: %s", formulae, e)
            return {}

        entries = data.get("formulae") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            return {}

        result: dict[str, FormulaInfo] = {}
        for entry in entries:
            if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
                continue
            versions = entry.get("versions") or {}
            info = FormulaInfo(
                version=str(versions.get("stable") or "unknown"),
                is_installed=bool(entry.get("installed")),
            )
            result[entry["name"]] = info
            full_name = entry.get("full_name")
            if isinstance(full_name, str) and full_name != entry["name"]:
                result[full_name] = info
        return result

    def fetch_catalog(
        self,
        descriptor: EcosystemDescriptor,
        limit: int | None = None,
    ) -> list[RemoteCatalogEntry]:
        """Installable versions: the base formula first, then newest first."""
        formulae = self.search(descriptor)
        infos = self.batch_info(formulae)

        entries: list[RemoteCatalogEntry] = []
        for formula in formulae:
            info = infos.get(formula)
            if info is None:
                continue
            display = f"{descriptor.catalog_label} {info.version}"
            if formula == descriptor.formula_base:
                display += " (Latest)"
            entries.append(RemoteCatalogEntry(
                formula=formula,
                resolved_version=info.version,
                is_installed=info.is_installed,
                display_name=display,
            ))

        base = descriptor.formula_base
        entries.sort(key=lambda e: version_sort_key(e.resolved_version), reverse=True)
        entries.sort(key=lambda e: e.formula != base)

        limit = self._settings.catalog_limit if limit is None else limit
        return entries[:limit]

    # ── Mutations ───────────────────────────────────────────────

    def install(self, formula: str) -> StreamedOperation:
        return self._operation(f"Installing {formula}", ["install", formula])

    def uninstall(self, formula: str) -> StreamedOperation:
        # --ignore-dependencies: other formulae depending on a toolchain
        # must not block removing one of several side-by-side versions
        return self._operation(
            f"Uninstalling {formula}",
            ["uninstall", "--ignore-dependencies", formula],
        )

    def _operation(self, label: str, args: list[str]) -> StreamedOperation:
        brew = self.resolve_brew_path()
        if brew is None:
            stream = CommandStream.failed(["brew", *args], "Error: Homebrew not found")
        else:
            stream = self._runner.stream([brew, *args])
        return StreamedOperation(label, stream)
