"""
Toolchain manager — one instance per ecosystem.

Owns the published state (the current ``EcosystemInventory``) and
orchestrates scanning, active resolution, switching, install and
uninstall for its ecosystem.

Concurrency model
─────────────────
- Scans, package-manager commands and directory removal run on the
  manager's background executor (one worker, so operations on one
  ecosystem never overlap). ``refresh``, ``install`` and ``uninstall``
  return ``concurrent.futures.Future`` objects immediately.
- The inventory is an immutable snapshot swapped under ``_lock``.
  Readers always see a versions list and the active pointer that
  belong together.
- The fragment is read and written only while ``_lock`` is held, so a
  refresh that finishes after a switch resolves against the new file.
- Output callbacks go through ``dispatch`` (defaults to a direct call)
  so a front end can marshal them onto its own thread.
- At most one install/uninstall per ecosystem is in flight; a second
  request while busy resolves to ``False`` straight away.
"""

from __future__ import annotations

import concurrent.futures
import logging
import re
import threading
import time
from typing import Any, Callable

from devswitch.adapters.base import CommandRunner
from devswitch.adapters.shell.filesystem import FilesystemProbe
from devswitch.core.config.loader import Settings
from devswitch.core.models.ecosystem import EcosystemDescriptor
from devswitch.core.models.toolchain import (
    Ecosystem,
    EcosystemInventory,
    InstalledVersion,
    RemoteCatalogEntry,
)
from devswitch.core.persistence.audit import AuditEntry, AuditWriter
from devswitch.core.persistence.env_fragment import write_active
from devswitch.core.services.event_bus import (
    ACTIVE_CHANGED,
    INVENTORY_REFRESHED,
    OPERATION_FINISHED,
    OPERATION_OUTPUT,
    OPERATION_STARTED,
    EventBus,
)
from devswitch.core.services.toolchains.brew_client import HomebrewClient
from devswitch.core.services.toolchains.scanners import scan_ecosystem
from devswitch.core.services.toolchains.selection import resolve_active
from devswitch.core.services.toolchains.uninstall import UninstallExecutor, can_uninstall

logger = logging.getLogger(__name__)

OutputCallback = Callable[[str], None]
ProgressCallback = Callable[[float], None]
Dispatch = Callable[..., None]


def _call_now(fn: Callable[..., Any], *args: Any) -> None:
    fn(*args)


def _resolved(value: Any) -> concurrent.futures.Future:
    future: concurrent.futures.Future = concurrent.futures.Future()
    future.set_result(value)
    return future


class ToolchainManager:
    """Inventory, selection and lifecycle for one ecosystem."""

    def __init__(
        self,
        descriptor: EcosystemDescriptor,
        settings: Settings,
        runner: CommandRunner,
        *,
        probe: FilesystemProbe | None = None,
        client: HomebrewClient | None = None,
        bus: EventBus | None = None,
        audit: AuditWriter | None = None,
        executor: concurrent.futures.Executor | None = None,
        dispatch: Dispatch | None = None,
    ):
        self._descriptor = descriptor
        self._settings = settings
        self._runner = runner
        self._probe = probe or FilesystemProbe()
        self._client = client or HomebrewClient(runner, settings, self._probe)
        self._uninstaller = UninstallExecutor(self._client)
        self._bus = bus or EventBus()
        self._audit = audit
        self._dispatch = dispatch or _call_now

        self._owns_executor = executor is None
        self._executor = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=f"devswitch-{descriptor.id.value}",
        )

        self._lock = threading.Lock()
        self._inventory = EcosystemInventory(ecosystem=descriptor.id)
        self._busy = False

    # ── Published state ─────────────────────────────────────────

    @property
    def descriptor(self) -> EcosystemDescriptor:
        return self._descriptor

    @property
    def ecosystem(self) -> Ecosystem:
        return self._descriptor.id

    @property
    def client(self) -> HomebrewClient:
        return self._client

    @property
    def inventory(self) -> EcosystemInventory:
        """The current snapshot (versions and active pointer together)."""
        with self._lock:
            return self._inventory

    @property
    def installed_versions(self) -> tuple[InstalledVersion, ...]:
        return self.inventory.versions

    @property
    def active_version(self) -> InstalledVersion | None:
        return self.inventory.active

    @property
    def is_busy(self) -> bool:
        with self._lock:
            return self._busy

    def subscribe(self, callback: Callable[[dict], None]) -> Callable[[], None]:
        """Receive this ecosystem's events. Returns an unsubscribe handle."""
        key = self.ecosystem.value

        def _filtered(event: dict) -> None:
            if event.get("key") == key:
                callback(event)

        return self._bus.subscribe(_filtered)

    # ── Refresh ─────────────────────────────────────────────────

    def refresh(self) -> concurrent.futures.Future:
        """Rescan in the background; the Future resolves to the new inventory."""
        return self._executor.submit(self.refresh_sync)

    def refresh_sync(self) -> EcosystemInventory:
        """Rescan on the calling thread and publish the result."""
        versions = scan_ecosystem(self._descriptor, self._settings, self._runner, self._probe)

        with self._lock:
            active = resolve_active(self._settings, self._descriptor, versions)
            inventory = EcosystemInventory(
                ecosystem=self.ecosystem,
                versions=tuple(versions),
                active_id=active.id if active else None,
            )
            self._inventory = inventory

        self._publish(INVENTORY_REFRESHED, {
            "count": len(inventory.versions),
            "active": active.version if active else None,
        })
        return inventory

    # ── Switching ───────────────────────────────────────────────

    def set_active(self, version: InstalledVersion) -> bool:
        """Make ``version`` the active installation.

        Writes the fragment, then points the published inventory at
        ``version`` without a rescan. Returns False (pointer untouched)
        if ``version`` isn't in the inventory or the write fails.
        """
        start = time.monotonic()
        with self._lock:
            current = self._inventory
            if current.get(version.id) is None:
                logger.warning("%s is not in the %s inventory", version.install_root, self.ecosystem.value)
                return False
            ok = write_active(self._settings, self._descriptor, version.install_root)
            if ok:
                self._inventory = current.with_active(version)

        self._record("switch", version.install_root, version.version, ok, start,
                     errors=[] if ok else ["Failed to write environment fragment"])
        if ok:
            logger.info("%s → %s (%s)", self._descriptor.display_name, version.version, version.install_root)
            self._publish(ACTIVE_CHANGED, {"id": version.id, "version": version.version,
                                           "install_root": version.install_root})
        return ok

    # ── Uninstall ───────────────────────────────────────────────

    def can_uninstall(self, version: InstalledVersion) -> bool:
        """Eligibility against the current snapshot.

        Entries from an earlier scan carry stale ids and are refused.
        """
        inventory = self.inventory
        if inventory.get(version.id) is None:
            return False
        return can_uninstall(version, inventory.active, self._settings, self._descriptor)

    def uninstall(
        self,
        version: InstalledVersion,
        on_output: OutputCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> concurrent.futures.Future:
        """Delete ``version`` in the background; resolves to success.

        Ineligible requests resolve to False immediately, with the
        reason sent to ``on_output``; nothing is spawned or deleted.
        """
        sink = self._sink(on_output)
        if self.inventory.get(version.id) is None:
            sink(f"Error: {version.install_root} is not in the current inventory; refresh and try again")
            return _resolved(False)
        if not self.can_uninstall(version):
            sink(f"Error: {version.version} ({version.source or version.provenance.display_name}) cannot be uninstalled")
            return _resolved(False)
        if not self._begin():
            sink("Error: another operation is already running for this toolchain")
            return _resolved(False)

        return self._executor.submit(
            self._run_operation,
            "uninstall", version.install_root, version.version,
            lambda: self._uninstaller.uninstall(
                version, self.active_version, sink, self._progress_sink(on_progress),
            ),
            sink,
        )

    # ── Remote catalog / install ────────────────────────────────

    def fetch_catalog(self) -> list[RemoteCatalogEntry]:
        """Installable versions from Homebrew (blocking)."""
        return self._client.fetch_catalog(self._descriptor, self._settings.catalog_limit)

    def install(
        self,
        formula: str,
        on_output: OutputCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> concurrent.futures.Future:
        """Install a formula in the background; resolves to success."""
        sink = self._sink(on_output)
        if not re.search(self._descriptor.formula_pattern, formula):
            sink(f"Error: {formula} is not a {self._descriptor.display_name} formula")
            return _resolved(False)
        if not self._begin():
            sink("Error: another operation is already running for this toolchain")
            return _resolved(False)

        return self._executor.submit(
            self._run_operation,
            "install", formula, "",
            lambda: self._client.install(formula).run(sink, self._progress_sink(on_progress)),
            sink,
        )

    # ── Lifecycle ───────────────────────────────────────────────

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    # ── Internals ───────────────────────────────────────────────

    def _begin(self) -> bool:
        with self._lock:
            if self._busy:
                return False
            self._busy = True
            return True

    def _run_operation(
        self,
        operation: str,
        target: str,
        version: str,
        action: Callable[[], bool],
        sink: OutputCallback,
    ) -> bool:
        """Run ``action`` on the worker; failures of any kind resolve to False."""
        start = time.monotonic()
        self._publish(OPERATION_STARTED, {"operation": operation, "target": target})
        ok = False
        errors: list[str] = []
        try:
            ok = action()
            if ok:
                self.refresh_sync()
        except Exception as e:
            logger.exception("%s of %s failed", operation, target)
            ok = False
            errors.append(str(e))
            sink(f"Error: {e}")
        finally:
            with self._lock:
                self._busy = False
            self._publish(OPERATION_FINISHED, {"operation": operation, "target": target, "ok": ok})

        if not ok and not errors:
            errors.append(f"{operation} failed")
        self._record(operation, target, version, ok, start, errors=errors)
        return ok

    def _sink(self, on_output: OutputCallback | None) -> OutputCallback:
        def _emit(text: str) -> None:
            self._publish(OPERATION_OUTPUT, {"text": text})
            if on_output is not None:
                self._dispatch(on_output, text)
        return _emit

    def _progress_sink(self, on_progress: ProgressCallback | None) -> ProgressCallback | None:
        if on_progress is None:
            return None

        def _emit(value: float) -> None:
            self._dispatch(on_progress, value)
        return _emit

    def _publish(self, event_type: str, data: dict) -> None:
        self._bus.publish(event_type, key=self.ecosystem.value, data=data)

    def _record(
        self,
        operation: str,
        target: str,
        version: str,
        ok: bool,
        start: float,
        errors: list[str],
    ) -> None:
        if self._audit is None:
            return
        self._audit.write(AuditEntry(
            operation_type=operation,
            ecosystem=self.ecosystem.value,
            target=target,
            version=version,
            status="ok" if ok else "failed",
            duration_ms=int((time.monotonic() - start) * 1000),
            errors=errors,
        ))

    def __repr__(self) -> str:
        return f"<ToolchainManager {self.ecosystem.value} versions={len(self.installed_versions)}>"
