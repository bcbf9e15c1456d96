"""
Shared CLI plumbing — settings, registry and argument helpers.

Commands pull everything from ``ctx.obj``. Tests (and embedders) may
pre-seed ``ctx.obj`` with ``settings`` and ``runner`` to run the CLI
against a fake machine.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from devswitch.core.config.loader import ConfigError, Settings, load_settings
from devswitch.core.models.toolchain import Ecosystem, InstalledVersion
from devswitch.core.services.toolchains.manager import ToolchainManager
from devswitch.core.services.toolchains.operation import filter_output_lines
from devswitch.core.services.toolchains.registry import ToolchainRegistry, build_registry


class EcosystemType(click.ParamType):
    """``jdk``/``java``, ``node``/``nodejs``, ``python``, ``go``/``golang``."""

    name = "ecosystem"

    def convert(self, value, param, ctx):
        if isinstance(value, Ecosystem):
            return value
        try:
            return Ecosystem.parse(value)
        except ValueError:
            choices = ", ".join(e.value for e in Ecosystem)
            self.fail(f"{value!r} is not one of: {choices}", param, ctx)


ECOSYSTEM = EcosystemType()


def get_settings(ctx: click.Context) -> Settings:
    """Settings for this invocation (loaded once, exits 1 on a bad config)."""
    obj = ctx.ensure_object(dict)
    if obj.get("settings") is None:
        config_dir: Path | None = obj.get("config_dir")
        try:
            obj["settings"] = load_settings(config_dir)
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red")
            sys.exit(1)
    return obj["settings"]


def get_registry(ctx: click.Context) -> ToolchainRegistry:
    """The registry for this invocation, closed when the command ends."""
    obj = ctx.ensure_object(dict)
    if obj.get("registry") is None:
        registry = build_registry(get_settings(ctx), obj.get("runner"))
        obj["registry"] = registry
        ctx.call_on_close(registry.close)
    return obj["registry"]


def get_manager(ctx: click.Context, ecosystem: Ecosystem) -> ToolchainManager:
    """A refreshed manager for one ecosystem."""
    manager = get_registry(ctx).get(ecosystem)
    assert manager is not None  # every ecosystem is registered
    manager.refresh_sync()
    return manager


def find_version(manager: ToolchainManager, selector: str) -> InstalledVersion:
    """Resolve a selector (id, install root, or version) or exit 1."""
    versions = manager.installed_versions
    wanted = selector.rstrip("/") or selector

    for predicate in (
        lambda v: v.id == selector,
        lambda v: v.install_root.rstrip("/") == wanted,
        lambda v: v.version == selector,
        lambda v: v.version.lstrip("v") == selector.lstrip("v"),
    ):
        matches = [v for v in versions if predicate(v)]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            click.secho(f"❌ '{selector}' is ambiguous:", fg="red")
            for v in matches:
                click.echo(f"   • {v.id}  {v.version}  {v.install_root}")
            click.echo("   Use the id or the full path instead.")
            sys.exit(1)

    click.secho(f"❌ No {manager.descriptor.display_name} installation matches '{selector}'", fg="red")
    sys.exit(1)


def echo_output(text: str) -> None:
    """Print package-manager output minus progress-bar noise."""
    for line in filter_output_lines(text):
        click.echo(f"   {line}")
