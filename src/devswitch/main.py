"""
devswitch — CLI entrypoint.

Usage:
    devswitch --help
    devswitch status
    devswitch list node
    devswitch use jdk 21.0.2
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from devswitch import __version__
from devswitch.core.models.toolchain import Ecosystem
from devswitch.core.observability.logging_config import resolve_level, setup_logging
from devswitch.ui.cli.common import (
    ECOSYSTEM,
    echo_output,
    find_version,
    get_manager,
    get_registry,
    get_settings,
)


@click.group()
@click.version_option(version=__version__, prog_name="devswitch")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Configuration directory (default: $DEVSWITCH_CONFIG_DIR or ~/.config/devswitch).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_dir: str | None,
) -> None:
    """devswitch — switch between installed JDK, Node.js, Python and Go versions."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    if config_dir:
        ctx.obj["config_dir"] = Path(config_dir).expanduser()

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        quiet_third_party=not debug,
    )


# ── Overview ────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show the active version of every toolchain."""
    from devswitch.core.use_cases.overview import get_overview

    registry = get_registry(ctx)
    registry.refresh_all()
    result = get_overview(registry)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not ctx.obj.get("quiet"):
        click.secho("\n🧰 Toolchains", fg="cyan", bold=True)
        click.echo()

    for eco in result.ecosystems:
        count = f"{eco.installed_count} installed"
        if eco.is_configured:
            click.echo(f"   ✅ {eco.display_name:<10} {eco.active_version:<14} ", nl=False)
            click.secho(f"{eco.active_source} · {count}", dim=True)
        else:
            click.echo(f"   ⚪ {eco.display_name:<10} {'not set':<14} ", nl=False)
            click.secho(count, dim=True)

    if not result.has_any_configured:
        click.echo()
        click.secho("   No active versions yet. Pick one with: devswitch use <ecosystem> <version>", fg="yellow")
    click.echo()


@cli.command("list")
@click.argument("ecosystem", type=ECOSYSTEM, required=False)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_versions(ctx: click.Context, ecosystem: Ecosystem | None, as_json: bool) -> None:
    """List installed versions (all ecosystems unless one is given)."""
    ecosystems = [ecosystem] if ecosystem else list(Ecosystem)
    managers = [get_manager(ctx, e) for e in ecosystems]
    managers.sort(key=lambda m: m.descriptor.order)

    if as_json:
        click.echo(json.dumps([m.inventory.to_dict() for m in managers], indent=2))
        return

    for manager in managers:
        inventory = manager.inventory
        click.secho(f"\n📦 {manager.descriptor.display_name}", fg="cyan", bold=True)
        if not inventory.versions:
            click.secho("   (none found)", dim=True)
            continue
        for v in inventory.versions:
            is_active = v.id == inventory.active_id
            marker = "●" if is_active else " "
            line = f"   {marker} {v.version:<14} {v.source or v.provenance.display_name:<24} {v.install_root}"
            click.secho(line, fg="green" if is_active else None, bold=is_active)
    click.echo()


@cli.command()
@click.argument("ecosystem", type=ECOSYSTEM, required=False)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def current(ctx: click.Context, ecosystem: Ecosystem | None, as_json: bool) -> None:
    """Show the active installation(s)."""
    ecosystems = [ecosystem] if ecosystem else list(Ecosystem)
    actives = {e: get_manager(ctx, e).active_version for e in ecosystems}

    if as_json:
        click.echo(json.dumps(
            {e.value: (v.to_dict() if v else None) for e, v in actives.items()},
            indent=2,
        ))
        return

    for e, v in actives.items():
        if v is None:
            click.echo(f"{e.value}: (none)")
        else:
            click.echo(f"{e.value}: {v.version}  {v.install_root}")

    if ecosystem is not None and actives[ecosystem] is None:
        sys.exit(1)


# ── Switching ───────────────────────────────────────────────────


@cli.command()
@click.argument("ecosystem", type=ECOSYSTEM)
@click.argument("selector")
@click.pass_context
def use(ctx: click.Context, ecosystem: Ecosystem, selector: str) -> None:
    """Make SELECTOR (id, version or path) the active installation."""
    manager = get_manager(ctx, ecosystem)
    version = find_version(manager, selector)

    if manager.active_version and manager.active_version.id == version.id:
        click.secho(f"✓ {manager.descriptor.display_name} {version.version} is already active", fg="green")
        return

    if not manager.set_active(version):
        click.secho(f"❌ Failed to write {get_settings(ctx).fragment_path(ecosystem)}", fg="red")
        sys.exit(1)

    click.secho(f"✅ {manager.descriptor.display_name} {version.version} is now active", fg="green", bold=True)
    click.echo(f"   {version.install_root}")
    if not ctx.obj.get("quiet"):
        click.secho("   Open a new terminal (or re-source the env file) to pick it up.", dim=True)


@cli.command()
@click.argument("ecosystem", type=ECOSYSTEM)
@click.argument("selector")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@click.pass_context
def uninstall(ctx: click.Context, ecosystem: Ecosystem, selector: str, yes: bool) -> None:
    """Delete an installed version (Homebrew or version-manager only)."""
    manager = get_manager(ctx, ecosystem)
    version = find_version(manager, selector)

    if not manager.can_uninstall(version):
        active = manager.active_version
        if active is not None and active.id == version.id:
            reason = "it is the active installation"
        else:
            reason = f"{version.provenance.display_name} installations at this path are not managed here"
        click.secho(f"❌ Cannot uninstall {version.version}: {reason}", fg="red")
        sys.exit(1)

    if not yes:
        click.confirm(f"Uninstall {manager.descriptor.display_name} {version.version} ({version.install_root})?", abort=True)

    click.secho(f"🗑️  Uninstalling {version.version}...", fg="cyan")
    ok = manager.uninstall(version, on_output=echo_output).result()
    if not ok:
        click.secho("❌ Uninstall failed", fg="red")
        sys.exit(1)
    click.secho(f"✅ Uninstalled {version.version}", fg="green")


# ── Environment fragment ────────────────────────────────────────


@cli.command()
@click.argument("ecosystem", type=ECOSYSTEM)
@click.pass_context
def env(ctx: click.Context, ecosystem: Ecosystem) -> None:
    """Show the environment file for an ecosystem."""
    from devswitch.core.persistence.env_fragment import read_fragment

    path = get_settings(ctx).fragment_path(ecosystem)
    content = read_fragment(path)

    click.secho(f"# {path}", dim=True)
    if content is None:
        click.secho("# (not written yet — run: devswitch use ...)", fg="yellow")
        sys.exit(1)
    click.echo(content, nl=False)
    if not ctx.obj.get("quiet"):
        click.secho(f"# Add to your shell profile:  [ -f \"{path}\" ] && source \"{path}\"", dim=True)


# ── History ─────────────────────────────────────────────────────


@cli.command()
@click.option("-n", "count", default=20, type=int, help="Number of entries to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show recent switch / install / uninstall operations."""
    from devswitch.core.persistence.audit import AuditWriter

    entries = AuditWriter(get_settings(ctx).audit_path).read_recent(count)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.secho("No operations recorded yet.", dim=True)
        return

    for entry in entries:
        icon = "✅" if entry.status == "ok" else "❌"
        what = f"{entry.version} " if entry.version else ""
        click.echo(f"{icon} {entry.timestamp[:19]}  {entry.operation_type:<9} {entry.ecosystem:<6} {what}{entry.target}")


# ── Register sub-commands from devswitch/ui/cli/ ────────────────

from devswitch.ui.cli.catalog import catalog, install  # noqa: E402
from devswitch.ui.cli.paths import paths  # noqa: E402

cli.add_command(catalog)
cli.add_command(install)
cli.add_command(paths)


if __name__ == "__main__":
    cli()
