"""
CLI commands for the Homebrew catalog — browse and install versions.

Thin wrappers over ``ToolchainManager.fetch_catalog`` / ``install``.
"""

from __future__ import annotations

import json
import sys

import click

from devswitch.core.models.toolchain import Ecosystem
from devswitch.ui.cli.common import ECOSYSTEM, echo_output, get_manager


@click.command()
@click.argument("ecosystem", type=ECOSYSTEM)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def catalog(ctx: click.Context, ecosystem: Ecosystem, as_json: bool) -> None:
    """List versions Homebrew can install."""
    manager = get_manager(ctx, ecosystem)

    if not manager.client.is_available:
        if as_json:
            click.echo(json.dumps({"error": "Homebrew not found", "entries": []}, indent=2))
        else:
            click.secho("❌ Homebrew not found — install it from https://brew.sh", fg="red")
        sys.exit(1)

    entries = manager.fetch_catalog()

    if as_json:
        click.echo(json.dumps({"entries": [e.to_dict() for e in entries]}, indent=2))
        return

    if not entries:
        click.secho(f"⚠️  No {manager.descriptor.catalog_label} formulae found", fg="yellow")
        click.echo("   Try running 'brew update' first.")
        return

    click.secho(f"\n🍺 {manager.descriptor.catalog_label} via Homebrew", fg="cyan", bold=True)
    for entry in entries:
        mark = "✓" if entry.is_installed else " "
        click.echo(f"   {mark} {entry.display_name:<28} {entry.formula}")
    click.echo()


@click.command()
@click.argument("ecosystem", type=ECOSYSTEM)
@click.argument("formula")
@click.pass_context
def install(ctx: click.Context, ecosystem: Ecosystem, formula: str) -> None:
    """Install FORMULA (e.g. node@20) with Homebrew."""
    manager = get_manager(ctx, ecosystem)

    if not manager.client.is_available:
        click.secho("❌ Homebrew not found — install it from https://brew.sh", fg="red")
        sys.exit(1)

    click.secho(f"⏬ Installing {formula}...", fg="cyan")
    ok = manager.install(formula, on_output=echo_output).result()
    if not ok:
        click.secho(f"❌ Failed to install {formula}", fg="red")
        sys.exit(1)

    click.secho(f"✅ Installed {formula}", fg="green", bold=True)
    click.echo(f"   {len(manager.installed_versions)} {manager.descriptor.display_name} version(s) now installed")
