"""
CLI commands for custom scan paths.

Extra directories to look for installations in, per ecosystem, stored
in ``config.yml``.
"""

from __future__ import annotations

import json
import sys

import click

from devswitch.core.config.loader import add_custom_path, remove_custom_path, save_settings
from devswitch.core.models.toolchain import Ecosystem
from devswitch.ui.cli.common import ECOSYSTEM, get_settings


@click.group()
def paths() -> None:
    """Custom scan paths — list, add, remove."""


@paths.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_paths(ctx: click.Context, as_json: bool) -> None:
    """Show configured custom scan paths."""
    settings = get_settings(ctx)

    if as_json:
        click.echo(json.dumps(
            {e.value: settings.custom_paths_for(e) for e in Ecosystem},
            indent=2,
        ))
        return

    if not any(settings.custom_scan_paths.values()):
        click.secho("No custom scan paths configured.", dim=True)
        return

    for e in Ecosystem:
        configured = settings.custom_paths_for(e)
        if not configured:
            continue
        click.secho(f"{e.value}:", bold=True)
        for path in configured:
            click.echo(f"   • {path}")


@paths.command("add")
@click.argument("ecosystem", type=ECOSYSTEM)
@click.argument("path")
@click.pass_context
def add_path(ctx: click.Context, ecosystem: Ecosystem, path: str) -> None:
    """Scan PATH for ECOSYSTEM installations."""
    settings = get_settings(ctx)

    if not add_custom_path(settings, ecosystem, path):
        click.secho(f"⚠️  Not added: {path} is empty, already configured, or already scanned", fg="yellow")
        sys.exit(1)

    save_settings(settings)
    click.secho(f"✅ Added {path} for {ecosystem.value}", fg="green")


@paths.command("remove")
@click.argument("ecosystem", type=ECOSYSTEM)
@click.argument("path")
@click.pass_context
def remove_path(ctx: click.Context, ecosystem: Ecosystem, path: str) -> None:
    """Stop scanning PATH."""
    settings = get_settings(ctx)

    if not remove_custom_path(settings, ecosystem, path):
        click.secho(f"❌ {path} is not configured for {ecosystem.value}", fg="red")
        sys.exit(1)

    save_settings(settings)
    click.secho(f"✅ Removed {path}", fg="green")
