"""
CLI commands for declared packages.

Thin wrappers over ``provisioner.core.use_cases.inventory``.
"""

from __future__ import annotations

import json
import sys

import click


def _print_kind(entry, verbose: bool) -> None:
    if entry.error:
        click.secho(f"   ❌ {entry.kind}: {entry.error}", fg="red")
        return
    icon = "✅" if not entry.missing else "⚠️"
    click.echo(f"   {icon} {entry.kind}: {len(entry.present)} present, {len(entry.missing)} missing")
    for name in entry.missing:
        click.secho(f"      + {name}", fg="yellow")
    if verbose:
        for name in entry.present:
            click.echo(f"      ✓ {name}")


@click.group()
def packages() -> None:
    """Packages — formulas, casks and store apps."""


@packages.command()
@click.option("--mock", is_flag=True, help="Query in-memory fakes instead of brew/mas.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, mock: bool, as_json: bool) -> None:
    """Show which declared packages are installed and which are missing."""
    from provisioner.core.use_cases.inventory import take_inventory
    from provisioner.ui.cli.prompts import ClickPrompter

    result = take_inventory(ctx.obj.get("config_path"), prompter=ClickPrompter(), mock=mock)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(2)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(2)

    click.secho("📦 Packages:", fg="cyan", bold=True)
    for entry in result.kinds:
        _print_kind(entry, ctx.obj.get("verbose", False))
    click.echo()
