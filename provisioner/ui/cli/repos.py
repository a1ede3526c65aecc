"""
CLI commands for declared source repositories.

Thin wrappers over ``provisioner.core.use_cases.inventory``.
"""

from __future__ import annotations

import json
import sys

import click


@click.group()
def repos() -> None:
    """Repositories — what is cloned under the base directory."""


@repos.command("list")
@click.option("--mock", is_flag=True, help="Query in-memory fakes instead of the disk.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_repos(ctx: click.Context, mock: bool, as_json: bool) -> None:
    """List declared repositories and whether each is already cloned."""
    from provisioner.core.models.resource import ResourceKind
    from provisioner.core.use_cases.inventory import take_inventory
    from provisioner.ui.cli.prompts import ClickPrompter

    result = take_inventory(
        ctx.obj.get("config_path"),
        kinds=(ResourceKind.REPOSITORY,),
        prompter=ClickPrompter(),
        mock=mock,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(2)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(2)

    entry = result.kinds[0]
    if entry.error:
        click.secho(f"❌ {entry.error}", fg="red")
        sys.exit(1)

    click.secho(
        f"📂 Repositories: {len(entry.present)} cloned, {len(entry.missing)} missing",
        fg="cyan",
        bold=True,
    )
    for name in entry.present:
        click.secho(f"   ✓ {name}", fg="green")
    for name in entry.missing:
        click.secho(f"   ✗ {name}", fg="yellow")
    click.echo()
