"""
Workstation provisioner — CLI entrypoint.

Usage:
    provision --help
    provision run --dry-run
    provision steps
    provision gates
    provision config check
    provision packages status
    provision repos list
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from provisioner import __version__
from provisioner.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="provision")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to provision.yml (default: auto-detect, then packaged default).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Provision this Mac into a known-good developer workstation."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(level=resolve_level(verbose=verbose, quiet=quiet, debug=debug))


# ── Run ─────────────────────────────────────────────────────────

_STATUS_STYLE = {
    "ok": ("✓", "green"),
    "failed": ("⚠", "yellow"),
    "aborted": ("✗", "red"),
    "incomplete": ("⏸", "yellow"),
}


def _progress(event: str, report) -> None:
    if event == "start":
        click.secho(f"   … {report.name}", fg="cyan")
        return
    icon, color = _STATUS_STYLE.get(report.status, ("•", "white"))
    click.secho(f"   {icon} {report.name}", fg=color, nl=False)
    click.echo(f" ({report.duration_s:.1f}s)")


@cli.command()
@click.option("--dry-run", is_flag=True, help="Log mutating commands without running them.")
@click.option("--mock", is_flag=True, help="Use in-memory fakes for every external tool.")
@click.option("--only", "only", multiple=True, help="Run only this step (repeatable).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(
    ctx: click.Context,
    dry_run: bool,
    mock: bool,
    only: tuple[str, ...],
    as_json: bool,
) -> None:
    """Run the provisioning pipeline.

    Safe to re-run at any time: anything already in place is left alone.

    Examples:

        provision run

        provision run --dry-run

        provision run --only packages --only repositories
    """
    from provisioner.core.use_cases.provision import run_provisioning
    from provisioner.ui.cli.prompts import ClickPrompter

    quiet = ctx.obj.get("quiet", False)
    if not as_json and not quiet:
        mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""
        click.secho(f"\n🚀 {mode_label}Provisioning workstation", fg="cyan", bold=True)

    result = run_provisioning(
        ctx.obj.get("config_path"),
        prompter=ClickPrompter(err=as_json),
        only=list(only) or None,
        dry_run=dry_run,
        mock=mock,
        on_event=None if (as_json or quiet) else _progress,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    summary = result.summary
    if result.error or summary is None:
        click.secho(f"❌ {result.error or 'Run did not start'}", fg="red")
        sys.exit(result.exit_code)

    click.echo()
    if summary.status == "completed":
        click.secho(f"✅ Completed in {summary.duration}", fg="green", bold=True)
    elif summary.status == "incomplete":
        click.secho(f"⏸  Paused after {summary.duration}: manual action required", fg="yellow", bold=True)
    else:
        click.secho(
            f"❌ Aborted at {summary.aborted_at} after {summary.duration}",
            fg="red",
            bold=True,
        )

    if summary.unmet_gates:
        click.echo()
        click.secho("   Sign in, then run again:", fg="yellow")
        for gate in summary.unmet_gates:
            click.echo(f"   • {gate['name']}: {gate['instructions']}")
    elif summary.manual_actions:
        click.echo()
        click.secho("   To do, then run again:", fg="yellow")
        for action in summary.manual_actions:
            click.echo(f"   • {action}")

    if summary.failures:
        click.echo()
        click.secho(f"⚠️  {len(summary.failures)} failure(s):", fg="yellow")
        for failure in summary.failures:
            marker = "✗" if failure.fatal else "•"
            click.echo(f"   {marker} [{failure.step or '-'}] {failure.source}: {failure.message}")
            if failure.hint:
                click.echo(f"     │ retry: {failure.hint}")

    click.echo()
    sys.exit(result.exit_code)


# ── Steps ───────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def steps(as_json: bool) -> None:
    """List the pipeline steps in the order they run."""
    from provisioner.core.engine.policy import step_severity
    from provisioner.core.steps import PIPELINE

    rows = [
        {
            "name": s.name,
            "description": s.description,
            "policy": str(step_severity(s.name)),
            "gated": s.gated,
        }
        for s in PIPELINE
    ]

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    click.secho(f"📋 {len(rows)} steps:", fg="cyan", bold=True)
    for i, row in enumerate(rows, start=1):
        flags = " [gated]" if row["gated"] else ""
        click.echo(f"   {i:2d}. {row['name']:<14} {row['description']}{flags}")
    click.echo()


# ── Gates ───────────────────────────────────────────────────────


@cli.command()
@click.option("--mock", is_flag=True, help="Probe in-memory fakes instead of real commands.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def gates(ctx: click.Context, mock: bool, as_json: bool) -> None:
    """Check which accounts are signed in, without running anything."""
    from provisioner.core.use_cases.provision import CONFIG_ERROR_EXIT, probe_gates
    from provisioner.ui.cli.prompts import ClickPrompter

    result = probe_gates(ctx.obj.get("config_path"), prompter=ClickPrompter(), mock=mock)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(CONFIG_ERROR_EXIT)
        return

    report = result.report
    if result.error or report is None:
        click.secho(f"❌ {result.error or 'No gate report'}", fg="red")
        sys.exit(CONFIG_ERROR_EXIT)

    click.secho("🔐 Account gates:", fg="cyan", bold=True)
    for name in report.met:
        click.secho(f"   ✅ {name}", fg="green")
    for gate in report.unmet:
        click.secho(f"   ❌ {gate.name}", fg="red", nl=False)
        click.echo(f" — {gate.action}")
    click.echo()


# ── Config ──────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Manifest configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate provision.yml."""
    from provisioner.core.use_cases.config_check import check_config
    from provisioner.core.use_cases.provision import CONFIG_ERROR_EXIT

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else CONFIG_ERROR_EXIT)

    m = result.manifest
    if result.valid and m is not None:
        click.secho("✅ Manifest is valid", fg="green", bold=True)
        click.echo(f"   File: {result.config_path}")
        click.echo(f"   Formulas: {len(m.formulas)} | Casks: {len(m.casks)} | Store apps: {len(m.store_apps)}")
        click.echo(f"   Repositories: {len(m.repositories.entries)} | Gates: {len(m.gates)}")
    else:
        click.secho("❌ Manifest errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    click.echo()
    if not result.valid:
        sys.exit(CONFIG_ERROR_EXIT)


# ── Register sub-command groups from provisioner/ui/cli/ ──────────

from provisioner.ui.cli.packages import packages
from provisioner.ui.cli.repos import repos

cli.add_command(packages)
cli.add_command(repos)


if __name__ == "__main__":
    cli()
