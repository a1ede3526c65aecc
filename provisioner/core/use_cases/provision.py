"""
Provision use case — from a manifest path to a finished run.

Loads the manifest, builds the adapters and the session, wires the
privilege session, account gates and sleep inhibitor into the
orchestrator, and runs the pipeline. Nothing is persisted: every
decision a run makes is re-derived from the machine.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.base import Prompter
from provisioner.adapters.registry import AdapterRegistry, build_registry
from provisioner.core.config.loader import ConfigError, load_manifest, resolve_manifest_path
from provisioner.core.engine.gates import GateReport, ManualGatePrecondition, command_gate
from provisioner.core.engine.orchestrator import RunStatus, RunSummary, StepOrchestrator, StepReport
from provisioner.core.services.keep_awake import KeepAwake
from provisioner.core.services.privilege import RENEW_INTERVAL_S, PrivilegeSession
from provisioner.core.session import Session
from provisioner.core.steps import build_steps

logger = logging.getLogger(__name__)

CONFIG_ERROR_EXIT = 2


@dataclass
class ProvisionResult:
    """Result of a provisioning run (or of failing to start one)."""

    summary: RunSummary | None = None
    manifest_path: Path | None = None
    steps: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error or self.summary is None:
            return CONFIG_ERROR_EXIT
        return self.summary.exit_code

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error, "exit_code": self.exit_code}
        result = {
            "manifest": str(self.manifest_path) if self.manifest_path else None,
            "selected_steps": self.steps,
        }
        if self.summary:
            result.update(self.summary.to_dict())
        return result


def build_gates(manifest, registry: AdapterRegistry) -> ManualGatePrecondition:
    return ManualGatePrecondition([command_gate(spec, registry.runner) for spec in manifest.gates])


def run_provisioning(
    config_path: Path | None = None,
    *,
    prompter: Prompter | None = None,
    only: list[str] | None = None,
    dry_run: bool = False,
    mock: bool = False,
    registry: AdapterRegistry | None = None,
    home: str | None = None,
    renew_interval: float = RENEW_INTERVAL_S,
    on_event: Callable[[str, StepReport], None] | None = None,
) -> ProvisionResult:
    """Provision this machine from a manifest.

    Args:
        config_path: Explicit manifest path (default: search, then packaged).
        prompter: How the run reaches the user. Required unless ``registry``
            is given.
        only: Restrict to these step names (declared order is kept).
        dry_run: Log mutating commands instead of running them.
        mock: Use in-memory fakes for every external tool.
        registry: Pre-built adapters (tests).
        home: Home directory override (tests).
        renew_interval: Seconds between privilege renewals.
        on_event: Step progress callback.
    """
    result = ProvisionResult(manifest_path=resolve_manifest_path(config_path))

    try:
        manifest = load_manifest(result.manifest_path)
        steps = build_steps(only)
    except (ConfigError, ValueError) as e:
        result.error = str(e)
        return result
    result.steps = [s.name for s in steps]

    if registry is None:
        if prompter is None:
            raise ValueError("prompter is required when no registry is given")
        registry = build_registry(prompter, dry_run=dry_run, mock=mock)

    session = Session(manifest=manifest, adapters=registry)
    if home is not None:
        session.home = home

    orchestrator = StepOrchestrator(
        steps,
        privilege=PrivilegeSession(registry.sudo, interval=renew_interval),
        gates=build_gates(manifest, registry),
        keep_awake=KeepAwake(registry.runner),
        on_event=on_event,
    )
    summary = orchestrator.run(session)
    result.summary = summary

    if summary.status == RunStatus.INCOMPLETE:
        _open_sign_in_apps(registry, summary)
    return result


def _open_sign_in_apps(registry: AdapterRegistry, summary: RunSummary) -> None:
    for gate in summary.unmet_gates:
        app = gate.get("open_app")
        if not app:
            continue
        receipt = registry.macos.open_app(app)
        if receipt.failed:
            logger.warning("Could not open %s: %s", app, receipt.error)


@dataclass
class GateCheckResult:
    report: GateReport | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return self.report.to_dict() if self.report else {}


def probe_gates(
    config_path: Path | None = None,
    *,
    prompter: Prompter | None = None,
    mock: bool = False,
    registry: AdapterRegistry | None = None,
) -> GateCheckResult:
    """Probe every account gate without running any step."""
    result = GateCheckResult()
    try:
        manifest = load_manifest(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result
    if registry is None:
        if prompter is None:
            raise ValueError("prompter is required when no registry is given")
        registry = build_registry(prompter, mock=mock)
    result.report = build_gates(manifest, registry).check()
    return result
