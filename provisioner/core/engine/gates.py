"""
Manual gates — external accounts that must be signed in by a human.

A gate's probe answers "is this account already authenticated here?".
Only a probe that positively says yes counts as met. A probe that
fails, raises, times out, or returns anything other than ``True``
leaves the gate unmet: an unnecessary halt is recoverable, acting on
an unauthenticated account is not.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from provisioner.adapters.shell.command import ShellRunner
from provisioner.core.models.manifest import AccountGateSpec

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_S = 30


@dataclass(frozen=True)
class AccountGate:
    """A named account check plus what the user must do when it fails."""

    name: str
    probe: Callable[[], bool]
    instructions: str = ""
    open_app: str | None = None

    @property
    def action(self) -> str:
        return self.instructions or f"Sign in to {self.name}"


@dataclass
class GateReport:
    met: list[str] = field(default_factory=list)
    unmet: list[AccountGate] = field(default_factory=list)

    @property
    def all_met(self) -> bool:
        return not self.unmet

    @property
    def actions(self) -> list[str]:
        return [g.action for g in self.unmet]

    def to_dict(self) -> dict:
        return {
            "all_met": self.all_met,
            "met": self.met,
            "unmet": [
                {"name": g.name, "instructions": g.action, "open_app": g.open_app}
                for g in self.unmet
            ],
        }


def check_account_gates(gates: list[AccountGate]) -> GateReport:
    """Probe every gate. Never raises."""
    report = GateReport()
    for gate in gates:
        try:
            confirmed = gate.probe() is True
        except Exception as e:  # a probe error is an unmet gate, not a crash
            logger.warning("Probe for %s raised: %s", gate.name, e)
            confirmed = False
        if confirmed:
            report.met.append(gate.name)
        else:
            logger.info("Gate unmet: %s", gate.name)
            report.unmet.append(gate)
    return report


def command_gate(spec: AccountGateSpec, runner: ShellRunner) -> AccountGate:
    """Gate whose probe is a command; exit status 0 means authenticated."""

    def probe() -> bool:
        receipt = runner.run(spec.probe, mutating=False, timeout=PROBE_TIMEOUT_S)
        return receipt.ok

    return AccountGate(
        name=spec.name,
        probe=probe,
        instructions=spec.instructions,
        open_app=spec.open_app,
    )


class ManualGatePrecondition:
    """The account gates consulted before the first account-dependent step."""

    def __init__(self, gates: list[AccountGate]):
        self.gates = list(gates)

    def check(self) -> GateReport:
        return check_account_gates(self.gates)
