"""
Tests for manual account gates.
"""

import pytest

from provisioner.adapters.mock import MockRunner
from provisioner.core.engine.gates import (
    AccountGate,
    ManualGatePrecondition,
    check_account_gates,
    command_gate,
)
from provisioner.core.models.manifest import AccountGateSpec


def _raise():
    raise RuntimeError("probe crashed")


class TestCheckAccountGates:
    def test_true_probe_is_met(self):
        report = check_account_gates([AccountGate("App Store", lambda: True)])
        assert report.all_met
        assert report.met == ["App Store"]

    def test_false_probe_is_unmet(self):
        report = check_account_gates([AccountGate("App Store", lambda: False, "Sign in with your Apple ID")])
        assert not report.all_met
        assert report.actions == ["Sign in with your Apple ID"]

    def test_raising_probe_is_unmet(self):
        report = check_account_gates([AccountGate("Dropbox", _raise)])
        assert [g.name for g in report.unmet] == ["Dropbox"]

    @pytest.mark.parametrize("answer", [None, 1, "yes"])
    def test_only_true_counts(self, answer):
        report = check_account_gates([AccountGate("1Password", lambda: answer)])
        assert not report.all_met

    def test_mixed(self):
        report = check_account_gates([
            AccountGate("a", lambda: True),
            AccountGate("b", lambda: False),
            AccountGate("c", lambda: True),
        ])
        assert report.met == ["a", "c"]
        assert [g.name for g in report.unmet] == ["b"]

    def test_default_action(self):
        assert AccountGate("Chrome", lambda: False).action == "Sign in to Chrome"

    def test_to_dict(self):
        report = check_account_gates([AccountGate("App Store", lambda: False, open_app="App Store")])
        data = report.to_dict()
        assert data["all_met"] is False
        assert data["unmet"][0] == {
            "name": "App Store",
            "instructions": "Sign in to App Store",
            "open_app": "App Store",
        }


class TestCommandGate:
    def _spec(self):
        return AccountGateSpec(name="Mac App Store", probe=["mas", "list"])

    def test_exit_zero_is_met(self):
        runner = MockRunner()
        assert command_gate(self._spec(), runner).probe() is True
        assert runner.ran("mas", "list")

    def test_non_zero_is_unmet(self):
        runner = MockRunner()
        runner.set_failure(["mas", "list"], error="Not signed in")
        assert command_gate(self._spec(), runner).probe() is False

    def test_probe_runs_in_dry_run(self):
        runner = MockRunner(dry_run=True)
        command_gate(self._spec(), runner).probe()
        assert runner.ran("mas", "list")


class TestManualGatePrecondition:
    def test_all_met(self):
        gates = ManualGatePrecondition([AccountGate("a", lambda: True)])
        assert gates.check().all_met

    def test_unmet_gates_carry_instructions(self):
        gates = ManualGatePrecondition([
            AccountGate("App Store", lambda: False, "Sign in to the App Store"),
            AccountGate("Dropbox", lambda: False, "Open Dropbox"),
        ])
        report = gates.check()
        assert not report.all_met
        assert report.actions == ["Sign in to the App Store", "Open Dropbox"]

    def test_check_is_repeatable(self):
        state = {"signed_in": False}
        gates = ManualGatePrecondition([AccountGate("a", lambda: state["signed_in"])])
        assert not gates.check().all_met
        state["signed_in"] = True
        assert gates.check().all_met
