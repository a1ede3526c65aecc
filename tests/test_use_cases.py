"""
Tests for use cases — provisioning runs, gate probes, inventory.
"""

import textwrap
from pathlib import Path

import pytest

from provisioner.core.engine.orchestrator import RunStatus
from provisioner.core.models.resource import ResourceKind
from provisioner.core.use_cases.inventory import take_inventory
from provisioner.core.use_cases.provision import CONFIG_ERROR_EXIT, probe_gates, run_provisioning

HOME = "/Users/tester"


@pytest.fixture
def config(tmp_path: Path) -> Path:
    path = tmp_path / "provision.yml"
    path.write_text(textwrap.dedent("""\
        formulas: [jq, gh]
        store_apps:
          - {name: Keynote, id: 409183694}
        gates:
          - {name: Mac App Store, probe: [mas, list], open_app: App Store}
        repositories:
          entries:
            - "peasy|git@github.com:pal/peasy.git"
    """))
    return path


class TestRunProvisioning:
    def test_completed(self, config, registry):
        result = run_provisioning(config, registry=registry, home=HOME, only=["packages", "repositories"])

        assert result.error is None
        assert result.exit_code == 0
        assert result.summary.status == RunStatus.COMPLETED
        assert result.steps == ["packages", "repositories"]
        assert registry.brew.install_log == [("formula", "jq"), ("formula", "gh")]
        assert registry.git.clone_log[0][2] == f"{HOME}/dev/peasy"
        assert registry.sudo.drop_calls == 1

    def test_unmet_gate_opens_sign_in_app(self, config, registry, runner):
        runner.set_failure(["mas", "list"], error="Not signed in")

        result = run_provisioning(config, registry=registry, home=HOME, only=["packages", "store_apps"])

        assert result.summary.status == RunStatus.INCOMPLETE
        assert result.exit_code == 0
        assert registry.mas.install_log == []
        assert runner.ran("open", "-a", "App Store")

    def test_privilege_denied(self, config, registry):
        registry.sudo.grant = False
        result = run_provisioning(config, registry=registry, home=HOME)
        assert result.exit_code == 1
        assert result.summary.aborted_at == "privilege"
        assert registry.brew.install_log == []

    def test_config_error(self, tmp_path, registry):
        result = run_provisioning(tmp_path / "missing.yml", registry=registry)
        assert result.exit_code == CONFIG_ERROR_EXIT
        assert "not found" in result.to_dict()["error"]
        assert registry.sudo.authenticate_calls == 0

    def test_second_run_installs_nothing(self, config, registry):
        run_provisioning(config, registry=registry, home=HOME, only=["packages"])
        second = run_provisioning(config, registry=registry, home=HOME, only=["packages"])
        assert second.summary.status == RunStatus.COMPLETED
        assert len(registry.brew.install_log) == 2

    def test_requires_prompter_without_registry(self, config):
        with pytest.raises(ValueError):
            run_provisioning(config)


class TestProbeGates:
    def test_reports_unmet(self, config, registry, runner):
        runner.set_failure(["mas", "list"])
        result = probe_gates(config, registry=registry)
        assert not result.report.all_met
        assert result.to_dict()["unmet"][0]["open_app"] == "App Store"


class TestInventory:
    def test_present_and_missing(self, config, registry):
        registry.brew.installed["formula"] = {"gh"}
        result = take_inventory(config, registry=registry, home=HOME)
        formula = result.kinds[0]
        assert formula.present == ["gh"]
        assert formula.missing == ["jq"]
        assert result.missing_total == 2  # jq + Keynote
        assert registry.brew.install_log == []

    def test_listing_error_is_per_kind(self, config, registry):
        registry.mas.set_list_error("store_app")
        result = take_inventory(config, registry=registry, home=HOME)
        kinds = {k.kind: k for k in result.kinds}
        assert kinds["store_app"].error
        assert kinds["formula"].missing == ["jq", "gh"]

    def test_repositories(self, config, registry):
        registry.git.checkouts.add(f"{HOME}/dev/peasy")
        result = take_inventory(config, kinds=(ResourceKind.REPOSITORY,), registry=registry, home=HOME)
        assert result.kinds[0].present == ["peasy (git@github.com:pal/peasy.git)"]
