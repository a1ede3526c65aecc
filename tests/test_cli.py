"""
Tests for CLI commands — run, steps, gates, config check, packages,
repos, and global options.
"""

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from provisioner.main import cli


@pytest.fixture
def config(tmp_path: Path) -> Path:
    content = textwrap.dedent("""\
        user: {full_name: Test User, email: tester@example.com}
        formulas: [jq, gh]
        casks: [ghostty]
        store_apps:
          - {name: Keynote, id: 409183694}
        gates:
          - {name: Mac App Store, probe: [mas, list]}
        repositories:
          base_dir: ~/dev
          entries:
            - "peasy|git@github.com:pal/peasy.git#main"
    """)
    path = tmp_path / "provision.yml"
    path.write_text(content)
    return path


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Provision this Mac" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestStepsCommand:
    def test_lists_in_order(self):
        result = CliRunner().invoke(cli, ["steps"])
        assert result.exit_code == 0
        assert result.output.index("rosetta") < result.output.index("post_install")
        assert "[gated]" in result.output

    def test_json(self):
        result = CliRunner().invoke(cli, ["steps", "--json"])
        data = json.loads(result.output)
        assert len(data) == 17
        assert data[0]["name"] == "rosetta"
        assert {row["policy"] for row in data} == {"non_fatal"}


class TestRunCommand:
    def test_mock_run_json(self, config):
        result = CliRunner().invoke(
            cli, ["-q", "--config", str(config), "run", "--mock", "--json", "--only", "packages"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["status"] == "completed"
        assert data["steps"] == [
            {"name": "packages", "status": "ok", "duration_s": data["steps"][0]["duration_s"],
             "failures": 0, "message": ""},
        ]

    def test_mock_run_text(self, config):
        result = CliRunner().invoke(
            cli, ["--config", str(config), "run", "--mock", "--only", "packages", "--only", "store_apps"],
        )
        assert result.exit_code == 0, result.output
        assert "[mock]" in result.output
        assert "Completed in" in result.output

    def test_dry_run(self, config):
        result = CliRunner().invoke(
            cli, ["-q", "--config", str(config), "run", "--mock", "--dry-run", "--json", "--only", "packages"],
        )
        data = json.loads(result.output)
        assert data["dry_run"] is True
        assert data["exit_code"] == 0

    def test_unknown_step_is_config_error(self, config):
        result = CliRunner().invoke(cli, ["--config", str(config), "run", "--mock", "--only", "bogus"])
        assert result.exit_code == 2
        assert "bogus" in result.output

    def test_invalid_manifest_is_config_error(self, tmp_path):
        bad = tmp_path / "provision.yml"
        bad.write_text("formulas: [jq\n")
        result = CliRunner().invoke(cli, ["--config", str(bad), "run", "--mock"])
        assert result.exit_code == 2

    def test_run_that_never_started_is_reported(self, config, monkeypatch):
        from provisioner.core.use_cases.provision import ProvisionResult

        monkeypatch.setattr(
            "provisioner.core.use_cases.provision.run_provisioning", lambda *a, **kw: ProvisionResult(),
        )
        result = CliRunner().invoke(cli, ["--config", str(config), "run", "--mock"])
        assert result.exit_code == 2
        assert "Run did not start" in result.output
        assert "Traceback" not in result.output


class TestGatesCommand:
    def test_mock_gates_met(self, config):
        result = CliRunner().invoke(cli, ["--config", str(config), "gates", "--mock", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["all_met"] is True
        assert data["met"] == ["Mac App Store"]

    def test_missing_manifest(self, tmp_path):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "none.yml"), "gates", "--mock"])
        assert result.exit_code == 2
        assert "❌" in result.output


class TestConfigCheckCommand:
    def test_valid(self, config):
        result = CliRunner().invoke(cli, ["--config", str(config), "config", "check"])
        assert result.exit_code == 0
        assert "Manifest is valid" in result.output

    def test_invalid(self, tmp_path):
        bad = tmp_path / "provision.yml"
        bad.write_text(textwrap.dedent("""\
            repositories:
              entries:
                - "x|git@github.com:a/x.git"
                - "x|git@github.com:b/x.git"
        """))
        result = CliRunner().invoke(cli, ["--config", str(bad), "config", "check", "--json"])
        assert result.exit_code == 2
        assert json.loads(result.output)["valid"] is False


class TestInventoryCommands:
    def test_packages_status(self, config):
        result = CliRunner().invoke(cli, ["--config", str(config), "packages", "status", "--mock", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        kinds = {k["kind"]: k for k in data["kinds"]}
        assert kinds["formula"]["missing"] == ["jq", "gh"]
        assert kinds["store_app"]["missing"] == ["409183694 (Keynote)"]

    def test_repos_list(self, config):
        result = CliRunner().invoke(cli, ["--config", str(config), "repos", "list", "--mock"])
        assert result.exit_code == 0
        assert "peasy" in result.output
        assert "0 cloned, 1 missing" in result.output
