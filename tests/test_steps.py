"""
Tests for the concrete provisioning steps, run against in-memory adapters.
"""

import pytest

from provisioner.adapters.packages.homebrew import HomebrewAdapter
from provisioner.core.engine.orchestrator import Step
from provisioner.core.errors import StepFailed
from provisioner.core.steps import PIPELINE, STEP_NAMES, build_steps
from provisioner.core.steps.common import default_brew_prefix, ensure_brew_shellenv
from provisioner.core.steps.developer import configure_git, post_install, setup_ssh_keys
from provisioner.core.steps.packages import clone_repositories, install_packages, install_store_apps
from provisioner.core.steps.shell import configure_ghostty, setup_fish
from provisioner.core.steps.system import SMB_SERVER_DOMAIN, apply_preferences, desired_host_name, set_host_names
from provisioner.core.steps.toolchain import accept_xcode_license, install_homebrew, install_rosetta
from provisioner.core.steps.tools import install_aws_vault, install_node

HOME = "/Users/tester"

# ── Pipeline ─────────────────────────────────────────────────────────


class TestPipeline:
    def test_declared_order(self):
        assert STEP_NAMES[0] == "rosetta"
        assert STEP_NAMES[-1] == "post_install"
        assert STEP_NAMES.index("homebrew") < STEP_NAMES.index("packages")
        assert STEP_NAMES.index("ssh_keys") < STEP_NAMES.index("repositories")
        assert len(PIPELINE) == 17

    def test_only_store_apps_is_gated(self):
        assert [s.name for s in PIPELINE if s.gated] == ["store_apps"]

    def test_build_steps_keeps_declared_order(self):
        steps = build_steps(["repositories", "packages"])
        assert [s.name for s in steps] == ["packages", "repositories"]
        assert all(isinstance(s, Step) for s in steps)

    def test_build_steps_unknown(self):
        with pytest.raises(ValueError, match="bogus"):
            build_steps(["packages", "bogus"])

    def test_build_steps_all(self):
        assert len(build_steps(None)) == len(PIPELINE)


# ── Toolchain ────────────────────────────────────────────────────────


class TestRosetta:
    def test_not_needed_on_intel(self, session, monkeypatch):
        monkeypatch.setattr(session.adapters.macos, "arch", lambda: "x86_64")
        assert install_rosetta(session) == {"status": "not_needed"}

    def test_present_when_oahd_running(self, session, monkeypatch):
        monkeypatch.setattr(session.adapters.macos, "arch", lambda: "arm64")
        assert install_rosetta(session)["status"] == "present"
        assert session.adapters.sudo.run_log == []

    def test_installs_with_privilege(self, session, runner, monkeypatch):
        monkeypatch.setattr(session.adapters.macos, "arch", lambda: "arm64")
        runner.set_failure(["pgrep", "-q", "oahd"])
        assert install_rosetta(session)["status"] == "installed"
        assert session.adapters.sudo.run_log[0][:2] == ["softwareupdate", "--install-rosetta"]

    def test_failure_raises_with_hint(self, session, runner, monkeypatch):
        monkeypatch.setattr(session.adapters.macos, "arch", lambda: "arm64")
        runner.set_failure(["pgrep", "-q", "oahd"])
        session.adapters.sudo.set_failure("softwareupdate")
        with pytest.raises(StepFailed) as exc:
            install_rosetta(session)
        assert "softwareupdate" in exc.value.hint


class TestHomebrew:
    @pytest.fixture
    def brew_session(self, session, runner):
        session.adapters.brew = HomebrewAdapter(runner)
        runner.set_output(["brew", "--prefix"], "/opt/homebrew")
        session.adapters.fs.files[f"{HOME}/.zshrc"] = "export EDITOR=vim\n"
        return session

    def test_detects_existing_prefix(self, brew_session, runner):
        result = install_homebrew(brew_session)
        assert result["status"] == "present"
        assert result["prefix"] == "/opt/homebrew"
        assert runner.env["PATH"].startswith("/opt/homebrew/bin:/opt/homebrew/sbin:")
        assert runner.env["HOMEBREW_PREFIX"] == "/opt/homebrew"

    def test_patches_only_existing_rc_files(self, brew_session):
        result = install_homebrew(brew_session)
        fs = brew_session.adapters.fs
        assert result["patched"] == [f"{HOME}/.zshrc"]
        assert 'eval "$(/opt/homebrew/bin/brew shellenv)"' in fs.files[f"{HOME}/.zshrc"]
        assert f"{HOME}/.bash_profile" not in fs.files

    def test_rerun_is_a_no_op(self, brew_session):
        install_homebrew(brew_session)
        once = dict(brew_session.adapters.fs.files)
        result = install_homebrew(brew_session)
        assert result["patched"] == []
        assert brew_session.adapters.fs.files == once

    def test_installs_when_missing(self, brew_session, runner, monkeypatch):
        runner.missing.add("brew")
        monkeypatch.setattr("provisioner.adapters.packages.homebrew.KNOWN_PREFIXES", ())
        monkeypatch.setattr(brew_session.adapters.macos, "arch", lambda: "arm64")
        brew_session.adapters.fs.files["/opt/homebrew/bin/brew"] = ""

        result = install_homebrew(brew_session)

        assert result["status"] == "installed"
        assert runner.env["NONINTERACTIVE"] == "1"
        assert any("install.sh" in " ".join(call) for call in runner.call_log)

    def test_default_prefix(self):
        assert default_brew_prefix("arm64") == "/opt/homebrew"
        assert default_brew_prefix("x86_64") == "/usr/local"


class TestXcodeLicense:
    def test_already_accepted(self, session):
        assert accept_xcode_license(session) == {"status": "present"}

    def test_accepts_with_privilege(self, session, runner):
        runner.set_failure(["xcodebuild", "-license", "check"])
        assert accept_xcode_license(session) == {"status": "accepted"}
        assert session.adapters.sudo.run_log == [["xcodebuild", "-license", "accept"]]


# ── Reconciliation steps ─────────────────────────────────────────────


class TestPackageSteps:
    def test_formulas_then_casks(self, session):
        brew = session.adapters.brew
        brew.installed["formula"] = {"jq"}

        result = install_packages(session)

        assert result["formula"]["installed"] == 1
        assert result["formula"]["present"] == 1
        assert result["cask"]["installed"] == 2
        assert brew.install_log == [("formula", "gh"), ("cask", "ghostty"), ("cask", "slack")]

    def test_failed_package_is_non_fatal(self, session):
        session.current_step = "packages"
        session.adapters.brew.set_failure("gh")
        result = install_packages(session)
        assert result["formula"]["failed"] == 1
        assert result["cask"]["installed"] == 2
        record = session.failures.records[0]
        assert record.source == "formula:gh"
        assert record.step == "packages"
        assert not record.fatal

    def test_store_apps(self, session):
        mas = session.adapters.mas
        mas.installed["store_app"] = {"409183694"}
        result = install_store_apps(session)
        assert result["present_ids"] == ["409183694"]
        assert mas.install_log == [("store_app", "441258766")]

    def test_repositories_under_expanded_base(self, session):
        git = session.adapters.git
        git.checkouts.add(f"{HOME}/dev/peasy")

        result = clone_repositories(session)

        assert result["present"] == 1
        assert git.clone_log == [("git@github.com:pal/frankfurter.git", None, f"{HOME}/dev/frankfurter")]


# ── System ───────────────────────────────────────────────────────────


class TestHostNames:
    def test_default_name(self, session):
        assert desired_host_name(session) == "tester-macbookpro"

    def test_sets_all_names(self, session):
        result = set_host_names(session)
        assert result["status"] == "set"
        run_log = session.adapters.sudo.run_log
        assert ["scutil", "--set", "ComputerName", "tester-macbookpro"] in run_log
        assert ["scutil", "--set", "LocalHostName", "tester-macbookpro"] in run_log
        assert any("NetBIOSName" in call for call in run_log)

    def test_already_set(self, session, runner):
        for key in ("ComputerName", "HostName", "LocalHostName"):
            runner.set_output(["scutil", "--get", key], "tester-macbookpro")
        runner.set_output(["defaults", "read", SMB_SERVER_DOMAIN, "NetBIOSName"], "tester-macbookpro")
        assert set_host_names(session)["status"] == "present"
        assert session.adapters.sudo.run_log == []

    def test_repairs_only_the_stale_name(self, session, runner):
        runner.set_output(["scutil", "--get", "ComputerName"], "tester-macbookpro")
        runner.set_output(["scutil", "--get", "HostName"], "old-name")
        runner.set_output(["scutil", "--get", "LocalHostName"], "tester-macbookpro")
        runner.set_output(["defaults", "read", SMB_SERVER_DOMAIN, "NetBIOSName"], "tester-macbookpro")

        result = set_host_names(session)

        assert result["status"] == "set"
        assert result["changed"] == ["HostName"]
        assert session.adapters.sudo.run_log == [["scutil", "--set", "HostName", "tester-macbookpro"]]


class TestPreferences:
    def test_writes_typed_values(self, session, runner):
        result = apply_preferences(session)
        assert result["written"] == 3
        assert ["defaults", "write", "NSGlobalDomain", "KeyRepeat", "-int", "2"] in runner.call_log
        assert ["defaults", "write", "com.apple.dock", "show-recents", "-bool", "false"] in runner.call_log

    def test_renders_home_placeholder(self, session, runner):
        apply_preferences(session)
        assert [
            "defaults", "write", "com.apple.screencapture", "location", "-string", f"{HOME}/Screenshots",
        ] in runner.call_log

    def test_one_failed_write_does_not_stop_the_rest(self, session, runner):
        runner.set_failure(["defaults", "write", "com.apple.dock"], error="read-only domain")
        result = apply_preferences(session)
        assert result == {"written": 2, "failed": 1, "favorites_added": ["Home"]}
        sources = [r.source for r in session.failures.records]
        assert sources == ["preference:com.apple.dock:show-recents"]
        assert "defaults write com.apple.dock" in session.failures.records[0].hint

    def test_unhides_library_and_volumes(self, session):
        apply_preferences(session)
        assert (f"{HOME}/Library", False) in session.adapters.fs.hidden_log
        assert ("/Volumes", False) in session.adapters.fs.hidden_log

    def test_existing_favorite_not_added_again(self, session, runner):
        runner.set_output(["mysides", "list"], f"Home -> file://{HOME}/")
        result = apply_preferences(session)
        assert result["favorites_added"] == []
        assert not runner.ran("mysides", "add")

    def test_favorite_matched_by_whole_name(self, session, runner):
        runner.set_output(["mysides", "list"], f"Homework -> file://{HOME}/Homework/")
        result = apply_preferences(session)
        assert result["favorites_added"] == ["Home"]
        assert runner.ran("mysides", "add", "Home")

    def test_restart_of_stopped_app_is_not_a_failure(self, session, runner):
        runner.set_failure(["killall"], return_code=1)
        apply_preferences(session)
        assert session.failures.records == []


# ── Shell & terminal ─────────────────────────────────────────────────


class TestFish:
    def test_registers_shell_and_writes_config(self, session, runner):
        session.adapters.fs.files["/etc/shells"] = "/bin/bash\n/bin/zsh\n"
        session.results["homebrew"] = {"prefix": "/opt/homebrew"}

        result = setup_fish(session)

        assert result["shell"] == "/opt/homebrew/bin/fish"
        assert session.adapters.sudo.run_log == [["tee", "-a", "/etc/shells"]]
        assert runner.ran("chsh", "-s", "/opt/homebrew/bin/fish")
        config = session.adapters.fs.files[f"{HOME}/.config/fish/config.fish"]
        assert "/opt/homebrew/bin/brew shellenv | source" in config
        assert 'set -gx BUN_INSTALL "$HOME/.bun"' in config
        assert "set -g fish_greeting\n" in config

    def test_rerun_changes_nothing(self, session, runner):
        session.adapters.fs.files["/etc/shells"] = "/opt/homebrew/bin/fish\n"
        session.results["homebrew"] = {"prefix": "/opt/homebrew"}
        runner.env["SHELL"] = "/opt/homebrew/bin/fish"

        setup_fish(session)
        once = dict(session.adapters.fs.files)
        result = setup_fish(session)

        assert result["appended"] == 0
        assert session.adapters.fs.files == once
        assert session.adapters.sudo.run_log == []
        assert not runner.ran("chsh")


class TestGhostty:
    def test_user_setting_is_kept(self, session):
        path = f"{HOME}/Library/Application Support/com.mitchellh.ghostty/config"
        session.adapters.fs.files[path] = "theme = Dracula\n"

        result = configure_ghostty(session)

        assert result["appended"] == ["font-size"]
        assert session.adapters.fs.files[path] == "theme = Dracula\nfont-size = 11\n"

    def test_similar_key_does_not_count(self, session):
        path = f"{HOME}/Library/Application Support/com.mitchellh.ghostty/config"
        session.adapters.fs.files[path] = "window-theme = system\n  font-size=13\n"

        result = configure_ghostty(session)

        assert result["appended"] == ["theme"]
        assert session.adapters.fs.files[path] == 'window-theme = system\n  font-size=13\ntheme = "Mathias"\n'

    def test_creates_missing_config(self, session):
        result = configure_ghostty(session)
        content = session.adapters.fs.files[result["config"]]
        assert content == 'theme = "Mathias"\nfont-size = 11\n'


class TestBrewShellenv:
    def test_posix_line(self, session):
        session.adapters.fs.files["/h/.zshrc"] = ""
        ensure_brew_shellenv(session, "/h/.zshrc", "/usr/local")
        assert session.adapters.fs.files["/h/.zshrc"] == 'eval "$(/usr/local/bin/brew shellenv)"\n'

    def test_fish_line(self, session):
        session.adapters.fs.files["/h/config.fish"] = ""
        ensure_brew_shellenv(session, "/h/config.fish", "/opt/homebrew")
        assert session.adapters.fs.files["/h/config.fish"] == "/opt/homebrew/bin/brew shellenv | source\n"


# ── Developer identity ───────────────────────────────────────────────


class TestGitConfig:
    def test_existing_values_win(self, session):
        git = session.adapters.git
        git.config["pull.rebase"] = "false"

        result = configure_git(session)

        assert "pull.rebase" in result["kept"]
        assert git.config["pull.rebase"] == "false"
        assert git.config["push.default"] == "simple"
        assert git.config["user.email"] == "tester@example.com"
        assert git.config["user.name"] == "Test User"


class TestSshKeys:
    KEY = f"{HOME}/.ssh/id_ed25519"

    def test_existing_key(self, session, runner):
        session.adapters.fs.files[self.KEY] = "private"
        assert setup_ssh_keys(session)["status"] == "present"
        assert not runner.ran("ssh-keygen")

    def test_generates_and_waits_for_confirmation(self, session, runner):
        session.adapters.fs.files[f"{self.KEY}.pub"] = "ssh-ed25519 AAAA tester@example.com\n"

        result = setup_ssh_keys(session)

        assert result["status"] == "generated"
        assert runner.ran("ssh-keygen", "-t", "ed25519", "-C", "tester@example.com")
        assert runner.ran("ssh-add", "--apple-use-keychain")
        prompter = session.adapters.prompter
        assert "ssh-ed25519 AAAA" in prompter.messages[0]
        assert len(prompter.confirmations) == 1

    def test_missing_public_key(self, session):
        with pytest.raises(StepFailed):
            setup_ssh_keys(session)


class TestPostInstall:
    def test_notifies_notes(self, session):
        post_install(session)
        assert "Sign in to Slack" in session.adapters.prompter.messages[0]


# ── Tools ────────────────────────────────────────────────────────────


class TestAwsVault:
    def test_up_to_date(self, session, runner):
        runner.set_output(["aws-vault", "--version"], "v7.2.0")
        assert install_aws_vault(session) == {"status": "present", "version": "7.2.0"}
        assert session.adapters.releases.downloads == []

    def test_installs_latest_for_arch(self, session, monkeypatch):
        session.adapters.runner.missing.add("aws-vault")
        monkeypatch.setattr(session.adapters.macos, "arch", lambda: "arm64")

        result = install_aws_vault(session)

        assert result["status"] == "installed"
        url, _ = session.adapters.releases.downloads[0]
        assert url.endswith("darwin-arm64")
        mv = session.adapters.sudo.run_log[0]
        assert mv[0] == "mv" and mv[-1] == "/usr/local/bin/aws-vault"

    def test_release_lookup_failure(self, session):
        session.adapters.releases.release = None
        with pytest.raises(StepFailed) as exc:
            install_aws_vault(session)
        assert "github.com/99designs/aws-vault" in exc.value.hint


class TestNode:
    def test_present_when_nvm_dir_exists(self, session, runner):
        session.adapters.fs.dirs.add(f"{HOME}/.nvm")
        assert install_node(session) == {"status": "present"}
        assert runner.call_log == []

    def test_incomplete_nvm_install(self, session):
        with pytest.raises(StepFailed):
            install_node(session)

    def test_installs_lts(self, session, runner):
        session.adapters.fs.files[f"{HOME}/.nvm/nvm.sh"] = ""
        assert install_node(session) == {"status": "installed"}
        assert runner.env["NVM_DIR"] == f"{HOME}/.nvm"
        assert any("nvm install --lts" in " ".join(call) for call in runner.call_log)
