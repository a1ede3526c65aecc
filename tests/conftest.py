"""
Shared test fixtures and configuration.

Every fixture is in-memory: a ``MockRunner`` instead of a shell, fakes
for sudo, git, the filesystem and GitHub. Nothing a test does reaches
the machine it runs on.
"""

from pathlib import Path

import pytest

from provisioner.adapters.mock import (
    FakeFilesystem,
    FakePackageManager,
    FakeReleases,
    FakeSudo,
    FakeVersionControl,
    MockRunner,
    ScriptedPrompter,
)
from provisioner.adapters.registry import AdapterRegistry
from provisioner.adapters.system.defaults import DefaultsAdapter
from provisioner.adapters.system.macos import MacOSAdapter
from provisioner.core.models.manifest import Manifest
from provisioner.core.session import Session

HOME = "/Users/tester"


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def runner() -> MockRunner:
    return MockRunner(env={"PATH": "/usr/bin:/bin", "SHELL": "/bin/zsh"})


@pytest.fixture
def registry(runner: MockRunner) -> AdapterRegistry:
    """Adapters for one test run, with fake package managers."""
    sudo = FakeSudo()
    return AdapterRegistry(
        runner=runner,
        brew=FakePackageManager("fake-brew", ("formula", "cask")),
        mas=FakePackageManager("fake-mas", ("store_app",)),
        git=FakeVersionControl(),
        sudo=sudo,
        fs=FakeFilesystem(),
        defaults=DefaultsAdapter(runner, sudo),
        macos=MacOSAdapter(runner),
        releases=FakeReleases(),
        prompter=ScriptedPrompter(),
    )


@pytest.fixture
def manifest() -> Manifest:
    return Manifest.model_validate({
        "user": {"full_name": "Test User", "email": "tester@example.com"},
        "formulas": ["jq", "gh"],
        "casks": ["ghostty", "slack"],
        "store_apps": [
            {"name": "Keynote", "id": 409183694},
            {"name": "Magnet", "id": 441258766},
        ],
        "gates": [
            {"name": "Mac App Store", "probe": ["mas", "list"], "open_app": "App Store"},
        ],
        "repositories": {
            "base_dir": "~/dev",
            "entries": [
                "peasy|git@github.com:pal/peasy.git#planetscale",
                "frankfurter|git@github.com:pal/frankfurter.git",
            ],
        },
        "git_config": {"pull.rebase": "true", "push.default": "simple"},
        "shell_rc_files": ["~/.bash_profile", "~/.zshrc", "~/.config/fish/config.fish"],
        "fish": {"lines": ["set -g fish_greeting"]},
        "ghostty": {"settings": {"theme": '"Mathias"', "font-size": "11"}},
        "preferences": [
            {"domain": "NSGlobalDomain", "key": "KeyRepeat", "type": "int", "value": 2},
            {"domain": "com.apple.dock", "key": "show-recents", "type": "bool", "value": False},
            {
                "domain": "com.apple.screencapture",
                "key": "location",
                "type": "string",
                "value": "{home}/Screenshots",
            },
        ],
        "finder_favorites": [{"name": "Home", "url": "file://{home}"}],
        "restart_apps": ["Dock", "Finder"],
        "post_install": ["Sign in to Slack"],
    })


@pytest.fixture
def session(manifest: Manifest, registry: AdapterRegistry) -> Session:
    return Session(manifest=manifest, adapters=registry, home=HOME, username="tester")
