"""
Adapter registry — the set of adapters one run talks to.

Steps never construct adapters. They reach them through the session's
registry, which is built once per run (real, dry-run or mock) so tests
and ``--mock`` can swap every external tool at a single point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from provisioner.adapters.base import PackageManager, PrivilegeBroker, Prompter, VersionControl
from provisioner.adapters.net.github import GitHubReleases
from provisioner.adapters.packages.homebrew import HomebrewAdapter
from provisioner.adapters.packages.mas import MasAdapter
from provisioner.adapters.shell.command import ShellRunner
from provisioner.adapters.shell.filesystem import FilesystemAdapter
from provisioner.adapters.system.defaults import DefaultsAdapter
from provisioner.adapters.system.macos import MacOSAdapter
from provisioner.adapters.vcs.git import GitAdapter

logger = logging.getLogger(__name__)


@dataclass
class AdapterRegistry:
    """Every adapter a run uses, by role."""

    runner: ShellRunner
    brew: HomebrewAdapter
    mas: PackageManager
    git: VersionControl
    sudo: PrivilegeBroker
    fs: Any  # FilesystemAdapter or FakeFilesystem
    defaults: DefaultsAdapter
    macos: MacOSAdapter
    releases: Any  # GitHubReleases or FakeReleases
    prompter: Prompter

    @property
    def dry_run(self) -> bool:
        return self.runner.dry_run

    def package_manager(self, kind: str) -> PackageManager:
        """The package manager responsible for ``kind``."""
        for manager in (self.brew, self.mas):
            if kind in manager.kinds:
                return manager
        raise KeyError(f"No package manager handles {kind}")

    def adapters(self) -> dict[str, Any]:
        return {
            "shell": self.runner,
            "brew": self.brew,
            "mas": self.mas,
            "git": self.git,
            "sudo": self.sudo,
            "filesystem": self.fs,
            "defaults": self.defaults,
            "macos": self.macos,
            "github": self.releases,
        }

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every adapter's underlying tool."""
        status = {}
        for role, adapter in self.adapters().items():
            try:
                available = adapter.is_available()
            except OSError:
                available = False
            status[role] = {
                "name": role,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status


def build_registry(
    prompter: Prompter,
    *,
    dry_run: bool = False,
    mock: bool = False,
) -> AdapterRegistry:
    """Build the adapters for one run.

    Args:
        prompter: How to reach the user.
        dry_run: Skip mutating commands.
        mock: Replace every external tool with an in-memory fake.
    """
    if mock:
        from provisioner.adapters.mock import (
            FakeFilesystem,
            FakeReleases,
            FakeSudo,
            FakeVersionControl,
            MockRunner,
        )

        runner: ShellRunner = MockRunner(dry_run=dry_run)
        runner.set_output(["brew", "--prefix"], "/opt/homebrew")
        sudo: PrivilegeBroker = FakeSudo()
        git: VersionControl = FakeVersionControl()
        fs: Any = FakeFilesystem()
        releases: Any = FakeReleases()
        logger.info("Mock mode: no external tool will be invoked")
    else:
        from provisioner.adapters.system.sudo import SudoAdapter

        runner = ShellRunner(dry_run=dry_run)
        sudo = SudoAdapter(runner)
        git = GitAdapter(runner)
        fs = FilesystemAdapter(runner)
        releases = GitHubReleases()

    return AdapterRegistry(
        runner=runner,
        brew=HomebrewAdapter(runner),
        mas=MasAdapter(runner),
        git=git,
        sudo=sudo,
        fs=fs,
        defaults=DefaultsAdapter(runner, sudo),
        macos=MacOSAdapter(runner),
        releases=releases,
        prompter=prompter,
    )
