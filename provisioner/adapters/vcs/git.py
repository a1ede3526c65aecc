"""
Git adapter — clone and global configuration.

Uses the git CLI. An existing checkout directory is never touched:
no fetch, no pull, no check that it tracks the expected remote.
"""

from __future__ import annotations

import logging
from pathlib import Path

from provisioner.adapters.base import VersionControl
from provisioner.adapters.shell.command import ShellRunner
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class GitAdapter(VersionControl):

    def __init__(self, runner: ShellRunner):
        self._runner = runner

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return self._runner.which("git") is not None

    # ── Checkouts ───────────────────────────────────────────────

    def exists(self, path: str) -> bool:
        return Path(path).is_dir()

    def list_checkouts(self, base_dir: str) -> set[str]:
        base = Path(base_dir)
        if not base.is_dir():
            return set()
        return {p.name for p in base.iterdir() if p.is_dir()}

    def clone(self, remote: str, branch: str | None, path: str) -> Receipt:
        argv = ["git", "clone"]
        if branch:
            argv += ["--single-branch", "--branch", branch]
        argv += [remote, path]
        logger.info("Cloning %s -> %s", remote, path)
        return self._runner.run(argv, target=Path(path).name)

    # ── Config ──────────────────────────────────────────────────

    def get_config(self, key: str) -> str | None:
        receipt = self._runner.run(["git", "config", "--global", "--get", key], mutating=False)
        if not receipt.ok:
            return None
        return receipt.output or None

    def set_config(self, key: str, value: str) -> Receipt:
        return self._runner.run(["git", "config", "--global", key, value], target=key)
