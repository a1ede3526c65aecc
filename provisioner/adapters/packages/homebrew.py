"""
Homebrew adapter — formulas and casks.

``list_installed`` is one ``brew list`` call per kind; the reconciler
relies on that to diff a whole desired set against a single listing.
"""

from __future__ import annotations

import logging
import os

from provisioner.adapters.base import PackageManager, QueryError
from provisioner.adapters.shell.command import ShellRunner
from provisioner.core.models.receipt import Receipt
from provisioner.core.models.resource import ResourceKind

logger = logging.getLogger(__name__)

INSTALL_SCRIPT_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"

# Apple Silicon first, then Intel.
KNOWN_PREFIXES = ("/opt/homebrew", "/usr/local")

_LIST_FLAGS = {
    ResourceKind.FORMULA: "--formula",
    ResourceKind.CASK: "--cask",
}


class HomebrewAdapter(PackageManager):
    """Install and list Homebrew formulas and casks."""

    def __init__(self, runner: ShellRunner):
        self._runner = runner

    @property
    def name(self) -> str:
        return "brew"

    @property
    def kinds(self) -> frozenset[str]:
        return frozenset(_LIST_FLAGS)

    def is_available(self) -> bool:
        return self._runner.which("brew") is not None

    # ── Packages ────────────────────────────────────────────────

    def list_installed(self, kind: str) -> set[str]:
        flag = _LIST_FLAGS.get(kind)
        if flag is None:
            raise QueryError(f"brew does not manage {kind}")
        receipt = self._runner.run(["brew", "list", flag, "-1"], mutating=False)
        if not receipt.ok:
            raise QueryError(f"brew list {flag} failed: {receipt.error}")
        return {line.strip() for line in receipt.output.splitlines() if line.strip()}

    def install(self, kind: str, identifier: str) -> Receipt:
        argv = ["brew", "install", identifier]
        if kind == ResourceKind.CASK:
            argv = ["brew", "install", "--cask", identifier]
        logger.info("Installing %s: %s", kind, identifier)
        return self._runner.run(argv, target=identifier)

    def install_hint(self, kind: str, identifier: str) -> str:
        if kind == ResourceKind.CASK:
            return f"brew install --cask {identifier}"
        return f"brew install {identifier}"

    # ── Homebrew itself ─────────────────────────────────────────

    def detect_prefix(self) -> str | None:
        """Where Homebrew lives, or None when it is not installed."""
        if self._runner.which("brew"):
            receipt = self._runner.run(["brew", "--prefix"], mutating=False)
            if receipt.ok and receipt.output:
                return receipt.output
        for prefix in KNOWN_PREFIXES:
            if os.access(os.path.join(prefix, "bin", "brew"), os.X_OK):
                return prefix
        return None

    def install_homebrew(self) -> Receipt:
        """Run the official installer non-interactively."""
        self._runner.env["NONINTERACTIVE"] = "1"
        return self._runner.run(
            ["/bin/bash", "-c", f'/bin/bash -c "$(curl -fsSL {INSTALL_SCRIPT_URL})"'],
            interactive=True,
            target="homebrew",
        )
