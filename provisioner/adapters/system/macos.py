"""
macOS system adapter — the small probes and actions that do not belong
to a package manager: architecture, running processes, system names,
login shell, Finder sidebar and app restarts.
"""

from __future__ import annotations

import logging
import platform

from provisioner.adapters.shell.command import ShellRunner
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

NAME_KEYS = ("ComputerName", "HostName", "LocalHostName")


class MacOSAdapter:

    name = "macos"

    def __init__(self, runner: ShellRunner):
        self._runner = runner

    def is_available(self) -> bool:
        return platform.system() == "Darwin"

    @property
    def runner(self) -> ShellRunner:
        return self._runner

    # ── Probes ──────────────────────────────────────────────────

    def arch(self) -> str:
        return platform.machine()

    def process_running(self, name: str) -> bool:
        return self._runner.run(["pgrep", "-q", name], mutating=False).ok

    def command_ok(self, argv: list[str]) -> bool:
        """Whether a read-only command exits 0."""
        return self._runner.run(argv, mutating=False).ok

    def get_name(self, key: str) -> str | None:
        receipt = self._runner.run(["scutil", "--get", key], mutating=False)
        return receipt.output if receipt.ok else None

    def login_shell(self) -> str:
        return self._runner.env.get("SHELL", "")

    def sidebar_items(self) -> set[str]:
        """Names of the Finder sidebar favorites (empty when unavailable).

        ``mysides list`` prints one ``<name> -> <url>`` line per item.
        """
        receipt = self._runner.run(["mysides", "list"], mutating=False)
        if not receipt.ok:
            return set()
        return {line.split(" -> ", 1)[0].strip() for line in receipt.output.splitlines() if line.strip()}

    # ── Actions ─────────────────────────────────────────────────

    def set_name(self, key: str, value: str, sudo=None) -> Receipt:
        argv = ["scutil", "--set", key, value]
        if sudo is not None:
            return sudo.run_privileged(argv, target=key)
        return self._runner.run(argv, target=key)

    def change_shell(self, shell_path: str) -> Receipt:
        return self._runner.run(["chsh", "-s", shell_path], interactive=True, target="login shell")

    def add_sidebar_item(self, name: str, url: str) -> Receipt:
        return self._runner.run(["mysides", "add", name, url], target=name)

    def restart_app(self, app: str) -> Receipt:
        # killall exits 1 when the app is not running; not a failure.
        receipt = self._runner.run(["killall", app], target=app)
        if receipt.failed and receipt.metadata.get("return_code") == 1:
            return Receipt.skip(self.name, app, reason="not running")
        return receipt

    def open_app(self, app: str) -> Receipt:
        return self._runner.run(["open", "-a", app], target=app)
