"""
Sudo adapter — privileged execution through the cached sudo credential.

``authenticate`` is the only call that may prompt. Everything after it
uses ``sudo -n`` so a lapsed credential surfaces as a failed receipt
instead of a hidden password prompt in the middle of a step.
"""

from __future__ import annotations

import logging
import os

from provisioner.adapters.base import PrivilegeBroker
from provisioner.adapters.shell.command import ShellRunner
from provisioner.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class SudoAdapter(PrivilegeBroker):

    def __init__(self, runner: ShellRunner):
        self._runner = runner

    @property
    def name(self) -> str:
        return "sudo"

    def is_available(self) -> bool:
        return self._is_root() or self._runner.which("sudo") is not None

    @staticmethod
    def _is_root() -> bool:
        return hasattr(os, "geteuid") and os.geteuid() == 0

    def authenticate(self) -> bool:
        if self._is_root() or self._runner.dry_run:
            return True
        receipt = self._runner.run(["sudo", "-v"], mutating=False, interactive=True, timeout=None)
        if not receipt.ok:
            logger.error("sudo authentication failed: %s", receipt.error)
        return receipt.ok

    def validate_session(self) -> bool:
        if self._is_root() or self._runner.dry_run:
            return True
        receipt = self._runner.run(["sudo", "-n", "-v"], mutating=False, timeout=30)
        return receipt.ok

    def run_privileged(self, argv: list[str], *, target: str = "", input_text: str | None = None) -> Receipt:
        full = list(argv) if self._is_root() else ["sudo", "-n", *argv]
        return self._runner.run(full, target=target or " ".join(argv), input_text=input_text)

    def drop(self) -> None:
        if self._is_root() or self._runner.dry_run:
            return
        self._runner.run(["sudo", "-k"], mutating=False, timeout=30)
