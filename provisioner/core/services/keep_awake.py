"""
Keep the machine awake for the duration of a run (``caffeinate -i``).
"""

from __future__ import annotations

import logging
import subprocess

from provisioner.adapters.shell.command import ShellRunner

logger = logging.getLogger(__name__)


class KeepAwake:
    """Idle-sleep inhibitor. Started and stopped around the whole pipeline."""

    def __init__(self, runner: ShellRunner, argv: list[str] | None = None):
        self._runner = runner
        self._argv = argv or ["caffeinate", "-i"]
        self._proc: subprocess.Popen | None = None

    @property
    def active(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    def start(self) -> None:
        if self._proc is not None:
            return
        if self._runner.which(self._argv[0]) is None:
            logger.debug("%s not found, sleep not inhibited", self._argv[0])
            return
        self._proc = self._runner.spawn(self._argv)
        if self._proc is not None:
            logger.info("Preventing system sleep (pid %d)", self._proc.pid)

    def stop(self) -> None:
        proc, self._proc = self._proc, None
        if proc is None:
            return
        proc.terminate()
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            proc.kill()
        logger.info("Restored normal sleep settings")

    def __enter__(self) -> KeepAwake:
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
