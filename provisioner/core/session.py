"""
Session — everything one provisioning run shares.

Created when the run starts and finalized when the orchestrator
finishes or aborts. Steps receive it by reference; nothing about a run
lives in module globals, which is what lets the tests hand a step a
session full of fakes.
"""

from __future__ import annotations

import getpass
import logging
import os
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from provisioner.adapters.registry import AdapterRegistry
from provisioner.core.engine.patcher import ConfigFilePatcher
from provisioner.core.engine.policy import STEP_POLICY, step_severity
from provisioner.core.engine.reconciler import PackageStrategy, RepositoryStrategy, ResourceReconciler
from provisioner.core.models.failure import FailureLog, FailureRecord, Severity
from provisioner.core.models.manifest import Manifest
from provisioner.core.models.resource import ResourceKind

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """One provisioning run."""

    manifest: Manifest
    adapters: AdapterRegistry
    home: str = field(default_factory=lambda: os.path.expanduser("~"))
    username: str = field(default_factory=getpass.getuser)

    failures: FailureLog = field(default_factory=FailureLog)
    started_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    finished_at: str = ""
    current_step: str = ""
    results: dict[str, Any] = field(default_factory=dict)  # step name → step-specific data
    policy: dict[str, Severity] = field(default_factory=lambda: dict(STEP_POLICY))

    _t0: float = field(default_factory=time.monotonic, repr=False)
    _elapsed: float | None = field(default=None, repr=False)

    @property
    def dry_run(self) -> bool:
        return self.adapters.dry_run

    @property
    def finished(self) -> bool:
        return self._elapsed is not None

    def elapsed(self) -> float:
        """Seconds since the run started (frozen once finished)."""
        if self._elapsed is not None:
            return self._elapsed
        return time.monotonic() - self._t0

    def finish(self) -> None:
        if self._elapsed is None:
            self._elapsed = time.monotonic() - self._t0
            self.finished_at = datetime.now(UTC).isoformat()

    # ── Failures ────────────────────────────────────────────────

    def record_failure(
        self,
        source: str,
        message: str,
        *,
        severity: Severity | None = None,
        hint: str = "",
    ) -> FailureRecord:
        """Record a failure against the current step.

        Severity defaults to the step's policy.
        """
        step = self.current_step
        record = FailureRecord(
            source=source,
            message=message,
            severity=severity or step_severity(step, self.policy),
            step=step,
            hint=hint,
        )
        logger.warning("[%s] %s: %s", step or "-", source, message)
        return self.failures.record(record)

    # ── Environment ─────────────────────────────────────────────

    def expand(self, path: str) -> str:
        """Expand a leading ``~`` against this session's home."""
        if path == "~":
            return self.home
        if path.startswith("~/"):
            return os.path.join(self.home, path[2:])
        return path

    def render(self, text: str) -> str:
        """Fill the ``{home}`` and ``{username}`` placeholders manifest values may use."""
        return text.replace("{home}", self.home).replace("{username}", self.username)

    def prepend_path(self, directory: str) -> None:
        self.adapters.runner.prepend_path(directory)

    def set_env(self, key: str, value: str) -> None:
        self.adapters.runner.env[key] = value

    # ── Engine helpers ──────────────────────────────────────────

    def reconciler(self) -> ResourceReconciler:
        """A reconciler with every resource kind registered."""
        rec = ResourceReconciler(self.failures, step=self.current_step)
        for kind in (ResourceKind.FORMULA, ResourceKind.CASK, ResourceKind.STORE_APP):
            rec.register(PackageStrategy(kind, self.adapters.package_manager(kind)))
        repos = self.manifest.repositories
        rec.register(RepositoryStrategy(
            self.adapters.git,
            self.expand(repos.base_dir),
            repos.entries,
            fs=self.adapters.fs,
        ))
        return rec

    def patcher(self) -> ConfigFilePatcher:
        return ConfigFilePatcher(self.adapters.fs)
