"""
Resource reconciler — desired set vs. installed set, act on the difference.

One algorithm for every resource kind:

    list installed (once) → diff against desired → acquire each missing one

Kind-specific behaviour (how to list, how to acquire, what to tell the
operator when it fails) lives in a ``ResourceStrategy``. A failed
acquisition is recorded and the next identifier is attempted; nothing a
single resource does can stop the rest of the set.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from provisioner.adapters.base import PackageManager, QueryError, VersionControl
from provisioner.core.engine.policy import resource_severity
from provisioner.core.models.failure import FailureLog, FailureRecord
from provisioner.core.models.receipt import Receipt
from provisioner.core.models.resource import DesiredSet, RepoEntry, Resource, ResourceKind

logger = logging.getLogger(__name__)


# ── Strategies ──────────────────────────────────────────────────


class ResourceStrategy(ABC):
    """How one resource kind is detected and acquired."""

    kind: ResourceKind

    @abstractmethod
    def list_installed(self) -> set[str]:
        """Identifiers already present. One bulk query.

        Raises:
            QueryError: If the answer cannot be determined.
        """

    @abstractmethod
    def acquire(self, resource: Resource) -> Receipt:
        """Install, clone or append one resource. Never raises."""

    def retry_hint(self, resource: Resource) -> str:
        return ""


class PackageStrategy(ResourceStrategy):
    """Formulas, casks and store apps: anything a package manager owns."""

    def __init__(self, kind: ResourceKind, manager: PackageManager):
        self.kind = kind
        self._manager = manager

    def list_installed(self) -> set[str]:
        return self._manager.list_installed(self.kind)

    def acquire(self, resource: Resource) -> Receipt:
        return self._manager.install(self.kind, resource.identifier)

    def retry_hint(self, resource: Resource) -> str:
        return self._manager.install_hint(self.kind, resource.identifier)


class RepositoryStrategy(ResourceStrategy):
    """Repositories cloned into ``<base_dir>/<directory>``.

    Present means the directory exists. Its contents are not checked.
    """

    kind = ResourceKind.REPOSITORY

    def __init__(self, vcs: VersionControl, base_dir: str, entries: list[RepoEntry], fs=None):
        self._vcs = vcs
        self._base_dir = base_dir
        self._entries = {e.directory: e for e in entries}
        self._fs = fs

    def _path(self, directory: str) -> str:
        return str(PurePosixPath(self._base_dir) / directory)

    def list_installed(self) -> set[str]:
        return self._vcs.list_checkouts(self._base_dir)

    def acquire(self, resource: Resource) -> Receipt:
        entry = self._entries.get(resource.identifier)
        if entry is None:
            return Receipt.failure(self._vcs.name, resource.identifier, error="no repository entry")
        if self._fs is not None:
            made = self._fs.mkdir(self._base_dir)
            if made.failed:
                return made
        return self._vcs.clone(entry.remote, entry.branch, self._path(entry.directory))

    def retry_hint(self, resource: Resource) -> str:
        entry = self._entries.get(resource.identifier)
        if entry is None:
            return ""
        return self._vcs.clone_hint(entry.remote, entry.branch, self._path(entry.directory))


# ── Summary ─────────────────────────────────────────────────────


@dataclass
class ReconcileSummary:
    """Outcome of reconciling one desired set."""

    kind: str
    present: list[str] = field(default_factory=list)
    installed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)  # dry-run
    listing_error: str = ""

    @property
    def ok(self) -> bool:
        return not self.failed and not self.listing_error

    def counts(self) -> dict[str, int]:
        return {
            "present": len(self.present),
            "installed": len(self.installed),
            "failed": len(self.failed),
        }

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            **self.counts(),
            "skipped": len(self.skipped),
            "present_ids": self.present,
            "installed_ids": self.installed,
            "failed_ids": self.failed,
            "skipped_ids": self.skipped,
            "listing_error": self.listing_error,
        }


# ── Reconciler ──────────────────────────────────────────────────


class ResourceReconciler:
    """Reconciles desired sets through registered strategies.

    Args:
        failures: Where failed acquisitions are recorded.
        step: Step name stamped on failure records.
    """

    def __init__(self, failures: FailureLog, step: str = ""):
        self._failures = failures
        self._step = step
        self._strategies: dict[str, ResourceStrategy] = {}

    def register(self, strategy: ResourceStrategy) -> None:
        self._strategies[strategy.kind] = strategy

    def strategy(self, kind: str) -> ResourceStrategy:
        try:
            return self._strategies[kind]
        except KeyError:
            raise KeyError(f"No strategy registered for {kind}") from None

    def diff(self, kind: str, desired: DesiredSet) -> tuple[list[Resource], list[Resource]]:
        """Split ``desired`` into (present, missing) without acquiring anything.

        Raises:
            QueryError: If the installed set cannot be listed.
        """
        installed = self.strategy(kind).list_installed()
        present = [r for r in desired.resources if r.identifier in installed]
        missing = [r for r in desired.resources if r.identifier not in installed]
        return present, missing

    def reconcile(self, kind: str, desired: DesiredSet) -> ReconcileSummary:
        """Acquire every desired resource that is not already present."""
        strategy = self.strategy(kind)
        summary = ReconcileSummary(kind=str(kind))

        try:
            present, missing = self.diff(kind, desired)
        except QueryError as e:
            logger.warning("Cannot list installed %s, skipping %d resources: %s", kind, len(desired), e)
            summary.listing_error = str(e)
            self._failures.record(FailureRecord(
                source=f"{kind}:*",
                message=f"could not list installed {kind}: {e}",
                severity=resource_severity(kind),
                step=self._step,
            ))
            return summary

        summary.present = [r.identifier for r in present]
        for res in present:
            logger.debug("%s already present: %s", kind, res.display_name)

        for res in missing:
            logger.info("Acquiring %s: %s", kind, res.display_name)
            try:
                receipt = strategy.acquire(res)
            except Exception as e:
                logger.exception("Acquiring %s %s raised", kind, res.display_name)
                receipt = Receipt.failure(str(kind), res.identifier, error=f"unexpected error: {e}")
            if receipt.ok:
                summary.installed.append(res.identifier)
            elif receipt.skipped:
                summary.skipped.append(res.identifier)
            else:
                summary.failed.append(res.identifier)
                logger.warning("Failed to acquire %s %s: %s", kind, res.display_name, receipt.error)
                self._failures.record(FailureRecord(
                    source=f"{kind}:{res.identifier}",
                    message=receipt.error or "acquisition failed",
                    severity=resource_severity(kind),
                    step=self._step,
                    hint=strategy.retry_hint(res),
                ))

        logger.info(
            "Reconciled %s: %d present, %d installed, %d failed",
            kind, len(summary.present), len(summary.installed), len(summary.failed),
        )
        return summary
