"""
Inventory use case — what is declared, what is already here.

Read-only: lists installed packages and existing checkouts and diffs
them against the manifest. Nothing is installed or cloned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.adapters.base import Prompter, QueryError
from provisioner.adapters.registry import AdapterRegistry, build_registry
from provisioner.core.config.loader import ConfigError, load_manifest
from provisioner.core.models.resource import Resource, ResourceKind
from provisioner.core.session import Session

logger = logging.getLogger(__name__)

PACKAGE_KINDS = (ResourceKind.FORMULA, ResourceKind.CASK, ResourceKind.STORE_APP)


@dataclass
class KindInventory:
    kind: str
    present: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    error: str = ""

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "present": self.present,
            "missing": self.missing,
            "error": self.error,
        }


@dataclass
class InventoryResult:
    kinds: list[KindInventory] = field(default_factory=list)
    error: str | None = None

    @property
    def missing_total(self) -> int:
        return sum(len(k.missing) for k in self.kinds)

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "missing_total": self.missing_total,
            "kinds": [k.to_dict() for k in self.kinds],
        }


def _describe(res: Resource) -> str:
    if res.label and res.label != res.identifier:
        return f"{res.identifier} ({res.label})"
    return res.identifier


def take_inventory(
    config_path: Path | None = None,
    *,
    kinds: tuple[ResourceKind, ...] = PACKAGE_KINDS,
    prompter: Prompter | None = None,
    mock: bool = False,
    registry: AdapterRegistry | None = None,
    home: str | None = None,
) -> InventoryResult:
    """Diff declared resources of ``kinds`` against what is installed.

    A kind whose listing fails is reported with ``error`` and no
    present/missing split; the other kinds are unaffected.
    """
    result = InventoryResult()
    try:
        manifest = load_manifest(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    if registry is None:
        if prompter is None:
            raise ValueError("prompter is required when no registry is given")
        registry = build_registry(prompter, mock=mock)

    session = Session(manifest=manifest, adapters=registry)
    if home is not None:
        session.home = home
    reconciler = session.reconciler()

    for kind in kinds:
        entry = KindInventory(kind=str(kind))
        try:
            present, missing = reconciler.diff(kind, manifest.desired(kind))
        except QueryError as e:
            logger.warning("Cannot list installed %s: %s", kind, e)
            entry.error = str(e)
        else:
            entry.present = [_describe(r) for r in present]
            entry.missing = [_describe(r) for r in missing]
        result.kinds.append(entry)
    return result
