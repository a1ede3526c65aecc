"""
Config check use case — validate provision.yml and report issues.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from provisioner.core.config.loader import ConfigError, load_manifest, resolve_manifest_path
from provisioner.core.models.manifest import Manifest


@dataclass
class ConfigCheckResult:
    """Result of manifest validation."""

    valid: bool = False
    manifest: Manifest | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        m = self.manifest
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "formulas": len(m.formulas) if m else 0,
            "casks": len(m.casks) if m else 0,
            "store_apps": len(m.store_apps) if m else 0,
            "repositories": len(m.repositories.entries) if m else 0,
            "gates": len(m.gates) if m else 0,
        }


def _dupes(items: list[str]) -> list[str]:
    return sorted(k for k, n in Counter(items).items() if n > 1)


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate the manifest and report issues.

    Args:
        config_path: Optional explicit path to provision.yml.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult(config_path=resolve_manifest_path(config_path))

    try:
        manifest = load_manifest(result.config_path)
        result.manifest = manifest
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    # Duplicates are dropped at reconcile time, but usually a typo
    for label, items in (
        ("formulas", manifest.formulas),
        ("casks", manifest.casks),
        ("store app ids", [str(a.id) for a in manifest.store_apps]),
    ):
        dupes = _dupes(items)
        if dupes:
            result.warnings.append(f"Duplicate {label}: {', '.join(dupes)}")

    # One directory cannot hold two clones
    dirs = _dupes([e.directory for e in manifest.repositories.entries])
    if dirs:
        result.errors.append(f"Duplicate repository directories: {', '.join(dirs)}")

    if manifest.store_apps and not manifest.gates:
        result.warnings.append("Store apps are declared but no account gates; installs may fail unsigned.")

    for gate in manifest.gates:
        if not gate.probe:
            result.errors.append(f"Gate '{gate.name}' has an empty probe command")

    prefs = _dupes([p.identifier for p in manifest.preferences])
    if prefs:
        result.warnings.append(f"Preferences written more than once: {', '.join(prefs)}")

    if not manifest.user.email:
        result.warnings.append("No user email; git identity and SSH key comment will be empty.")

    result.valid = len(result.errors) == 0
    return result
