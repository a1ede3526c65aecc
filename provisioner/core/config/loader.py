"""
Manifest loader — reads provision.yml into the Manifest model.

Lookup order: an explicit path, then ``provision.yml`` in the current
directory or any parent, then the manifest shipped with the package.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from provisioner.core.errors import ProvisionError
from provisioner.core.models.manifest import Manifest

logger = logging.getLogger(__name__)

MANIFEST_FILE = "provision.yml"


class ConfigError(ProvisionError):
    """Raised when the manifest is invalid or missing."""


def default_manifest_path() -> Path:
    """The manifest bundled with the package."""
    return Path(__file__).resolve().parent.parent / "data" / "default_manifest.yml"


def find_manifest_file(start_dir: Path | None = None) -> Path | None:
    """Search for provision.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to provision.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / MANIFEST_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def resolve_manifest_path(path: Path | None = None) -> Path:
    """Which manifest a run will use."""
    if path is not None:
        return path
    return find_manifest_file() or default_manifest_path()


def load_manifest(path: Path | None = None) -> Manifest:
    """Load and validate the manifest.

    Args:
        path: Explicit path to a manifest. If None, searches upward and
            falls back to the packaged default.

    Returns:
        Validated Manifest model.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    path = resolve_manifest_path(path)

    if not path.is_file():
        raise ConfigError(f"Manifest not found: {path}")

    logger.debug("Loading manifest from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        manifest = Manifest.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid manifest {path}: {e}") from e

    logger.info(
        "Loaded manifest %s: %d formulas, %d casks, %d store apps, %d repositories",
        path, len(manifest.formulas), len(manifest.casks),
        len(manifest.store_apps), len(manifest.repositories.entries),
    )
    return manifest
