"""
Domain models — Pydantic types for the provisioner.

All models are re-exported here for convenient access:

    from provisioner.core.models import Manifest, Resource, Receipt, FailureRecord
"""

from provisioner.core.models.failure import FailureLog, FailureRecord, Severity
from provisioner.core.models.manifest import (
    AccountGateSpec,
    AwsVaultConfig,
    FinderFavorite,
    FishConfig,
    GhosttyConfig,
    Manifest,
    Preference,
    RepositorySet,
    UserProfile,
)
from provisioner.core.models.receipt import Receipt
from provisioner.core.models.resource import (
    ConfigLine,
    DesiredSet,
    RepoEntry,
    Resource,
    ResourceKind,
    StoreApp,
)

__all__ = [
    # failure.py
    "FailureLog",
    "FailureRecord",
    "Severity",
    # manifest.py
    "AccountGateSpec",
    "AwsVaultConfig",
    "FinderFavorite",
    "FishConfig",
    "GhosttyConfig",
    "Manifest",
    "Preference",
    "RepositorySet",
    "UserProfile",
    # receipt.py
    "Receipt",
    # resource.py
    "ConfigLine",
    "DesiredSet",
    "RepoEntry",
    "Resource",
    "ResourceKind",
    "StoreApp",
]
