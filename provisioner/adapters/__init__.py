"""Adapters — bindings to the tools a provisioning run drives.

Public re-exports for convenient access.
"""

from provisioner.adapters.base import (
    Adapter,
    PackageManager,
    PrivilegeBroker,
    Prompter,
    QueryError,
    VersionControl,
)
from provisioner.adapters.registry import AdapterRegistry, build_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "PackageManager",
    "PrivilegeBroker",
    "Prompter",
    "QueryError",
    "VersionControl",
    "build_registry",
]
