"""
Reconciliation steps — packages, store apps, repositories.

Each is a thin call into the reconciler with the manifest's desired set.
Per-resource failures are recorded by the reconciler itself.
"""

from __future__ import annotations

from provisioner.core.models.resource import ResourceKind


def install_packages(session) -> dict:
    rec = session.reconciler()
    manifest = session.manifest
    return {
        str(kind): rec.reconcile(kind, manifest.desired(kind)).to_dict()
        for kind in (ResourceKind.FORMULA, ResourceKind.CASK)
    }


def install_store_apps(session) -> dict:
    desired = session.manifest.desired(ResourceKind.STORE_APP)
    return session.reconciler().reconcile(ResourceKind.STORE_APP, desired).to_dict()


def clone_repositories(session) -> dict:
    desired = session.manifest.desired(ResourceKind.REPOSITORY)
    return session.reconciler().reconcile(ResourceKind.REPOSITORY, desired).to_dict()
