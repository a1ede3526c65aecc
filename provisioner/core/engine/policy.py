"""
Failure policy — which failures stop the run.

One table per granularity. Anything not listed is non-fatal: a run
records the failure and moves on, and the operator re-runs after
fixing it. Privilege acquisition is the only fatal entry because every
later step assumes it.
"""

from __future__ import annotations

from provisioner.core.models.failure import Severity
from provisioner.core.models.resource import ResourceKind

STEP_POLICY: dict[str, Severity] = {
    "privilege": Severity.FATAL,
}

RESOURCE_POLICY: dict[str, Severity] = {
    ResourceKind.FORMULA: Severity.NON_FATAL,
    ResourceKind.CASK: Severity.NON_FATAL,
    ResourceKind.STORE_APP: Severity.NON_FATAL,
    ResourceKind.REPOSITORY: Severity.NON_FATAL,
    ResourceKind.CONFIG_LINE: Severity.NON_FATAL,
}


def step_severity(step: str, policy: dict[str, Severity] | None = None) -> Severity:
    """Severity of a failure raised by ``step``."""
    table = STEP_POLICY if policy is None else policy
    return table.get(step, Severity.NON_FATAL)


def resource_severity(kind: str) -> Severity:
    """Severity of a single failed acquisition of ``kind``."""
    return RESOURCE_POLICY.get(kind, Severity.NON_FATAL)
