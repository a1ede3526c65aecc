"""
Exception hierarchy for the provisioning engine.

Only three things propagate out of a step: a privilege failure (always
fatal), a step failure (fatal or not depending on the policy table),
and a manual-action request (not a failure at all).
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for provisioning errors."""


class PrivilegeDeniedError(ProvisionError):
    """Elevated privilege could not be obtained (declined or bad password)."""


class StepFailed(ProvisionError):
    """A step could not reach its desired end state.

    Args:
        message: What went wrong.
        hint: Command an operator can run to retry by hand.
    """

    def __init__(self, message: str, hint: str = ""):
        super().__init__(message)
        self.hint = hint


class ManualActionRequired(ProvisionError):
    """The run must pause until a human does something out of band."""

    def __init__(self, message: str, actions: list[str] | None = None):
        super().__init__(message)
        self.actions = actions or []
