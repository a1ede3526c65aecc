"""
Receipt model — the adapter result contract.

Adapters perform side effects (install a package, clone a repository,
write a preference) and report the outcome as a Receipt. They never
raise for an expected failure: a failed install is data, not an
exception, so the engine can record it and move on.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Outcome of a single adapter operation.

    ``target`` identifies what was acted on (a formula name, an app id,
    a repository directory, a preference key).
    """

    adapter: str
    target: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the operation succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the operation failed."""
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        """Whether the operation was not executed (dry-run)."""
        return self.status == "skipped"

    @classmethod
    def success(
        cls,
        adapter: str,
        target: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(adapter=adapter, target=target, status="ok", output=output, **kwargs)

    @classmethod
    def failure(
        cls,
        adapter: str,
        target: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(adapter=adapter, target=target, status="failed", error=error, **kwargs)

    @classmethod
    def skip(
        cls,
        adapter: str,
        target: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(adapter=adapter, target=target, status="skipped", output=reason, **kwargs)
