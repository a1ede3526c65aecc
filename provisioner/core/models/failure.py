"""
Failure records — what went wrong, where, and how bad it is.

Records are appended to the session's failure log as the run goes.
They are never removed: the final summary lists every one so the
operator can fix them individually and re-run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class Severity(StrEnum):
    """How a failure affects the rest of the run."""

    FATAL = "fatal"          # halt the whole run
    NON_FATAL = "non_fatal"  # record and continue


class FailureRecord(BaseModel):
    """One recorded failure.

    ``source`` is a step name or ``<kind>:<identifier>`` for a single
    resource. ``hint`` is the command an operator can run to retry the
    failed operation by hand.
    """

    source: str
    message: str
    severity: Severity = Severity.NON_FATAL
    step: str = ""
    hint: str = ""
    recorded_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def fatal(self) -> bool:
        return self.severity == Severity.FATAL


class FailureLog(BaseModel):
    """Append-only list of failures for one run."""

    records: list[FailureRecord] = Field(default_factory=list)

    def record(self, record: FailureRecord) -> FailureRecord:
        self.records.append(record)
        return record

    @property
    def fatal(self) -> list[FailureRecord]:
        return [r for r in self.records if r.fatal]

    @property
    def non_fatal(self) -> list[FailureRecord]:
        return [r for r in self.records if not r.fatal]

    def for_step(self, step: str) -> list[FailureRecord]:
        return [r for r in self.records if r.step == step]

    def __len__(self) -> int:
        return len(self.records)
