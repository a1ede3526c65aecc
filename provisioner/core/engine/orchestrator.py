"""
Step orchestrator — run the ordered pipeline and apply failure policy.

States::

    pending → running(step_i) → completed | aborted | incomplete

Steps run strictly in declared order on the calling thread. After each
step the failures it recorded are inspected: any fatal record aborts
the run and the remaining steps are not attempted; non-fatal records
are kept for the summary and the next step runs. An unmet account gate
or a step asking for manual action halts the run as ``incomplete``,
which is a pause, not a failure.

There is no checkpoint. Every step is idempotent, so recovery from any
stopping point is running the whole pipeline again.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from provisioner.core.engine.gates import ManualGatePrecondition
from provisioner.core.engine.policy import STEP_POLICY, step_severity
from provisioner.core.errors import ManualActionRequired, PrivilegeDeniedError, StepFailed
from provisioner.core.models.failure import FailureRecord, Severity
from provisioner.core.services.privilege import PrivilegeSession

logger = logging.getLogger(__name__)

PRIVILEGE_STEP = "privilege"


@dataclass(frozen=True)
class Step:
    """A named, idempotent unit of provisioning.

    ``action`` receives the session; a non-None return value is kept in
    ``session.results`` under the step name. ``gated`` steps need the
    account gates to be met before they run.
    """

    name: str
    action: Callable[[Any], Any]
    description: str = ""
    gated: bool = False


class RunStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    INCOMPLETE = "incomplete"


@dataclass
class StepReport:
    """What happened to one step."""

    name: str
    status: str = "not_run"  # ok | failed | aborted | incomplete | not_run
    duration_s: float = 0.0
    failures: int = 0
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "status": self.status,
            "duration_s": round(self.duration_s, 3),
            "failures": self.failures,
            "message": self.message,
        }


def format_duration(seconds: float) -> str:
    """``3723`` → ``"1h 2m 3s"``; zero hours and minutes are omitted."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


@dataclass
class RunSummary:
    """Final report of a run."""

    status: RunStatus
    duration_s: float = 0.0
    started_at: str = ""
    finished_at: str = ""
    steps: list[StepReport] = field(default_factory=list)
    failures: list[FailureRecord] = field(default_factory=list)
    aborted_at: str | None = None
    unmet_gates: list[dict] = field(default_factory=list)
    manual_actions: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def non_fatal_failures(self) -> list[FailureRecord]:
        return [f for f in self.failures if not f.fatal]

    @property
    def fatal_failures(self) -> list[FailureRecord]:
        return [f for f in self.failures if f.fatal]

    @property
    def exit_code(self) -> int:
        """0 when completed or paused for manual action, 1 when aborted."""
        return 1 if self.status == RunStatus.ABORTED else 0

    @property
    def duration(self) -> str:
        return format_duration(self.duration_s)

    def to_dict(self) -> dict:
        return {
            "status": str(self.status),
            "exit_code": self.exit_code,
            "duration_s": round(self.duration_s, 3),
            "duration": self.duration,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "dry_run": self.dry_run,
            "aborted_at": self.aborted_at,
            "unmet_gates": self.unmet_gates,
            "manual_actions": self.manual_actions,
            "steps": [s.to_dict() for s in self.steps],
            "failures": [f.model_dump(mode="json") for f in self.failures],
        }


class StepOrchestrator:
    """Runs steps in order around one privilege session.

    Args:
        steps: The ordered pipeline.
        privilege: Acquired before the first step and released on every
            exit path. None runs without elevation.
        gates: Checked once, before the first gated step.
        keep_awake: Context manager held for the whole run.
        policy: Step failure policy; defaults to ``STEP_POLICY``.
        on_event: Progress callback ``(event, report)`` with event
            ``"start"`` or ``"end"``.
    """

    def __init__(
        self,
        steps: list[Step],
        *,
        privilege: PrivilegeSession | None = None,
        gates: ManualGatePrecondition | None = None,
        keep_awake=None,
        policy: dict[str, Severity] | None = None,
        on_event: Callable[[str, StepReport], None] | None = None,
    ):
        names = [s.name for s in steps]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate step names: {names}")
        self._steps = list(steps)
        self._privilege = privilege
        self._gates = gates
        self._keep_awake = keep_awake
        self._policy = dict(STEP_POLICY if policy is None else policy)
        self._on_event = on_event
        self._state = RunStatus.PENDING
        self._current: str | None = None

    @property
    def state(self) -> RunStatus:
        return self._state

    @property
    def current_step(self) -> str | None:
        return self._current

    @property
    def steps(self) -> list[Step]:
        return list(self._steps)

    def severity(self, step: str) -> Severity:
        return step_severity(step, self._policy)

    # ── Run ─────────────────────────────────────────────────────

    def run(self, session) -> RunSummary:
        """Run the pipeline to completion, abort, or a manual-action halt."""
        if self._state != RunStatus.PENDING:
            raise RuntimeError(f"Orchestrator already used (state={self._state})")
        self._state = RunStatus.RUNNING
        session.policy = self._policy

        reports = [StepReport(name=s.name) for s in self._steps]
        status = RunStatus.COMPLETED
        aborted_at: str | None = None
        unmet: list[dict] = []
        actions: list[str] = []

        try:
            with ExitStack() as stack:
                if self._keep_awake is not None:
                    stack.enter_context(self._keep_awake)

                if self._privilege is not None:
                    session.current_step = PRIVILEGE_STEP
                    try:
                        self._privilege.acquire()
                    except PrivilegeDeniedError as e:
                        session.record_failure(PRIVILEGE_STEP, str(e), severity=Severity.FATAL)
                        status, aborted_at = RunStatus.ABORTED, PRIVILEGE_STEP
                    else:
                        stack.callback(self._privilege.release)
                        self._privilege.maintain()

                gates_checked = False
                for index, step in enumerate(self._steps):
                    if status != RunStatus.COMPLETED:
                        break

                    if step.gated and self._gates is not None and not gates_checked:
                        gates_checked = True
                        gate_report = self._gates.check()
                        if not gate_report.all_met:
                            unmet = gate_report.to_dict()["unmet"]
                            actions = gate_report.actions
                            status = RunStatus.INCOMPLETE
                            logger.info("Halting before %s: %d unmet gate(s)", step.name, len(unmet))
                            break

                    report = reports[index]
                    step_actions = self._run_step(session, step, report)
                    if report.status == "aborted":
                        status, aborted_at = RunStatus.ABORTED, step.name
                    elif report.status == "incomplete":
                        status = RunStatus.INCOMPLETE
                        actions = step_actions or [report.message]
        except KeyboardInterrupt:
            self._state = RunStatus.ABORTED
            raise
        finally:
            self._current = None
            session.current_step = ""
            session.finish()

        self._state = status
        summary = RunSummary(
            status=status,
            duration_s=session.elapsed(),
            started_at=session.started_at,
            finished_at=session.finished_at,
            steps=reports,
            failures=list(session.failures.records),
            aborted_at=aborted_at,
            unmet_gates=unmet,
            manual_actions=actions,
            dry_run=session.dry_run,
        )
        logger.info("Run %s in %s (%d failures)", status, summary.duration, len(summary.failures))
        return summary

    def _run_step(self, session, step: Step, report: StepReport) -> list[str]:
        """Run one step, filling in ``report``. Returns requested manual actions."""
        self._current = step.name
        session.current_step = step.name
        before = len(session.failures)
        report.status = "running"
        self._emit("start", report)
        logger.info("Step %s: %s", step.name, step.description or "running")

        actions: list[str] = []
        start = time.monotonic()
        try:
            result = step.action(session)
            if result is not None:
                session.results[step.name] = result
        except ManualActionRequired as e:
            report.status = "incomplete"
            report.message = str(e)
            actions = e.actions
        except PrivilegeDeniedError as e:
            session.record_failure(step.name, str(e), severity=Severity.FATAL)
        except StepFailed as e:
            session.record_failure(step.name, str(e), severity=self.severity(step.name), hint=e.hint)
        except Exception as e:
            logger.exception("Step %s raised unexpectedly", step.name)
            session.record_failure(step.name, f"unexpected error: {e}", severity=self.severity(step.name))
        report.duration_s = time.monotonic() - start

        new = session.failures.records[before:]
        report.failures = len(new)
        if report.status != "incomplete":
            if any(r.fatal for r in new):
                report.status = "aborted"
                report.message = next(r.message for r in new if r.fatal)
            elif new:
                report.status = "failed"
            else:
                report.status = "ok"
        self._emit("end", report)
        return actions

    def _emit(self, event: str, report: StepReport) -> None:
        if self._on_event is not None:
            self._on_event(event, report)
