"""Rotation data models — roles, per-account state, and run reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Account role, derived from the account name."""

    DEFAULT = "default"
    FARM_PROFILE_SYNC = "farm-profile-sync"
    SEARCH = "search"
    CONTENT_CRAWL = "content-crawl"
    SOPHOS = "sophos"
    WORKFLOW = "workflow"
    VISIO = "visio"
    EXCEL = "excel"
    WINDOWS_SERVICE = "windows-service"
    PERFORMANCE_POINT = "performance-point"


class OperationCode(str, Enum):
    """Operations the caller can request."""

    ROTATE = "rotate"
    PROPAGATE = "propagate"
    PASSWORDS = "passwords"
    STATUS = "status"
    PROBE = "probe"
    REPAIR = "repair"

    @property
    def mutating(self) -> bool:
        return self in (OperationCode.ROTATE, OperationCode.PROPAGATE, OperationCode.REPAIR)


class ConvergenceResult(str, Enum):
    """Outcome of waiting for the store to converge."""

    CONVERGED = "converged"
    TIMED_OUT = "timed_out"


class RotationState(str, Enum):
    """States of a per-account rotation job."""

    PENDING = "pending"
    APPLYING = "applying"
    CONVERGING = "converging"
    RETRY = "retry"
    CONVERGED = "converged"
    PROPAGATING = "propagating"
    DONE = "done"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {RotationState.DONE, RotationState.PARTIALLY_FAILED, RotationState.FAILED}
)

# Propagate-only runs go straight from PENDING to PROPAGATING. A timed-out
# final cycle goes straight from CONVERGING to PROPAGATING.
TRANSITIONS: dict[RotationState, frozenset[RotationState]] = {
    RotationState.PENDING: frozenset(
        {RotationState.APPLYING, RotationState.PROPAGATING, RotationState.FAILED}
    ),
    RotationState.APPLYING: frozenset({RotationState.CONVERGING, RotationState.FAILED}),
    RotationState.CONVERGING: frozenset(
        {RotationState.RETRY, RotationState.CONVERGED, RotationState.PROPAGATING}
    ),
    RotationState.RETRY: frozenset({RotationState.APPLYING, RotationState.FAILED}),
    RotationState.CONVERGED: frozenset({RotationState.PROPAGATING}),
    RotationState.PROPAGATING: frozenset(
        {RotationState.DONE, RotationState.PARTIALLY_FAILED, RotationState.FAILED}
    ),
}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class TargetFailure(BaseModel):
    """One propagation target that could not be updated."""

    host: str = Field(default="", description="Empty for farm-wide subsystems")
    subsystem: str = Field(description="e.g. 'scheduled-task', 'worker-pool'")
    resource: str = Field(default="", description="Task, pool or service name")
    error: str


class ApplierResult(BaseModel):
    """What one applier did for one account."""

    applier: str
    updated: list[str] = Field(default_factory=list, description="'host/resource' entries")
    skipped: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    failures: list[TargetFailure] = Field(default_factory=list)


class AccountOutcome(BaseModel):
    """Final state of one account in a run."""

    identity: str
    role: Role = Role.DEFAULT
    state: RotationState
    write_cycles: int = 0
    convergence: list[ConvergenceResult] = Field(default_factory=list)
    results: list[ApplierResult] = Field(default_factory=list)
    error: str = ""
    history: list[RotationState] = Field(default_factory=list)

    @property
    def failures(self) -> list[TargetFailure]:
        return [f for r in self.results for f in r.failures]

    @property
    def timed_out(self) -> bool:
        return ConvergenceResult.TIMED_OUT in self.convergence


class RunReport(BaseModel):
    """Result of one orchestrator run."""

    operation: OperationCode = OperationCode.ROTATE
    scope: str | None = None
    processed: int = 0
    not_found: bool = False
    outcomes: list[AccountOutcome] = Field(default_factory=list)

    def outcome(self, identity: str) -> AccountOutcome | None:
        return next((o for o in self.outcomes if o.identity == identity), None)

    def count(self, state: RotationState) -> int:
        return sum(1 for o in self.outcomes if o.state == state)

    def failed_targets(self) -> list[tuple[str, TargetFailure]]:
        """Every failed target as (identity, failure), for a targeted retry."""
        return [(o.identity, f) for o in self.outcomes for f in o.failures]


# ---------------------------------------------------------------------------
# Per-account state machine
# ---------------------------------------------------------------------------


@dataclass
class RotationJob:
    """Ephemeral state for one account while it is being processed."""

    identity: str
    role: Role = Role.DEFAULT
    state: RotationState = RotationState.PENDING
    write_cycles: int = 0
    convergence: list[ConvergenceResult] = field(default_factory=list)
    results: list[ApplierResult] = field(default_factory=list)
    error: str = ""
    history: list[RotationState] = field(default_factory=lambda: [RotationState.PENDING])

    def advance(self, new_state: RotationState) -> None:
        """Move to new_state, rejecting transitions the machine does not allow."""
        allowed = TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed:
            raise ValueError(f"Invalid transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def fail(self, error: str) -> None:
        self.error = error
        if self.state not in TERMINAL_STATES:
            self.state = RotationState.FAILED
            self.history.append(RotationState.FAILED)

    def finish(self) -> None:
        failed = any(r.failures for r in self.results)
        self.advance(RotationState.PARTIALLY_FAILED if failed else RotationState.DONE)

    def to_outcome(self) -> AccountOutcome:
        return AccountOutcome(
            identity=self.identity,
            role=self.role,
            state=self.state,
            write_cycles=self.write_cycles,
            convergence=list(self.convergence),
            results=list(self.results),
            error=self.error,
            history=list(self.history),
        )
