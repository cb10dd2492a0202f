"""Rotation Orchestrator — the per-account rotation pipeline.

For every account in scope:
    1. Generate one secret (skipped when only propagating)
    2. Write it to the credential store and wait for convergence
       (the first account of a run repeats this cycle)
    3. Classify the account into a role
    4. Run the role applier, then every universal applier

Accounts are processed one at a time. A failure in one account, expected or
not, never stops the batch, and propagation proceeds after a convergence
timeout.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from tqdm import tqdm

from svcrotate.appliers.dispatcher import ApplierDispatcher
from svcrotate.config import RotationConfig
from svcrotate.errors import (
    ConvergenceTimeout,
    IdentityNotFound,
    RotationInProgress,
    StoreWriteFailure,
)
from svcrotate.farm.platform import FarmPlatform
from svcrotate.farm.topology import FleetTopology
from svcrotate.identity import local_name
from svcrotate.passwords.generator import PasswordGenerator, mask_secret
from svcrotate.rotation.classifier import RoleClassifier
from svcrotate.rotation.locks import IdentityLocks
from svcrotate.rotation.models import (
    AccountOutcome,
    ConvergenceResult,
    OperationCode,
    RotationJob,
    RotationState,
    RunReport,
)
from svcrotate.rotation.watcher import ConvergenceWatcher

logger = logging.getLogger(__name__)


class RotationOrchestrator:
    """Rotates and propagates managed account secrets.

    Usage:
        orchestrator = RotationOrchestrator(platform, RotationConfig())
        report = orchestrator.rotate()                   # every account
        report = orchestrator.rotate("CORP\\sp_search")  # one account
        report = orchestrator.rotate(propagate_only=True)
    """

    def __init__(
        self,
        platform: FarmPlatform,
        config: RotationConfig | None = None,
        *,
        generator: PasswordGenerator | None = None,
        classifier: RoleClassifier | None = None,
        dispatcher: ApplierDispatcher | None = None,
        locks: IdentityLocks | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.platform = platform
        self.config = config or RotationConfig()
        self.sleep = sleep
        self.clock = clock

        # Raises ConfigurationError before anything is touched.
        self.generator = generator or self.config.password_generator()
        self.classifier = classifier or RoleClassifier()
        self.topology = FleetTopology(platform)
        self.watcher = ConvergenceWatcher(platform, sleep=sleep, clock=clock)
        self.dispatcher = dispatcher or ApplierDispatcher(
            platform, self.topology, self.config, sleep=sleep, clock=clock
        )
        self.locks = locks or IdentityLocks()

    # ------------------------------------------------------------------
    # Scope
    # ------------------------------------------------------------------

    @staticmethod
    def resolve_scope(identities: list[str], scope: str | None) -> list[str]:
        """Accounts to process. An empty list means the filter matched nothing.

        A filter matches the full domain-qualified name or the account part,
        case-insensitively.
        """
        if not scope:
            return list(identities)
        wanted = scope.strip().lower()
        for identity in identities:
            if identity.lower() == wanted or local_name(identity) == wanted:
                return [identity]
        return []

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def rotate(self, scope: str | None = None, propagate_only: bool = False) -> RunReport:
        """Rotate (or only re-push) the secrets of every account in scope."""
        operation = OperationCode.PROPAGATE if propagate_only else OperationCode.ROTATE
        report = RunReport(operation=operation, scope=scope)

        identities = self.platform.list_identities()
        targets = self.resolve_scope(identities, scope)
        if scope and not targets:
            report.not_found = True
            logger.error("Account %s not found; nothing changed", scope)
            return report

        logger.info(
            "%s %d account(s)",
            "Propagating" if propagate_only else "Rotating",
            len(targets),
        )
        progress = tqdm(
            targets,
            desc=operation.value.capitalize(),
            unit="account",
            disable=not self.config.show_progress,
        )
        for position, identity in enumerate(progress, start=1):
            progress.set_postfix_str(identity)
            outcome = self._process(identity, position, propagate_only)
            report.outcomes.append(outcome)
            report.processed += 1
            logger.info("%s: %s", identity, outcome.state.value)

        logger.info(
            "Run complete: %d done, %d partially failed, %d failed",
            report.count(RotationState.DONE),
            report.count(RotationState.PARTIALLY_FAILED),
            report.count(RotationState.FAILED),
        )
        return report

    def _process(self, identity: str, position: int, propagate_only: bool) -> AccountOutcome:
        job = RotationJob(identity=identity)
        try:
            with self.locks.hold(identity):
                if propagate_only:
                    secret = self.platform.read_secret(identity)
                else:
                    secret = self.generator.generate()
                    logger.info("Generated new secret for %s (%s)", identity, mask_secret(secret))
                    self._write_and_converge(job, secret, self.cycles_for(position))
                self._propagate(job, secret)
        except (StoreWriteFailure, IdentityNotFound, RotationInProgress) as e:
            logger.error("Skipping %s: %s", identity, e)
            job.fail(str(e))
        except Exception as e:
            logger.exception("Rotation of %s crashed", identity)
            job.fail(f"{type(e).__name__}: {e}")
        return job.to_outcome()

    def cycles_for(self, position: int) -> int:
        """Write+converge cycles for the account at this 1-based position.

        Only the first account processed in a run gets the extra cycles.
        """
        return self.config.first_account_cycles if position == 1 else 1

    def _write_and_converge(self, job: RotationJob, secret: str, cycles: int) -> None:
        result = ConvergenceResult.CONVERGED
        for cycle in range(1, cycles + 1):
            if cycle > 1:
                job.advance(RotationState.RETRY)
                logger.info(
                    "Repeating write for %s (cycle %d/%d) after %ss",
                    job.identity, cycle, cycles, self.config.warmup_pause,
                )
                self.sleep(self.config.warmup_pause)

            job.advance(RotationState.APPLYING)
            self.platform.write_secret(job.identity, secret)
            job.write_cycles += 1

            job.advance(RotationState.CONVERGING)
            try:
                self.watcher.await_convergence(
                    job.identity,
                    self.config.convergence_initial_delay,
                    self.config.convergence_poll_interval,
                    self.config.convergence_timeout,
                )
                result = ConvergenceResult.CONVERGED
            except ConvergenceTimeout as e:
                logger.warning("%s", e)
                result = ConvergenceResult.TIMED_OUT
            job.convergence.append(result)

        if result == ConvergenceResult.CONVERGED:
            job.advance(RotationState.CONVERGED)
        else:
            logger.warning("Propagating %s without confirmed convergence", job.identity)

    def _propagate(self, job: RotationJob, secret: str) -> None:
        job.advance(RotationState.PROPAGATING)
        job.role = self.classifier.classify(job.identity)
        logger.info("Propagating %s as role %s", job.identity, job.role.value)
        job.results = self.dispatcher.run(job.role, job.identity, secret)
        job.finish()
