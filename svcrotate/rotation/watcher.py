"""Convergence Watcher — waits for the platform to finish a password change."""

from __future__ import annotations

import logging
import time
from typing import Callable

from svcrotate.errors import ConvergenceTimeout
from svcrotate.farm.models import BackgroundJob
from svcrotate.farm.platform import FarmPlatform
from svcrotate.identity import same_identity
from svcrotate.rotation.polling import poll_until

logger = logging.getLogger(__name__)

TOKEN_PUNCTUATION = ".,;:'\"()[]"


def mentions_identity(description: str, identity: str) -> bool:
    """True if any whitespace-separated word of description names identity."""
    return any(
        same_identity(word.strip(TOKEN_PUNCTUATION), identity)
        for word in description.split()
    )


class ConvergenceWatcher:
    """Blocks until no background job for an identity's password remains.

    Usage:
        watcher = ConvergenceWatcher(platform)
        watcher.await_convergence("CORP\\sp_farm", 10, 5, 600)
    """

    def __init__(
        self,
        platform: FarmPlatform,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.platform = platform
        self.sleep = sleep
        self.clock = clock

    def pending_jobs(self, identity: str) -> list[BackgroundJob]:
        """Running password jobs that name the identity as one of their words."""
        return [
            job
            for job in self.platform.list_jobs()
            if "password" in job.description.lower()
            and mentions_identity(job.description, identity)
        ]

    def await_convergence(
        self,
        identity: str,
        initial_delay: float,
        poll_interval: float,
        timeout: float,
    ) -> None:
        """Return once converged. Raises ConvergenceTimeout otherwise."""

        def converged() -> bool:
            pending = self.pending_jobs(identity)
            if pending:
                logger.debug("%d job(s) pending for %s", len(pending), identity)
            return not pending

        ok = poll_until(
            converged,
            initial_delay=initial_delay,
            interval=poll_interval,
            timeout=timeout,
            sleep=self.sleep,
            clock=self.clock,
        )
        if not ok:
            raise ConvergenceTimeout(identity, timeout)
        logger.info("Credential store converged for %s", identity)
