"""Base class for all propagation appliers."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable

from svcrotate.config import RotationConfig
from svcrotate.errors import TargetError
from svcrotate.farm.models import FleetHost
from svcrotate.farm.platform import FarmPlatform
from svcrotate.farm.topology import FleetTopology
from svcrotate.rotation.models import ApplierResult, TargetFailure

logger = logging.getLogger(__name__)


class BaseApplier(ABC):
    """Abstract base for an applier that pushes a secret to one subsystem.

    Each applier must implement:
        apply(identity: str, secret: str) -> ApplierResult

    Failures are contained per host and per resource: a TargetError is
    recorded on the result and the applier moves on to the next target.
    """

    name: str = "base"
    subsystem: str = ""

    def __init__(
        self,
        platform: FarmPlatform,
        topology: FleetTopology,
        config: RotationConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.platform = platform
        self.topology = topology
        self.config = config
        self.sleep = sleep
        self.clock = clock

    @abstractmethod
    def apply(self, identity: str, secret: str) -> ApplierResult:
        """Push the secret for identity to this applier's targets."""
        ...

    def new_result(self) -> ApplierResult:
        return ApplierResult(applier=self.name)

    def record_failure(
        self, result: ApplierResult, error: Exception, *, host: str = "", resource: str = ""
    ) -> None:
        """Add a failure to the result and log it."""
        if isinstance(error, TargetError):
            host = host or error.host
            resource = resource or error.resource
        result.failures.append(
            TargetFailure(host=host, subsystem=self.subsystem, resource=resource, error=str(error))
        )
        where = "/".join(p for p in (host, resource) if p) or self.subsystem
        logger.warning("[%s] %s failed: %s", self.name, where, error)

    def attempt(
        self,
        result: ApplierResult,
        host: str,
        resource: str,
        action: Callable[..., Any],
        *args: Any,
    ) -> bool:
        """Run one target update, recording success or a contained failure."""
        try:
            action(*args)
        except TargetError as e:
            self.record_failure(result, e, host=host, resource=resource)
            return False
        label = f"{host}/{resource}" if host else resource
        result.updated.append(label)
        logger.info("[%s] Updated %s", self.name, label)
        return True

    def for_each_host(
        self, result: ApplierResult, action: Callable[[FleetHost], None]
    ) -> None:
        """Run action on every valid host; a failing host never stops the loop."""
        for host in self.topology.hosts():
            try:
                action(host)
            except TargetError as e:
                self.record_failure(result, e, host=host.name)
