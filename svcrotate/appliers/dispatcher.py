"""Applier Dispatcher — routes a classified account to its appliers.

The role applier (if the role has one) runs first, then every universal
applier. Each applier runs in isolation: an unexpected exception is recorded
as a failure of that applier and the next one still runs.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from svcrotate.appliers.base import BaseApplier
from svcrotate.appliers.pool_applier import AppPoolApplier
from svcrotate.appliers.process_identity_applier import ProcessIdentityApplier
from svcrotate.appliers.search_applier import ContentAccessApplier, SearchServiceApplier
from svcrotate.appliers.service_applier import NamedServiceApplier
from svcrotate.appliers.sync_applier import ProfileSyncApplier
from svcrotate.appliers.task_applier import ScheduledTaskApplier
from svcrotate.appliers.unattended_applier import UnattendedAccountApplier
from svcrotate.appliers.workflow_applier import WorkflowApplier
from svcrotate.config import RotationConfig
from svcrotate.farm.platform import FarmPlatform
from svcrotate.farm.topology import FleetTopology
from svcrotate.rotation.models import ApplierResult, Role, TargetFailure

logger = logging.getLogger(__name__)


class ApplierDispatcher:
    """Holds one applier per role plus the universal appliers.

    Usage:
        dispatcher = ApplierDispatcher(platform, topology, config)
        results = dispatcher.run(Role.SEARCH, "CORP\\sp_search", secret)
    """

    def __init__(
        self,
        platform: FarmPlatform,
        topology: FleetTopology,
        config: RotationConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        common = (platform, topology, config)
        timing = {"sleep": sleep, "clock": clock}

        self.role_appliers: dict[Role, BaseApplier] = {
            Role.FARM_PROFILE_SYNC: ProfileSyncApplier(*common, **timing),
            Role.SEARCH: SearchServiceApplier(*common, **timing),
            Role.CONTENT_CRAWL: ContentAccessApplier(*common, **timing),
            Role.SOPHOS: NamedServiceApplier(
                *common, name="sophos-services",
                service_names=config.sophos_services, **timing,
            ),
            Role.WORKFLOW: WorkflowApplier(*common, **timing),
            Role.VISIO: UnattendedAccountApplier(*common, role=Role.VISIO, **timing),
            Role.EXCEL: UnattendedAccountApplier(*common, role=Role.EXCEL, **timing),
            Role.WINDOWS_SERVICE: NamedServiceApplier(
                *common, name="windows-services",
                service_names=config.windows_services, **timing,
            ),
            Role.PERFORMANCE_POINT: UnattendedAccountApplier(
                *common, role=Role.PERFORMANCE_POINT, **timing,
            ),
        }
        self.universal_appliers: list[BaseApplier] = [
            ScheduledTaskApplier(*common, **timing),
            AppPoolApplier(*common, **timing),
            ProcessIdentityApplier(*common, **timing),
        ]

    def for_role(self, role: Role) -> BaseApplier | None:
        """The role-specific applier, or None for the default role."""
        return self.role_appliers.get(role)

    def appliers_for(self, role: Role) -> list[BaseApplier]:
        role_applier = self.for_role(role)
        head = [role_applier] if role_applier else []
        return head + self.universal_appliers

    def run(self, role: Role, identity: str, secret: str) -> list[ApplierResult]:
        """Run the role applier then every universal applier."""
        results = []
        for applier in self.appliers_for(role):
            try:
                results.append(applier.apply(identity, secret))
            except Exception as e:
                logger.exception("Applier %s crashed for %s", applier.name, identity)
                results.append(
                    ApplierResult(
                        applier=applier.name,
                        failures=[
                            TargetFailure(
                                subsystem=applier.subsystem or applier.name,
                                resource=applier.name,
                                error=f"{type(e).__name__}: {e}",
                            )
                        ],
                    )
                )
        return results
