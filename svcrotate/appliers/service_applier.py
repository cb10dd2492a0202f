"""Named-service applier — updates the logon of a fixed set of OS services."""

from __future__ import annotations

import logging

from svcrotate.appliers.base import BaseApplier
from svcrotate.farm.models import FleetHost
from svcrotate.rotation.models import ApplierResult

logger = logging.getLogger(__name__)


class NamedServiceApplier(BaseApplier):
    """Sets the logon identity of named services on every host.

    Used for both the antivirus services and the generic farm services; the
    service names come from configuration. Services are not restarted.
    """

    subsystem = "os-service"

    def __init__(self, *args, name: str, service_names: list[str], **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.name = name
        self.service_names = list(service_names)

    def apply(self, identity: str, secret: str) -> ApplierResult:
        result = self.new_result()
        wanted = {n.lower() for n in self.service_names}

        def update_host(host: FleetHost) -> None:
            present = [
                s for s in self.platform.list_services(host.name) if s.name.lower() in wanted
            ]
            if not present:
                logger.debug("[%s] None of %s on %s", self.name, self.service_names, host.name)
                result.skipped.append(host.name)
            for svc in present:
                self.attempt(
                    result, host.name, svc.name,
                    self.platform.set_service_logon, host.name, svc.name, identity, secret,
                )

        self.for_each_host(result, update_host)
        return result
