"""Process-identity applier — any OS service running as the identity."""

from __future__ import annotations

from svcrotate.appliers.base import BaseApplier
from svcrotate.farm.models import FleetHost
from svcrotate.identity import same_identity
from svcrotate.rotation.models import ApplierResult


class ProcessIdentityApplier(BaseApplier):
    """Updates the stored logon secret of every service whose logon matches."""

    name = "process-identities"
    subsystem = "os-process"

    def apply(self, identity: str, secret: str) -> ApplierResult:
        result = self.new_result()

        def update_host(host: FleetHost) -> None:
            for svc in self.platform.list_services(host.name):
                if not same_identity(svc.logon_account, identity):
                    continue
                self.attempt(
                    result, host.name, svc.name,
                    self.platform.set_service_logon,
                    host.name, svc.name, svc.logon_account, secret,
                )

        self.for_each_host(result, update_host)
        return result
