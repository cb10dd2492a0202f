"""Unattended-account applier — secure store mapping for service applications.

Excel, Visio and PerformancePoint run data refreshes as an "unattended
account" whose credentials live in a secure store target. The applier
creates the target if it is missing, sets its permissions, writes the new
credentials and binds the service application to the target. Running it
again only rewrites the credentials.
"""

from __future__ import annotations

import logging

from svcrotate.appliers.base import BaseApplier
from svcrotate.config import UnattendedAccountTarget
from svcrotate.errors import TargetError
from svcrotate.rotation.models import ApplierResult, Role

logger = logging.getLogger(__name__)


class UnattendedAccountApplier(BaseApplier):
    """Writes the account into the secure store target for one role."""

    subsystem = "secure-store"

    def __init__(self, *args, role: Role, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.role = role
        self.name = f"unattended-{role.value}"

    @property
    def target(self) -> UnattendedAccountTarget | None:
        return self.config.unattended_targets.get(self.role)

    def apply(self, identity: str, secret: str) -> ApplierResult:
        result = self.new_result()
        target = self.target
        if target is None:
            logger.warning("No unattended target configured for role %s", self.role.value)
            result.skipped.append(self.role.value)
            return result

        admin = self.config.secure_store_admin_principal or identity
        try:
            existing = self.platform.get_secure_store_target(target.target_id)
            if existing is None:
                logger.info("Creating secure store target %s", target.target_id)
                self.platform.create_secure_store_target(
                    target.service_application, target.target_id
                )
            self.platform.set_secure_store_permissions(
                target.target_id, self.config.secure_store_claims_group, admin
            )
            self.platform.set_secure_store_credentials(target.target_id, identity, secret)
            self.platform.set_unattended_account(target.service_application, target.target_id)
        except TargetError as e:
            self.record_failure(result, e, resource=target.target_id)
            return result

        result.updated.append(f"{target.service_application}/{target.target_id}")
        logger.info("[%s] Updated %s", self.name, target.target_id)
        return result
