"""Worker-pool applier — identities of web-server worker process pools."""

from __future__ import annotations

import logging

from svcrotate.appliers.base import BaseApplier
from svcrotate.errors import TargetError
from svcrotate.farm.models import FleetHost
from svcrotate.identity import same_identity
from svcrotate.rotation.models import ApplierResult

logger = logging.getLogger(__name__)


class AppPoolApplier(BaseApplier):
    """Rewrites pools running as the identity whose stored secret is stale.

    A pool already holding the new secret is left alone, so re-running is
    harmless. After the commit, the pool is started and recycled; failures
    there are warnings only.
    """

    name = "worker-pools"
    subsystem = "worker-pool"

    def apply(self, identity: str, secret: str) -> ApplierResult:
        result = self.new_result()

        def update_host(host: FleetHost) -> None:
            for pool in self.platform.list_app_pools(host.name):
                if not same_identity(pool.username, identity):
                    continue
                if pool.password == secret:
                    result.skipped.append(f"{host.name}/{pool.name}")
                    continue
                committed = self.attempt(
                    result, host.name, pool.name,
                    self.platform.set_app_pool_identity, host.name, pool.name, identity, secret,
                )
                if committed:
                    self._restart(result, host.name, pool.name)

        self.for_each_host(result, update_host)
        return result

    def _restart(self, result: ApplierResult, host: str, pool: str) -> None:
        for step, action in (
            ("start", self.platform.start_app_pool),
            ("recycle", self.platform.recycle_app_pool),
        ):
            try:
                action(host, pool)
            except TargetError as e:
                result.warnings.append(f"{host}/{pool}: {step} failed: {e}")
                logger.warning("Could not %s pool %s on %s: %s", step, pool, host, e)
