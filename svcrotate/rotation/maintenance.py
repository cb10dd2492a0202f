"""Read-only and recovery operations that sit beside rotation.

    probe_logins     try each account's stored secret against the platform
    sync_status      directory-sync instance status per host
    repair_fleet     start stopped pools and services of managed accounts
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from svcrotate.errors import IdentityNotFound, TargetError
from svcrotate.farm.models import PoolState, ServiceState, SyncStatus
from svcrotate.farm.platform import FarmPlatform
from svcrotate.farm.topology import FleetTopology
from svcrotate.identity import same_identity
from svcrotate.rotation.models import ApplierResult, TargetFailure
from svcrotate.rotation.orchestrator import RotationOrchestrator

logger = logging.getLogger(__name__)


class ProbeResult(BaseModel):
    """Outcome of one login attempt."""

    identity: str
    success: bool
    error: str = ""


class SyncInstanceStatus(BaseModel):
    host: str
    status: SyncStatus
    account: str


def probe_logins(platform: FarmPlatform, scope: str | None = None) -> list[ProbeResult]:
    """Attempt a login for every account in scope with its stored secret."""
    targets = RotationOrchestrator.resolve_scope(platform.list_identities(), scope)
    if scope and not targets:
        raise IdentityNotFound(scope)

    results = []
    for identity in targets:
        try:
            ok = platform.verify_login(identity, platform.read_secret(identity))
            results.append(ProbeResult(identity=identity, success=ok))
        except IdentityNotFound as e:
            results.append(ProbeResult(identity=identity, success=False, error=str(e)))
        if not results[-1].success:
            logger.warning("Login probe failed for %s", identity)
    return results


def sync_status(platform: FarmPlatform) -> list[SyncInstanceStatus]:
    """Status of every directory-sync instance."""
    return [
        SyncInstanceStatus(host=i.host, status=i.status, account=i.account)
        for i in platform.list_sync_instances()
    ]


def repair_fleet(platform: FarmPlatform, topology: FleetTopology | None = None) -> ApplierResult:
    """Start every stopped worker pool and OS service that runs as a managed account.

    Meant for recovery after an interrupted or partially failed run.
    """
    topology = topology or FleetTopology(platform)
    identities = platform.list_identities()
    result = ApplierResult(applier="repair")

    def managed(account: str) -> bool:
        return any(same_identity(account, i) for i in identities)

    for host in topology.hosts():
        try:
            for pool in platform.list_app_pools(host.name):
                if managed(pool.username) and pool.state != PoolState.STARTED:
                    _attempt(result, "worker-pool", host.name, pool.name,
                             platform.start_app_pool)
            for svc in platform.list_services(host.name):
                if managed(svc.logon_account) and svc.state != ServiceState.RUNNING:
                    _attempt(result, "os-service", host.name, svc.name,
                             platform.start_service)
        except TargetError as e:
            logger.warning("Repair skipped %s: %s", host.name, e)
            result.failures.append(
                TargetFailure(host=host.name, subsystem="host", error=str(e))
            )
    return result


def _attempt(result: ApplierResult, subsystem: str, host: str, resource: str, action) -> None:
    try:
        action(host, resource)
    except TargetError as e:
        logger.warning("Could not start %s on %s: %s", resource, host, e)
        result.failures.append(
            TargetFailure(host=host, subsystem=subsystem, resource=resource, error=str(e))
        )
        return
    logger.info("Started %s on %s", resource, host)
    result.updated.append(f"{host}/{resource}")
