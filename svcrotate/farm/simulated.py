"""Simulated platform — a FarmPlatform backed by a FarmManifest.

Every call reads or mutates the manifest in place, so a run against the
simulated platform can be saved back to JSON and inspected afterwards.

Usage:
    manifest = FarmManifest.model_validate_json(path.read_text())
    platform = SimulatedPlatform(manifest)
    platform.write_secret("CORP\\sp_farm", "new-secret")
"""

from __future__ import annotations

import logging
import uuid

from svcrotate.errors import (
    IdentityNotFound,
    StoreWriteFailure,
    TargetNotFound,
    TargetUnreachable,
)
from svcrotate.farm.models import (
    AccountRecord,
    AppPool,
    BackgroundJob,
    FarmManifest,
    FleetHost,
    Host,
    PoolIdentityType,
    PoolState,
    ScheduledTask,
    SecureStoreTarget,
    ServiceApplication,
    ServiceState,
    SyncServiceInstance,
    SyncStatus,
    WindowsService,
    WorkflowComponent,
)
from svcrotate.farm.platform import FarmPlatform
from svcrotate.identity import same_identity

logger = logging.getLogger(__name__)


class SimulatedPlatform(FarmPlatform):
    """Executes platform calls against an in-memory farm manifest."""

    def __init__(self, manifest: FarmManifest) -> None:
        self.manifest = manifest

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _account(self, identity: str) -> AccountRecord:
        record = next(
            (a for a in self.manifest.accounts if same_identity(a.identity, identity)),
            None,
        )
        if record is None:
            raise IdentityNotFound(identity)
        return record

    def _host(self, hostname: str) -> Host:
        name = hostname.lower()
        host = next(
            (h for h in self.manifest.hosts
             if h.hostname.lower() == name or h.fqdn.lower() == name),
            None,
        )
        if host is None:
            raise TargetNotFound("Host", hostname)
        if not host.reachable:
            raise TargetUnreachable(host.hostname)
        return host

    def _service(self, hostname: str, service: str) -> WindowsService:
        host = self._host(hostname)
        found = next((s for s in host.services if s.name.lower() == service.lower()), None)
        if found is None:
            raise TargetNotFound("Service", service, host=host.hostname)
        return found

    def _task(self, hostname: str, task: str) -> ScheduledTask:
        host = self._host(hostname)
        found = next((t for t in host.tasks if t.name.lower() == task.lower()), None)
        if found is None:
            raise TargetNotFound("Scheduled task", task, host=host.hostname)
        return found

    def _pool(self, hostname: str, pool: str) -> AppPool:
        host = self._host(hostname)
        found = next((p for p in host.app_pools if p.name.lower() == pool.lower()), None)
        if found is None:
            raise TargetNotFound("Worker pool", pool, host=host.hostname)
        return found

    def _sync_instance(self, hostname: str) -> SyncServiceInstance:
        host = self._host(hostname)
        found = next(
            (i for i in self.manifest.sync_instances
             if i.host.lower() == host.hostname.lower()),
            None,
        )
        if found is None:
            raise TargetNotFound("Sync service instance", host.hostname, host=host.hostname)
        return found

    def _service_application(self, name: str) -> ServiceApplication:
        found = next(
            (a for a in self.manifest.service_applications if a.name.lower() == name.lower()),
            None,
        )
        if found is None:
            raise TargetNotFound("Service application", name)
        return found

    def _secure_store_target(self, target_id: str) -> SecureStoreTarget:
        found = next(
            (t for t in self.manifest.secure_store if t.target_id.lower() == target_id.lower()),
            None,
        )
        if found is None:
            raise TargetNotFound("Secure store target", target_id)
        return found

    # ------------------------------------------------------------------
    # Credential store
    # ------------------------------------------------------------------

    def list_identities(self) -> list[str]:
        return [a.identity for a in self.manifest.accounts]

    def read_secret(self, identity: str) -> str:
        return self._account(identity).password

    def write_secret(self, identity: str, secret: str) -> None:
        record = self._account(identity)
        if record.write_protected:
            raise StoreWriteFailure(record.identity, "account is write-protected")
        record.password = secret
        self.manifest.jobs.append(
            BackgroundJob(
                job_id=str(uuid.uuid4()),
                description=f"Password change for managed account {record.identity}",
                remaining_polls=self.manifest.config.convergence_polls,
            )
        )
        logger.debug("Queued convergence job for %s", record.identity)

    def verify_login(self, identity: str, secret: str) -> bool:
        record = self._account(identity)
        return record.enabled and record.password == secret

    def list_jobs(self) -> list[BackgroundJob]:
        """Return running jobs, then advance each job by one listing."""
        running = [j.model_copy() for j in self.manifest.jobs if j.remaining_polls > 0]
        for job in self.manifest.jobs:
            job.remaining_polls = max(0, job.remaining_polls - 1)
        self.manifest.jobs = [j for j in self.manifest.jobs if j.remaining_polls > 0]
        return running

    # ------------------------------------------------------------------
    # Fleet
    # ------------------------------------------------------------------

    def list_hosts(self) -> list[FleetHost]:
        return [FleetHost(name=h.hostname, role=h.role) for h in self.manifest.hosts]

    # ------------------------------------------------------------------
    # Host-local resources
    # ------------------------------------------------------------------

    def list_services(self, host: str) -> list[WindowsService]:
        return [s.model_copy() for s in self._host(host).services]

    def set_service_logon(self, host: str, service: str, identity: str, secret: str) -> None:
        svc = self._service(host, service)
        svc.logon_account = identity
        svc.password = secret

    def start_service(self, host: str, service: str) -> None:
        self._service(host, service).state = ServiceState.RUNNING

    def list_tasks(self, host: str) -> list[ScheduledTask]:
        return [t.model_copy() for t in self._host(host).tasks]

    def set_task_credential(self, host: str, task: str, identity: str, secret: str) -> None:
        found = self._task(host, task)
        found.run_as = identity
        found.password = secret

    def list_app_pools(self, host: str) -> list[AppPool]:
        return [p.model_copy() for p in self._host(host).app_pools]

    def set_app_pool_identity(self, host: str, pool: str, identity: str, secret: str) -> None:
        found = self._pool(host, pool)
        found.username = identity
        found.password = secret
        found.identity_type = PoolIdentityType.SPECIFIC_USER

    def start_app_pool(self, host: str, pool: str) -> None:
        self._pool(host, pool).state = PoolState.STARTED

    def recycle_app_pool(self, host: str, pool: str) -> None:
        found = self._pool(host, pool)
        if found.state != PoolState.STARTED:
            raise TargetNotFound("Started worker pool", pool, host=host)
        found.recycle_count += 1

    # ------------------------------------------------------------------
    # Farm subsystems
    # ------------------------------------------------------------------

    def list_sync_instances(self) -> list[SyncServiceInstance]:
        return [i.model_copy() for i in self.manifest.sync_instances]

    def configure_sync_service(self, host: str, identity: str, secret: str) -> None:
        instance = self._sync_instance(host)
        instance.account = identity
        instance.password = secret

    def provision_sync_service(self, host: str) -> None:
        instance = self._sync_instance(host)
        instance.provision_count += 1
        instance.status = SyncStatus.OFFLINE

    def get_sync_status(self, host: str) -> SyncStatus:
        instance = self._sync_instance(host)
        if instance.status == SyncStatus.PROVISIONING:
            instance.pending_polls = max(0, instance.pending_polls - 1)
            if instance.pending_polls == 0:
                instance.status = SyncStatus.ONLINE
        return instance.status

    def start_sync_service(self, host: str) -> None:
        instance = self._sync_instance(host)
        if instance.status == SyncStatus.ONLINE:
            return
        instance.status = SyncStatus.PROVISIONING
        instance.pending_polls = instance.start_polls
        if instance.pending_polls == 0:
            instance.status = SyncStatus.ONLINE

    def set_search_service_account(self, identity: str, secret: str) -> None:
        self.manifest.search.run_as = identity
        self.manifest.search.password = secret

    def set_content_access_account(self, identity: str, secret: str) -> None:
        self.manifest.search.content_access_account = identity
        self.manifest.search.content_access_password = secret

    def get_secure_store_target(self, target_id: str) -> SecureStoreTarget | None:
        found = next(
            (t for t in self.manifest.secure_store if t.target_id.lower() == target_id.lower()),
            None,
        )
        return found.model_copy() if found else None

    def create_secure_store_target(self, service_application: str, target_id: str) -> None:
        app = self._service_application(service_application)
        if self.get_secure_store_target(target_id) is None:
            self.manifest.secure_store.append(
                SecureStoreTarget(target_id=target_id, service_application=app.name)
            )

    def set_secure_store_permissions(
        self, target_id: str, claims_group: str, admin_principal: str
    ) -> None:
        target = self._secure_store_target(target_id)
        target.claims_group = claims_group
        target.admin_principal = admin_principal

    def set_secure_store_credentials(self, target_id: str, username: str, secret: str) -> None:
        target = self._secure_store_target(target_id)
        target.username = username
        target.password = secret

    def set_unattended_account(self, service_application: str, target_id: str) -> None:
        self._secure_store_target(target_id)
        self._service_application(service_application).unattended_target = target_id

    def list_workflow_components(self) -> list[WorkflowComponent]:
        return [c.model_copy() for c in self.manifest.workflow]

    def set_workflow_run_as(self, host: str, component: str, identity: str, secret: str) -> None:
        target = self._host(host)
        found = next(
            (c for c in self.manifest.workflow
             if c.host.lower() == target.hostname.lower()
             and c.component.lower() == component.lower()),
            None,
        )
        if found is None:
            raise TargetNotFound("Workflow component", component, host=target.hostname)
        found.run_as = identity
        found.password = secret
