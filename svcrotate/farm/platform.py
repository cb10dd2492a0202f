"""Platform adapter interface.

Everything the rotation engine does to the outside world goes through a
FarmPlatform. Host-scoped calls raise TargetUnreachable when the host cannot
be contacted and TargetNotFound when the host or resource does not exist.
Returned models are snapshots; mutate the platform only through its methods.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from svcrotate.farm.models import (
    AppPool,
    BackgroundJob,
    FleetHost,
    ScheduledTask,
    SecureStoreTarget,
    SyncServiceInstance,
    SyncStatus,
    WindowsService,
    WorkflowComponent,
)


class FarmPlatform(ABC):
    """Abstract boundary to the farm being administered."""

    # ------------------------------------------------------------------
    # Credential store
    # ------------------------------------------------------------------

    @abstractmethod
    def list_identities(self) -> list[str]:
        """Return every managed account, in enumeration order."""

    @abstractmethod
    def read_secret(self, identity: str) -> str:
        """Return the plaintext secret. Raises IdentityNotFound."""

    @abstractmethod
    def write_secret(self, identity: str, secret: str) -> None:
        """Store a new secret and start the platform's background convergence.

        Raises IdentityNotFound or StoreWriteFailure.
        """

    @abstractmethod
    def verify_login(self, identity: str, secret: str) -> bool:
        """Attempt a login with the given secret."""

    @abstractmethod
    def list_jobs(self) -> list[BackgroundJob]:
        """Return the background jobs still running."""

    # ------------------------------------------------------------------
    # Fleet
    # ------------------------------------------------------------------

    @abstractmethod
    def list_hosts(self) -> list[FleetHost]:
        """Return every host known to the farm, including invalid ones."""

    # ------------------------------------------------------------------
    # Host-local resources
    # ------------------------------------------------------------------

    @abstractmethod
    def list_services(self, host: str) -> list[WindowsService]: ...

    @abstractmethod
    def set_service_logon(self, host: str, service: str, identity: str, secret: str) -> None: ...

    @abstractmethod
    def start_service(self, host: str, service: str) -> None: ...

    @abstractmethod
    def list_tasks(self, host: str) -> list[ScheduledTask]: ...

    @abstractmethod
    def set_task_credential(self, host: str, task: str, identity: str, secret: str) -> None: ...

    @abstractmethod
    def list_app_pools(self, host: str) -> list[AppPool]: ...

    @abstractmethod
    def set_app_pool_identity(self, host: str, pool: str, identity: str, secret: str) -> None:
        """Rewrite username, secret and identity type, and commit."""

    @abstractmethod
    def start_app_pool(self, host: str, pool: str) -> None: ...

    @abstractmethod
    def recycle_app_pool(self, host: str, pool: str) -> None: ...

    # ------------------------------------------------------------------
    # Farm subsystems
    # ------------------------------------------------------------------

    @abstractmethod
    def list_sync_instances(self) -> list[SyncServiceInstance]: ...

    @abstractmethod
    def configure_sync_service(self, host: str, identity: str, secret: str) -> None: ...

    @abstractmethod
    def provision_sync_service(self, host: str) -> None: ...

    @abstractmethod
    def get_sync_status(self, host: str) -> SyncStatus: ...

    @abstractmethod
    def start_sync_service(self, host: str) -> None: ...

    @abstractmethod
    def set_search_service_account(self, identity: str, secret: str) -> None: ...

    @abstractmethod
    def set_content_access_account(self, identity: str, secret: str) -> None: ...

    @abstractmethod
    def get_secure_store_target(self, target_id: str) -> SecureStoreTarget | None: ...

    @abstractmethod
    def create_secure_store_target(self, service_application: str, target_id: str) -> None: ...

    @abstractmethod
    def set_secure_store_permissions(
        self, target_id: str, claims_group: str, admin_principal: str
    ) -> None: ...

    @abstractmethod
    def set_secure_store_credentials(self, target_id: str, username: str, secret: str) -> None: ...

    @abstractmethod
    def set_unattended_account(self, service_application: str, target_id: str) -> None: ...

    @abstractmethod
    def list_workflow_components(self) -> list[WorkflowComponent]: ...

    @abstractmethod
    def set_workflow_run_as(self, host: str, component: str, identity: str, secret: str) -> None: ...
