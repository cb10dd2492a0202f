"""Pydantic data models for a simulated application farm.

The FarmManifest is the single source of truth for the simulated platform:
the credential store, the background job list, every host's services,
scheduled tasks and worker pools, and the farm-wide subsystems all live here.
It serializes to JSON so a farm can be saved, inspected and rotated again.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class HostRole(str, Enum):
    """Role flag of a host in the fleet."""

    ADMIN = "admin"
    APPLICATION = "application"
    WEB_FRONT_END = "web_front_end"
    INVALID = "invalid"


class SyncStatus(str, Enum):
    """Status reported by a directory-sync service instance."""

    ONLINE = "Online"
    OFFLINE = "Offline"
    PROVISIONING = "Provisioning"
    DISABLED = "Disabled"


class ServiceState(str, Enum):
    """Run state of an OS service."""

    RUNNING = "Running"
    STOPPED = "Stopped"


class PoolState(str, Enum):
    """Run state of a web-server worker pool."""

    STARTED = "Started"
    STOPPED = "Stopped"


class PoolIdentityType(str, Enum):
    """Identity a worker pool runs as."""

    SPECIFIC_USER = "SpecificUser"
    APPLICATION_POOL_IDENTITY = "ApplicationPoolIdentity"
    NETWORK_SERVICE = "NetworkService"
    LOCAL_SYSTEM = "LocalSystem"


# ---------------------------------------------------------------------------
# Host-local resources
# ---------------------------------------------------------------------------


class WindowsService(BaseModel):
    """An OS service installed on a host."""

    name: str = Field(description="Service name, e.g. 'SPTimerV4'")
    display_name: str = Field(default="")
    logon_account: str = Field(default="LocalSystem", description="Run-as identity")
    password: str = Field(default="", description="Stored logon secret")
    state: ServiceState = Field(default=ServiceState.RUNNING)


class ScheduledTask(BaseModel):
    """A scheduled task with a stored run-as credential."""

    name: str = Field(description="Task name, e.g. 'Nightly Backup'")
    path: str = Field(default="\\", description="Task folder")
    run_as: str = Field(description="Run-as identity")
    password: str = Field(default="", description="Stored run-as secret")


class AppPool(BaseModel):
    """A web-server worker process pool."""

    name: str = Field(description="Pool name, e.g. 'SharePoint - 80'")
    identity_type: PoolIdentityType = Field(default=PoolIdentityType.SPECIFIC_USER)
    username: str = Field(default="")
    password: str = Field(default="")
    state: PoolState = Field(default=PoolState.STARTED)
    recycle_count: int = Field(default=0, ge=0)


class Host(BaseModel):
    """A server participating in the farm."""

    hostname: str = Field(description="Short hostname, e.g. 'APP01'")
    fqdn: str = Field(description="Fully qualified, e.g. 'APP01.CORP.local'")
    role: HostRole = Field(default=HostRole.APPLICATION)
    reachable: bool = Field(default=True, description="False simulates a host that is down")
    services: list[WindowsService] = Field(default_factory=list)
    tasks: list[ScheduledTask] = Field(default_factory=list)
    app_pools: list[AppPool] = Field(default_factory=list)


class FleetHost(BaseModel):
    """A host as seen by the fleet topology: name and role flag only."""

    name: str
    role: HostRole


# ---------------------------------------------------------------------------
# Identity store
# ---------------------------------------------------------------------------


class AccountRecord(BaseModel):
    """A managed account in the authoritative credential store."""

    identity: str = Field(description="Domain-qualified name, e.g. 'CORP\\sp_farm'")
    password: str = Field(description="Current secret")
    enabled: bool = Field(default=True)
    write_protected: bool = Field(
        default=False, description="Simulates a store that rejects writes"
    )


class BackgroundJob(BaseModel):
    """A background job the platform runs after a credential write."""

    job_id: str
    description: str
    remaining_polls: int = Field(
        default=1, ge=0, description="Listings left before the job completes"
    )


# ---------------------------------------------------------------------------
# Farm subsystems
# ---------------------------------------------------------------------------


class SyncServiceInstance(BaseModel):
    """A directory-synchronization service instance bound to a host."""

    host: str
    status: SyncStatus = Field(default=SyncStatus.OFFLINE)
    account: str = Field(default="")
    password: str = Field(default="")
    provision_count: int = Field(default=0, ge=0)
    start_polls: int = Field(
        default=2, ge=0, description="Status checks before a started instance is Online"
    )
    pending_polls: int = Field(default=0, ge=0)


class SearchService(BaseModel):
    """Enterprise search service credentials."""

    run_as: str = Field(default="")
    password: str = Field(default="")
    content_access_account: str = Field(default="")
    content_access_password: str = Field(default="")


class SecureStoreTarget(BaseModel):
    """A credential-mapping target in the secure store."""

    target_id: str
    service_application: str
    claims_group: str = Field(default="")
    admin_principal: str = Field(default="")
    username: str = Field(default="")
    password: str = Field(default="")


class ServiceApplication(BaseModel):
    """A service application that may use an unattended account."""

    name: str = Field(description="e.g. 'Excel Services Application'")
    kind: str = Field(description="'excel', 'visio' or 'performance-point'")
    unattended_target: str = Field(default="", description="Secure store target id")


class WorkflowComponent(BaseModel):
    """A workflow backend component (service bus or workflow engine)."""

    host: str
    component: str = Field(description="'service-bus' or 'workflow-manager'")
    run_as: str = Field(default="")
    password: str = Field(default="")


# ---------------------------------------------------------------------------
# Configuration & Manifest (Top-Level Models)
# ---------------------------------------------------------------------------


class FarmConfig(BaseModel):
    """Parameters for generating a demo farm."""

    domain: str = Field(default="CORP", description="NetBIOS domain name")
    num_app_servers: int = Field(default=2, ge=1, le=20)
    num_web_servers: int = Field(default=2, ge=0, le=20)
    include_invalid_host: bool = Field(default=True)
    convergence_polls: int = Field(
        default=2, ge=1, description="Job listings before a password job completes"
    )
    seed: int | None = Field(default=None, description="Random seed for reproducibility")


class FarmManifest(BaseModel):
    """The single source of truth for a simulated farm."""

    domain: str = Field(description="NetBIOS domain name")
    hosts: list[Host] = Field(default_factory=list)
    accounts: list[AccountRecord] = Field(default_factory=list)
    jobs: list[BackgroundJob] = Field(default_factory=list)
    sync_instances: list[SyncServiceInstance] = Field(default_factory=list)
    search: SearchService = Field(default_factory=SearchService)
    secure_store: list[SecureStoreTarget] = Field(default_factory=list)
    service_applications: list[ServiceApplication] = Field(default_factory=list)
    workflow: list[WorkflowComponent] = Field(default_factory=list)

    # Metadata
    generated_at: datetime = Field(default_factory=datetime.now)
    config: FarmConfig = Field(default_factory=FarmConfig)
