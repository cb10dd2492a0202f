"""Shared fixtures: a small, fully deterministic farm and a fake clock."""

import pytest

from svcrotate.config import RotationConfig
from svcrotate.farm.models import (
    AccountRecord,
    AppPool,
    FarmConfig,
    FarmManifest,
    Host,
    HostRole,
    ScheduledTask,
    ServiceApplication,
    SyncServiceInstance,
    SyncStatus,
    WindowsService,
    WorkflowComponent,
)
from svcrotate.farm.simulated import SimulatedPlatform
from svcrotate.rotation.orchestrator import RotationOrchestrator


class FakeClock:
    """Monotonic clock whose sleep() only advances time."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _host(name: str, role: HostRole) -> Host:
    return Host(
        hostname=name,
        fqdn=f"{name}.CORP.local",
        role=role,
        services=[
            WindowsService(name="SPTimerV4", logon_account="CORP\\sp_farm", password="old-farm"),
            WindowsService(name="SAVService", logon_account="CORP\\sp_sophos", password="old"),
        ],
        tasks=[
            ScheduledTask(name=f"Backup {name}", run_as="CORP\\sp_farm", password="old-farm"),
            ScheduledTask(name=f"Cleanup {name}", run_as="CORP\\someone_else", password="x"),
        ],
        app_pools=[
            AppPool(name="SharePoint - 80", username="CORP\\sp_pool", password="old-pool"),
        ],
    )


@pytest.fixture
def farm():
    """Three valid hosts plus one invalid host, and a handful of accounts."""
    return FarmManifest(
        domain="CORP",
        hosts=[
            _host("APP01", HostRole.ADMIN),
            _host("WFE01", HostRole.WEB_FRONT_END),
            _host("WFE02", HostRole.WEB_FRONT_END),
            Host(hostname="OLD99", fqdn="OLD99.CORP.local", role=HostRole.INVALID, reachable=False),
        ],
        accounts=[
            AccountRecord(identity="CORP\\sp_farm", password="old-farm"),
            AccountRecord(identity="CORP\\sp_search", password="old-search"),
            AccountRecord(identity="CORP\\sp_pool", password="old-pool"),
            AccountRecord(identity="CORP\\sp_excel", password="old-excel"),
            AccountRecord(identity="CORP\\sp_workflow", password="old-wf"),
        ],
        sync_instances=[
            SyncServiceInstance(host="APP01", status=SyncStatus.ONLINE, account="CORP\\sp_farm"),
        ],
        service_applications=[
            ServiceApplication(name="Excel Services Application", kind="excel"),
        ],
        workflow=[
            WorkflowComponent(host="APP01", component="service-bus", run_as="CORP\\sp_workflow"),
            WorkflowComponent(host="WFE02", component="workflow-manager", run_as="CORP\\sp_workflow"),
        ],
        config=FarmConfig(convergence_polls=1),
    )


@pytest.fixture
def platform(farm):
    return SimulatedPlatform(farm)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return RotationConfig(
        show_progress=False,
        convergence_initial_delay=1,
        convergence_poll_interval=1,
        convergence_timeout=30,
        warmup_pause=20,
    )


@pytest.fixture
def make_orchestrator(platform, config, clock):
    def _make(**overrides):
        return RotationOrchestrator(
            overrides.pop("platform", platform),
            overrides.pop("config", config),
            sleep=clock.sleep,
            clock=clock,
            **overrides,
        )

    return _make
