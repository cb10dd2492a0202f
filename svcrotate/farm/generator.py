"""Farm Generator — creates a demo application farm.

This module builds a complete FarmManifest from a FarmConfig.
It follows this pipeline:
    1. Generate managed accounts (one per role, plus a plain pool account)
    2. Generate hosts (admin, application, web front-end, optional invalid)
    3. Place OS services, scheduled tasks and worker pools on hosts
    4. Wire farm subsystems (directory sync, search, service applications,
       workflow backend) to the accounts that run them

Initial passwords come from a seeded non-cryptographic RNG: they only need
to differ from each other so a rotation is observable.
"""

from __future__ import annotations

import random
import string
from datetime import datetime

from svcrotate.farm.models import (
    AccountRecord,
    AppPool,
    FarmConfig,
    FarmManifest,
    Host,
    HostRole,
    ScheduledTask,
    SearchService,
    ServiceApplication,
    ServiceState,
    SyncServiceInstance,
    SyncStatus,
    WindowsService,
    WorkflowComponent,
)

# Account name → purpose. Names are chosen so each one classifies to a role.
ACCOUNT_NAMES: list[str] = [
    "sp_farm",
    "sp_search",
    "sp_content",
    "sp_sophos",
    "sp_workflow",
    "sp_visio",
    "sp_excel",
    "sp_services",
    "sp_pps",
    "sp_pool",
]

SOPHOS_SERVICES: list[str] = ["SAVService", "Sophos Agent", "Sophos AutoUpdate Service"]

# Farm services run by the generic service account; the timer stays on sp_farm.
FARM_SERVICES: list[tuple[str, str]] = [
    ("SPAdminV4", "SharePoint Administration"),
    ("SPTraceV4", "SharePoint Tracing Service"),
]

SERVICE_APPLICATIONS: list[tuple[str, str]] = [
    ("Excel Services Application", "excel"),
    ("Visio Graphics Service", "visio"),
    ("PerformancePoint Service Application", "performance-point"),
]


class FarmGenerator:
    """Generates a demo farm manifest from configuration.

    Usage:
        config = FarmConfig(num_app_servers=2, num_web_servers=2, seed=42)
        manifest = FarmGenerator(config).generate()
    """

    def __init__(self, config: FarmConfig) -> None:
        self.config = config
        self.rng = random.Random(config.seed)

    def generate(self) -> FarmManifest:
        """Generate a complete manifest following the pipeline."""
        accounts = self._generate_accounts()
        hosts = self._generate_hosts()
        self._place_host_resources(hosts)

        return FarmManifest(
            domain=self.config.domain,
            hosts=hosts,
            accounts=accounts,
            jobs=[],
            sync_instances=[
                SyncServiceInstance(
                    host=hosts[0].hostname,
                    status=SyncStatus.ONLINE,
                    account=self._qualify("sp_farm"),
                    password=self._password_of(accounts, "sp_farm"),
                )
            ],
            search=SearchService(
                run_as=self._qualify("sp_search"),
                password=self._password_of(accounts, "sp_search"),
                content_access_account=self._qualify("sp_content"),
                content_access_password=self._password_of(accounts, "sp_content"),
            ),
            secure_store=[],
            service_applications=[
                ServiceApplication(name=name, kind=kind)
                for name, kind in SERVICE_APPLICATIONS
            ],
            workflow=self._generate_workflow(hosts, accounts),
            generated_at=datetime.now(),
            config=self.config,
        )

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def _qualify(self, name: str) -> str:
        return f"{self.config.domain}\\{name}"

    def _random_password(self) -> str:
        alphabet = string.ascii_letters + string.digits
        return "".join(self.rng.choice(alphabet) for _ in range(16))

    def _generate_accounts(self) -> list[AccountRecord]:
        return [
            AccountRecord(identity=self._qualify(name), password=self._random_password())
            for name in ACCOUNT_NAMES
        ]

    def _password_of(self, accounts: list[AccountRecord], name: str) -> str:
        identity = self._qualify(name)
        return next(a.password for a in accounts if a.identity == identity)

    # ------------------------------------------------------------------
    # Hosts
    # ------------------------------------------------------------------

    def _generate_hosts(self) -> list[Host]:
        fqdn_suffix = f"{self.config.domain}.local"
        hosts: list[Host] = []

        for i in range(self.config.num_app_servers):
            name = f"APP{i + 1:02d}"
            hosts.append(
                Host(
                    hostname=name,
                    fqdn=f"{name}.{fqdn_suffix}",
                    role=HostRole.ADMIN if i == 0 else HostRole.APPLICATION,
                )
            )

        for i in range(self.config.num_web_servers):
            name = f"WFE{i + 1:02d}"
            hosts.append(
                Host(hostname=name, fqdn=f"{name}.{fqdn_suffix}", role=HostRole.WEB_FRONT_END)
            )

        if self.config.include_invalid_host:
            hosts.append(
                Host(
                    hostname="OLDAPP99",
                    fqdn=f"OLDAPP99.{fqdn_suffix}",
                    role=HostRole.INVALID,
                    reachable=False,
                )
            )
        return hosts

    def _place_host_resources(self, hosts: list[Host]) -> None:
        """Put services, tasks and pools on hosts.

        Stored secrets start out as placeholders, so the first rotation or
        propagate run has something to change on every target.
        """
        for host in hosts:
            if host.role == HostRole.INVALID:
                continue

            host.services.append(
                WindowsService(
                    name="SPTimerV4",
                    display_name="SharePoint Timer Service",
                    logon_account=self._qualify("sp_farm"),
                    password="stale",
                )
            )
            for name, display in FARM_SERVICES:
                host.services.append(
                    WindowsService(
                        name=name,
                        display_name=display,
                        logon_account=self._qualify("sp_services"),
                        password="stale",
                    )
                )
            for svc in SOPHOS_SERVICES:
                if self.rng.random() < 0.75:
                    host.services.append(
                        WindowsService(
                            name=svc,
                            display_name=svc,
                            logon_account=self._qualify("sp_sophos"),
                            password="stale",
                        )
                    )

            if host.role == HostRole.WEB_FRONT_END:
                host.app_pools.append(
                    AppPool(
                        name="SharePoint - 80",
                        username=self._qualify("sp_pool"),
                        password="stale",
                    )
                )
                host.app_pools.append(
                    AppPool(
                        name="SharePoint Web Services Root",
                        username=self._qualify("sp_services"),
                        password="stale",
                    )
                )
            else:
                host.app_pools.append(
                    AppPool(
                        name="SharePoint Central Administration v4",
                        username=self._qualify("sp_farm"),
                        password="stale",
                    )
                )
                host.services.append(
                    WindowsService(
                        name="OSearch15",
                        display_name="SharePoint Server Search 15",
                        logon_account=self._qualify("sp_search"),
                        password="stale",
                        state=ServiceState.RUNNING,
                    )
                )

            host.tasks.append(
                ScheduledTask(
                    name=f"Nightly Backup {host.hostname}",
                    path="\\Farm\\",
                    run_as=self._qualify("sp_farm"),
                    password="stale",
                )
            )

    # ------------------------------------------------------------------
    # Workflow backend
    # ------------------------------------------------------------------

    def _generate_workflow(
        self, hosts: list[Host], accounts: list[AccountRecord]
    ) -> list[WorkflowComponent]:
        backend = [h for h in hosts if h.role in (HostRole.ADMIN, HostRole.APPLICATION)]
        bus_host = backend[0].hostname
        engine_host = backend[-1].hostname
        password = self._password_of(accounts, "sp_workflow")
        return [
            WorkflowComponent(
                host=bus_host,
                component="service-bus",
                run_as=self._qualify("sp_workflow"),
                password=password,
            ),
            WorkflowComponent(
                host=engine_host,
                component="workflow-manager",
                run_as=self._qualify("sp_workflow"),
                password=password,
            ),
        ]
