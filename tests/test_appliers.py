"""Tests for the individual appliers and the dispatcher."""

import pytest

from svcrotate.appliers.base import BaseApplier
from svcrotate.appliers.dispatcher import ApplierDispatcher
from svcrotate.appliers.pool_applier import AppPoolApplier
from svcrotate.appliers.search_applier import ContentAccessApplier, SearchServiceApplier
from svcrotate.appliers.service_applier import NamedServiceApplier
from svcrotate.appliers.sync_applier import ProfileSyncApplier, start_and_wait
from svcrotate.appliers.task_applier import ScheduledTaskApplier
from svcrotate.appliers.unattended_applier import UnattendedAccountApplier
from svcrotate.appliers.workflow_applier import WorkflowApplier
from svcrotate.farm.models import PoolIdentityType, PoolState, SyncStatus
from svcrotate.farm.topology import FleetTopology
from svcrotate.rotation.models import Role


@pytest.fixture
def deps(platform, config, clock):
    return (platform, FleetTopology(platform), config), {"sleep": clock.sleep, "clock": clock}


def test_topology_excludes_invalid_hosts(platform):
    topology = FleetTopology(platform)
    assert [h.name for h in topology.hosts()] == ["APP01", "WFE01", "WFE02"]
    assert topology.admin_host().name == "APP01"


# ---------------------------------------------------------------------------
# Worker pools
# ---------------------------------------------------------------------------


def test_pool_applier_updates_and_recycles(deps, farm):
    args, timing = deps
    result = AppPoolApplier(*args, **timing).apply("CORP\\sp_pool", "new-secret")

    assert len(result.updated) == 3
    for host in farm.hosts[:3]:
        pool = host.app_pools[0]
        assert pool.password == "new-secret"
        assert pool.identity_type == PoolIdentityType.SPECIFIC_USER
        assert pool.recycle_count == 1


def test_pool_applier_skips_pool_with_current_secret(deps, farm):
    args, timing = deps
    farm.hosts[0].app_pools[0].password = "new-secret"

    result = AppPoolApplier(*args, **timing).apply("CORP\\sp_pool", "new-secret")

    assert "APP01/SharePoint - 80" in result.skipped
    assert farm.hosts[0].app_pools[0].recycle_count == 0
    assert farm.hosts[1].app_pools[0].recycle_count == 1


def test_pool_applier_is_idempotent(deps, farm):
    args, timing = deps
    applier = AppPoolApplier(*args, **timing)
    applier.apply("CORP\\sp_pool", "new-secret")
    second = applier.apply("CORP\\sp_pool", "new-secret")

    assert second.updated == []
    assert all(h.app_pools[0].recycle_count == 1 for h in farm.hosts[:3])


def test_pool_applier_ignores_other_identities(deps, farm):
    args, timing = deps
    result = AppPoolApplier(*args, **timing).apply("CORP\\sp_farm", "new-secret")
    assert result.updated == []
    assert farm.hosts[0].app_pools[0].password == "old-pool"


def test_pool_restart_failure_is_only_a_warning(deps, farm, platform, monkeypatch):
    args, timing = deps
    farm.hosts[0].app_pools[0].state = PoolState.STOPPED

    def broken_start(host, pool):
        from svcrotate.errors import TargetUnreachable
        raise TargetUnreachable(host)

    monkeypatch.setattr(platform, "start_app_pool", broken_start)
    result = AppPoolApplier(*args, **timing).apply("CORP\\sp_pool", "new-secret")

    assert result.failures == []
    assert any("start failed" in w for w in result.warnings)
    assert farm.hosts[0].app_pools[0].password == "new-secret"


# ---------------------------------------------------------------------------
# Scheduled tasks and services
# ---------------------------------------------------------------------------


def test_task_applier_updates_only_matching_tasks(deps, farm):
    args, timing = deps
    result = ScheduledTaskApplier(*args, **timing).apply("sp_farm", "new-secret")

    assert len(result.updated) == 3
    for host in farm.hosts[:3]:
        backup, cleanup = host.tasks
        assert backup.password == "new-secret"
        assert cleanup.password == "x"


def test_named_service_applier_skips_missing_services(deps, farm):
    args, timing = deps
    applier = NamedServiceApplier(
        *args, name="sophos-services", service_names=["SAVService", "Sophos Agent"], **timing
    )
    result = applier.apply("CORP\\sp_sophos", "new-secret")

    assert result.failures == []
    assert len(result.updated) == 3
    assert all(
        next(s for s in h.services if s.name == "SAVService").password == "new-secret"
        for h in farm.hosts[:3]
    )


def test_unreachable_middle_host_is_contained(deps, farm):
    args, timing = deps
    farm.hosts[1].reachable = False

    result = ScheduledTaskApplier(*args, **timing).apply("CORP\\sp_farm", "new-secret")

    assert [f.host for f in result.failures] == ["WFE01"]
    assert farm.hosts[0].tasks[0].password == "new-secret"
    assert farm.hosts[2].tasks[0].password == "new-secret"


# ---------------------------------------------------------------------------
# Directory sync
# ---------------------------------------------------------------------------


def test_sync_applier_rebinds_and_restarts(deps, farm, clock):
    args, timing = deps
    result = ProfileSyncApplier(*args, **timing).apply("CORP\\sp_farm", "new-secret")

    instance = farm.sync_instances[0]
    assert result.failures == []
    assert instance.password == "new-secret"
    assert instance.provision_count == 1
    assert instance.status == SyncStatus.ONLINE
    assert clock.sleeps[0] == 5
    assert set(clock.sleeps[1:]) == {2}


def test_sync_host_falls_back_to_admin_host(deps, farm):
    args, timing = deps
    farm.sync_instances[0].host = "WFE02"
    farm.sync_instances[0].status = SyncStatus.OFFLINE

    assert ProfileSyncApplier(*args, **timing).locate_sync_host() == "APP01"


def test_start_and_wait_times_out(platform, farm, config, clock):
    farm.sync_instances[0].status = SyncStatus.OFFLINE
    farm.sync_instances[0].start_polls = 10_000

    online = start_and_wait(platform, "APP01", config, sleep=clock.sleep, clock=clock)

    assert online is False
    assert clock.now >= config.start_wait_timeout


def test_start_and_wait_noop_when_online(platform, config, clock):
    assert start_and_wait(platform, "APP01", config, sleep=clock.sleep, clock=clock)
    assert clock.sleeps == []


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def test_search_service_applier_rebinds_run_as(deps, farm):
    args, timing = deps
    result = SearchServiceApplier(*args, **timing).apply("CORP\\sp_search", "new-secret")

    assert result.updated == ["search-service-account"]
    assert farm.search.run_as == "CORP\\sp_search"
    assert farm.search.password == "new-secret"
    assert farm.search.content_access_password == ""


def test_content_access_applier_rebinds_crawl_account(deps, farm):
    args, timing = deps
    result = ContentAccessApplier(*args, **timing).apply("CORP\\sp_content", "crawl-secret")

    assert result.updated == ["default-content-access-account"]
    assert farm.search.content_access_account == "CORP\\sp_content"
    assert farm.search.content_access_password == "crawl-secret"
    assert farm.search.password == ""


# ---------------------------------------------------------------------------
# Unattended accounts and workflow
# ---------------------------------------------------------------------------


def test_unattended_applier_creates_then_reuses_target(deps, farm):
    args, timing = deps
    applier = UnattendedAccountApplier(*args, role=Role.EXCEL, **timing)

    applier.apply("CORP\\sp_excel", "first")
    applier.apply("CORP\\sp_excel", "second")

    assert len(farm.secure_store) == 1
    target = farm.secure_store[0]
    assert target.target_id == "ExcelUnattendedAccount"
    assert target.username == "CORP\\sp_excel"
    assert target.password == "second"
    assert target.admin_principal == "CORP\\sp_excel"
    assert farm.service_applications[0].unattended_target == "ExcelUnattendedAccount"


def test_unattended_applier_missing_application_is_a_failure(deps):
    args, timing = deps
    result = UnattendedAccountApplier(*args, role=Role.VISIO, **timing).apply(
        "CORP\\sp_visio", "secret"
    )
    assert len(result.failures) == 1
    assert result.failures[0].subsystem == "secure-store"


def test_workflow_applier_updates_both_components(deps, farm):
    args, timing = deps
    result = WorkflowApplier(*args, **timing).apply("CORP\\sp_workflow", "new-secret")

    assert sorted(result.updated) == ["APP01/service-bus", "WFE02/workflow-manager"]
    assert all(c.password == "new-secret" for c in farm.workflow)


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


def test_default_role_runs_only_universal_appliers(deps):
    args, timing = deps
    dispatcher = ApplierDispatcher(*args, **timing)
    names = [a.name for a in dispatcher.appliers_for(Role.DEFAULT)]
    assert names == ["scheduled-tasks", "worker-pools", "process-identities"]
    assert dispatcher.appliers_for(Role.SEARCH)[0].name == "search-service"


def test_crashing_applier_does_not_stop_the_rest(deps, farm):
    args, timing = deps

    class Exploding(BaseApplier):
        name = "exploding"

        def apply(self, identity, secret):
            raise RuntimeError("boom")

    dispatcher = ApplierDispatcher(*args, **timing)
    dispatcher.universal_appliers.insert(0, Exploding(*args, **timing))

    results = dispatcher.run(Role.DEFAULT, "CORP\\sp_pool", "new-secret")

    assert results[0].failures[0].error == "RuntimeError: boom"
    assert farm.hosts[0].app_pools[0].password == "new-secret"


def test_content_crawl_role_routes_to_content_access(deps, farm):
    args, timing = deps
    dispatcher = ApplierDispatcher(*args, **timing)

    assert dispatcher.for_role(Role.CONTENT_CRAWL).name == "content-access"
    results = dispatcher.run(Role.CONTENT_CRAWL, "CORP\\sp_content", "crawl-secret")

    assert results[0].applier == "content-access"
    assert farm.search.content_access_password == "crawl-secret"
