"""Tests for the rotation pipeline: scope, retry policy, containment."""

import pytest

from svcrotate.config import RotationConfig
from svcrotate.errors import ConfigurationError
from svcrotate.rotation.locks import IdentityLocks
from svcrotate.rotation.models import ConvergenceResult, Role, RotationState


@pytest.fixture
def writes(platform, monkeypatch):
    """Record every credential store write."""
    calls = []
    original = platform.write_secret

    def spy(identity, secret):
        original(identity, secret)
        calls.append((identity, secret))

    monkeypatch.setattr(platform, "write_secret", spy)
    return calls


def test_first_account_is_written_twice(make_orchestrator, writes, clock):
    report = make_orchestrator().rotate()

    identities = [i for i, _ in writes]
    first, *rest = [o.identity for o in report.outcomes]
    assert identities.count(first) == 2
    for identity in rest:
        assert identities.count(identity) == 1
    assert report.outcomes[0].write_cycles == 2
    assert clock.sleeps.count(20) == 1


def test_first_account_reuses_one_secret(make_orchestrator, writes):
    make_orchestrator().rotate()
    first_two = writes[:2]
    assert first_two[0] == first_two[1]


def test_single_account_scope_gets_warmup_cycle(make_orchestrator, writes):
    report = make_orchestrator().rotate("sp_search")

    assert report.processed == 1
    assert [i for i, _ in writes] == ["CORP\\sp_search", "CORP\\sp_search"]
    assert report.outcomes[0].state == RotationState.DONE
    assert report.outcomes[0].history[:6] == [
        RotationState.PENDING,
        RotationState.APPLYING,
        RotationState.CONVERGING,
        RotationState.RETRY,
        RotationState.APPLYING,
        RotationState.CONVERGING,
    ]


def test_scope_matches_full_name_case_insensitively(make_orchestrator):
    report = make_orchestrator().rotate("corp\\SP_POOL")
    assert [o.identity for o in report.outcomes] == ["CORP\\sp_pool"]


def test_unknown_scope_is_not_found_and_changes_nothing(make_orchestrator, writes, farm):
    before = farm.model_dump()
    report = make_orchestrator().rotate("CORP\\nobody")

    assert report.not_found is True
    assert report.processed == 0
    assert writes == []
    assert farm.model_dump(exclude={"jobs"}) == {k: v for k, v in before.items() if k != "jobs"}


def test_store_and_targets_receive_the_same_secret(make_orchestrator, platform, farm):
    make_orchestrator().rotate("sp_farm")

    secret = platform.read_secret("CORP\\sp_farm")
    assert secret != "old-farm"
    for host in farm.hosts[:3]:
        timer = next(s for s in host.services if s.name == "SPTimerV4")
        assert timer.password == secret
        backup = next(t for t in host.tasks if t.name.startswith("Backup"))
        assert backup.password == secret
    assert farm.sync_instances[0].password == secret


def test_unreachable_host_does_not_stop_other_hosts(make_orchestrator, platform, farm):
    farm.hosts[1].reachable = False

    report = make_orchestrator().rotate("sp_pool")

    secret = platform.read_secret("CORP\\sp_pool")
    assert farm.hosts[0].app_pools[0].password == secret
    assert farm.hosts[1].app_pools[0].password == "old-pool"
    assert farm.hosts[2].app_pools[0].password == secret

    outcome = report.outcomes[0]
    assert outcome.state == RotationState.PARTIALLY_FAILED
    assert {f.host for f in outcome.failures} == {"WFE01"}
    assert all(identity == "CORP\\sp_pool" for identity, _ in report.failed_targets())


def test_partial_failure_does_not_stop_the_batch(make_orchestrator, farm):
    farm.hosts[2].reachable = False

    report = make_orchestrator().rotate()

    assert report.processed == len(farm.accounts)
    assert report.count(RotationState.PARTIALLY_FAILED) == len(farm.accounts)


def test_rejected_write_skips_only_that_account(make_orchestrator, writes, farm):
    farm.accounts[0].write_protected = True

    report = make_orchestrator().rotate()

    assert report.outcomes[0].state == RotationState.FAILED
    assert "rejected" in report.outcomes[0].error
    assert report.processed == len(farm.accounts)
    # The failed account used up position 1, so nobody else repeats the cycle.
    assert len(writes) == len(farm.accounts) - 1
    assert all(o.state == RotationState.DONE for o in report.outcomes[1:])


def test_convergence_timeout_still_propagates(make_orchestrator, platform, farm):
    farm.config.convergence_polls = 10_000

    report = make_orchestrator().rotate("sp_pool")

    outcome = report.outcomes[0]
    assert outcome.convergence == [ConvergenceResult.TIMED_OUT] * 2
    assert outcome.timed_out
    assert outcome.state == RotationState.DONE
    assert RotationState.CONVERGED not in outcome.history
    assert farm.hosts[0].app_pools[0].password == platform.read_secret("CORP\\sp_pool")


def test_propagate_only_pushes_stored_secret(make_orchestrator, writes, farm):
    farm.accounts[2].password = "fresh-pool"

    report = make_orchestrator().rotate("sp_pool", propagate_only=True)

    assert writes == []
    assert farm.jobs == []
    assert report.outcomes[0].write_cycles == 0
    assert all(h.app_pools[0].password == "fresh-pool" for h in farm.hosts[:3])


def test_role_is_recorded(make_orchestrator):
    report = make_orchestrator().rotate("sp_workflow")
    assert report.outcomes[0].role == Role.WORKFLOW


def test_rotation_in_progress_is_refused(make_orchestrator, writes):
    locks = IdentityLocks()
    orchestrator = make_orchestrator(locks=locks)

    with locks.hold("CORP\\sp_pool"):
        report = orchestrator.rotate("sp_pool")

    assert report.outcomes[0].state == RotationState.FAILED
    assert "in progress" in report.outcomes[0].error
    assert writes == []
    assert not locks.is_held("CORP\\sp_pool")


def test_bad_generator_config_fails_before_any_write(make_orchestrator, writes):
    with pytest.raises(ConfigurationError):
        make_orchestrator(config=RotationConfig(password_length=2, show_progress=False))
    assert writes == []


def test_unexpected_error_fails_only_that_account(make_orchestrator, platform, farm, monkeypatch):
    original = platform.list_jobs
    calls = {"n": 0}

    def flaky_list_jobs():
        calls["n"] += 1
        if calls["n"] == 1:
            raise ConnectionError("job listing timed out")
        return original()

    monkeypatch.setattr(platform, "list_jobs", flaky_list_jobs)

    report = make_orchestrator().rotate()

    assert report.processed == len(farm.accounts)
    first = report.outcomes[0]
    assert first.state == RotationState.FAILED
    assert first.error == "ConnectionError: job listing timed out"
    assert all(o.state == RotationState.DONE for o in report.outcomes[1:])


def test_unexpected_write_error_does_not_stop_the_batch(make_orchestrator, platform, farm, monkeypatch):
    original = platform.write_secret

    def write_secret(identity, secret):
        if identity == "CORP\\sp_search":
            raise RuntimeError("store offline")
        original(identity, secret)

    monkeypatch.setattr(platform, "write_secret", write_secret)

    report = make_orchestrator().rotate()

    states = {o.identity: o.state for o in report.outcomes}
    assert states["CORP\\sp_search"] == RotationState.FAILED
    assert farm.accounts[1].password == "old-search"
    assert states["CORP\\sp_pool"] == RotationState.DONE


def test_shared_lock_registry_excludes_second_orchestrator(make_orchestrator, writes):
    locks = IdentityLocks()
    outer = make_orchestrator(locks=locks)
    inner = make_orchestrator(locks=locks)
    inner_reports = []

    original = outer.dispatcher.run

    def run_inner_during_propagation(role, identity, secret):
        inner_reports.append(inner.rotate(identity))
        return original(role, identity, secret)

    outer.dispatcher.run = run_inner_during_propagation
    outer.rotate("sp_pool")

    assert inner_reports[0].outcomes[0].state == RotationState.FAILED
    assert [i for i, _ in writes] == ["CORP\\sp_pool", "CORP\\sp_pool"]
