"""Unit tests for the polling primitive and the convergence watcher."""

import pytest

from svcrotate.errors import ConvergenceTimeout
from svcrotate.farm.models import BackgroundJob
from svcrotate.rotation.polling import poll_until
from svcrotate.rotation.watcher import ConvergenceWatcher, mentions_identity


def test_poll_until_returns_when_predicate_holds(clock):
    answers = iter([False, False, True])
    ok = poll_until(
        lambda: next(answers),
        initial_delay=5, interval=2, timeout=60,
        sleep=clock.sleep, clock=clock,
    )
    assert ok is True
    assert clock.sleeps == [5, 2, 2]


def test_poll_until_times_out(clock):
    ok = poll_until(
        lambda: False,
        initial_delay=0, interval=2, timeout=10,
        sleep=clock.sleep, clock=clock,
    )
    assert ok is False
    assert clock.now >= 10


def test_watcher_converges_once_jobs_finish(platform, farm, clock):
    farm.config.convergence_polls = 3
    platform.write_secret("CORP\\sp_farm", "new")

    watcher = ConvergenceWatcher(platform, sleep=clock.sleep, clock=clock)
    watcher.await_convergence("CORP\\sp_farm", 10, 5, 600)

    assert clock.sleeps[0] == 10
    assert farm.jobs == []


def test_watcher_times_out(platform, farm, clock):
    farm.config.convergence_polls = 10_000
    platform.write_secret("CORP\\sp_farm", "new")

    watcher = ConvergenceWatcher(platform, sleep=clock.sleep, clock=clock)
    with pytest.raises(ConvergenceTimeout) as excinfo:
        watcher.await_convergence("CORP\\sp_farm", 0, 5, 60)

    assert excinfo.value.identity == "CORP\\sp_farm"
    assert excinfo.value.timeout == 60


def test_watcher_ignores_unrelated_jobs(platform, farm, clock):
    farm.jobs.append(BackgroundJob(job_id="1", description="Password change for CORP\\sp_search", remaining_polls=50))
    farm.jobs.append(BackgroundJob(job_id="2", description="Health analysis for CORP\\sp_farm", remaining_polls=50))

    watcher = ConvergenceWatcher(platform, sleep=clock.sleep, clock=clock)
    assert watcher.pending_jobs("CORP\\sp_farm") == []
    assert len(watcher.pending_jobs("corp\\SP_SEARCH")) == 1


def test_watcher_does_not_match_longer_account_names(platform, farm):
    farm.jobs.append(BackgroundJob(job_id="1", description="Password change for managed account CORP\\sp_farm2", remaining_polls=50))

    watcher = ConvergenceWatcher(platform)
    assert watcher.pending_jobs("CORP\\sp_farm") == []
    assert watcher.pending_jobs("sp") == []
    assert len(watcher.pending_jobs("sp_farm2")) == 1


@pytest.mark.parametrize(
    "description, identity, expected",
    [
        ("Password change for managed account CORP\\sp_farm", "CORP\\sp_farm", True),
        ("Password change for managed account CORP\\sp_farm.", "sp_farm", True),
        ("Password change for (sp_farm@corp.local)", "CORP\\sp_farm", True),
        ("Password change for managed account CORP\\sp_farm2", "sp_farm", False),
        ("Password change for managed account OTHER\\sp_farm", "CORP\\sp_farm", False),
        ("Password change for managed account CORP\\sp_farm", "sp", False),
    ],
)
def test_mentions_identity(description, identity, expected):
    assert mentions_identity(description, identity) is expected
