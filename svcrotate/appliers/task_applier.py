"""Scheduled-task applier — run-as passwords of matching tasks."""

from __future__ import annotations

from svcrotate.appliers.base import BaseApplier
from svcrotate.farm.models import FleetHost
from svcrotate.identity import same_identity
from svcrotate.rotation.models import ApplierResult


class ScheduledTaskApplier(BaseApplier):
    """Updates every scheduled task that runs as the rotated identity."""

    name = "scheduled-tasks"
    subsystem = "scheduled-task"

    def apply(self, identity: str, secret: str) -> ApplierResult:
        result = self.new_result()

        def update_host(host: FleetHost) -> None:
            for task in self.platform.list_tasks(host.name):
                if not same_identity(task.run_as, identity):
                    continue
                self.attempt(
                    result, host.name, task.name,
                    self.platform.set_task_credential, host.name, task.name, task.run_as, secret,
                )

        self.for_each_host(result, update_host)
        return result
