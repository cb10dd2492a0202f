"""Workflow applier — service bus and workflow engine run-as accounts."""

from __future__ import annotations

import logging

from svcrotate.appliers.base import BaseApplier
from svcrotate.rotation.models import ApplierResult

logger = logging.getLogger(__name__)


class WorkflowApplier(BaseApplier):
    """Updates run-as on the message-bus host and the workflow engine host."""

    name = "workflow"
    subsystem = "workflow"

    def apply(self, identity: str, secret: str) -> ApplierResult:
        result = self.new_result()
        only = {h.lower() for h in self.config.workflow_hosts}
        components = self.platform.list_workflow_components()
        if only:
            components = [c for c in components if c.host.lower() in only]
        if not components:
            logger.warning("No workflow components found for %s", identity)
            result.skipped.append("no workflow components")

        for component in components:
            self.attempt(
                result, component.host, component.component,
                self.platform.set_workflow_run_as,
                component.host, component.component, identity, secret,
            )
        return result
