"""Role Classifier — maps an account name to a role.

Rules are evaluated in table order and the first match wins, so an account
named 'sp_searchcontent' is a search account, not a crawl account.
"""

from __future__ import annotations

from dataclasses import dataclass

from svcrotate.identity import local_name
from svcrotate.rotation.models import Role


@dataclass(frozen=True)
class RoleRule:
    """A role and the substrings that select it."""

    role: Role
    patterns: tuple[str, ...]

    def matches(self, name: str) -> bool:
        return any(p in name for p in self.patterns)


DEFAULT_RULES: tuple[RoleRule, ...] = (
    RoleRule(Role.FARM_PROFILE_SYNC, ("farm", "profilesync", "_ups")),
    RoleRule(Role.SEARCH, ("search",)),
    RoleRule(Role.CONTENT_CRAWL, ("content", "crawl")),
    RoleRule(Role.SOPHOS, ("sophos",)),
    RoleRule(Role.WORKFLOW, ("workflow",)),
    RoleRule(Role.VISIO, ("visio",)),
    RoleRule(Role.EXCEL, ("excel",)),
    RoleRule(Role.WINDOWS_SERVICE, ("winsvc", "service")),
    RoleRule(Role.PERFORMANCE_POINT, ("performancepoint", "perfpoint", "_pps")),
)


class RoleClassifier:
    """Pure, ordered substring classification."""

    def __init__(self, rules: tuple[RoleRule, ...] = DEFAULT_RULES) -> None:
        self.rules = tuple(rules)

    def classify(self, identity: str) -> Role:
        name = local_name(identity)
        for rule in self.rules:
            if rule.matches(name):
                return rule.role
        return Role.DEFAULT
