"""Search appliers — search service run-as and default content access."""

from __future__ import annotations

from svcrotate.appliers.base import BaseApplier
from svcrotate.rotation.models import ApplierResult


class SearchServiceApplier(BaseApplier):
    """Rebinds the enterprise search service's run-as credential."""

    name = "search-service"
    subsystem = "search"

    def apply(self, identity: str, secret: str) -> ApplierResult:
        result = self.new_result()
        self.attempt(
            result, "", "search-service-account",
            self.platform.set_search_service_account, identity, secret,
        )
        return result


class ContentAccessApplier(BaseApplier):
    """Rebinds the crawl subsystem's default content-access credential."""

    name = "content-access"
    subsystem = "search"

    def apply(self, identity: str, secret: str) -> ApplierResult:
        result = self.new_result()
        self.attempt(
            result, "", "default-content-access-account",
            self.platform.set_content_access_account, identity, secret,
        )
        return result
