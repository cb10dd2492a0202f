"""Fleet topology — the ordered list of hosts to target."""

from __future__ import annotations

from svcrotate.farm.models import FleetHost, HostRole
from svcrotate.farm.platform import FarmPlatform


class FleetTopology:
    """Read-only view of the fleet.

    Every call queries the platform again, so hosts added or removed in the
    middle of a run are picked up by the next applier.

    Usage:
        topology = FleetTopology(platform)
        for host in topology.hosts():
            ...
    """

    def __init__(self, platform: FarmPlatform) -> None:
        self.platform = platform

    def hosts(self) -> list[FleetHost]:
        """Valid hosts, in platform order."""
        return [h for h in self.platform.list_hosts() if h.role != HostRole.INVALID]

    def admin_host(self) -> FleetHost | None:
        """The first host flagged as the administrative host."""
        return next((h for h in self.hosts() if h.role == HostRole.ADMIN), None)
