"""Farm — platform boundary, simulated farm, and fleet topology."""

from svcrotate.farm.generator import FarmGenerator
from svcrotate.farm.models import FarmConfig, FarmManifest
from svcrotate.farm.platform import FarmPlatform
from svcrotate.farm.simulated import SimulatedPlatform
from svcrotate.farm.topology import FleetTopology

__all__ = [
    "FarmConfig",
    "FarmGenerator",
    "FarmManifest",
    "FarmPlatform",
    "FleetTopology",
    "SimulatedPlatform",
]
