"""Directory-sync applier — rebinds the profile synchronization service."""

from __future__ import annotations

import logging
import time
from typing import Callable

from svcrotate.appliers.base import BaseApplier
from svcrotate.config import RotationConfig
from svcrotate.errors import TargetError
from svcrotate.farm.models import SyncStatus
from svcrotate.farm.platform import FarmPlatform
from svcrotate.passwords.generator import mask_secret
from svcrotate.rotation.models import ApplierResult
from svcrotate.rotation.polling import poll_until

logger = logging.getLogger(__name__)


def start_and_wait(
    platform: FarmPlatform,
    host: str,
    config: RotationConfig,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Start the sync service on host and wait until it reports Online.

    Does nothing if it is already Online. Returns False on timeout.
    """
    if platform.get_sync_status(host) == SyncStatus.ONLINE:
        return True

    logger.info("Starting sync service on %s", host)
    platform.start_sync_service(host)
    online = poll_until(
        lambda: platform.get_sync_status(host) == SyncStatus.ONLINE,
        initial_delay=config.start_wait_initial_delay,
        interval=config.start_wait_interval,
        timeout=config.start_wait_timeout,
        sleep=sleep,
        clock=clock,
    )
    if not online:
        logger.warning(
            "Sync service on %s not Online after %ss", host, config.start_wait_timeout
        )
    return online


class ProfileSyncApplier(BaseApplier):
    """Reconfigures the directory-sync service account and restarts sync."""

    name = "profile-sync"
    subsystem = "directory-sync"

    def locate_sync_host(self) -> str | None:
        """Host running the sync service, preferring an Online instance.

        Falls back to the administrative host.
        """
        valid = {h.name.lower() for h in self.topology.hosts()}
        instances = [
            i for i in self.platform.list_sync_instances() if i.host.lower() in valid
        ]
        online = next((i for i in instances if i.status == SyncStatus.ONLINE), None)
        if online:
            return online.host
        admin = self.topology.admin_host()
        return admin.name if admin else None

    def apply(self, identity: str, secret: str) -> ApplierResult:
        result = self.new_result()
        host = self.locate_sync_host()
        if host is None:
            result.skipped.append("no sync host")
            logger.warning("No directory-sync host found; skipping %s", identity)
            return result

        logger.info(
            "Rebinding sync service on %s to %s (%s)", host, identity, mask_secret(secret)
        )
        try:
            self.platform.configure_sync_service(host, identity, secret)
            self.platform.provision_sync_service(host)
        except TargetError as e:
            self.record_failure(result, e, host=host, resource="sync-service")
            return result
        result.updated.append(f"{host}/sync-service")

        try:
            online = start_and_wait(
                self.platform, host, self.config, sleep=self.sleep, clock=self.clock
            )
        except TargetError as e:
            self.record_failure(result, e, host=host, resource="sync-service")
            return result
        if not online:
            result.warnings.append(f"{host}: sync service not Online after start")
        return result
