"""Per-identity mutual exclusion for rotations in this process."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from svcrotate.errors import RotationInProgress


class IdentityLocks:
    """Non-blocking lock registry keyed by lower-cased identity.

    Guards callers in this process only: orchestrators that share one
    registry exclude each other, while separate svcrotate processes on the
    same farm are not excluded.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._held: set[str] = set()

    @contextmanager
    def hold(self, identity: str) -> Iterator[None]:
        key = identity.lower()
        with self._guard:
            if key in self._held:
                raise RotationInProgress(identity)
            self._held.add(key)
        try:
            yield
        finally:
            with self._guard:
                self._held.discard(key)

    def is_held(self, identity: str) -> bool:
        with self._guard:
            return identity.lower() in self._held
