"""Cryptographically secure random draws."""

from __future__ import annotations

import secrets
from typing import Callable

U32_RANGE = 2**32


class SecureRandom:
    """Uniform unsigned 32-bit draws from the OS CSPRNG.

    The bit source is injectable for tests; production code always uses
    secrets.randbits.
    """

    def __init__(self, randbits: Callable[[int], int] = secrets.randbits) -> None:
        self._randbits = randbits

    def next_u32(self) -> int:
        """Return an integer uniformly distributed over [0, 2**32)."""
        return self._randbits(32)

    def below(self, n: int) -> int:
        """Return an integer uniformly distributed over [0, n).

        Uses rejection sampling so there is no modulo bias.
        """
        if n <= 0:
            raise ValueError("n must be positive")
        limit = U32_RANGE - (U32_RANGE % n)
        while True:
            value = self.next_u32()
            if value < limit:
                return value % n

    def choice(self, alphabet: str) -> str:
        """Return one character of alphabet, uniformly."""
        return alphabet[self.below(len(alphabet))]
