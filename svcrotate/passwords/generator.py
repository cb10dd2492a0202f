"""Password Generator — secrets with guaranteed character-group coverage.

Each character is paired with a random 32-bit sort key and the output is the
characters ordered by key. One character is drawn from every group first, so
every group is represented, and the sort then scatters those characters to
random positions. An optional first-character group is pinned to key 0.
"""

from __future__ import annotations

from svcrotate.errors import ConfigurationError
from svcrotate.passwords.random_source import SecureRandom

LOWERCASE = "abcdefghijkmnpqrstuvwxyz"  # no l, o
UPPERCASE = "ABCDEFGHJKLMNPQRSTUVWXYZ"  # no I, O
DIGITS = "0123456789"
SYMBOLS = "!#$%&*+-=?@^_"

DEFAULT_GROUPS: tuple[str, ...] = (LOWERCASE, UPPERCASE, DIGITS, SYMBOLS)
DEFAULT_LENGTH = 24


class PasswordGenerator:
    """Generates secrets that contain at least one character of every group.

    Usage:
        generator = PasswordGenerator(length=24)
        secret = generator.generate()
    """

    def __init__(
        self,
        length: int = DEFAULT_LENGTH,
        groups: tuple[str, ...] | list[str] = DEFAULT_GROUPS,
        first_group: str | None = None,
        rng: SecureRandom | None = None,
    ) -> None:
        self.length = length
        self.groups = tuple(groups)
        self.first_group = first_group or None
        self.rng = rng or SecureRandom()
        self._validate()
        self._union = "".join(self.groups)

    def _validate(self) -> None:
        if not self.groups:
            raise ConfigurationError("At least one character group is required")
        if any(not g for g in self.groups):
            raise ConfigurationError("Character groups must not be empty")
        mandatory = len(self.groups) + (1 if self.first_group else 0)
        if self.length < mandatory:
            raise ConfigurationError(
                f"Password length {self.length} is smaller than the "
                f"{mandatory} mandatory character group(s)"
            )

    def _unique_key(self, used: set[int]) -> int:
        key = self.rng.next_u32()
        # Key 0 is reserved for the pinned first character.
        while key in used or (self.first_group and key == 0):
            key = self.rng.next_u32()
        used.add(key)
        return key

    def generate(self) -> str:
        """Generate one secret."""
        keyed: list[tuple[int, str]] = []
        used: set[int] = set()

        if self.first_group:
            keyed.append((0, self.rng.choice(self.first_group)))
            used.add(0)

        for group in self.groups:
            if len(keyed) >= self.length:
                break
            keyed.append((self._unique_key(used), self.rng.choice(group)))

        while len(keyed) < self.length:
            keyed.append((self._unique_key(used), self.rng.choice(self._union)))

        keyed.sort(key=lambda pair: pair[0])
        return "".join(char for _, char in keyed)


def mask_secret(secret: str) -> str:
    """Loggable stand-in for a secret."""
    if not secret:
        return "<empty>"
    return f"<{len(secret)} chars>"
