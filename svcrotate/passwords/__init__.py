"""Passwords — secure random source and group-coverage generator."""

from svcrotate.passwords.generator import DEFAULT_GROUPS, PasswordGenerator, mask_secret
from svcrotate.passwords.random_source import SecureRandom

__all__ = ["DEFAULT_GROUPS", "PasswordGenerator", "SecureRandom", "mask_secret"]
