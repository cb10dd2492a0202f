"""Helpers for comparing domain-qualified account names."""

from __future__ import annotations


def local_name(identity: str) -> str:
    """Return the account part of 'DOMAIN\\user' or 'user@domain', lower-cased."""
    name = identity.strip().lower()
    if "\\" in name:
        name = name.rsplit("\\", 1)[1]
    elif "@" in name:
        name = name.split("@", 1)[0]
    return name


def same_identity(left: str, right: str) -> bool:
    """Compare two account names case-insensitively.

    Two fully qualified names must match exactly. When either side is a bare
    account name, only the account parts are compared.
    """
    left, right = left.strip().lower(), right.strip().lower()
    if not left or not right:
        return False
    if left == right:
        return True
    if "\\" in left and "\\" in right:
        return False
    return local_name(left) == local_name(right)
