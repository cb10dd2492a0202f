"""Appliers — push a rotated secret to role-specific and universal targets."""

from svcrotate.appliers.base import BaseApplier
from svcrotate.appliers.dispatcher import ApplierDispatcher

__all__ = ["ApplierDispatcher", "BaseApplier"]
