"""Exception hierarchy for the rotation engine."""

from __future__ import annotations


class RotationError(Exception):
    """Base class for every error raised by svcrotate."""


class ConfigurationError(RotationError):
    """Bad generator or run parameters. Raised before any mutation."""


class IdentityNotFound(RotationError):
    """The requested identity is not known to the credential store."""

    def __init__(self, identity: str) -> None:
        super().__init__(f"Identity not found: {identity}")
        self.identity = identity


class StoreWriteFailure(RotationError):
    """The authoritative store rejected a secret write."""

    def __init__(self, identity: str, reason: str = "") -> None:
        message = f"Credential store rejected write for {identity}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.identity = identity


class ConvergenceTimeout(RotationError):
    """Background convergence did not finish within the timeout."""

    def __init__(self, identity: str, timeout: float) -> None:
        super().__init__(f"Convergence timed out after {timeout}s for {identity}")
        self.identity = identity
        self.timeout = timeout


class RotationInProgress(RotationError):
    """Another rotation currently holds the lock for this identity."""

    def __init__(self, identity: str) -> None:
        super().__init__(f"Rotation already in progress for {identity}")
        self.identity = identity


class TargetError(RotationError):
    """A single propagation target could not be updated."""

    def __init__(self, message: str, *, host: str = "", resource: str = "") -> None:
        super().__init__(message)
        self.host = host
        self.resource = resource


class TargetUnreachable(TargetError):
    """The host could not be contacted."""

    def __init__(self, host: str) -> None:
        super().__init__(f"Host unreachable: {host}", host=host)


class TargetNotFound(TargetError):
    """The host or resource does not exist."""

    def __init__(self, kind: str, name: str, *, host: str = "") -> None:
        where = f" on {host}" if host else ""
        super().__init__(f"{kind} not found{where}: {name}", host=host, resource=name)
        self.kind = kind
