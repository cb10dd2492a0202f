"""svcrotate — Service account credential rotation for application farms.

Generate a new secret for each managed account, write it to the authoritative
store, wait for the platform to converge, then push it to every host-local
consumer (services, scheduled tasks, worker pools, subsystem bindings).
"""

__version__ = "0.1.0"
