"""Errors raised by the bundle registry.

Only failures that would lose a caller's change are raised. Unreadable
lockfiles and git exclude problems are logged instead.
"""


class RegistryError(Exception):
    """Base exception for bundle registry operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Create a registry error.

        Args:
            message: What failed, naming the bundle or lockfile involved
            context: Bundle ids, lockfile paths or tracked file paths for callers
                that report the failure
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class LockfileError(RegistryError):
    """A lockfile could not be written."""


class BundleNotFoundError(LockfileError):
    """The bundle is not tracked in the lockfile the operation expected."""


class BundleInstallError(RegistryError):
    """Installed files could not be recorded in a lockfile."""
