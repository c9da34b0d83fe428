"""Protocols for registry collaborators.

Per KERNEL_PHILOSOPHY: Protocol-based extensibility over configuration.
Per IMPLEMENTATION_PHILOSOPHY: Composition over inheritance.
"""

from pathlib import Path
from typing import Protocol
from typing import runtime_checkable

from .schema import InstallationScope
from .schema import InstalledBundle


@runtime_checkable
class BundleStorageProtocol(Protocol):
    """Protocol for the app's generic bundle storage.

    Primary lookup for user and workspace scopes, fallback for repository scope.
    """

    async def get_installed_bundle(self, bundle_id: str, scope: InstallationScope) -> InstalledBundle | None:
        """Get an installed bundle recorded for a scope.

        Args:
            bundle_id: Bundle to look up
            scope: Installation scope

        Returns:
            InstalledBundle if recorded, None otherwise
        """
        ...


@runtime_checkable
class WorkspaceRootProvider(Protocol):
    """Protocol for resolving the active workspace root."""

    def get_workspace_root(self) -> Path | None:
        """Return the active workspace root, or None when no workspace is open."""
        ...
