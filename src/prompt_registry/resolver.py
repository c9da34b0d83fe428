"""Scope resolver - Resolve scope-qualified bundle lookups.

Repository-scope bundles are tracked in lockfiles; user and workspace scopes
live in the app's generic bundle storage. This module routes lookups and owns
the single conversion from a lockfile entry to an InstalledBundle.

Per KERNEL_PHILOSOPHY: Storage and workspace discovery are app policy,
injected as protocols.
"""

import logging
from collections.abc import Awaitable
from collections.abc import Callable
from typing import TYPE_CHECKING
from typing import NamedTuple

from .protocols import BundleStorageProtocol
from .protocols import WorkspaceRootProvider
from .schema import CommitMode
from .schema import DeploymentManifest
from .schema import InstallationScope
from .schema import InstalledBundle
from .schema import LockfileBundleEntry
from .schema import LockfileFileEntry

if TYPE_CHECKING:
    from .lock import LockfileManagerRegistry

logger = logging.getLogger(__name__)


class LookupStrategy(NamedTuple):
    """One step of a lookup chain.

    Strategies run in order; the next one runs only when ``lookup`` returns None.
    """

    name: str
    trigger: str
    lookup: Callable[[str], Awaitable[InstalledBundle | None]]


def create_minimal_manifest(bundle_id: str, files: list[LockfileFileEntry]) -> DeploymentManifest:
    """Build the manifest for a bundle known only from its lockfile entry."""
    return DeploymentManifest(
        description=f"Repository bundle: {bundle_id}",
        files=[f.path for f in files],
    )


def create_installed_bundle_from_lockfile(
    bundle_id: str,
    entry: LockfileBundleEntry,
    *,
    install_path: str = "",
    manifest: DeploymentManifest | None = None,
    files_missing: bool = False,
    commit_mode_override: CommitMode | None = None,
) -> InstalledBundle:
    """
    Convert a lockfile entry into the runtime InstalledBundle view.

    This is the only place that mapping happens; LockfileManager and callers
    holding a raw entry both go through it.

    Args:
        bundle_id: Bundle id (the entry's key in the lockfile)
        entry: Persisted lockfile entry
        install_path: Installation path (usually the workspace root)
        manifest: Richer manifest, if the caller has one
        files_missing: Whether any tracked file is missing on disk
        commit_mode_override: Commit mode implied by the file the entry came from;
            takes precedence over ``entry.commit_mode``

    Returns:
        InstalledBundle in repository scope
    """
    return InstalledBundle(
        bundle_id=bundle_id,
        version=entry.version,
        installed_at=entry.installed_at,
        scope="repository",
        install_path=install_path,
        manifest=manifest if manifest is not None else create_minimal_manifest(bundle_id, entry.files),
        source_id=entry.source_id,
        source_type=entry.source_type,
        commit_mode=commit_mode_override or entry.commit_mode,
        files_missing=files_missing,
    )


class ScopeResolver:
    """
    Look up installed bundles by scope (with injected collaborators).

    Repository scope, in order:
    1. lockfile: a workspace root is open and one of its lockfiles tracks the
       bundle (a failing lockfile read is logged and skipped)
    2. storage: anything the lockfile step did not answer

    User and workspace scopes go straight to storage.
    """

    def __init__(
        self,
        storage: BundleStorageProtocol,
        workspace_roots: WorkspaceRootProvider,
        managers: "LockfileManagerRegistry",
    ):
        """Initialize resolver with app-provided collaborators.

        Args:
            storage: Generic bundle storage
            workspace_roots: Provider of the active workspace root
            managers: Registry of per-root lockfile managers

        Example:
            >>> resolver = ScopeResolver(storage, workspace_roots, LockfileManagerRegistry())
            >>> bundle = await resolver.get_installed_bundle("alpha", "repository")
        """
        self.storage = storage
        self.workspace_roots = workspace_roots
        self.managers = managers

    def strategies_for(self, scope: InstallationScope) -> list[LookupStrategy]:
        """Ordered lookup chain for a scope."""

        async def from_storage(bundle_id: str) -> InstalledBundle | None:
            return await self.storage.get_installed_bundle(bundle_id, scope)

        storage = LookupStrategy("storage", f"bundle recorded in {scope} storage", from_storage)
        if scope != "repository":
            return [storage]

        lockfile = LookupStrategy("lockfile", "workspace root open and bundle tracked in a lockfile", self._from_lockfile)
        return [lockfile, storage]

    async def get_installed_bundle(self, bundle_id: str, scope: InstallationScope) -> InstalledBundle | None:
        """
        Resolve an installed bundle for a scope.

        Args:
            bundle_id: Bundle to look up
            scope: Installation scope

        Returns:
            InstalledBundle from the first strategy that knows it, None otherwise
        """
        for strategy in self.strategies_for(scope):
            bundle = await strategy.lookup(bundle_id)
            if bundle is not None:
                logger.debug(f"Resolved '{bundle_id}' ({scope}) via {strategy.name}")
                return bundle
            logger.debug(f"'{bundle_id}' ({scope}) not found via {strategy.name}")

        return None

    async def _from_lockfile(self, bundle_id: str) -> InstalledBundle | None:
        workspace_root = self.workspace_roots.get_workspace_root()
        if workspace_root is None:
            logger.debug("No workspace root, skipping lockfile lookup")
            return None

        try:
            return await self.managers.get(workspace_root).get_installed_bundle(bundle_id)
        except Exception as e:
            logger.warning(f"Failed to read lockfile for bundle {bundle_id}: {e}")
            return None
