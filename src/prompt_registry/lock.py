"""Lockfile management - Dual lockfiles per workspace root.

Tracks repository-scope bundle installations in two documents:
- main lockfile (prompt-registry.lock.json): committed with the repository
- local lockfile (prompt-registry.local.lock.json): listed in .git/info/exclude

An entry's commit mode is implied by the file it lives in. The installed-bundle
view is derived at read time by checking every tracked file on disk.

Per KERNEL_PHILOSOPHY:
- "Could two teams want different behavior?" → YES (file names are policy)
- This is library mechanism - apps inject the workspace root and config

Per IMPLEMENTATION_PHILOSOPHY:
- Ruthless simplicity: Whole-document reads and writes, no caching
- Reads never fail the caller: unreadable lockfiles are treated as absent
"""

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from .config import LockfileConfig
from .exceptions import BundleNotFoundError
from .exceptions import LockfileError
from .git_exclude import GitExclude
from .resolver import create_installed_bundle_from_lockfile
from .schema import CommitMode
from .schema import InstalledBundle
from .schema import Lockfile
from .schema import LockfileBundleEntry
from .schema import LockfileHubEntry
from .schema import LockfileProfileEntry
from .schema import LockfileSourceEntry
from .schema import ModifiedFileInfo
from .schema import ValidationResult
from .source_id import is_legacy_hub_source_id
from .store import LockfileStore
from .utils import calculate_file_checksum
from .utils import resolve_tracked_path
from .utils import tracked_file_exists
from .utils import utc_now_iso

logger = logging.getLogger(__name__)

LockfileListener = Callable[[Path, Lockfile | None], None]


class LockfileManager:
    """
    Repository-scope bundle registry for one workspace root.

    Mutations (install, remove, update_commit_mode, cleanup_stale) are
    serialized per manager; reads only see committed documents and take no lock.

    Obtain instances through LockfileManagerRegistry so that each workspace
    root has exactly one manager (and therefore one mutation lock).
    """

    def __init__(self, workspace_root: Path, config: LockfileConfig | None = None):
        """Initialize manager for an app-provided workspace root.

        Args:
            workspace_root: Repository root holding both lockfiles
            config: Lockfile names and provenance (defaults to LockfileConfig())
        """
        self.workspace_root = workspace_root
        self.config = config or LockfileConfig()
        self.main = LockfileStore(workspace_root / self.config.main_lockfile_name)
        self.local = LockfileStore(workspace_root / self.config.local_lockfile_name)
        self.git_exclude = GitExclude(workspace_root, header=self.config.git_exclude_header)
        self._mutation_lock = asyncio.Lock()
        self._listeners: list[LockfileListener] = []

    @property
    def lockfile_path(self) -> Path:
        return self.main.path

    @property
    def local_lockfile_path(self) -> Path:
        return self.local.path

    def store_for(self, commit_mode: CommitMode) -> LockfileStore:
        """Store that holds entries of the given commit mode."""
        return self.main if commit_mode == "commit" else self.local

    def _commit_mode_of(self, store: LockfileStore) -> CommitMode:
        return "commit" if store is self.main else "local-only"

    def _other(self, store: LockfileStore) -> LockfileStore:
        return self.local if store is self.main else self.main

    def subscribe(self, listener: LockfileListener) -> None:
        """Register a callback fired after every lockfile change.

        The callback receives the lockfile path and the document now on disk,
        or None when the file was deleted (also when the delete failed).

        Example:
            >>> manager.subscribe(lambda path, lockfile: refresh_bundle_view())
        """
        self._listeners.append(listener)

    def unsubscribe(self, listener: LockfileListener) -> None:
        """Remove a callback registered with subscribe(). Unknown callbacks are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, path: Path, lockfile: Lockfile | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(path, lockfile)
            except Exception as e:
                logger.error(f"Lockfile listener failed for {path.name}: {e}")

    async def read(self) -> Lockfile | None:
        """Read the main lockfile."""
        return await self.main.read()

    async def read_local(self) -> Lockfile | None:
        """Read the local lockfile."""
        return await self.local.read()

    async def validate(self) -> ValidationResult:
        """Validate the main lockfile on disk."""
        return await self.main.validate()

    async def get_installed_bundles(self) -> list[InstalledBundle]:
        """
        List repository-scope bundles from both lockfiles.

        Main lockfile entries come first. An id present in both files is taken
        from the main lockfile and the conflict is logged. Each bundle's
        commit mode reflects the file it came from, and ``files_missing`` is
        computed from the filesystem now.

        Returns:
            List of installed bundles (empty when neither lockfile exists)
        """
        bundles: dict[str, InstalledBundle] = {}

        for store in (self.main, self.local):
            lockfile = await store.read()
            if lockfile is None:
                continue

            commit_mode = self._commit_mode_of(store)
            for bundle_id, entry in lockfile.bundles.items():
                if bundle_id in bundles:
                    logger.warning(
                        f"Bundle '{bundle_id}' exists in both lockfiles; "
                        f"using the entry from {self.main.path.name} and ignoring {store.path.name}"
                    )
                    continue

                if is_legacy_hub_source_id(entry.source_id):
                    logger.debug(f"Bundle '{bundle_id}' uses legacy source id '{entry.source_id}'")

                bundles[bundle_id] = create_installed_bundle_from_lockfile(
                    bundle_id,
                    entry,
                    install_path=str(self.workspace_root),
                    files_missing=self._files_missing(entry),
                    commit_mode_override=commit_mode,
                )

        return list(bundles.values())

    async def get_installed_bundle(self, bundle_id: str) -> InstalledBundle | None:
        """Get one repository-scope bundle, or None if neither lockfile tracks it."""
        for bundle in await self.get_installed_bundles():
            if bundle.bundle_id == bundle_id:
                return bundle
        return None

    async def install(
        self,
        bundle_id: str,
        entry: LockfileBundleEntry,
        commit_mode: CommitMode,
        source: LockfileSourceEntry | None = None,
        hubs: dict[str, LockfileHubEntry] | None = None,
        profiles: dict[str, LockfileProfileEntry] | None = None,
    ) -> None:
        """
        Add or update a bundle entry.

        The entry goes to the main lockfile for "commit" and to the local
        lockfile for "local-only"; the document is created on first use. A
        copy of the same bundle in the other lockfile is removed.

        Args:
            bundle_id: Bundle id
            entry: Lockfile entry (its commit mode is stamped from ``commit_mode``)
            commit_mode: "commit" or "local-only"
            source: Source descriptor, recorded under ``entry.source_id``
            hubs: Hub records to merge, keyed by hub key
            profiles: Profile records to merge, keyed by profile id

        Raises:
            LockfileError: If the lockfile could not be written
        """
        if is_legacy_hub_source_id(entry.source_id):
            logger.warning(
                f"Bundle '{bundle_id}' recorded with legacy source id '{entry.source_id}'; "
                f"new installs should use generate_hub_source_id()"
            )

        async with self._mutation_lock:
            target = self.store_for(commit_mode)
            lockfile = await target.read() or self._new_lockfile()

            lockfile.bundles[bundle_id] = entry.model_copy(update={"commit_mode": commit_mode})
            if source is not None:
                lockfile.sources[entry.source_id] = source
            if hubs:
                lockfile.hubs = {**(lockfile.hubs or {}), **hubs}
            if profiles:
                lockfile.profiles = {**(lockfile.profiles or {}), **profiles}

            await self._save(target, lockfile)
            if target is self.local:
                await self.git_exclude.add([self.config.local_lockfile_name])

            if await self._remove_from(self._other(target), bundle_id):
                logger.debug(f"Moved '{bundle_id}' out of {self._other(target).path.name}")

        logger.info(f"Recorded {bundle_id}@{entry.version} in {target.path.name}")

    async def remove(self, bundle_id: str) -> bool:
        """
        Remove a bundle entry from whichever lockfile holds it.

        The lockfile is deleted when its last entry goes. Unknown ids are a no-op.

        Args:
            bundle_id: Bundle id

        Returns:
            True if an entry was removed
        """
        async with self._mutation_lock:
            return await self._remove_unlocked(bundle_id)

    async def update_commit_mode(self, bundle_id: str, new_mode: CommitMode) -> None:
        """
        Move a bundle entry between the main and local lockfiles.

        Args:
            bundle_id: Bundle id
            new_mode: Commit mode to switch to

        Raises:
            BundleNotFoundError: If the bundle is not in the lockfile for the other mode
            LockfileError: If a lockfile could not be written
        """
        async with self._mutation_lock:
            target = self.store_for(new_mode)
            origin = self._other(target)

            origin_lockfile = await origin.read()
            if origin_lockfile is None or bundle_id not in origin_lockfile.bundles:
                raise BundleNotFoundError(
                    f"Bundle '{bundle_id}' not found in {origin.path.name}",
                    context={"bundle_id": bundle_id, "lockfile": str(origin.path)},
                )

            entry = origin_lockfile.bundles[bundle_id]
            target_lockfile = await target.read() or self._new_lockfile()
            target_lockfile.bundles[bundle_id] = entry.model_copy(update={"commit_mode": new_mode})
            if entry.source_id in origin_lockfile.sources:
                target_lockfile.sources[entry.source_id] = origin_lockfile.sources[entry.source_id]

            await self._save(target, target_lockfile)
            if target is self.local:
                await self.git_exclude.add([self.config.local_lockfile_name])

            await self._remove_from(origin, bundle_id)

        logger.info(f"Moved '{bundle_id}' to {target.path.name} ({new_mode})")

    async def cleanup_stale(self) -> int:
        """
        Remove every entry whose tracked files are missing on disk.

        Returns:
            Number of entries removed (0, with no writes, when nothing is stale)
        """
        async with self._mutation_lock:
            stale = [bundle.bundle_id for bundle in await self.get_installed_bundles() if bundle.files_missing]

            removed = 0
            for bundle_id in stale:
                try:
                    if await self._remove_unlocked(bundle_id):
                        removed += 1
                        logger.info(f"Removed stale lockfile entry: {bundle_id}")
                except LockfileError as e:
                    logger.error(f"Failed to remove stale entry {bundle_id}: {e}")

        return removed

    async def detect_modified_files(self, bundle_id: str) -> list[ModifiedFileInfo]:
        """
        Compare tracked files against their recorded checksums.

        Args:
            bundle_id: Bundle id

        Returns:
            Modified or missing files (empty for unknown bundles)
        """
        entry = await self._find_entry(bundle_id)
        if entry is None:
            return []

        modified = []
        for file_entry in entry.files:
            try:
                current = calculate_file_checksum(resolve_tracked_path(self.workspace_root, file_entry.path))
            except (OSError, ValueError) as e:
                logger.debug(f"Could not checksum {file_entry.path}: {e}")
                modified.append(
                    ModifiedFileInfo(
                        path=file_entry.path,
                        original_checksum=file_entry.checksum,
                        modification_type="missing",
                    )
                )
                continue

            if current != file_entry.checksum:
                modified.append(
                    ModifiedFileInfo(
                        path=file_entry.path,
                        original_checksum=file_entry.checksum,
                        current_checksum=current,
                        modification_type="modified",
                    )
                )

        return modified

    def _files_missing(self, entry: LockfileBundleEntry) -> bool:
        return not all(tracked_file_exists(self.workspace_root, f.path) for f in entry.files)

    async def _find_entry(self, bundle_id: str) -> LockfileBundleEntry | None:
        for store in (self.main, self.local):
            lockfile = await store.read()
            if lockfile is not None and bundle_id in lockfile.bundles:
                return lockfile.bundles[bundle_id]
        return None

    def _new_lockfile(self) -> Lockfile:
        return Lockfile(
            schema_url=self.config.schema_url,
            version=self.config.schema_version,
            generated_at=utc_now_iso(),
            generated_by=self.config.generated_by,
        )

    async def _save(self, store: LockfileStore, lockfile: Lockfile) -> None:
        lockfile.generated_at = utc_now_iso()
        lockfile.generated_by = self.config.generated_by
        await store.write(lockfile)
        self._notify(store.path, lockfile)

    async def _remove_unlocked(self, bundle_id: str) -> bool:
        for store in (self.main, self.local):
            if await self._remove_from(store, bundle_id):
                logger.info(f"Removed '{bundle_id}' from {store.path.name}")
                return True

        logger.debug(f"Bundle '{bundle_id}' not tracked in any lockfile, nothing to remove")
        return False

    async def _remove_from(self, store: LockfileStore, bundle_id: str) -> bool:
        lockfile = await store.read()
        if lockfile is None or bundle_id not in lockfile.bundles:
            return False

        del lockfile.bundles[bundle_id]
        _prune_references(lockfile, bundle_id)

        if lockfile.bundles:
            await self._save(store, lockfile)
            return True

        # An empty lockfile never stays on disk
        await store.delete()
        self._notify(store.path, None)
        if store is self.local:
            await self.git_exclude.remove([self.config.local_lockfile_name])
        return True


def _prune_references(lockfile: Lockfile, bundle_id: str) -> None:
    """Drop sources and profile memberships no remaining bundle needs."""
    referenced = lockfile.referenced_source_ids()
    lockfile.sources = {source_id: source for source_id, source in lockfile.sources.items() if source_id in referenced}

    if lockfile.profiles:
        profiles = {}
        for profile_id, profile in lockfile.profiles.items():
            remaining = [b for b in profile.bundle_ids if b != bundle_id]
            if remaining:
                profiles[profile_id] = profile.model_copy(update={"bundle_ids": remaining})
        lockfile.profiles = profiles or None


class LockfileManagerRegistry:
    """
    One LockfileManager per workspace root.

    Apps hold a registry instead of a process-wide singleton; tests create a
    fresh registry or call reset() between cases.

    Example:
        >>> registry = LockfileManagerRegistry()
        >>> manager = registry.get(Path("/repo"))
        >>> assert registry.get("/repo") is manager
    """

    def __init__(self, config: LockfileConfig | None = None):
        self.config = config or LockfileConfig()
        self._managers: dict[Path, LockfileManager] = {}

    @staticmethod
    def _key(workspace_root: Path | str) -> Path:
        if not str(workspace_root):
            raise ValueError("Repository path required")
        return Path(workspace_root).expanduser().resolve()

    def get(self, workspace_root: Path | str) -> LockfileManager:
        """Get (or create) the manager for a workspace root."""
        key = self._key(workspace_root)
        manager = self._managers.get(key)
        if manager is None:
            manager = LockfileManager(key, config=self.config)
            self._managers[key] = manager
            logger.debug(f"Created lockfile manager for {key}")
        return manager

    def reset(self, workspace_root: Path | str | None = None) -> None:
        """Forget one manager, or all of them when no root is given."""
        if workspace_root is None:
            self._managers.clear()
        else:
            self._managers.pop(self._key(workspace_root), None)

    def __contains__(self, workspace_root: Path | str) -> bool:
        return self._key(workspace_root) in self._managers

    def __len__(self) -> int:
        return len(self._managers)
