"""Installation recording - Turn installed files into a lockfile entry.

Per KERNEL_PHILOSOPHY: Mechanism not policy - the library doesn't know HOW
bundle files got into the repository (download, unzip, copy). Apps install the
files, then call record_installation() to track them.

Per IMPLEMENTATION_PHILOSOPHY:
- Deterministic ids: source ids come from generate_hub_source_id(), never from
  local hub labels
- Fail early: a file that isn't on disk is never recorded
"""

import logging
from pathlib import Path

from .exceptions import BundleInstallError
from .exceptions import LockfileError
from .lock import LockfileManager
from .schema import CommitMode
from .schema import LockfileBundleEntry
from .schema import LockfileFileEntry
from .schema import LockfileHubEntry
from .schema import LockfileProfileEntry
from .schema import LockfileSourceEntry
from .source_id import SourceIdConfig
from .source_id import generate_hub_key
from .source_id import generate_hub_source_id
from .utils import calculate_file_checksum
from .utils import resolve_tracked_path
from .utils import to_tracked_path
from .utils import utc_now_iso

logger = logging.getLogger(__name__)


async def record_installation(
    manager: LockfileManager,
    bundle_id: str,
    version: str,
    source_type: str,
    source_url: str,
    files: list[Path | str],
    commit_mode: CommitMode = "commit",
    source_config: SourceIdConfig | None = None,
    hub: LockfileHubEntry | None = None,
    profile: tuple[str, LockfileProfileEntry] | None = None,
) -> LockfileBundleEntry:
    """
    Record files already installed in the workspace as a bundle entry.

    Process:
    1. Generate the source id from type, URL and source config
    2. Checksum every installed file
    3. Build the entry and source descriptor
    4. Record hub (keyed by generate_hub_key) and profile, if given
    5. Write the entry to the lockfile selected by commit mode

    Args:
        manager: Lockfile manager for the workspace root
        bundle_id: Bundle id
        version: Installed bundle version
        source_type: Source type (e.g., "github")
        source_url: Source URL
        files: Installed files, absolute or relative to the workspace root
        commit_mode: "commit" or "local-only"
        source_config: Branch / collections path of the source
        hub: Hub the bundle was discovered through
        profile: (profile id, profile entry) the bundle was installed with

    Returns:
        The recorded entry

    Raises:
        BundleInstallError: If a file is missing or the lockfile cannot be written

    Example:
        >>> entry = await record_installation(
        ...     registry.get(repo_root),
        ...     bundle_id="alpha",
        ...     version="1.0.0",
        ...     source_type="github",
        ...     source_url="https://github.com/org/prompts",
        ...     files=[".github/prompts/alpha.prompt.md"],
        ... )
    """
    source_config = source_config or SourceIdConfig()
    source_id = generate_hub_source_id(source_type, source_url, source_config)

    file_entries = []
    for file_path in files:
        try:
            tracked = to_tracked_path(manager.workspace_root, file_path)
            checksum = calculate_file_checksum(resolve_tracked_path(manager.workspace_root, tracked))
        except (OSError, ValueError) as e:
            raise BundleInstallError(
                f"Cannot record '{bundle_id}': {file_path} is not a readable file in the workspace ({e})",
                context={"bundle_id": bundle_id, "path": str(file_path)},
            ) from e
        file_entries.append(LockfileFileEntry(path=tracked, checksum=checksum))

    entry = LockfileBundleEntry(
        version=version,
        source_id=source_id,
        source_type=source_type,
        commit_mode=commit_mode,
        installed_at=utc_now_iso(),
        files=file_entries,
    )
    source = LockfileSourceEntry(
        type=source_type,
        url=source_url,
        branch=source_config.branch,
        collections_path=source_config.collections_path,
    )
    hubs = {generate_hub_key(hub.url, hub.branch): hub} if hub is not None else None
    profiles = {profile[0]: profile[1]} if profile is not None else None

    try:
        await manager.install(bundle_id, entry, commit_mode, source=source, hubs=hubs, profiles=profiles)
    except LockfileError as e:
        raise BundleInstallError(f"Failed to record installation of '{bundle_id}': {e}") from e

    logger.debug(f"Recorded {len(file_entries)} files for {bundle_id} from {source_id}")
    return entry
