"""prompt-registry - Lockfile-based registry of installed prompt bundles.

Public API exports.

Per KERNEL_PHILOSOPHY: This is library mechanism, apps inject policy
(workspace root, lockfile names, bundle storage).
"""

from .config import LockfileConfig
from .exceptions import BundleInstallError
from .exceptions import BundleNotFoundError
from .exceptions import LockfileError
from .exceptions import RegistryError
from .git_exclude import GitExclude
from .installer import record_installation
from .lock import LockfileListener
from .lock import LockfileManager
from .lock import LockfileManagerRegistry
from .protocols import BundleStorageProtocol
from .protocols import WorkspaceRootProvider
from .resolver import LookupStrategy
from .resolver import ScopeResolver
from .resolver import create_installed_bundle_from_lockfile
from .schema import CommitMode
from .schema import DeploymentManifest
from .schema import InstallationScope
from .schema import InstalledBundle
from .schema import Lockfile
from .schema import LockfileBundleEntry
from .schema import LockfileFileEntry
from .schema import LockfileHubEntry
from .schema import LockfileProfileEntry
from .schema import LockfileSourceEntry
from .schema import ModifiedFileInfo
from .schema import ValidationResult
from .source_id import SourceIdConfig
from .source_id import generate_hub_key
from .source_id import generate_hub_source_id
from .source_id import is_legacy_hub_source_id
from .source_id import normalize_branch
from .source_id import normalize_url
from .store import LockfileStore

__all__ = [
    # Source identity
    "SourceIdConfig",
    "normalize_url",
    "normalize_branch",
    "generate_hub_source_id",
    "generate_hub_key",
    "is_legacy_hub_source_id",
    # Lockfile schema
    "Lockfile",
    "LockfileBundleEntry",
    "LockfileFileEntry",
    "LockfileSourceEntry",
    "LockfileHubEntry",
    "LockfileProfileEntry",
    "ValidationResult",
    "ModifiedFileInfo",
    # Runtime views
    "CommitMode",
    "InstallationScope",
    "InstalledBundle",
    "DeploymentManifest",
    # Persistence
    "LockfileConfig",
    "LockfileStore",
    "GitExclude",
    # Management
    "LockfileManager",
    "LockfileListener",
    "LockfileManagerRegistry",
    "record_installation",
    # Scope resolution
    "ScopeResolver",
    "LookupStrategy",
    "BundleStorageProtocol",
    "WorkspaceRootProvider",
    "create_installed_bundle_from_lockfile",
    # Exceptions
    "RegistryError",
    "LockfileError",
    "BundleNotFoundError",
    "BundleInstallError",
]

__version__ = "0.1.0"
