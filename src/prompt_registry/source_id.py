"""Source identity - Stable, portable identifiers for lockfile entries.

Identifiers are persisted in lockfiles that get committed and shared, so they
must not depend on anything local to one machine (hub labels, checkout paths).
Everything here hashes the *normalized* source URL instead.

Per IMPLEMENTATION_PHILOSOPHY: Pure functions, no I/O, no hidden state.
"""

import hashlib
import re
from urllib.parse import urlsplit

from pydantic import BaseModel
from pydantic import ConfigDict

DEFAULT_BRANCH = "main"
DEFAULT_COLLECTIONS_PATH = "collections"
HASH_LENGTH = 12

LEGACY_HUB_PREFIX = "hub-"

_SCHEME_PATTERN = re.compile(r"^https?://")
_TRAILING_SLASHES = re.compile(r"/+$")


class SourceIdConfig(BaseModel):
    """Optional source configuration that participates in the source id.

    Defaults are resolved here, once, rather than at every call site.
    """

    model_config = ConfigDict(frozen=True)

    branch: str | None = None
    collections_path: str | None = None

    @property
    def resolved_branch(self) -> str:
        return normalize_branch(self.branch)

    @property
    def resolved_collections_path(self) -> str:
        return self.collections_path or DEFAULT_COLLECTIONS_PATH


def _hash12(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def normalize_url(url: str) -> str:
    """Normalize a URL for hashing.

    Host is lowercased (hosts are case-insensitive), path case is preserved
    (paths are not, on most git servers), scheme and trailing slashes are dropped.

    Strings that do not parse as absolute URLs fall back to a regex
    normalization instead of failing.

    Examples:
        >>> normalize_url("HTTPS://GitHub.com/Owner/Repo/")
        'github.com/Owner/Repo'
        >>> normalize_url("github.com/Owner/Repo/")
        'github.com/owner/repo'
    """
    try:
        parsed = urlsplit(url)
        if not parsed.scheme:
            raise ValueError(f"URL has no scheme: {url}")
        host = parsed.hostname or ""
        _ = parsed.port  # raises ValueError for a malformed port
    except ValueError:
        fallback = _SCHEME_PATTERN.sub("", url.lower())
        return _TRAILING_SLASHES.sub("", fallback)

    return host + _TRAILING_SLASHES.sub("", parsed.path)


def normalize_branch(branch: str | None) -> str:
    """Treat a missing branch and 'master' as 'main'."""
    if not branch or branch == "master":
        return DEFAULT_BRANCH
    return branch


def generate_hub_source_id(source_type: str, url: str, config: SourceIdConfig | None = None) -> str:
    """
    Generate a stable source id: ``{source_type}-{12 hex chars}``.

    The hash covers source type, normalized URL, normalized branch and
    collections path, so the same repository tracked on two branches (or two
    collection directories) yields two different ids.

    Args:
        source_type: Source type (e.g., "github", "gitlab", "http")
        url: Source URL
        config: Optional branch / collections path

    Returns:
        Source id, e.g. "github-a1b2c3d4e5f6"

    Example:
        >>> generate_hub_source_id("github", "https://github.com/owner/repo")
        'github-...'
    """
    config = config or SourceIdConfig()
    canonical = f"{source_type}:{normalize_url(url)}:{config.resolved_branch}:{config.resolved_collections_path}"
    return f"{source_type}-{_hash12(canonical)}"


def generate_hub_key(url: str, branch: str | None = None) -> str:
    """
    Generate a lockfile key for a hub from its URL.

    Only the URL is hashed, so the 12-char prefix is the same for every branch;
    non-default branches are appended as a readable suffix.

    Args:
        url: Hub URL
        branch: Optional branch ("main"/"master"/empty add no suffix)

    Returns:
        ``{hash12}`` or ``{hash12}-{branch}``
    """
    key = _hash12(normalize_url(url))
    if branch and branch not in ("main", "master"):
        return f"{key}-{branch}"
    return key


def is_legacy_hub_source_id(source_id: str) -> bool:
    """Check for the old ``hub-{hubId}-{sourceId}`` format.

    Only used to tolerate old lockfiles on read; never used to generate ids.
    """
    return source_id.startswith(LEGACY_HUB_PREFIX) and len(source_id.split("-")) >= 3
