"""Lockfile configuration.

Per KERNEL_PHILOSOPHY: File names and provenance strings are app policy.
The defaults below describe the standard layout; apps inject overrides.
"""

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

MAIN_LOCKFILE_NAME = "prompt-registry.lock.json"
LOCAL_LOCKFILE_NAME = "prompt-registry.local.lock.json"
LOCKFILE_SCHEMA_VERSION = "1.0.0"
GIT_EXCLUDE_SECTION_HEADER = "# Prompt Registry (local)"


def _default_generated_by() -> str:
    from . import __version__

    return f"prompt-registry@{__version__}"


class LockfileConfig(BaseModel):
    """Where lockfiles live and how they identify themselves.

    Example:
        >>> config = LockfileConfig(main_lockfile_name="bundles.lock.json")
        >>> registry = LockfileManagerRegistry(config=config)
    """

    model_config = ConfigDict(frozen=True)

    main_lockfile_name: str = MAIN_LOCKFILE_NAME
    local_lockfile_name: str = LOCAL_LOCKFILE_NAME
    schema_url: str = "./schemas/lockfile.schema.json"
    schema_version: str = LOCKFILE_SCHEMA_VERSION
    generated_by: str = Field(default_factory=_default_generated_by)
    git_exclude_header: str = GIT_EXCLUDE_SECTION_HEADER
