"""Lockfile schema - Persisted documents and derived runtime views.

Persisted JSON uses camelCase keys; Python attributes are snake_case.
Unknown keys survive a read/write round-trip so newer writers are not
silently truncated by older readers.
"""

from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import SerializerFunctionWrapHandler
from pydantic import model_serializer

CommitMode = Literal["commit", "local-only"]
InstallationScope = Literal["user", "workspace", "repository"]


class PersistedModel(BaseModel):
    """Base for models written to lockfiles.

    Declared optional fields are omitted while None. Unknown keys are written
    back exactly as read, null values included.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @model_serializer(mode="wrap")
    def _omit_empty_fields(self, handler: SerializerFunctionWrapHandler) -> dict:
        data = handler(self)
        for name, field in type(self).model_fields.items():
            if getattr(self, name) is None:
                data.pop(field.alias or name, None)
                data.pop(name, None)
        return data


class LockfileFileEntry(PersistedModel):
    """One installed file, relative to the workspace root."""

    model_config = ConfigDict(frozen=True)

    path: str
    checksum: str


class LockfileBundleEntry(PersistedModel):
    """Entry in a lockfile, keyed by bundle id."""

    model_config = ConfigDict(frozen=True)

    version: str
    source_id: str = Field(alias="sourceId")
    source_type: str = Field(alias="sourceType")
    # Older documents omit it; the file the entry lives in implies it.
    commit_mode: CommitMode | None = Field(default=None, alias="commitMode")
    installed_at: str = Field(alias="installedAt")
    files: list[LockfileFileEntry] = Field(default_factory=list)


class LockfileSourceEntry(PersistedModel):
    """Source descriptor, keyed by source id."""

    type: str
    url: str
    branch: str | None = None
    collections_path: str | None = Field(default=None, alias="collectionsPath")


class LockfileHubEntry(PersistedModel):
    """Hub a bundle was discovered through, keyed by hub key."""

    name: str
    url: str
    branch: str | None = None


class LockfileProfileEntry(PersistedModel):
    """Profile a bundle was installed as part of, keyed by profile id."""

    name: str
    bundle_ids: list[str] = Field(default_factory=list, alias="bundleIds")


class Lockfile(PersistedModel):
    """
    Lockfile document.

    Format (JSON):
    {
      "$schema": "./schemas/lockfile.schema.json",
      "version": "1.0.0",
      "generatedAt": "2025-10-26T12:00:00+00:00",
      "generatedBy": "prompt-registry@0.1.0",
      "bundles": {
        "alpha": {
          "version": "1.0.0",
          "sourceId": "github-a1b2c3d4e5f6",
          "sourceType": "github",
          "commitMode": "commit",
          "installedAt": "2025-10-26T12:00:00+00:00",
          "files": [{"path": ".github/prompts/alpha.prompt.md", "checksum": "..."}]
        }
      },
      "sources": {
        "github-a1b2c3d4e5f6": {"type": "github", "url": "https://github.com/org/prompts"}
      }
    }
    """

    schema_url: str = Field(alias="$schema")
    version: str
    generated_at: str = Field(alias="generatedAt")
    generated_by: str = Field(alias="generatedBy")
    bundles: dict[str, LockfileBundleEntry] = Field(default_factory=dict)
    sources: dict[str, LockfileSourceEntry] = Field(default_factory=dict)
    hubs: dict[str, LockfileHubEntry] | None = None
    profiles: dict[str, LockfileProfileEntry] | None = None

    def to_json_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return self.model_dump(mode="json", by_alias=True)

    def referenced_source_ids(self) -> set[str]:
        return {entry.source_id for entry in self.bundles.values()}


class DeploymentManifest(BaseModel):
    """Deployment manifest of an installed bundle.

    Lockfiles do not store manifests, so repository bundles get a minimal one
    listing their files. Callers holding a richer manifest may pass extra keys.
    """

    model_config = ConfigDict(extra="allow")

    manifest_version: str = "1.0.0"
    description: str = ""
    files: list[str] = Field(default_factory=list)
    directories: list[str] = Field(default_factory=list)


class InstalledBundle(BaseModel):
    """Runtime view of an installed bundle (never persisted)."""

    bundle_id: str
    version: str
    installed_at: str
    scope: InstallationScope
    install_path: str = ""
    manifest: DeploymentManifest = Field(default_factory=DeploymentManifest)
    source_id: str | None = None
    source_type: str | None = None
    commit_mode: CommitMode | None = None
    files_missing: bool = False


class ValidationResult(BaseModel):
    """Result of validating a lockfile on disk."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    schema_version: str | None = None


class ModifiedFileInfo(BaseModel):
    """A tracked file whose content no longer matches the lockfile."""

    path: str
    original_checksum: str
    current_checksum: str | None = None
    modification_type: Literal["modified", "missing"]
