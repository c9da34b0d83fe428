"""Tests for recording installations in lockfiles."""

import hashlib
import json

import pytest
from prompt_registry import BundleInstallError
from prompt_registry import LockfileHubEntry
from prompt_registry import LockfileManagerRegistry
from prompt_registry import LockfileProfileEntry
from prompt_registry import SourceIdConfig
from prompt_registry import generate_hub_key
from prompt_registry import generate_hub_source_id
from prompt_registry import record_installation


@pytest.fixture
def manager(tmp_path):
    return LockfileManagerRegistry().get(tmp_path)


def _install_files(root, *relative_paths):
    for relative in relative_paths:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"# {relative}\n")


@pytest.mark.asyncio
async def test_record_installation_basic(manager, tmp_path):
    """Installed files are checksummed and tracked in the main lockfile."""
    _install_files(tmp_path, ".github/prompts/alpha.prompt.md", ".github/chatmodes/alpha.chatmode.md")

    entry = await record_installation(
        manager,
        bundle_id="alpha",
        version="1.0.0",
        source_type="github",
        source_url="https://github.com/org/prompts",
        files=[".github/prompts/alpha.prompt.md", tmp_path / ".github" / "chatmodes" / "alpha.chatmode.md"],
    )

    assert entry.source_id == generate_hub_source_id("github", "https://github.com/org/prompts")
    assert entry.commit_mode == "commit"
    assert [f.path for f in entry.files] == [
        ".github/prompts/alpha.prompt.md",
        ".github/chatmodes/alpha.chatmode.md",
    ]
    expected = hashlib.sha256(b"# .github/prompts/alpha.prompt.md\n").hexdigest()
    assert entry.files[0].checksum == expected

    data = json.loads((tmp_path / "prompt-registry.lock.json").read_text())
    assert data["bundles"]["alpha"]["sourceId"] == entry.source_id
    assert data["sources"][entry.source_id]["url"] == "https://github.com/org/prompts"

    bundle = await manager.get_installed_bundle("alpha")
    assert bundle is not None
    assert bundle.files_missing is False
    assert await manager.detect_modified_files("alpha") == []


@pytest.mark.asyncio
async def test_record_installation_local_only(manager, tmp_path):
    _install_files(tmp_path, ".github/prompts/alpha.prompt.md")

    await record_installation(
        manager,
        bundle_id="alpha",
        version="1.0.0",
        source_type="github",
        source_url="https://github.com/org/prompts",
        files=[".github/prompts/alpha.prompt.md"],
        commit_mode="local-only",
    )

    assert not (tmp_path / "prompt-registry.lock.json").exists()
    assert (tmp_path / "prompt-registry.local.lock.json").exists()


@pytest.mark.asyncio
async def test_record_installation_source_config(manager, tmp_path):
    """Branch and collections path feed the source id and the source record."""
    _install_files(tmp_path, ".github/prompts/alpha.prompt.md")
    config = SourceIdConfig(branch="develop", collections_path="prompts")

    entry = await record_installation(
        manager,
        bundle_id="alpha",
        version="1.0.0",
        source_type="gitlab",
        source_url="https://gitlab.com/group/project",
        files=[".github/prompts/alpha.prompt.md"],
        source_config=config,
    )

    assert entry.source_id == generate_hub_source_id("gitlab", "https://gitlab.com/group/project", config)
    source = (await manager.read()).sources[entry.source_id]
    assert source.branch == "develop"
    assert source.collections_path == "prompts"


@pytest.mark.asyncio
async def test_record_installation_hub_and_profile(manager, tmp_path):
    _install_files(tmp_path, ".github/prompts/alpha.prompt.md")
    hub = LockfileHubEntry(name="Team Hub", url="https://hub.example.com/hub.json", branch="develop")

    await record_installation(
        manager,
        bundle_id="alpha",
        version="1.0.0",
        source_type="github",
        source_url="https://github.com/org/prompts",
        files=[".github/prompts/alpha.prompt.md"],
        hub=hub,
        profile=("backend", LockfileProfileEntry(name="Backend", bundle_ids=["alpha"])),
    )

    lockfile = await manager.read()
    hub_key = generate_hub_key("https://hub.example.com/hub.json", "develop")
    assert hub_key.endswith("-develop")
    assert lockfile.hubs[hub_key].name == "Team Hub"
    assert lockfile.profiles["backend"].bundle_ids == ["alpha"]


@pytest.mark.asyncio
async def test_record_installation_missing_file(manager, tmp_path):
    """A file that isn't on disk is never recorded."""
    with pytest.raises(BundleInstallError, match="alpha"):
        await record_installation(
            manager,
            bundle_id="alpha",
            version="1.0.0",
            source_type="github",
            source_url="https://github.com/org/prompts",
            files=[".github/prompts/missing.prompt.md"],
        )

    assert not (tmp_path / "prompt-registry.lock.json").exists()


@pytest.mark.asyncio
async def test_record_installation_file_outside_workspace(manager, tmp_path):
    outside = tmp_path.parent / f"{tmp_path.name}-outside.md"
    outside.write_text("x")

    try:
        with pytest.raises(BundleInstallError):
            await record_installation(
                manager,
                bundle_id="alpha",
                version="1.0.0",
                source_type="github",
                source_url="https://github.com/org/prompts",
                files=[outside],
            )
    finally:
        outside.unlink()
