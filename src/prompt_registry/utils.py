"""Filesystem helpers shared by the store and the manager."""

import hashlib
import logging
from datetime import UTC
from datetime import datetime
from pathlib import Path
from pathlib import PurePosixPath

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def utc_now_iso() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.now(UTC).isoformat()


def calculate_file_checksum(file_path: Path) -> str:
    """SHA-256 hex digest of a file's content.

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def resolve_tracked_path(workspace_root: Path, relative_path: str) -> Path:
    """Resolve a lockfile path (always '/'-separated) against the workspace root.

    Raises:
        ValueError: If the path is absolute or resolves outside the workspace root
    """
    if PurePosixPath(relative_path).is_absolute():
        raise ValueError(f"Tracked path must be relative: {relative_path}")

    path = workspace_root.joinpath(*relative_path.split("/"))
    if not path.resolve().is_relative_to(workspace_root.resolve()):
        raise ValueError(f"Tracked path escapes the workspace root: {relative_path}")
    return path


def tracked_file_exists(workspace_root: Path, relative_path: str) -> bool:
    """Check whether a tracked file exists.

    Any error while checking counts as missing.
    """
    try:
        return resolve_tracked_path(workspace_root, relative_path).exists()
    except (OSError, ValueError) as e:
        logger.debug(f"Could not check {relative_path}, treating as missing: {e}")
        return False


def to_tracked_path(workspace_root: Path, file_path: Path | str) -> str:
    """Express a file path as a '/'-separated path relative to the workspace root."""
    path = Path(file_path)
    if path.is_absolute():
        path = path.resolve().relative_to(workspace_root.resolve())
    return path.as_posix()
