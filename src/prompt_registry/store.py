"""Lockfile store - Durable persistence of one lockfile document.

Per IMPLEMENTATION_PHILOSOPHY:
- Ruthless simplicity: One JSON file, read whole, written whole
- Corruption tolerance: An unreadable document is the same as no document
- Atomic writes: Temp file in the same directory, then replace
"""

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from .exceptions import LockfileError
from .schema import Lockfile
from .schema import ValidationResult
from .source_id import is_legacy_hub_source_id

logger = logging.getLogger(__name__)


class LockfileStore:
    """
    Reads and writes a single lockfile at an app-provided path.

    Contract:
    - read(): Lockfile or None (absent, unreadable, invalid JSON, invalid schema)
    - write(): full document, atomic; raises LockfileError on failure
    - delete(): idempotent; logs and returns False on failure
    """

    def __init__(self, path: Path):
        """Initialize store with app-provided lockfile path.

        Args:
            path: Path to lockfile (app determines location)

        Example:
            >>> store = LockfileStore(Path("/repo/prompt-registry.lock.json"))
        """
        self.path = path

    def exists(self) -> bool:
        return self.path.is_file()

    async def read(self) -> Lockfile | None:
        """Load the document, or None if it is absent or unusable."""
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            lockfile = Lockfile.model_validate(data)
        except (OSError, ValueError) as e:
            # ValidationError and JSONDecodeError are both ValueErrors
            logger.warning(f"Ignoring unreadable lockfile {self.path}: {e}")
            return None

        logger.debug(f"Loaded {len(lockfile.bundles)} bundles from {self.path.name}")
        return lockfile

    async def write(self, lockfile: Lockfile) -> None:
        """Write the document atomically.

        Raises:
            LockfileError: If the document could not be written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(lockfile.to_json_dict(), indent=2, ensure_ascii=False) + "\n"

        # Write to temp file first (atomic write pattern)
        tmp_file = tempfile.NamedTemporaryFile(
            mode="w",
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        temp_path = Path(tmp_file.name)
        try:
            with tmp_file:
                tmp_file.write(content)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())

            # Atomic rename
            temp_path.replace(self.path)

        except OSError as e:
            with contextlib.suppress(OSError):
                temp_path.unlink()
            raise LockfileError(f"Failed to save lockfile: {e}", context={"path": str(self.path)}) from e

        logger.debug(f"Saved {self.path.name} with {len(lockfile.bundles)} bundles")

    async def delete(self) -> bool:
        """Remove the file if present.

        Returns:
            True if the file is gone afterwards, False if removal failed
        """
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete lockfile {self.path}: {e}")
            return False

        logger.debug(f"Deleted {self.path.name}")
        return True

    async def validate(self) -> ValidationResult:
        """Validate the document on disk against the lockfile schema.

        Returns:
            ValidationResult with human-readable errors and warnings
        """
        if not self.path.exists():
            return ValidationResult(valid=False, errors=[f"Lockfile not found: {self.path}"])

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            return ValidationResult(valid=False, errors=[f"Failed to read lockfile: {e}"])

        schema_version = data.get("version") if isinstance(data, dict) else None

        try:
            lockfile = Lockfile.model_validate(data)
        except ValidationError as e:
            errors = [f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()]
            return ValidationResult(valid=False, errors=errors, schema_version=schema_version)

        warnings = [
            f"Bundle '{bundle_id}' uses legacy source id '{entry.source_id}'"
            for bundle_id, entry in lockfile.bundles.items()
            if is_legacy_hub_source_id(entry.source_id)
        ]
        return ValidationResult(valid=True, warnings=warnings, schema_version=lockfile.version)
