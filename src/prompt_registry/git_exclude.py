"""Git exclude management for locally-excluded installations.

Keeps a dedicated section in ``.git/info/exclude``:

    # Prompt Registry (local)
    prompt-registry.local.lock.json

Per IMPLEMENTATION_PHILOSOPHY: Excluding files is a convenience, never a
reason to fail an installation. Errors are logged, not raised.
"""

import logging
from pathlib import Path

from .config import GIT_EXCLUDE_SECTION_HEADER

logger = logging.getLogger(__name__)


class GitExclude:
    """Maintains the registry's section of a repository's ``.git/info/exclude``."""

    def __init__(self, workspace_root: Path, header: str = GIT_EXCLUDE_SECTION_HEADER):
        self.workspace_root = workspace_root
        self.header = header

    @property
    def exclude_path(self) -> Path:
        return self.workspace_root / ".git" / "info" / "exclude"

    def has_git_directory(self) -> bool:
        return (self.workspace_root / ".git").is_dir()

    def entries(self) -> list[str]:
        """Entries currently listed in the registry section."""
        if not self.exclude_path.exists():
            return []
        _, entries, _ = self._split(self.exclude_path.read_text(encoding="utf-8"))
        return entries

    async def add(self, paths: list[str]) -> None:
        """Add paths to the registry section, creating it if needed."""
        if not self.has_git_directory():
            logger.debug(f"No .git directory in {self.workspace_root}, skipping git exclude")
            return

        try:
            self.exclude_path.parent.mkdir(parents=True, exist_ok=True)
            content = self.exclude_path.read_text(encoding="utf-8") if self.exclude_path.exists() else ""

            before, entries, after = self._split(content)
            new_entries = [p for p in dict.fromkeys(paths) if p not in entries]
            if not new_entries and self.header in content.splitlines():
                return

            self.exclude_path.write_text(self._render(before, entries + new_entries, after), encoding="utf-8")
            logger.debug(f"Added {len(new_entries)} paths to git exclude")
        except OSError as e:
            logger.warning(f"Failed to update git exclude: {e}")

    async def remove(self, paths: list[str]) -> None:
        """Remove paths from the registry section, dropping the section when empty."""
        if not self.has_git_directory() or not self.exclude_path.exists():
            return

        try:
            content = self.exclude_path.read_text(encoding="utf-8")
            if self.header not in content.splitlines():
                return

            before, entries, after = self._split(content)
            to_remove = set(paths)
            remaining = [entry for entry in entries if entry not in to_remove]

            self.exclude_path.write_text(self._render(before, remaining, after), encoding="utf-8")
            logger.debug(f"Removed {len(entries) - len(remaining)} paths from git exclude")
        except OSError as e:
            logger.warning(f"Failed to update git exclude: {e}")

    def _split(self, content: str) -> tuple[str, list[str], str]:
        """Split content into (text before section, section entries, text after section).

        The section runs from the header to the next comment line.
        """
        lines = content.splitlines()
        if self.header not in lines:
            return content, [], ""

        start = lines.index(self.header)
        end = start + 1
        while end < len(lines) and not lines[end].startswith("#"):
            end += 1

        entries = [line.strip() for line in lines[start + 1 : end] if line.strip()]
        return "\n".join(lines[:start]), entries, "\n".join(lines[end:])

    def _render(self, before: str, entries: list[str], after: str) -> str:
        blocks = []
        if before.strip():
            blocks.append(before.rstrip())
        if entries:
            blocks.append("\n".join([self.header, *entries]))
        if after.strip():
            blocks.append(after.strip())
        return "\n\n".join(blocks) + "\n" if blocks else ""
