"""
Copies the acquired template into the project directory.
"""

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

from .config import logger
from .exit_codes import TemplateIOError
from .filters import ExclusionRuleSet, normalize_path

PLACEHOLDER_FILENAME = ".gitkeep"

DEFAULT_PROJECT_DIRECTORIES = (
    "storage/cache/templates",
    "storage/logs",
    "storage/uploads",
    "storage/avatars",
    "public/uploads/avatars",
    "logs",
)


@dataclass(frozen=True)
class TreeEntry:
    relative_path: str
    path: Path
    is_dir: bool


def walk_tree(source_root, rules: ExclusionRuleSet) -> Iterator[TreeEntry]:
    """
    Yields the included entries under `source_root`, parents before children.

    Excluded directories are pruned, so nothing below them is visited.
    """
    source_root = Path(source_root)

    def _raise(error):
        raise error

    for root, dirs, files in os.walk(source_root, onerror=_raise):
        root_path = Path(root)
        kept = []
        for name in sorted(dirs):
            relative = normalize_path((root_path / name).relative_to(source_root))
            if rules.matches(relative):
                logger.debug(f"Skipping excluded directory: {relative}")
                continue
            kept.append(name)
        dirs[:] = kept

        # Directories first so that the destination exists before its files
        for name in kept:
            yield TreeEntry(normalize_path((root_path / name).relative_to(source_root)), root_path / name, True)

        for name in sorted(files):
            relative = normalize_path((root_path / name).relative_to(source_root))
            if rules.matches(relative):
                logger.debug(f"Skipping excluded file: {relative}")
                continue
            yield TreeEntry(relative, root_path / name, False)


def copy_tree(source_root, dest_root, rules: ExclusionRuleSet,
              directories: Sequence[str] = DEFAULT_PROJECT_DIRECTORIES) -> int:
    """
    Replicates `source_root` into `dest_root`, skipping excluded paths.

    File contents are copied byte for byte. Afterwards the fixed project
    directories are created, each with an empty placeholder file.

    Args:
        source_root: The acquired template.
        dest_root: The project directory.
        rules: Paths to leave out.
        directories: Directories every project gets even if the template lacks them.

    Returns:
        int: The number of files copied.

    Raises:
        TemplateIOError: If any filesystem operation fails. Whatever was
            already copied stays in place.
    """
    source_root = Path(source_root)
    dest_root = Path(dest_root)
    logger.info("Setting up project structure...")

    current = dest_root
    copied = 0
    try:
        dest_root.mkdir(parents=True, exist_ok=True)
        for entry in walk_tree(source_root, rules):
            current = dest_root / entry.relative_path
            if entry.is_dir:
                current.mkdir(parents=True, exist_ok=True)
            else:
                current.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(entry.path, current)
                copied += 1
    except OSError as e:
        failed = getattr(e, "filename", None) or current
        raise TemplateIOError(f"Failed to copy template into {dest_root}: {e}", path=Path(failed)) from e

    logger.debug(f"Copied {copied} files into {dest_root}")
    create_project_directories(dest_root, directories)
    return copied


def create_project_directories(dest_root, directories: Sequence[str] = DEFAULT_PROJECT_DIRECTORIES):
    """Creates each directory with a .gitkeep so git keeps it when empty."""
    dest_root = Path(dest_root)
    for directory in directories:
        dir_path = dest_root / directory
        try:
            dir_path.mkdir(parents=True, exist_ok=True)
            placeholder = dir_path / PLACEHOLDER_FILENAME
            if not placeholder.exists():
                placeholder.write_bytes(b"")
        except OSError as e:
            raise TemplateIOError(f"Failed to create directory {dir_path}: {e}", path=dir_path) from e
