#!/usr/bin/env python3
"""
Directory walk for static site exports.
"""

import logging
from pathlib import Path
from typing import Dict, List, Union

logger = logging.getLogger(__name__)


def to_object_key(path: Path, root_dir: Path) -> str:
    """Get the forward-slash object key of a file relative to the site root."""
    return path.relative_to(root_dir).as_posix()


def list_site_files(root_dir: Union[str, Path]) -> List[Dict[str, object]]:
    """
    Recursively list every file under root_dir.

    Entries whose name starts with '.' (.git, .env, .DS_Store, ...) are
    skipped along with everything below them. Entries come back in
    filesystem order. Symlinked directories are followed as-is, so a
    symlink loop is not detected.

    Args:
        root_dir: Directory containing the site export

    Returns:
        List of {'path': absolute Path, 'key': object key} dictionaries
    """
    root = Path(root_dir).resolve()
    entries = []
    _collect(root, root, entries)
    logger.debug(f"Found {len(entries)} files under {root}")
    return entries


def _collect(directory: Path, root: Path, entries: List[Dict[str, object]]):
    for child in directory.iterdir():
        if child.name.startswith('.'):
            logger.debug(f"Skipping hidden entry: {child}")
            continue

        if child.is_dir():
            _collect(child, root, entries)
        else:
            entries.append({
                'path': child,
                'key': to_object_key(child, root),
            })
