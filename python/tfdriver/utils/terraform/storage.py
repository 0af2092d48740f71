"""
tfdriver/utils/terraform/storage.py

Filesystem side of Terraform state handling:
  - ensure_resource_dir: create '<dir>/<resource>' before any stateful operation.
  - free_backup_path: pick a timestamped backup name that does not exist yet.
  - rotate_to_backup: move an existing state file aside before it is replaced.
  - write_state_file: write pulled state to disk.

Errors are not wrapped; OSError propagates to the caller. Rotation followed by a write
is not atomic: if the write fails, the previous content survives only in the backup.
"""

from __future__ import annotations

import os
import logging
from typing import Optional

import aiofiles
import aiofiles.os

from tfdriver.utils.terraform.paths import ArtifactPaths, epoch_millis

logger = logging.getLogger(__name__)


async def ensure_resource_dir(dir: str, resource: str) -> str:
    """Create '<dir>/<resource>' recursively if missing and return its path.

    Args:
        dir (str): The Terraform working directory.
        resource (str): The artifact subdirectory name.

    Returns:
        str: The resource directory path.

    Raises:
        OSError: On a genuine I/O failure (permissions, disk full, ...).
    """
    resource_dir = os.path.join(dir, resource)
    await aiofiles.os.makedirs(resource_dir, exist_ok=True)
    return resource_dir


async def _taken(path: str) -> bool:
    """True for an existing file or a symlink, dangling or not."""
    return await aiofiles.os.path.exists(path) or await aiofiles.os.path.islink(path)


async def free_backup_path(
    paths: ArtifactPaths, now_ms: Optional[int] = None
) -> str:
    """Return the first unused backup path at or after `now_ms`.

    Two calls inside the same millisecond would otherwise produce the same name, so the
    timestamp is advanced until no file with that name exists.
    """
    stamp = epoch_millis() if now_ms is None else now_ms
    candidate = paths.backup_state_path(stamp)
    while await _taken(candidate):
        stamp += 1
        candidate = paths.backup_state_path(stamp)
    return candidate


async def rotate_to_backup(
    path: str, paths: ArtifactPaths, now_ms: Optional[int] = None
) -> Optional[str]:
    """Move `path` to a fresh backup path if it exists.

    Args:
        path (str): The state file about to be overwritten.
        paths (ArtifactPaths): Used to compute the backup name.
        now_ms (Optional[int]): Timestamp for the backup name. Defaults to now.

    Returns:
        Optional[str]: The backup path, or None when there was nothing to back up.
    """
    if not await aiofiles.os.path.exists(path):
        return None

    backup_path = await free_backup_path(paths, now_ms)
    await aiofiles.os.rename(path, backup_path)
    logger.debug("Moved %s to %s", path, backup_path)
    return backup_path


async def write_state_file(path: str, content: str) -> None:
    """Write state text to `path` (UTF-8), replacing any existing file."""
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(content)
