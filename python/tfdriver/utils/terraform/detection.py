"""
tfdriver/utils/terraform/detection.py

Classifies a Terraform working directory as using local or remote state, based on the
metadata 'terraform init' leaves in '<dir>/.terraform/'. A backend block with a
non-empty 'type' means remote state; anything else (including no file) is local.
"""

from __future__ import annotations

import os
import logging

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from tfdriver.models.terraform import BackendMetadata, StateMode

logger = logging.getLogger(__name__)

METADATA_DIR = ".terraform"


def metadata_path(dir: str, metadata_file: str) -> str:
    return os.path.join(dir, METADATA_DIR, metadata_file)


async def detect_state_mode(dir: str, metadata_file: str) -> StateMode:
    """Read '<dir>/.terraform/<metadata_file>' and resolve the state mode.

    Args:
        dir (str): The Terraform working directory (already initialized).
        metadata_file (str): Usually 'terraform.tfstate'.

    Returns:
        StateMode: REMOTE if a backend type is declared, otherwise LOCAL.

    Raises:
        ValueError: If the metadata file exists but is not valid JSON of the expected shape.
    """
    path = metadata_path(dir, metadata_file)
    if not await aiofiles.os.path.isfile(path):
        logger.debug("No backend metadata at %s, using local state", path)
        return StateMode.LOCAL

    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        raw = await f.read()

    try:
        metadata = BackendMetadata.model_validate_json(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid backend metadata in {path}: {exc}") from exc

    mode = StateMode.REMOTE if metadata.has_backend else StateMode.LOCAL
    logger.debug("Backend metadata at %s resolves to %s state", path, mode.value)
    return mode
