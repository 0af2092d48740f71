"""
tfdriver/utils/terraform/paths.py

Pure path computation for Terraform artifacts. Everything is rooted at
'<dir>/<resource>/' so plan, state, remote mirror and backups never land in the
working directory itself.
"""

from __future__ import annotations

import os
import time

from tfdriver.models.terraform import TerraformConfig


def epoch_millis() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class ArtifactPaths:
    """Artifact locations for one working directory."""

    def __init__(self, dir: str, config: TerraformConfig) -> None:
        self.dir = os.path.abspath(dir)
        self.config = config

    @property
    def resource_dir(self) -> str:
        return os.path.join(self.dir, self.config.resource)

    @property
    def plan_path(self) -> str:
        return os.path.join(self.resource_dir, self.config.plan_file)

    @property
    def local_state_path(self) -> str:
        return os.path.join(self.resource_dir, self.config.state_file)

    @property
    def remote_state_path(self) -> str:
        return os.path.join(self.resource_dir, self.config.remote_state_file)

    def backup_state_path(self, now_ms: int) -> str:
        """Timestamped backup path, e.g. '<resource>/terraform.tfstate.1500000000000.backup'."""
        return os.path.join(
            self.resource_dir, f"{self.config.state_file}.{now_ms}.backup"
        )

    def var_file_path(self, file_name: str) -> str:
        """Resolve a var-file given relative to the working directory."""
        return os.path.join(self.dir, file_name)
