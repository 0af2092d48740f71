"""
tfdriver/utils/terraform/__init__.py

Provides a convenient import interface for the Terraform submodules:

- orchestrator.py for the Terraform façade (init/plan/apply/destroy/show/ensure)
- commands.py for building argument lists
- detection.py for local vs. remote state detection
- paths.py for artifact locations
- storage.py for resource dirs and backup rotation
"""

from tfdriver.utils.terraform.orchestrator import Terraform
from tfdriver.utils.terraform.paths import ArtifactPaths, epoch_millis
from tfdriver.utils.terraform.detection import detect_state_mode
from tfdriver.utils.terraform.storage import (
    ensure_resource_dir,
    free_backup_path,
    rotate_to_backup,
    write_state_file,
)

__all__ = [
    "Terraform",
    "ArtifactPaths",
    "epoch_millis",
    "detect_state_mode",
    "ensure_resource_dir",
    "free_backup_path",
    "rotate_to_backup",
    "write_state_file",
]
