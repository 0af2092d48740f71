"""
tfdriver/models/terraform.py

Defines Pydantic models related to Terraform, including:
 - StateMode: How resource state is tracked (local file vs. remote backend).
 - TerraformConfig: Immutable settings (binary path, fixed file names, env prefix).
 - BackendMetadata: The subset of '.terraform/terraform.tfstate' used to detect a backend.
 - Plan / State: Immutable handles returned from plan, apply and destroy.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

TERRAFORM_VERSION = "0.10.4"


class StateMode(str, Enum):
    """How Terraform tracks state for a resource directory."""

    UNKNOWN = "unknown"
    LOCAL = "local"
    REMOTE = "remote"

    @property
    def is_remote(self) -> bool:
        return self is StateMode.REMOTE


class TerraformConfig(BaseModel):
    """Settings shared by every Terraform operation, built once at startup.

    Attributes:
        binary (str): Absolute path to the terraform executable.
        bin_file (str): File name the downloader places inside the binary's directory.
        resource (str): Name of the artifact subdirectory under each working dir.
        plan_file (str): Plan artifact file name.
        state_file (str): Local state file name (also the backend metadata file name).
        remote_state_file (str): File name of the local mirror of remote state.
        env_prefix (str): Prefix used when exporting variables, e.g. 'TF_VAR'.
        version (str): Terraform version fetched by 'ensure' when none is given.
    """

    model_config = ConfigDict(frozen=True)

    binary: str = Field(
        default_factory=lambda: os.path.join(os.getcwd(), "bin", "terraform")
    )
    bin_file: str = "terraform"
    resource: str = ".resource"
    plan_file: str = "terraform.tfplan"
    state_file: str = "terraform.tfstate"
    remote_state_file: str = "terraform.tfstate.remote"
    env_prefix: str = "TF_VAR"
    version: str = TERRAFORM_VERSION

    @field_validator("resource")
    @classmethod
    def validate_resource(cls, value: str) -> str:
        """Keep the resource dir a single relative path segment under the working dir."""
        if not value or value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError("'resource' must be a single directory name.")
        return value


class BackendInfo(BaseModel):
    """The 'backend' block Terraform writes after 'init' with a configured backend."""

    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None


class BackendMetadata(BaseModel):
    """Top level of '.terraform/terraform.tfstate'. Only 'backend' is of interest."""

    model_config = ConfigDict(extra="ignore")

    backend: Optional[BackendInfo] = None

    @property
    def has_backend(self) -> bool:
        return bool(self.backend and self.backend.type)


class Plan(BaseModel):
    """A plan artifact on disk plus the text 'terraform plan' printed while writing it.

    Attributes:
        path (Optional[str]): Path to the binary plan file.
        output (str): Raw output captured from the plan command.
    """

    model_config = ConfigDict(frozen=True)

    path: Optional[str] = None
    output: str = ""

    @property
    def dir(self) -> Optional[str]:
        return os.path.dirname(self.path) if self.path else None


class State(BaseModel):
    """A state file on disk plus the backup path taken for it.

    Attributes:
        path (Optional[str]): Current state file (local state or remote mirror).
        backup_path (Optional[str]): Where the pre-operation snapshot was (or would be) written.
    """

    model_config = ConfigDict(frozen=True)

    path: Optional[str] = None
    backup_path: Optional[str] = None

    @property
    def dir(self) -> Optional[str]:
        return os.path.dirname(self.path) if self.path else None
