"""
tfdriver/errors.py

Exceptions raised by the Terraform orchestration layer. Filesystem failures are not
wrapped: OSError and its subclasses propagate unmodified.
"""

from __future__ import annotations

from typing import List, Optional


class TerraformError(Exception):
    """Base class for all tfdriver errors."""


class ExecutionError(TerraformError):
    """Represents a failure when executing the terraform binary.

    Attributes:
        command (str): The binary plus subcommand, e.g. '/opt/bin/terraform apply'.
        arguments (List[str]): Arguments passed after the subcommand.
        stderr (str): Captured standard error (or the spawn failure reason).
        return_code (Optional[int]): The exit code, or None if the process never started.
    """

    def __init__(
        self,
        command: str,
        args: List[str],
        stderr: str,
        return_code: Optional[int] = None,
    ) -> None:
        """
        Initialize an ExecutionError.

        Args:
            command (str): The binary plus subcommand that was run.
            args (List[str]): Arguments after the subcommand.
            stderr (str): Captured error output.
            return_code (Optional[int]): Exit code if known.
        """
        if return_code is None:
            message = f"Failed to start '{command}': {stderr}"
        else:
            message = (
                f"Command '{command}' failed with return code {return_code}."
                f"\nArgs: {' '.join(args)}"
                f"\nStderr: {stderr}"
            )
        super().__init__(message)
        self.command = command
        self.arguments = list(args)
        self.stderr = stderr
        self.return_code = return_code


class StateModeConflictError(TerraformError):
    """Raised when a repeated 'init' detects a state mode different from the cached one."""


class DownloadError(TerraformError):
    """Raised when the terraform binary cannot be fetched or placed."""
