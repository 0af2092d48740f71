"""
tfdriver/utils/terraform/commands.py

Builds the argument lists for each Terraform subcommand. These are pure functions:
the orchestrator checks the filesystem and the state mode, then passes the facts in
here, so every flag combination can be exercised without a terraform binary.

Exports the following primary functions:
    - init_args
    - pull_state_args
    - plan_args
    - apply_args
    - destroy_args
    - show_args
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from tfdriver.models.terraform import StateMode


def _make_base_command(action: str) -> List[str]:
    """Builds the leading flags shared by an action.

    Args:
        action: "init", "plan", "apply", "destroy", "show".

    Returns:
        A list of flags, e.g. ["-no-color", "-auto-approve"] for "apply".
    """
    base = ["-no-color"]
    apply_flags = ["-auto-approve"] if action == "apply" else []
    destroy_flags = ["-force"] if action == "destroy" else []
    return base + apply_flags + destroy_flags


def _var_file_args(var_files: Sequence[str]) -> List[str]:
    """One '-var-file=' flag per file, keeping the caller's order."""
    return [f"-var-file={path}" for path in var_files]


def _local_state_args(state_path: str, backup_path: str) -> List[str]:
    """Flags that make the local state file both input and output of the run."""
    return [
        f"-state={state_path}",
        f"-state-out={state_path}",
        f"-backup={backup_path}",
    ]


def _uses_local_state(mode: StateMode, local_state_exists: bool) -> bool:
    return not mode.is_remote and local_state_exists


def init_args() -> List[str]:
    return _make_base_command("init") + ["."]


def pull_state_args() -> List[str]:
    return ["pull"]


def plan_args(
    *,
    mode: StateMode,
    plan_path: str,
    local_state_path: str,
    local_state_exists: bool,
    var_files: Sequence[str],
) -> List[str]:
    """Arguments for 'terraform plan'.

    The plan is always written to `plan_path`. An existing local state file is passed
    explicitly unless state is tracked by a remote backend.
    """
    args = _make_base_command("plan") + [f"-out={plan_path}"]
    args += _var_file_args(var_files)
    if _uses_local_state(mode, local_state_exists):
        args.append(f"-state={local_state_path}")
    return args


def apply_args(
    *,
    mode: StateMode,
    plan_path: str,
    plan_exists: bool,
    local_state_path: str,
    local_state_exists: bool,
    backup_path: str,
    var_files: Sequence[str],
) -> List[str]:
    """Arguments for 'terraform apply'.

    Two mutually exclusive branches, with existing local state winning:
      1) local mode + local state on disk => var files, -state/-state-out/-backup.
      2) otherwise, a plan artifact on disk => [-state-out (local only)] <plan_path>.
    With neither, only the base flags are passed.
    """
    args = _make_base_command("apply")

    if _uses_local_state(mode, local_state_exists):
        args += _var_file_args(var_files)
        args += _local_state_args(local_state_path, backup_path)
    elif plan_exists:
        if not mode.is_remote:
            args.append(f"-state-out={local_state_path}")
        args.append(plan_path)

    return args


def destroy_args(
    *,
    mode: StateMode,
    local_state_path: str,
    local_state_exists: bool,
    backup_path: str,
    var_files: Sequence[str],
) -> List[str]:
    """Arguments for 'terraform destroy'. Var files are always passed."""
    args = _make_base_command("destroy") + _var_file_args(var_files)
    if _uses_local_state(mode, local_state_exists):
        args += _local_state_args(local_state_path, backup_path)
    return args


def show_args(path: Optional[str]) -> List[str]:
    args = _make_base_command("show")
    if path:
        args.append(path)
    return args
