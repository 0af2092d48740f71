"""
tfdriver/utils/async_command_runner.py

Provides an asynchronous runner for the terraform binary. Each call spawns exactly one
child process, waits for it, and either returns the captured stdout or raises
ExecutionError. There is no retry or timeout: callers wanting either wrap the call.

Caller variables are exported to the child as '<prefix>_<name>' on top of the
inherited process environment (see build_env).

Usage example:
    from tfdriver.utils.async_command_runner import run_command, build_env
    from tfdriver.errors import ExecutionError

    try:
        result = await run_command(
            "/opt/bin/terraform",
            "plan",
            ["-no-color", "-out=/work/.resource/terraform.tfplan"],
            cwd="/work",
            env=build_env({"region": "eu-west-1"}, "TF_VAR"),
        )
        print(result.output)
    except ExecutionError as err:
        print(f"Command failed: {err}")
"""

from __future__ import annotations

import os
import json
import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from tfdriver.errors import ExecutionError


class CommandResult(BaseModel):
    """Outcome of a successful command.

    Attributes:
        exit_code (int): The process exit code (always 0 for a returned result).
        output (str): Captured stdout, trailing whitespace removed.
    """

    model_config = ConfigDict(frozen=True)

    exit_code: int
    output: str


def _env_value(value: Any) -> str:
    """Render a variable value the way Terraform reads TF_VAR_* entries."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def build_env(variables: Optional[Mapping[str, Any]], prefix: str) -> Dict[str, str]:
    """Map caller variables to prefixed environment entries.

    Args:
        variables (Optional[Mapping[str, Any]]): Variable name -> value.
        prefix (str): Fixed prefix, e.g. 'TF_VAR'.

    Returns:
        Dict[str, str]: e.g. {"TF_VAR_region": "eu-west-1"}.
    """
    return {
        f"{prefix}_{name}": _env_value(value)
        for name, value in (variables or {}).items()
    }


def list_file_names(cwd: str) -> List[str]:
    """List every file below cwd as sorted relative paths (empty if cwd is missing)."""
    if not os.path.isdir(cwd):
        return []
    return sorted(
        os.path.relpath(os.path.join(root, name), cwd)
        for root, _dirs, files in os.walk(cwd)
        for name in files
    )


async def run_command(
    binary: str,
    command: str,
    args: List[str],
    *,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    logger: Optional[logging.Logger] = None,
) -> CommandResult:
    """
    Executes '<binary> <command> <args...>' in a subprocess, asynchronously.

    If `logger` is given, a debug record with the command, args and a snapshot of the
    file names under `cwd` is emitted before spawning. It never changes control flow.

    Args:
        binary (str):
            Path to the executable.
        command (str):
            The subcommand, e.g. "init" or "state".
        args (List[str]):
            Arguments after the subcommand.
        cwd (Optional[str]):
            Working directory for the process. Defaults to the current directory.
        env (Optional[Dict[str, str]]):
            Entries to add to (or override in) the inherited environment.
        logger (Optional[logging.Logger]):
            Receives the structured debug record.

    Returns:
        CommandResult: exit code and captured stdout.

    Raises:
        ExecutionError: If the process exits non-zero or cannot be spawned.
    """
    workdir = cwd or os.getcwd()
    full_command = f"{binary} {command}"

    if logger is not None and logger.isEnabledFor(logging.DEBUG):
        record = {
            "command": full_command,
            "args": list(args),
            "file_names": list_file_names(workdir),
        }
        logger.debug("Running %s", record, extra={"terraform": record})

    proc_env = os.environ.copy()
    if env:
        proc_env.update(env)

    try:
        proc = await asyncio.create_subprocess_exec(
            binary,
            command,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=proc_env,
            cwd=workdir,
        )
    except OSError as exc:
        raise ExecutionError(full_command, args, str(exc)) from exc

    stdout_bytes, stderr_bytes = await proc.communicate()
    stdout_str = stdout_bytes.decode(errors="replace").rstrip()
    stderr_str = stderr_bytes.decode(errors="replace").strip()

    if proc.returncode != 0:
        raise ExecutionError(full_command, args, stderr_str, proc.returncode)

    return CommandResult(exit_code=proc.returncode, output=stdout_str)
