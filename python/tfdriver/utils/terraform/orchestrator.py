"""
tfdriver/utils/terraform/orchestrator.py

The Terraform façade: init, pull_state, plan, apply, destroy, show and ensure.

Each operation runs exactly one terraform process (apply/destroy in remote mode run a
second one, 'state pull', after the first succeeds). Flags are chosen from the state
mode detected during init and from which artifacts already exist under
'<dir>/<resource>/'. Failures propagate; nothing is retried.

An instance is meant to be driven sequentially. Overlapping calls against the same
working directory share state files without any locking.
"""

from __future__ import annotations

import os
import shutil
import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

import aiofiles.os

from tfdriver.errors import DownloadError, StateModeConflictError
from tfdriver.models.terraform import Plan, State, StateMode, TerraformConfig
from tfdriver.utils.async_command_runner import CommandResult, build_env, run_command
from tfdriver.utils.downloader import Downloader
from tfdriver.utils.secure_output import SecureOutput
from tfdriver.utils.terraform.commands import (
    apply_args,
    destroy_args,
    init_args,
    plan_args,
    pull_state_args,
    show_args,
)
from tfdriver.utils.terraform.detection import detect_state_mode
from tfdriver.utils.terraform.paths import ArtifactPaths
from tfdriver.utils.terraform.storage import (
    ensure_resource_dir,
    free_backup_path,
    rotate_to_backup,
    write_state_file,
)

logger = logging.getLogger(__name__)


class Terraform:
    """Runs the terraform binary for one resource configuration.

    Attributes:
        config (TerraformConfig): Binary path, file names and env prefix.
    """

    def __init__(
        self,
        config: Optional[TerraformConfig] = None,
        vars: Optional[Dict[str, Any]] = None,
        var_files: Optional[List[str]] = None,
        logger: Optional[logging.Logger] = None,
        downloader: Optional[Downloader] = None,
    ) -> None:
        """
        Initialize a Terraform orchestrator.

        Args:
            config (Optional[TerraformConfig]): Settings. Defaults to TerraformConfig().
            vars (Optional[Dict[str, Any]]): Variables exported as '<prefix>_<name>'.
            var_files (Optional[List[str]]): Var files relative to the working dir, in
                precedence order.
            logger (Optional[logging.Logger]): Receives a debug record before each command.
            downloader (Optional[Downloader]): Used by ensure(). Defaults to Downloader().
        """
        self.config = config or TerraformConfig()
        self._vars: Dict[str, Any] = dict(vars or {})
        self._var_files: List[str] = list(var_files or [])
        self._logger = logger
        self._downloader = downloader
        self._mode = StateMode.UNKNOWN

    # -------------- variables & settings ----------------

    def has_var(self, name: str) -> bool:
        return name in self._vars

    def get_var(self, name: str, default: Any = None) -> Any:
        return self._vars.get(name, default)

    def set_var(self, name: str, value: Any) -> Terraform:
        self._vars[name] = value
        return self

    def set_vars(self, vars: Dict[str, Any]) -> Terraform:
        self._vars = dict(vars)
        return self

    @property
    def vars(self) -> Dict[str, Any]:
        return self._vars

    @property
    def var_files(self) -> List[str]:
        return self._var_files

    @property
    def binary(self) -> str:
        return os.path.abspath(self.config.binary)

    @property
    def resource(self) -> str:
        return self.config.resource

    @property
    def env(self) -> Dict[str, str]:
        """Variables as they are exported to the child process."""
        return build_env(self._vars, self.config.env_prefix)

    @property
    def mode(self) -> StateMode:
        return self._mode

    @property
    def logger(self) -> Optional[logging.Logger]:
        return self._logger

    def set_logger(self, logger: Optional[logging.Logger]) -> Terraform:
        self._logger = logger
        return self

    def paths(self, dir: str) -> ArtifactPaths:
        return ArtifactPaths(dir, self.config)

    # -------------- process execution ----------------

    async def run(
        self, command: str, args: List[str], cwd: Optional[str] = None
    ) -> CommandResult:
        """Run '<binary> <command> <args...>' in `cwd` with the exported variables."""
        return await run_command(
            self.binary,
            command,
            args,
            cwd=cwd,
            env=self.env,
            logger=self._logger,
        )

    async def _prepare(self, dir: str) -> ArtifactPaths:
        await ensure_resource_dir(dir, self.resource)
        return self.paths(dir)

    def _var_file_paths(self, paths: ArtifactPaths) -> List[str]:
        return [paths.var_file_path(name) for name in self._var_files]

    # -------------- lifecycle ----------------

    async def init(self, dir: str) -> None:
        """Create the resource dir, run 'terraform init -no-color .' and detect the state mode.

        Repeated calls re-check the backend metadata. The mode never changes once set.

        Raises:
            ExecutionError: If terraform init fails.
            StateModeConflictError: If a later init detects a different mode.
        """
        await self._prepare(dir)
        await self.run("init", init_args(), dir)
        detected = await detect_state_mode(dir, self.config.state_file)

        if self._mode is not StateMode.UNKNOWN and detected is not self._mode:
            raise StateModeConflictError(
                f"State mode for {dir} was {self._mode.value}, "
                f"but init now detects {detected.value}."
            )

        if self._mode is StateMode.UNKNOWN:
            logger.info("Using %s state for %s", detected.value, dir)
        self._mode = detected

    async def pull_state(self, dir: str) -> None:
        """Run 'terraform state pull' and, for remote state, mirror it locally.

        An existing mirror is moved to a backup path before the new content is written.
        """
        paths = await self._prepare(dir)
        result = await self.run("state", pull_state_args(), dir)

        if not (self._mode.is_remote and result.output):
            return

        backup_path = await rotate_to_backup(paths.remote_state_path, paths)
        if backup_path:
            logger.info("Previous remote state mirror saved to %s", backup_path)
        await write_state_file(paths.remote_state_path, result.output)

    async def plan(self, dir: str) -> Plan:
        """Run 'terraform plan', writing the plan artifact under the resource dir.

        Returns:
            Plan: The artifact path and the captured plan output.
        """
        paths = await self._prepare(dir)
        args = plan_args(
            mode=self._mode,
            plan_path=paths.plan_path,
            local_state_path=paths.local_state_path,
            local_state_exists=await aiofiles.os.path.isfile(paths.local_state_path),
            var_files=self._var_file_paths(paths),
        )
        result = await self.run("plan", args, dir)
        return Plan(path=paths.plan_path, output=result.output)

    async def apply(self, dir: str) -> State:
        """Run 'terraform apply -auto-approve' against local state or a saved plan.

        Returns:
            State: The remote mirror (remote mode, after a pull) or the local state file,
            paired with the backup path used for this run.
        """
        paths = await self._prepare(dir)
        backup_path = await free_backup_path(paths)
        args = apply_args(
            mode=self._mode,
            plan_path=paths.plan_path,
            plan_exists=await aiofiles.os.path.isfile(paths.plan_path),
            local_state_path=paths.local_state_path,
            local_state_exists=await aiofiles.os.path.isfile(paths.local_state_path),
            backup_path=backup_path,
            var_files=self._var_file_paths(paths),
        )
        await self.run("apply", args, dir)

        if self._mode.is_remote:
            await self.pull_state(dir)
            return State(path=paths.remote_state_path, backup_path=backup_path)

        return State(path=paths.local_state_path, backup_path=backup_path)

    async def destroy(self, dir: str) -> State:
        """Run 'terraform destroy -force'. Remote state is pulled afterwards.

        Returns:
            State: The local state path paired with the backup path used for this run.
        """
        paths = await self._prepare(dir)
        backup_path = await free_backup_path(paths)
        args = destroy_args(
            mode=self._mode,
            local_state_path=paths.local_state_path,
            local_state_exists=await aiofiles.os.path.isfile(paths.local_state_path),
            backup_path=backup_path,
            var_files=self._var_file_paths(paths),
        )
        await self.run("destroy", args, dir)

        state = State(path=paths.local_state_path, backup_path=backup_path)
        if self._mode.is_remote:
            await self.pull_state(dir)
        return state

    async def show(self, plan_or_state: Union[Plan, State], redact: bool = True) -> str:
        """Run 'terraform show' for a plan or state handle.

        Args:
            plan_or_state (Union[Plan, State]): The artifact to render. Its directory is
                used as the working directory.
            redact (bool): If True, pass the output through SecureOutput.

        Returns:
            str: The rendered output.
        """
        result = await self.run(
            "show", show_args(plan_or_state.path), plan_or_state.dir
        )
        return SecureOutput.secure(result.output) if redact else result.output

    async def ensure(self, version: Optional[str] = None) -> None:
        """Make sure the configured binary exists, downloading it if needed.

        Args:
            version (Optional[str]): Terraform version. Defaults to config.version.

        Raises:
            DownloadError: If the binary cannot be fetched or moved into place.
        """
        if await aiofiles.os.path.exists(self.binary):
            return

        bin_dir = os.path.dirname(self.binary)
        downloader = self._downloader or Downloader()
        real_path = await downloader.download(
            bin_dir, version or self.config.version, file_name=self.config.bin_file
        )

        if os.path.abspath(real_path) == self.binary:
            return

        try:
            await asyncio.to_thread(shutil.move, real_path, self.binary)
        except OSError as exc:
            raise DownloadError(
                f"Failed to move {real_path} to {self.binary}: {exc}"
            ) from exc
