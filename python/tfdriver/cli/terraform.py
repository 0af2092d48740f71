#!/usr/bin/env python3
"""
tfdriver/cli/terraform.py

CLI over the Terraform orchestrator:

  1) "init":    Run terraform init and report the detected state mode.
  2) "plan":    Init, then write a plan artifact under the resource dir.
  3) "apply":   Init, then apply local state or the saved plan.
  4) "destroy": Init, then destroy.
  5) "show":    Render a plan or state file, redacted unless --no-redact. Without
                --path, init first and show the remote mirror or the local state.
  6) "ensure":  Download the terraform binary if it is missing.
"""

from __future__ import annotations
import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, Dict, List

from tfdriver.errors import TerraformError
from tfdriver.models.terraform import State, TerraformConfig
from tfdriver.utils.terraform import Terraform


def _parse_vars(pairs: List[str]) -> Dict[str, Any]:
    """Turn ['name=value', ...] into a dict; exits on a malformed pair."""
    result: Dict[str, Any] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            print(f"Invalid --var '{pair}', expected NAME=VALUE", file=sys.stderr)
            sys.exit(1)
        result[name] = value
    return result


def _build_terraform(args: argparse.Namespace) -> Terraform:
    config_kwargs: Dict[str, Any] = {"resource": args.resource}
    if args.binary:
        config_kwargs["binary"] = args.binary
    try:
        config = TerraformConfig(**config_kwargs)
    except ValueError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        sys.exit(1)

    return Terraform(
        config=config,
        vars=_parse_vars(args.var),
        var_files=args.var_file,
        logger=logging.getLogger("tfdriver.commands"),
    )


async def _run_init(args: argparse.Namespace) -> None:
    tf = _build_terraform(args)
    await tf.init(args.dir)
    print(f"State mode: {tf.mode.value}")


async def _run_plan(args: argparse.Namespace) -> None:
    tf = _build_terraform(args)
    await tf.init(args.dir)
    plan = await tf.plan(args.dir)
    print(json.dumps(plan.model_dump(), indent=2))


async def _run_apply(args: argparse.Namespace) -> None:
    tf = _build_terraform(args)
    await tf.init(args.dir)
    state = await tf.apply(args.dir)
    print(json.dumps(state.model_dump(), indent=2))


async def _run_destroy(args: argparse.Namespace) -> None:
    tf = _build_terraform(args)
    await tf.init(args.dir)
    state = await tf.destroy(args.dir)
    print(json.dumps(state.model_dump(), indent=2))


async def _run_show(args: argparse.Namespace) -> None:
    tf = _build_terraform(args)
    if args.path:
        target = State(path=os.path.abspath(args.path))
    else:
        await tf.init(args.dir)
        paths = tf.paths(args.dir)
        if tf.mode.is_remote:
            target = State(path=paths.remote_state_path)
        else:
            target = State(path=paths.local_state_path)
    print(await tf.show(target, redact=not args.no_redact))


async def _run_ensure(args: argparse.Namespace) -> None:
    tf = _build_terraform(args)
    await tf.ensure(args.version)
    print(f"Terraform available at {tf.binary}")


def _add_common_args(sub: argparse.ArgumentParser) -> None:
    sub.add_argument(
        "--dir",
        type=os.path.abspath,
        default=os.getcwd(),
        help="Terraform working directory (default: current directory).",
    )
    sub.add_argument(
        "--binary",
        default=None,
        help="Path to the terraform binary (default: ./bin/terraform).",
    )
    sub.add_argument(
        "--resource",
        default=".resource",
        help="Artifact subdirectory under --dir (default: .resource).",
    )
    sub.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Variable exported as TF_VAR_NAME. Repeatable.",
    )
    sub.add_argument(
        "--var-file",
        action="append",
        default=[],
        help="Var file relative to --dir. Repeatable, later files win.",
    )


def main() -> None:
    """CLI entry point for driving terraform through tfdriver."""
    parser = argparse.ArgumentParser(
        prog="tfdriver",
        description="Run terraform init/plan/apply/destroy/show with managed state artifacts.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING). DEBUG prints each command line.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Run terraform init.")
    _add_common_args(init_parser)
    init_parser.set_defaults(func=_run_init)

    plan_parser = subparsers.add_parser("plan", help="Init, then plan.")
    _add_common_args(plan_parser)
    plan_parser.set_defaults(func=_run_plan)

    apply_parser = subparsers.add_parser("apply", help="Init, then apply.")
    _add_common_args(apply_parser)
    apply_parser.set_defaults(func=_run_apply)

    destroy_parser = subparsers.add_parser("destroy", help="Init, then destroy.")
    _add_common_args(destroy_parser)
    destroy_parser.set_defaults(func=_run_destroy)

    show_parser = subparsers.add_parser(
        "show", help="Render a plan or state file through terraform show."
    )
    _add_common_args(show_parser)
    show_parser.add_argument(
        "--path",
        default=None,
        help="Plan or state file to show (default: init, then the local state file or the remote mirror under --dir).",
    )
    show_parser.add_argument(
        "--no-redact",
        action="store_true",
        default=False,
        help="Print the raw output without redacting secrets.",
    )
    show_parser.set_defaults(func=_run_show)

    ensure_parser = subparsers.add_parser(
        "ensure", help="Download the terraform binary if missing."
    )
    _add_common_args(ensure_parser)
    ensure_parser.add_argument(
        "--version",
        default=None,
        help="Terraform version to download (default: the configured version).",
    )
    ensure_parser.set_defaults(func=_run_ensure)

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    try:
        asyncio.run(args.func(args))
    except (TerraformError, OSError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
