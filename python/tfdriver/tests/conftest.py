"""Shared fixtures: a fake terraform executable that records how it was called."""

import json
import os
import stat
import sys
from typing import Any, Dict, List

import pytest

from tfdriver.models.terraform import TerraformConfig
from tfdriver.utils.terraform import Terraform

# Behaviour is driven by environment variables so each test can configure it with
# monkeypatch.setenv:
#   FAKE_TF_LOG        file receiving one JSON line per invocation
#   FAKE_TF_FAIL       subcommand that exits 1 with "boom" on stderr
#   FAKE_TF_BACKEND    backend type written to .terraform/terraform.tfstate on init
#   FAKE_TF_PULL       stdout of 'state pull'
#   FAKE_TF_NEW_STATE  content written to -state-out on apply/destroy
FAKE_TERRAFORM = """
import json, os, shutil, sys

args = sys.argv[1:]
log = os.environ.get("FAKE_TF_LOG")
if log:
    with open(log, "a") as f:
        f.write(json.dumps({
            "argv": args,
            "cwd": os.getcwd(),
            "env": {k: v for k, v in os.environ.items() if k.startswith("TF_VAR_")},
        }) + "\\n")

command = args[0] if args else ""
if os.environ.get("FAKE_TF_FAIL") == command:
    sys.stderr.write("boom\\n")
    sys.exit(1)

flags = dict(a[1:].split("=", 1) for a in args[1:] if a.startswith("-") and "=" in a)
positional = [a for a in args[1:] if not a.startswith("-")]

if command == "init":
    backend = os.environ.get("FAKE_TF_BACKEND")
    if backend:
        os.makedirs(".terraform", exist_ok=True)
        with open(os.path.join(".terraform", "terraform.tfstate"), "w") as f:
            json.dump({"version": 3, "backend": {"type": backend, "config": {}}}, f)
    print("Terraform has been successfully initialized!")
elif command == "state":
    sys.stdout.write(os.environ.get("FAKE_TF_PULL", ""))
elif command == "plan":
    with open(flags["out"], "wb") as f:
        f.write(b"PLAN")
    print("Plan: 1 to add, 0 to change, 0 to destroy.")
elif command in ("apply", "destroy"):
    state = flags.get("state")
    if state and "backup" in flags and os.path.exists(state):
        shutil.copyfile(state, flags["backup"])
    if "state-out" in flags:
        with open(flags["state-out"], "w") as f:
            f.write(os.environ.get("FAKE_TF_NEW_STATE", "S2"))
    print(command.capitalize() + " complete!")
elif command == "show":
    print('password = "hunter2"')
    print("target: " + (positional[0] if positional else "-"))
"""


class FakeTerraform:
    """Handle on the fake binary and its invocation log."""

    def __init__(self, binary: str, log_path: str) -> None:
        self.binary = binary
        self.log_path = log_path

    def calls(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.log_path):
            return []
        with open(self.log_path) as f:
            return [json.loads(line) for line in f if line.strip()]

    def argvs(self) -> List[List[str]]:
        return [call["argv"] for call in self.calls()]

    def commands(self) -> List[str]:
        return [argv[0] for argv in self.argvs()]


@pytest.fixture
def fake_terraform(tmp_path, monkeypatch):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "fake_terraform.py"
    script.write_text(FAKE_TERRAFORM)

    binary = bin_dir / "terraform"
    binary.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{script}" "$@"\n')
    binary.chmod(binary.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    log_path = tmp_path / "calls.jsonl"
    monkeypatch.setenv("FAKE_TF_LOG", str(log_path))
    for name in ("FAKE_TF_FAIL", "FAKE_TF_BACKEND", "FAKE_TF_PULL", "FAKE_TF_NEW_STATE"):
        monkeypatch.delenv(name, raising=False)

    return FakeTerraform(str(binary), str(log_path))


@pytest.fixture
def workdir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    (path / "main.tf").write_text('variable "region" {}\n')
    return str(path)


@pytest.fixture
def config(fake_terraform):
    return TerraformConfig(binary=fake_terraform.binary)


@pytest.fixture
def tf(config):
    return Terraform(config=config)
