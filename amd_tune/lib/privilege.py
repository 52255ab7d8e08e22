"""
Privileged write capability.

Two implementations share one method, write(path, value):

  DirectWrite     open the control file and write the value. Used when the
                  process already runs as root.
  EscalatedWrite  try the direct write first; on PermissionError pipe the
                  value through `<helper> tee <path>` (helper = sudo by
                  default). The helper may prompt for a password on the
                  terminal and blocks until it is answered.

The root check happens once, in make_writer(), and the caller keeps the
returned writer for the whole run.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

from amd_tune.lib.errors import EscalationError


def is_privileged() -> bool:
    """True when running with effective uid 0."""
    return os.geteuid() == 0


class DirectWrite:
    """Write straight to the file. Any OSError propagates to the caller."""

    def write(self, path: Path, value: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"{value}\n")


class EscalatedWrite(DirectWrite):
    """Direct write, falling back to the escalation helper on EACCES/EPERM."""

    def __init__(self, helper: str = "sudo"):
        self.helper = helper

    def write(self, path: Path, value: str) -> None:
        try:
            super().write(path, value)
        except PermissionError:
            self._escalate(path, value)

    def _escalate(self, path: Path, value: str) -> None:
        exe = shutil.which(self.helper)
        if exe is None:
            raise EscalationError(self.helper, str(path), "escalation helper not installed")
        proc = subprocess.run(
            [exe, "tee", str(path)],
            input=f"{value}\n",
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
        )
        if proc.returncode != 0:
            reason = proc.stderr.strip() or f"exit status {proc.returncode}"
            raise EscalationError(self.helper, str(path), reason)


def make_writer(privileged: bool, helper: str = "sudo") -> DirectWrite:
    """Pick the write implementation for this process."""
    if privileged:
        return DirectWrite()
    return EscalatedWrite(helper)


def escalate_command(argv: list[str], privileged: bool, helper: str = "sudo") -> list[str]:
    """Prefix a command with the escalation helper unless already root."""
    if privileged:
        return list(argv)
    return [helper, *argv]
