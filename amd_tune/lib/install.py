"""
Companion-tool installation through the host package manager.

Managers are probed in a fixed order: pacman, apt, dnf. The first one found
on PATH is used; its command list runs in sequence (through the escalation
helper when not root) and stops at the first non-zero exit.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass

from amd_tune.lib.privilege import escalate_command

MANAGER_ORDER = ("pacman", "apt", "dnf")

PACKAGES: dict[str, dict[str, list[list[str]]]] = {
    "cpu": {
        "pacman": [["pacman", "-S", "--noconfirm", "cpupower"]],
        "apt": [["apt", "update"], ["apt", "install", "-y", "linux-cpupower"]],
        "dnf": [["dnf", "install", "-y", "kernel-tools"]],
    },
    "gpu": {
        "pacman": [["pacman", "-S", "--noconfirm", "mesa", "vulkan-radeon",
                    "lib32-mesa", "lib32-vulkan-radeon", "radeontop"]],
        "apt": [["apt", "update"], ["apt", "install", "-y", "mesa-utils", "vulkan-tools", "radeontop"]],
        "dnf": [["dnf", "install", "-y", "mesa-dri-drivers", "vulkan-tools", "radeontop"]],
    },
}


@dataclass
class InstallResult:
    manager: str | None
    ok: bool
    failed_command: list[str] | None = None
    returncode: int = 0


def detect_manager() -> str | None:
    for name in MANAGER_ORDER:
        if shutil.which(name):
            return name
    return None


def install_tools(tool: str, privileged: bool, helper: str = "sudo") -> InstallResult:
    """Install the companion packages for `tool` ("cpu" or "gpu")."""
    manager = detect_manager()
    if manager is None:
        return InstallResult(manager=None, ok=False)

    for argv in PACKAGES[tool][manager]:
        cmd = escalate_command(argv, privileged, helper)
        try:
            proc = subprocess.run(cmd, check=False)
        except OSError:
            return InstallResult(manager, ok=False, failed_command=cmd, returncode=127)
        if proc.returncode != 0:
            return InstallResult(manager, ok=False, failed_command=cmd, returncode=proc.returncode)
    return InstallResult(manager, ok=True)
