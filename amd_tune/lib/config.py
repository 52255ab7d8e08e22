"""
Runtime configuration — filesystem roots and the escalation helper.

Everything the tools touch lives under three mount points (/sys, /proc, /etc).
Each one can be redirected with an environment variable so the whole tool
can run against a fake tree:

  AMD_TUNE_SYSFS_ROOT   (default /sys)
  AMD_TUNE_PROCFS_ROOT  (default /proc)
  AMD_TUNE_ETC_ROOT     (default /etc)
  AMD_TUNE_ESCALATE     (default sudo)   helper used for privileged writes
  AMD_TUNE_LOG_DIR      (default unset)  tee console output to a log file

Config is read once per invocation by the CLI and passed down explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Config:
    sysfs_root: Path = Path("/sys")
    procfs_root: Path = Path("/proc")
    etc_root: Path = Path("/etc")
    escalate: str = "sudo"
    log_dir: Path | None = None

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Config":
        env = os.environ if environ is None else environ
        log_dir = env.get("AMD_TUNE_LOG_DIR")
        return cls(
            sysfs_root=Path(env.get("AMD_TUNE_SYSFS_ROOT", "/sys")),
            procfs_root=Path(env.get("AMD_TUNE_PROCFS_ROOT", "/proc")),
            etc_root=Path(env.get("AMD_TUNE_ETC_ROOT", "/etc")),
            escalate=env.get("AMD_TUNE_ESCALATE", "sudo"),
            log_dir=Path(log_dir) if log_dir else None,
        )

    # ── Well-known locations ──

    @property
    def cpu_base(self) -> Path:
        return self.sysfs_root / "devices" / "system" / "cpu"

    @property
    def boost_file(self) -> Path:
        return self.cpu_base / "cpufreq" / "boost"

    @property
    def drm_base(self) -> Path:
        return self.sysfs_root / "class" / "drm"

    @property
    def cpuinfo(self) -> Path:
        return self.procfs_root / "cpuinfo"

    @property
    def cmdline(self) -> Path:
        return self.procfs_root / "cmdline"

    @property
    def modprobe_conf(self) -> Path:
        return self.etc_root / "modprobe.d" / "amdgpu.conf"
