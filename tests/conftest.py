"""Fake /sys, /proc and /etc trees for exercising amd_tune without hardware."""

from __future__ import annotations

from pathlib import Path

import pytest

from amd_tune.lib.config import Config
from amd_tune.lib.privilege import DirectWrite

AMD_CPUINFO = """\
processor\t: 0
vendor_id\t: AuthenticAMD
model name\t: AMD Ryzen 7 5800X 8-Core Processor
cpu cores\t: 8

processor\t: 1
vendor_id\t: AuthenticAMD
model name\t: AMD Ryzen 7 5800X 8-Core Processor
cpu cores\t: 8
"""

INTEL_CPUINFO = """\
processor\t: 0
vendor_id\t: GenuineIntel
model name\t: Intel(R) Core(TM) i7-8700K CPU @ 3.70GHz
cpu cores\t: 6
"""

SCLK = "0: 500Mhz \n1: 1200Mhz *\n2: 2100Mhz \n"
MCLK = "0: 96Mhz \n1: 1000Mhz *\n"
PCIE = "0: 2.5GT/s, x8 \n1: 16.0GT/s, x16 *\n"
PROFILES = """\
PROFILE_INDEX(NAME) CLOCK_TYPE(NAME) FPS MinFreqType MinActiveFreqType MinActiveFreq
 0 BOOTUP_DEFAULT :
                    0(       GFXCLK)       0       5       1       0       4     800
 1 3D_FULL_SCREEN*:
                    0(       GFXCLK)       0       5       1       0       4     650
 2   POWER_SAVING :
 3          VIDEO :
 4             VR :
 5        COMPUTE :
 6         CUSTOM :
"""

PROFILES_SMU13 = """\
                              BOOTUP_DEFAULT  3D_FULL_SCREEN* POWER_SAVING    VIDEO           VR              COMPUTE         CUSTOM          
BusyThreshold                 0               10              0               0               0               0               0               
MinActiveFreqType             0               0               0               0               0               0               0               
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class FakeHost:
    """Builds a sysfs/procfs/etc layout under a temporary directory."""

    def __init__(self, root: Path):
        self.root = root
        self.sys = root / "sys"
        self.proc = root / "proc"
        self.etc = root / "etc"
        self.sys.mkdir()
        self.proc.mkdir()
        self.etc.mkdir()

    @property
    def config(self) -> Config:
        return Config(sysfs_root=self.sys, procfs_root=self.proc, etc_root=self.etc)

    @property
    def cpu_base(self) -> Path:
        return self.sys / "devices" / "system" / "cpu"

    def cpuinfo(self, text: str = AMD_CPUINFO) -> None:
        _write(self.proc / "cpuinfo", text)

    def add_core(self, n: int, governor: str | None = "schedutil", cur_khz: int | None = 3400000) -> Path:
        core = self.cpu_base / f"cpu{n}"
        core.mkdir(parents=True, exist_ok=True)
        freq = core / "cpufreq"
        if governor is not None:
            _write(freq / "scaling_governor", f"{governor}\n")
            _write(freq / "scaling_available_governors", "performance powersave\n")
            _write(freq / "scaling_driver", "amd-pstate-epp\n")
            _write(freq / "cpuinfo_min_freq", "400000\n")
            _write(freq / "cpuinfo_max_freq", "4850000\n")
        if cur_khz is not None:
            _write(freq / "scaling_cur_freq", f"{cur_khz}\n")
        return core

    def boost(self, value: str = "1") -> Path:
        return _write(self.cpu_base / "cpufreq" / "boost", f"{value}\n")

    def add_card(
        self,
        n: int,
        vendor: str = "0x1002",
        perf_level: str | None = "auto",
        profiles: str | None = PROFILES,
        temp_milli: int | None = 45000,
        tables: bool = True,
    ) -> Path:
        dev = self.sys / "class" / "drm" / f"card{n}" / "device"
        _write(dev / "vendor", f"{vendor}\n")
        if perf_level is not None:
            _write(dev / "power_dpm_force_performance_level", f"{perf_level}\n")
        if profiles is not None:
            _write(dev / "pp_power_profile_mode", profiles)
        if tables:
            _write(dev / "pp_dpm_sclk", SCLK)
            _write(dev / "pp_dpm_mclk", MCLK)
            _write(dev / "pp_dpm_pcie", PCIE)
        if temp_milli is not None:
            _write(dev / "hwmon" / "hwmon3" / "temp1_input", f"{temp_milli}\n")
        return dev

    def add_connector(self, name: str) -> None:
        (self.sys / "class" / "drm" / name).mkdir(parents=True, exist_ok=True)


class RecordingWriter(DirectWrite):
    """DirectWrite that records every call and can fail for chosen paths."""

    def __init__(self, fail: set[Path] | None = None):
        self.calls: list[tuple[Path, str]] = []
        self.fail = fail or set()

    def write(self, path: Path, value: str) -> None:
        self.calls.append((path, value))
        if path in self.fail:
            raise OSError(22, "Invalid argument", str(path))
        super().write(path, value)


@pytest.fixture
def host(tmp_path, monkeypatch) -> FakeHost:
    h = FakeHost(tmp_path)
    monkeypatch.setenv("AMD_TUNE_SYSFS_ROOT", str(h.sys))
    monkeypatch.setenv("AMD_TUNE_PROCFS_ROOT", str(h.proc))
    monkeypatch.setenv("AMD_TUNE_ETC_ROOT", str(h.etc))
    monkeypatch.delenv("AMD_TUNE_LOG_DIR", raising=False)
    monkeypatch.setenv("NO_COLOR", "1")
    return h


@pytest.fixture
def recorder() -> RecordingWriter:
    return RecordingWriter()
