"""
AMD CPU enumeration, status snapshot and modes.

Devices:
  - one Device per logical core (sysfs cpu<N> directory), in numeric order,
    carrying the `governor` control (cpufreq/scaling_governor)
  - one 'system' Device carrying the global `boost` control
    (cpu/cpufreq/boost), since boost is not per-core on amd-pstate/acpi-cpufreq

The core count is whatever cpu<N> directories exist.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import psutil

from amd_tune.lib.config import Config
from amd_tune.lib.sysfs import UNAVAILABLE, index_sort_key, khz_to_mhz, read_attr, read_int
from amd_tune.lib.writer import Device

AMD_VENDOR_ID = "AuthenticAMD"

_CORE_DIR = re.compile(r"^cpu\d+$")

# verb → ordered (attribute, value) writes
MODES: dict[str, list[tuple[str, str]]] = {
    "performance": [("governor", "performance")],
    "powersave": [("governor", "powersave")],
    "boost-on": [("boost", "1")],
    "boost-off": [("boost", "0")],
}


# ── Detection ──

def _cpuinfo_field(text: str, key: str) -> str | None:
    m = re.search(rf"^{re.escape(key)}\s*:\s*(.+)$", text, re.MULTILINE)
    return m.group(1).strip() if m else None


def detect_amd_cpu(cfg: Config) -> bool:
    return AMD_VENDOR_ID in read_attr(cfg.cpuinfo, default="")


def cpu_vendor(cfg: Config) -> str:
    return _cpuinfo_field(read_attr(cfg.cpuinfo, default=""), "vendor_id") or "Unknown"


def list_cores(cfg: Config) -> list[Device]:
    """Every logical core directory, ordered cpu0, cpu1, ..., cpu10."""
    try:
        entries = [p for p in cfg.cpu_base.iterdir() if _CORE_DIR.match(p.name) and p.is_dir()]
    except OSError:
        return []
    entries.sort(key=lambda p: index_sort_key(p, "cpu"))
    return [
        Device(
            name=p.name,
            kind="cpu",
            path=p,
            controls={"governor": p / "cpufreq" / "scaling_governor"},
        )
        for p in entries
    ]


def system_device(cfg: Config) -> Device:
    return Device(name="system", kind="cpu", path=cfg.cpu_base, controls={"boost": cfg.boost_file})


def devices_for(cfg: Config, attribute: str) -> list[Device]:
    """Devices that carry a control attribute: the system device for boost, every core otherwise."""
    if attribute == "boost":
        return [system_device(cfg)]
    return list_cores(cfg)


# ── Status snapshot ──

@dataclass
class CoreFrequency:
    core: str
    mhz: int


@dataclass
class CpuStatus:
    """Point-in-time CPU report. Missing attributes hold UNAVAILABLE / None."""

    model: str = UNAVAILABLE
    vendor: str = UNAVAILABLE
    cores: int | None = None
    threads: int | None = None
    driver: str = UNAVAILABLE
    governor: str = UNAVAILABLE
    available_governors: list[str] = field(default_factory=list)
    boost: str = "Not available"
    min_mhz: int | None = None
    max_mhz: int | None = None
    frequencies: list[CoreFrequency] = field(default_factory=list)


def _boost_state(cfg: Config) -> str:
    raw = read_attr(cfg.boost_file, default="")
    if raw == "":
        return "Not available"
    return "Enabled" if raw == "1" else "Disabled"


def cpu_status(cfg: Config) -> CpuStatus:
    """Read every CPU attribute best-effort."""
    info = read_attr(cfg.cpuinfo, default="")
    cores = list_cores(cfg)
    freq0 = cfg.cpu_base / "cpu0" / "cpufreq"

    s = CpuStatus()
    s.model = _cpuinfo_field(info, "model name") or UNAVAILABLE
    s.vendor = _cpuinfo_field(info, "vendor_id") or UNAVAILABLE
    phys = _cpuinfo_field(info, "cpu cores")
    s.cores = int(phys) if phys and phys.isdigit() else psutil.cpu_count(logical=False)
    s.threads = psutil.cpu_count(logical=True)
    s.driver = read_attr(freq0 / "scaling_driver")
    s.governor = read_attr(freq0 / "scaling_governor", default="Unknown")
    s.available_governors = read_attr(freq0 / "scaling_available_governors", default="").split()
    s.boost = _boost_state(cfg)

    lo = read_int(freq0 / "cpuinfo_min_freq")
    hi = read_int(freq0 / "cpuinfo_max_freq")
    s.min_mhz = khz_to_mhz(lo) if lo is not None else None
    s.max_mhz = khz_to_mhz(hi) if hi is not None else None

    for dev in cores:
        khz = read_int(dev.path / "cpufreq" / "scaling_cur_freq")
        if khz is not None:
            s.frequencies.append(CoreFrequency(dev.name, khz_to_mhz(khz)))
    return s
