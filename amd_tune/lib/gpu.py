"""
AMD GPU (amdgpu driver) enumeration, status snapshot, modes and OC setup.

Cards are found under /sys/class/drm: every card<N> whose device/vendor
reads 0x1002. Connector entries (card0-DP-1, ...) are skipped. An empty
result is a normal return value; the CLI decides what to do with it.

Controls per card (relative to card<N>/device):
  performance-level  power_dpm_force_performance_level   auto|low|high|manual|...
  power-profile      pp_power_profile_mode               integer profile index

Read-only attributes used for the report:
  pp_dpm_sclk / pp_dpm_mclk / pp_dpm_pcie   clock tables, active row marked *
  hwmon/hwmon*/temp*_input                  millidegrees C
  mem_info_vram_total / mem_info_vram_used  bytes
  gpu_busy_percent                          0-100
"""

from __future__ import annotations

import re
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from amd_tune.lib.config import Config
from amd_tune.lib.errors import ValidationError
from amd_tune.lib.sysfs import (
    DpmState,
    PowerProfileEntry,
    current_of,
    index_sort_key,
    millidegrees_to_celsius,
    parse_dpm_table,
    parse_power_profiles,
    read_attr,
    read_int,
)
from amd_tune.lib.writer import Device

AMD_PCI_VENDOR = "0x1002"

_CARD_DIR = re.compile(r"^card\d+$")
_PCI_SLOT = re.compile(r"^[0-9a-f]{4}:[0-9a-f]{2}:[0-9a-f]{2}\.[0-9]$")

PERF_LEVEL = "performance-level"
POWER_PROFILE = "power-profile"

# pp_power_profile_mode indices (PP_SMC_POWER_PROFILE in the amdgpu driver)
POWER_PROFILES = {
    0: "Bootup Default",
    1: "3D Full Screen",
    2: "Power Saving",
    3: "Video",
    4: "VR",
    5: "Compute",
    6: "Custom",
}

PROFILE_3D_FULLSCREEN = 1
PROFILE_POWER_SAVING = 2
PROFILE_COMPUTE = 5

# verb → ordered (attribute, value) writes
MODES: dict[str, list[tuple[str, str]]] = {
    "high": [(PERF_LEVEL, "high")],
    "low": [(PERF_LEVEL, "low")],
    "auto": [(PERF_LEVEL, "auto")],
    "manual": [(PERF_LEVEL, "manual")],
    "reset": [(PERF_LEVEL, "auto")],
    "gaming": [(PERF_LEVEL, "high"), (POWER_PROFILE, str(PROFILE_3D_FULLSCREEN))],
    "compute": [(PERF_LEVEL, "high"), (POWER_PROFILE, str(PROFILE_COMPUTE))],
    "power-save": [(PERF_LEVEL, "low"), (POWER_PROFILE, str(PROFILE_POWER_SAVING))],
}

PPFEATUREMASK_PARAM = "amdgpu.ppfeaturemask"
MODPROBE_OPTIONS = "options amdgpu ppfeaturemask=0xffffffff"


def profile_writes(arg: str) -> list[tuple[str, str]]:
    """Validate a `profile N` argument and return its single write."""
    try:
        n = int(arg)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid profile: {arg!r} (expected 0-6)") from None
    if n not in POWER_PROFILES:
        raise ValidationError(f"Invalid profile: {n} (expected 0-6)")
    return [(POWER_PROFILE, str(n))]


def profile_label(value: str) -> str:
    try:
        return POWER_PROFILES.get(int(value), value)
    except ValueError:
        return value


# ── Enumeration ──

def find_amd_cards(cfg: Config) -> list[Device]:
    """All AMD cards in card-number order. Empty list if none."""
    try:
        entries = [p for p in cfg.drm_base.iterdir() if _CARD_DIR.match(p.name)]
    except OSError:
        return []
    entries.sort(key=lambda p: index_sort_key(p, "card"))

    cards = []
    for card in entries:
        dev = card / "device"
        if read_attr(dev / "vendor", default="").lower() != AMD_PCI_VENDOR:
            continue
        cards.append(
            Device(
                name=card.name,
                kind="gpu",
                path=card,
                controls={
                    PERF_LEVEL: dev / "power_dpm_force_performance_level",
                    POWER_PROFILE: dev / "pp_power_profile_mode",
                },
            )
        )
    return cards


# ── Identity helpers ──

def pci_slot(card: Device) -> str | None:
    """PCI address the card/device link points at (e.g. 0000:03:00.0)."""
    try:
        name = (card.path / "device").resolve().name
    except OSError:
        return None
    return name if _PCI_SLOT.match(name) else None


def lspci_name(slot: str | None) -> str:
    """Marketing name from `lspci -s <slot>`. 'Unknown' if lspci is missing or fails."""
    if not slot:
        return "Unknown"
    exe = shutil.which("lspci")
    if exe is None:
        return "Unknown"
    try:
        proc = subprocess.run(
            [exe, "-s", slot], capture_output=True, text=True, timeout=5, check=False
        )
    except (OSError, subprocess.SubprocessError):
        return "Unknown"
    parts = proc.stdout.strip().split(":", 2)
    if proc.returncode != 0 or len(parts) < 3:
        return "Unknown"
    return parts[2].strip() or "Unknown"


def temperature_file(card: Device) -> Path | None:
    found = sorted((card.path / "device").glob("hwmon/hwmon*/temp*_input"))
    return found[0] if found else None


# ── Status snapshot ──

@dataclass
class GpuStatus:
    """Point-in-time report for one card. Missing attributes hold "Unknown" or None."""

    card: str = ""
    name: str = "Unknown"
    pci_slot: str = ""
    performance_level: str = "Unknown"
    sclk: str | None = None
    mclk: str | None = None
    pcie: str | None = None
    power_profile: str | None = None
    temperature_c: int | None = None
    vram_total_mb: int | None = None
    vram_used_mb: int | None = None
    busy_percent: int | None = None


def _current_clock(path: Path) -> str | None:
    text = read_attr(path, default="")
    if not text:
        return None
    row = current_of(parse_dpm_table(text))
    return row.value if row else None


def _mb(raw: int | None) -> int | None:
    return raw // (1024 * 1024) if raw is not None else None


def gpu_status(card: Device) -> GpuStatus:
    """Read every card attribute best-effort."""
    dev = card.path / "device"
    s = GpuStatus(card=card.name)

    slot = pci_slot(card)
    s.pci_slot = slot or ""
    s.name = lspci_name(slot)

    s.performance_level = read_attr(dev / "power_dpm_force_performance_level", default="Unknown")
    s.sclk = _current_clock(dev / "pp_dpm_sclk")
    s.mclk = _current_clock(dev / "pp_dpm_mclk")
    s.pcie = _current_clock(dev / "pp_dpm_pcie")

    active = current_of(parse_power_profiles(read_attr(dev / "pp_power_profile_mode", default="")))
    s.power_profile = active.name if active else None

    tfile = temperature_file(card)
    if tfile is not None:
        raw = read_int(tfile)
        if raw is not None:
            s.temperature_c = millidegrees_to_celsius(raw)

    s.vram_total_mb = _mb(read_int(dev / "mem_info_vram_total"))
    s.vram_used_mb = _mb(read_int(dev / "mem_info_vram_used"))
    s.busy_percent = read_int(dev / "gpu_busy_percent")
    return s


@dataclass
class ClockTables:
    """Everything the `clocks` verb dumps for one card. Empty lists = file absent.

    profiles_raw holds the pp_power_profile_mode text when its layout was not
    recognised, so it can still be shown as-is.
    """

    card: str
    sclk: list[DpmState] = field(default_factory=list)
    mclk: list[DpmState] = field(default_factory=list)
    pcie: list[DpmState] = field(default_factory=list)
    profiles: list[PowerProfileEntry] = field(default_factory=list)
    profiles_raw: str = ""


def clock_tables(card: Device) -> ClockTables:
    dev = card.path / "device"
    profile_text = read_attr(dev / "pp_power_profile_mode", default="")
    t = ClockTables(
        card=card.name,
        sclk=parse_dpm_table(read_attr(dev / "pp_dpm_sclk", default="")),
        mclk=parse_dpm_table(read_attr(dev / "pp_dpm_mclk", default="")),
        pcie=parse_dpm_table(read_attr(dev / "pp_dpm_pcie", default="")),
        profiles=parse_power_profiles(profile_text),
    )
    if profile_text and not t.profiles:
        t.profiles_raw = profile_text
    return t


# ── Overclocking enablement ──

def ppfeaturemask_enabled(cfg: Config) -> bool:
    """True if the running kernel was booted with amdgpu.ppfeaturemask set."""
    return PPFEATUREMASK_PARAM in read_attr(cfg.cmdline, default="")


def write_modprobe_conf(cfg: Config, writer) -> bool:
    """Create modprobe.d/amdgpu.conf enabling the OD feature bits.

    Returns False (and writes nothing) if the file already exists.
    Write errors propagate.
    """
    if cfg.modprobe_conf.exists():
        return False
    writer.write(cfg.modprobe_conf, MODPROBE_OPTIONS)
    return True

