"""
Sysfs attribute reader — best-effort reads and kernel table parsing.

Every read goes through read_attr(), which returns a sentinel instead of
raising when the file is missing or unreadable. One absent attribute must
never stop the rest of a report from being produced.

Kernel list files mark the active entry with '*'. Two formats are handled:

  pp_dpm_sclk / pp_dpm_mclk / pp_dpm_pcie:
      0: 500Mhz
      1: 800Mhz *
      2: 1200Mhz

  pp_power_profile_mode (layout varies by ASIC, only the index/name column
  matters here). One row per profile on most parts:
      PROFILE_INDEX(NAME) CLOCK_TYPE(NAME) FPS MinActiveFreqType ...
       0 BOOTUP_DEFAULT :
       1 3D_FULL_SCREEN*:
                  0(       GFXCLK)       0       5       1       0 ...

  SMU 13 parts (RX 7000) print every name in one header row instead, the
  position in the row being the profile index:
                              BOOTUP_DEFAULT  3D_FULL_SCREEN* POWER_SAVING    VIDEO         * ...
      BusyThreshold             0             10             ...

Both parse into lists of small dataclasses with a `current` flag so callers
never see the raw text format.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

UNAVAILABLE = "Unavailable"


# ── Safe readers ──

def read_attr(path: Path, default: str = UNAVAILABLE) -> str:
    """Read a sysfs/procfs text file, stripped. Returns default on any OSError."""
    try:
        return path.read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return default


def read_int(path: Path, default: int | None = None) -> int | None:
    """Read an integer attribute. Returns default if missing or not a number."""
    raw = read_attr(path, default="")
    try:
        return int(raw)
    except ValueError:
        return default


def millidegrees_to_celsius(raw: int) -> int:
    """hwmon temp*_input is in millidegrees; report whole degrees."""
    return raw // 1000


def khz_to_mhz(raw: int) -> int:
    return raw // 1000


def index_sort_key(path: Path, prefix: str) -> int:
    """Numeric sort key for names like cpu12 or card3."""
    return int(path.name[len(prefix):])


# ── Table parsing ──

@dataclass
class DpmState:
    """One row of a pp_dpm_* table."""

    index: str
    value: str
    current: bool = False

    def describe(self) -> str:
        tail = "  (current)" if self.current else ""
        return f"{self.index}: {self.value}{tail}"


@dataclass
class PowerProfileEntry:
    """One selectable row of pp_power_profile_mode."""

    index: int
    name: str
    current: bool = False

    def describe(self) -> str:
        tail = "  (current)" if self.current else ""
        return f"{self.index}: {self.name}{tail}"


_DPM_LINE = re.compile(r"^\s*(\w+):\s*(.*?)\s*(\*)?\s*$")
_PROFILE_LINE = re.compile(r"^\s*(\d+)\s+([A-Za-z0-9_]+)\s*(\*)?\s*:")


def parse_dpm_table(text: str) -> list[DpmState]:
    """Parse a pp_dpm_* file into DpmState rows. Unparseable lines are skipped."""
    states = []
    for line in text.splitlines():
        m = _DPM_LINE.match(line)
        if not m or not m.group(2):
            continue
        states.append(DpmState(index=m.group(1), value=m.group(2), current=m.group(3) is not None))
    return states


def _parse_profile_header(text: str) -> list[PowerProfileEntry]:
    for line in text.splitlines():
        tokens = line.split()
        if "BOOTUP_DEFAULT" not in tokens and "BOOTUP_DEFAULT*" not in tokens:
            continue
        entries = []
        for tok in tokens:
            # names are padded to a fixed width, so the marker can stand alone
            if tok == "*":
                if entries:
                    entries[-1].current = True
                continue
            name = tok.rstrip("*")
            entries.append(PowerProfileEntry(index=len(entries), name=name, current=name != tok))
        return entries
    return []


def parse_power_profiles(text: str) -> list[PowerProfileEntry]:
    """Parse pp_power_profile_mode into its selectable profiles.

    Handles both the row-per-profile layout and the SMU 13 header-row layout.
    Returns [] if neither is recognised.
    """
    entries = []
    for line in text.splitlines():
        m = _PROFILE_LINE.match(line)
        if m:
            entries.append(
                PowerProfileEntry(index=int(m.group(1)), name=m.group(2), current=m.group(3) is not None)
            )
    if not entries:
        entries = _parse_profile_header(text)
    return entries


def current_of(rows):
    """Return the row flagged current, or None."""
    for row in rows:
        if row.current:
            return row
    return None
