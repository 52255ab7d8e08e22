"""
amd-gpu-tune — AMD GPU performance level / power profile control.

  amd-gpu-tune [high|low|auto|manual|gaming|compute|power-save|profile N|
                clocks|status|reset|install|enable-oc|help]

Every mutating verb is followed by a status report. Exit status:
  1  unknown verb, `profile` without a valid number, no AMD GPU found
  0  everything else, including per-card write failures (those are printed)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from amd_tune.cli.common import Console, Parser, run_writes, tee_output, to_json
from amd_tune.lib.config import Config
from amd_tune.lib.errors import EscalationError, ValidationError
from amd_tune.lib.gpu import (
    MODES,
    PERF_LEVEL,
    POWER_PROFILE,
    ClockTables,
    GpuStatus,
    clock_tables,
    find_amd_cards,
    gpu_status,
    ppfeaturemask_enabled,
    profile_label,
    profile_writes,
    write_modprobe_conf,
)
from amd_tune.lib.install import install_tools
from amd_tune.lib.privilege import is_privileged, make_writer

TOOL = "amd-gpu-tune"
TITLE = "AMD GPU Tuner"

VERBS = (
    "high", "low", "auto", "manual", "gaming", "compute", "power-save",
    "profile", "clocks", "status", "reset", "install", "enable-oc", "help",
)

EPILOG = """\
commands:
  high            Set GPU to high performance mode
  low             Set GPU to low/power-saving mode
  auto            Set GPU to automatic mode
  manual          Set GPU to manual control mode
  gaming          High performance + 3D full screen profile
  compute         High performance + compute profile
  power-save      Low performance + power saving profile
  profile <0-6>   Set power profile (0=Bootup default, 1=3D, 2=Power saving,
                  3=Video, 4=VR, 5=Compute, 6=Custom)
  clocks          Show available clock states and power profiles
  status          Show current GPU status (default)
  reset           Reset GPU to automatic mode
  install         Install companion GPU tools
  enable-oc       Enable GPU overclocking support
  help            Show this help message

examples:
  amd-gpu-tune gaming
  amd-gpu-tune profile 1
  amd-gpu-tune status --json
"""


def build_parser() -> Parser:
    p = Parser(
        prog=TOOL,
        description=f"{TITLE} — amdgpu performance level and power profile control",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("command", nargs="?", default="status", help="Command to run (default: status)")
    p.add_argument("arg", nargs="?", default=None, help="Profile number for 'profile'")
    p.add_argument("--json", action="store_true", help="Print the report as JSON")
    p.add_argument("--no-color", action="store_true", help="Disable colored output")
    p.add_argument("--log-dir", default=None, metavar="DIR",
                   help="Also write all output to DIR/<tool>_<command>_<timestamp>.log")
    return p


def _describe(attribute: str, value: str) -> str:
    if attribute == POWER_PROFILE:
        return f"power profile {profile_label(value)}"
    if attribute == PERF_LEVEL:
        return f"performance level {value}"
    return f"{attribute} {value}"


# ── Report rendering ──

def render_status(s: GpuStatus) -> list[str]:
    lines = [f"  {s.card}: {s.name}"]
    lines.append(f"    Performance Level: {s.performance_level}")
    if s.sclk is not None:
        lines.append(f"    Current GPU Clock: {s.sclk}")
    if s.mclk is not None:
        lines.append(f"    Current Memory Clock: {s.mclk}")
    if s.pcie is not None:
        lines.append(f"    PCIe State: {s.pcie}")
    if s.power_profile is not None:
        lines.append(f"    Power Profile: {s.power_profile}")
    if s.temperature_c is not None:
        lines.append(f"    Temperature: {s.temperature_c}°C")
    if s.vram_total_mb is not None:
        used = s.vram_used_mb if s.vram_used_mb is not None else "?"
        lines.append(f"    VRAM: {used} / {s.vram_total_mb} MB")
    if s.busy_percent is not None:
        lines.append(f"    GPU Busy: {s.busy_percent}%")
    return lines


def render_clocks(t: ClockTables) -> list[str]:
    lines = []
    for title, rows in (
        ("GPU Clocks (pp_dpm_sclk):", t.sclk),
        ("Memory Clocks (pp_dpm_mclk):", t.mclk),
        ("PCIe States (pp_dpm_pcie):", t.pcie),
        ("Power Profile Modes:", t.profiles),
    ):
        if rows:
            lines.append(title)
            lines.extend(f"  {row.describe()}" for row in rows)
    if t.profiles_raw:
        lines.append("Power Profile Modes:")
        lines.extend(f"  {line}" for line in t.profiles_raw.splitlines())
    return lines


def _report(con: Console, cards) -> list[GpuStatus]:
    statuses = [gpu_status(c) for c in cards]
    con.plain()
    con.info("Detected AMD GPU(s):")
    for s in statuses:
        for line in render_status(s):
            con.plain(line)
    return statuses


# ── Verbs without a report ──

def _clocks(con: Console, cards, as_json: bool) -> int:
    tables = [clock_tables(c) for c in cards]
    if as_json:
        print(to_json(TOOL, "clocks", None, tables))
        return 0
    for t in tables:
        con.info(f"{t.card} Available Settings:")
        for line in render_clocks(t):
            con.plain(line)
        con.plain()
    return 0


def _enable_oc(con: Console, cfg: Config, writer) -> int:
    con.info("Enabling GPU overclocking features...")
    if ppfeaturemask_enabled(cfg):
        con.ok("GPU overclocking already enabled in kernel parameters")
    else:
        con.warning("GPU overclocking not enabled in kernel parameters")
        con.info("To enable, add 'amdgpu.ppfeaturemask=0xffffffff' to the kernel command line")
        con.info("For GRUB: edit /etc/default/grub and extend GRUB_CMDLINE_LINUX_DEFAULT")
        con.info("Then run: sudo grub-mkconfig -o /boot/grub/grub.cfg")

    try:
        created = write_modprobe_conf(cfg, writer)
    except (OSError, EscalationError) as e:
        con.error(f"Failed to create {cfg.modprobe_conf}: {e}")
        return 0
    if created:
        con.ok("Created amdgpu modprobe configuration")
    else:
        con.ok("amdgpu modprobe configuration already exists")
    return 0


def _install(con: Console, cfg: Config, privileged: bool) -> int:
    con.info("Installing AMD GPU tools...")
    res = install_tools("gpu", privileged, cfg.escalate)
    if res.manager is None:
        con.warning("Package manager not recognized. Please install GPU tools manually.")
    elif res.ok:
        con.ok(f"GPU tools installed with {res.manager}")
    else:
        con.error(f"{' '.join(res.failed_command)} exited with status {res.returncode}")
    return 0


# ── Entry point ──

def run(args, cfg: Config, con: Console) -> int:
    verb = args.command

    writes = None
    if verb == "profile":
        if args.arg is None:
            con.error("Profile number required (0-6)", err=True)
            build_parser().print_help(sys.stderr)
            return 1
        try:
            writes = profile_writes(args.arg)
        except ValidationError as e:
            con.error(str(e), err=True)
            return 1
    else:
        writes = MODES.get(verb)

    con.banner(TITLE)

    cards = find_amd_cards(cfg)
    if not cards:
        con.error("No compatible AMD GPU found (no DRM card with vendor 0x1002)")
        return 1

    privileged = is_privileged()

    if verb == "clocks":
        return _clocks(con, cards, args.json)
    if verb == "install":
        return _install(con, cfg, privileged)
    if verb == "enable-oc":
        return _enable_oc(con, cfg, make_writer(privileged, cfg.escalate))

    batch = None
    if writes:
        writer = make_writer(privileged, cfg.escalate)
        batch = run_writes(con, writer, writes, lambda _attr: cards, _describe)
        if verb == "manual":
            con.info("GPU set to manual mode. Use 'clocks' to see the available states.")
        elif verb == "reset":
            con.info("GPU reset to automatic mode")

    statuses = _report(con, cards)
    if args.json:
        print(to_json(TOOL, verb, batch, statuses))
    con.plain()
    con.info("Done.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    cfg = Config.from_env()
    con = Console(no_color=args.no_color, quiet=args.json)

    if args.command == "help":
        parser.print_help()
        return 0
    if args.command not in VERBS:
        con.error(f"Unknown option: {args.command}", err=True)
        parser.print_help(sys.stderr)
        return 1
    if args.arg is not None and args.command != "profile":
        parser.error(f"unexpected argument for '{args.command}': {args.arg}")

    log_dir = args.log_dir or cfg.log_dir
    with tee_output(Path(log_dir) if log_dir else None, TOOL, args.command):
        return run(args, cfg, con)


if __name__ == "__main__":
    sys.exit(main())
