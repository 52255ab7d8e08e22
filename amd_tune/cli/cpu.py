"""
amd-cpu-tune — AMD CPU governor / boost control.

  amd-cpu-tune [performance|powersave|boost-on|boost-off|status|install|help]

Exit status:
  1  host CPU is not AuthenticAMD, or unknown verb
  0  everything else, including per-core write failures (those are printed)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from amd_tune.cli.common import Console, Parser, run_writes, tee_output, to_json
from amd_tune.lib.config import Config
from amd_tune.lib.cpu import MODES, CpuStatus, cpu_status, cpu_vendor, detect_amd_cpu, devices_for
from amd_tune.lib.install import install_tools
from amd_tune.lib.privilege import is_privileged, make_writer

TOOL = "amd-cpu-tune"
TITLE = "AMD CPU Tuner"

VERBS = ("performance", "powersave", "boost-on", "boost-off", "status", "install", "help")

EPILOG = """\
commands:
  performance     Set every core to the performance governor
  powersave       Set every core to the powersave governor
  boost-on        Enable CPU boost
  boost-off       Disable CPU boost
  status          Show current CPU status (default)
  install         Install companion tools (cpupower)
  help            Show this help message

examples:
  amd-cpu-tune performance
  amd-cpu-tune status --json
"""


def build_parser() -> Parser:
    p = Parser(
        prog=TOOL,
        description=f"{TITLE} — cpufreq governor and boost control",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("command", nargs="?", default="status", help="Command to run (default: status)")
    p.add_argument("--json", action="store_true", help="Print the report as JSON")
    p.add_argument("--no-color", action="store_true", help="Disable colored output")
    p.add_argument("--log-dir", default=None, metavar="DIR",
                   help="Also write all output to DIR/<tool>_<command>_<timestamp>.log")
    return p


def _describe(attribute: str, value: str) -> str:
    if attribute == "boost":
        return "boost enabled" if value == "1" else "boost disabled"
    return f"governor {value}"


def render_status(s: CpuStatus) -> list[str]:
    lines = [
        f"CPU Model: {s.model}",
        f"CPU Cores: {s.cores if s.cores is not None else 'Unknown'}",
        f"CPU Threads: {s.threads if s.threads is not None else 'Unknown'}",
        f"Scaling Driver: {s.driver}",
        f"Current Governor: {s.governor}",
        f"Available governors: {' '.join(s.available_governors) or 'Unknown'}",
    ]
    if s.min_mhz is not None and s.max_mhz is not None:
        lines.append(f"Frequency Range: {s.min_mhz} - {s.max_mhz} MHz")
    lines.append(f"CPU Boost: {s.boost}")
    return lines


def run(args, cfg: Config, con: Console) -> int:
    verb = args.command
    con.banner(TITLE)

    if not detect_amd_cpu(cfg):
        con.error("This tool supports AMD processors only!")
        con.error(f"Detected: {cpu_vendor(cfg)}")
        return 1

    privileged = is_privileged()

    if verb == "install":
        con.info("Installing required packages...")
        res = install_tools("cpu", privileged, cfg.escalate)
        if res.manager is None:
            con.warning("Package manager not recognized. Please install cpupower manually.")
        elif res.ok:
            con.ok(f"cpupower installed with {res.manager}")
        else:
            con.error(f"{' '.join(res.failed_command)} exited with status {res.returncode}")
        return 0

    batch = None
    writes = MODES.get(verb)
    if writes:
        writer = make_writer(privileged, cfg.escalate)
        batch = run_writes(con, writer, writes, lambda attr: devices_for(cfg, attr), _describe)

    s = cpu_status(cfg)
    con.plain()
    con.info("Current CPU Status:")
    con.plain("=" * 20)
    for line in render_status(s):
        con.plain(line)
    con.plain()
    con.info("Current CPU Frequencies:")
    for f in s.frequencies:
        con.plain(f"{f.core}: {f.mhz} MHz")

    if args.json:
        print(to_json(TOOL, verb, batch, s))
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

    log_dir = args.log_dir or cfg.log_dir
    with tee_output(Path(log_dir) if log_dir else None, TOOL, args.command):
        return run(args, cfg, con)


if __name__ == "__main__":
    sys.exit(main())
