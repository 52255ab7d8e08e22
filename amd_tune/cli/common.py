"""
Shared CLI plumbing for amd-cpu-tune and amd-gpu-tune.

  Console      colored status lines (✓ ok, ⚠ warning, ✗ error, ℹ info)
  tee_output   copy everything printed into <log_dir>/<tool>_<verb>_<ts>.log
  run_writes   apply a mode's writes and print one line per device attempt
  Parser       argparse parser whose usage errors exit 1
  to_json      dataclass reports → JSON for --json

Colors come from termcolor, which already turns itself off when stdout is
not a terminal or NO_COLOR is set. --no-color forces it off.
"""

from __future__ import annotations

import argparse
import json
import sys
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from termcolor import colored

from amd_tune import __version__
from amd_tune.lib.writer import FAILED, OK, BatchResult, Device, WriteResult, apply_writes


# ── Argument parsing ──

class Parser(argparse.ArgumentParser):
    """ArgumentParser that exits 1 on bad usage, like an unknown command."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


# ── Logging tee ─────────────────────────────────────────────────────────────
class _Tee:
    """Write to both a file and the original stream."""
    def __init__(self, stream, log_file):
        self._stream = stream
        self._log = log_file

    def write(self, data):
        self._stream.write(data)
        self._log.write(data)

    def flush(self):
        self._stream.flush()
        self._log.flush()

    def __getattr__(self, name):
        return getattr(self._stream, name)


@contextmanager
def tee_output(log_dir: Path | None, tool: str, verb: str):
    """Tee stdout/stderr into a timestamped log file for the duration of the block.

    Yields the log path, or None when log_dir is None (no tee installed).
    """
    if log_dir is None:
        yield None
        return
    log_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = log_dir / f"{tool}_{verb}_{stamp}.log"
    old_out, old_err = sys.stdout, sys.stderr
    with open(log_path, "w", encoding="utf-8") as log_file:
        sys.stdout = _Tee(old_out, log_file)
        sys.stderr = _Tee(old_err, log_file)
        try:
            yield log_path
        finally:
            sys.stdout, sys.stderr = old_out, old_err


# ── Colored status lines ──

class Console:
    """Status-line printer. quiet=True (used by --json) keeps only errors, on stderr."""

    def __init__(self, no_color: bool = False, quiet: bool = False):
        self.no_color = no_color
        self.quiet = quiet

    def _line(self, mark: str, color: str, msg: str, err: bool = False) -> None:
        if self.quiet and not err:
            return
        stream = sys.stderr if err else sys.stdout
        tag = colored(f"[{mark}]", color, no_color=self.no_color)
        print(f"{tag} {msg}", file=stream)

    def ok(self, msg: str) -> None:
        self._line("✓", "green", msg)

    def warning(self, msg: str) -> None:
        self._line("⚠", "yellow", msg)

    def error(self, msg: str, err: bool = False) -> None:
        self._line("✗", "red", msg, err=err or self.quiet)

    def info(self, msg: str) -> None:
        self._line("ℹ", "blue", msg)

    def plain(self, msg: str = "") -> None:
        if not self.quiet:
            print(msg)

    def banner(self, title: str) -> None:
        if self.quiet:
            return
        print("=" * 40)
        print(f"  {title} v{__version__}")
        print("=" * 40)
        print()


# ── Mode application ──

def run_writes(
    con: Console,
    writer,
    writes: list[tuple[str, str]],
    devices_for: Callable[[str], list[Device]],
    describe: Callable[[str, str], str],
) -> BatchResult:
    """Apply writes in order and print a line per device attempt.

    describe(attribute, value) gives the human label for the setting,
    e.g. ("performance-level", "high") → "performance level high".
    Devices with some writes ok and some failed get a partial-failure warning.
    """
    batch = BatchResult()

    def show(res: WriteResult) -> None:
        what = describe(res.attribute, res.value)
        if res.outcome == OK:
            con.ok(f"{res.device}: {what}")
        elif res.outcome == FAILED:
            con.error(f"{res.device}: failed to set {what} ({res.error})")
        else:
            con.warning(f"{res.device}: {res.attribute} control not available")

    for attribute, value in writes:
        con.info(f"Setting {describe(attribute, value)}...")
        step = apply_writes(writer, devices_for(attribute), [(attribute, value)], on_result=show)
        batch.results.extend(step.results)

    for name in batch.partial_devices():
        con.warning(f"{name}: only partially applied, device may be left in a mixed state")
    return batch


# ── JSON output ──

def _plain(obj):
    if is_dataclass(obj):
        return asdict(obj)
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"not JSON serializable: {type(obj).__name__}")


def to_json(tool: str, verb: str, batch: BatchResult | None, report) -> str:
    doc = {
        "tool": tool,
        "verb": verb,
        "writes": [asdict(r) for r in batch.results] if batch is not None else [],
        "partial": batch.partial_devices() if batch is not None else [],
        "report": report,
    }
    return json.dumps(doc, indent=2, default=_plain)
