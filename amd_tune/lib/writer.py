"""
Attribute writer — apply (attribute, value) pairs across a device batch.

A Device is a directory plus a map of control-attribute keys to the files
that implement them. Whether a control exists is only checked at write time:
a missing file is recorded as "unsupported" for that device and the batch
moves on.

apply_writes() walks the writes in order and, for each write, the devices in
discovery order. So for a composite mode like gaming every card gets its
performance level before any card gets its power profile. Nothing is retried
or rolled back; each attempt produces exactly one WriteResult.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from amd_tune.lib.errors import EscalationError

OK = "ok"
UNSUPPORTED = "unsupported"
FAILED = "failed"


@dataclass
class Device:
    """One CPU logical core, one GPU card, or the CPU-wide 'system' pseudo-device."""

    name: str
    kind: str                       # "cpu" | "gpu"
    path: Path
    controls: dict[str, Path] = field(default_factory=dict)

    def control(self, attribute: str) -> Path | None:
        """Control file for an attribute, or None if it is absent on this device."""
        p = self.controls.get(attribute)
        if p is None or not p.exists():
            return None
        return p


@dataclass
class WriteResult:
    device: str
    attribute: str
    value: str
    outcome: str
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome == OK


@dataclass
class BatchResult:
    results: list[WriteResult] = field(default_factory=list)

    def for_device(self, device: str) -> list[WriteResult]:
        return [r for r in self.results if r.device == device]

    def partial_devices(self) -> list[str]:
        """Devices where at least one write succeeded and at least one failed."""
        names = []
        for r in self.results:
            if r.device not in names:
                names.append(r.device)
        partial = []
        for name in names:
            outcomes = {r.outcome for r in self.for_device(name)}
            if OK in outcomes and FAILED in outcomes:
                partial.append(name)
        return partial


def apply_writes(
    writer,
    devices: list[Device],
    writes: list[tuple[str, str]],
    on_result: Callable[[WriteResult], None] | None = None,
) -> BatchResult:
    """Apply each (attribute, value) to every device, in order.

    on_result is called after every attempt so the CLI can print progress
    while later writes (and password prompts) are still pending.
    """
    batch = BatchResult()
    for attribute, value in writes:
        for dev in devices:
            path = dev.control(attribute)
            if path is None:
                res = WriteResult(dev.name, attribute, value, UNSUPPORTED)
            else:
                try:
                    writer.write(path, value)
                    res = WriteResult(dev.name, attribute, value, OK)
                except (OSError, EscalationError) as e:
                    res = WriteResult(dev.name, attribute, value, FAILED, str(e))
            batch.results.append(res)
            if on_result is not None:
                on_result(res)
    return batch
