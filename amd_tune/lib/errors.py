"""
Exception types shared by the lib modules.

lib/ raises, cli/ catches and turns the error into a status line and an
exit code. Per-device write failures never escape as exceptions: they are
recorded as WriteResult entries (see writer.py).
"""

from __future__ import annotations


class AmdTuneError(Exception):
    """Base class for every error raised by amd_tune."""


class EscalationError(AmdTuneError):
    """Privileged write through the escalation helper failed."""

    def __init__(self, helper: str, path: str, reason: str):
        super().__init__(f"{helper} tee {path}: {reason}")
        self.helper = helper
        self.path = path
        self.reason = reason


class ValidationError(AmdTuneError):
    """A verb argument is malformed or out of range."""
