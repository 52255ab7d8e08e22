"""amd_tune — AMD CPU/GPU tuning over Linux sysfs."""

__version__ = "1.0.0"
