"""amd_tune.lib — sysfs access, device enumeration and privileged writes.

config.py    = filesystem roots and escalation helper (env overrides)
sysfs.py     = best-effort reads and kernel table parsing
privilege.py = direct vs. escalated write capability
writer.py    = Device model and ordered batch writes
cpu.py       = AMD CPU cores, boost, status snapshot
gpu.py       = AMD GPU cards, modes, status snapshot, OC setup
install.py   = companion tools through the package manager
errors.py    = exception types
"""
