"""amd_tune.cli — command-line entry points.

common.py = Console status lines, log tee, mode application, JSON output
cpu.py    = amd-cpu-tune (governor / boost)
gpu.py    = amd-gpu-tune (performance level / power profile / clocks)
"""
