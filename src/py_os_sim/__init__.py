"""PyOS-Sim — steppable CPU-scheduling and memory-allocation simulations.

Two teaching engines, both deterministic and driven one operation at a
time by the caller:

- ``py_os_sim.process`` — a single-CPU scheduler with FCFS, SJF, SRTF,
  Priority, and Round Robin dispatch policies.
- ``py_os_sim.memory`` — a contiguous allocator with First-Fit,
  Best-Fit, and Worst-Fit placement and free-block coalescing.
"""

__version__ = "0.1.0"
