"""Module with fast, Numba-accelerated, compiled math routines.

This includes multiple submodules:
- `dynamic.py` includes the derivations of the dynamic columns
- `binning.py` includes the event-mixing hash bin kernels
- `graph.py` includes the graph traversal routines
"""

from . import binning, graph

# Expose all dynamic column kernels directly
from .dynamic import *
