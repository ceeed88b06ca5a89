"""Top-level module of the femtoscopic derived data model."""

from .version import __version__

# Import commonly used data structures
from .data.store import DerivedData
from .produce.batch import ProductionBatch
