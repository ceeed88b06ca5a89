"""Production of derived data: event writers, batches and their merge."""

from .batch import *
from .merge import *
