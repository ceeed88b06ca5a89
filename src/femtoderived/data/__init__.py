"""Module which defines all the data structures of the derived data model."""

from .errors import *
from .collision import *
from .particle import *
from .mc import *
from .hf import *
from .table import *
from .store import *
