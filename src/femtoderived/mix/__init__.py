"""Event-mixing tools: hash bin assignment and mixing pools."""

from .hash import *
from .pool import *
