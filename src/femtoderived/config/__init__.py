"""Configuration of the production of derived data.

This package provides:
- A YAML loader with hierarchical includes and cycle detection
- Metadata blocks used to version configurations
- Override semantics with dot-notation and collection operations
- The production configuration, which holds the external conventions
  (selection bit tables, hash binning) of a derived dataset

Main Entry Points
-----------------
load_config : Load a configuration file into a dictionary
ProductionConfig : Build the production conventions from a configuration
"""

from .api import API_VERSION
from .errors import (
    ConfigCycleError,
    ConfigError,
    ConfigIncludeError,
    ConfigPathError,
    ConfigTypeError,
    ConfigValidationError,
)
from .loader import load_config, load_config_string
from .production import ProductionConfig

__version__ = API_VERSION

__all__ = [
    "load_config",
    "load_config_string",
    "ProductionConfig",
    "ConfigError",
    "ConfigIncludeError",
    "ConfigCycleError",
    "ConfigPathError",
    "ConfigTypeError",
    "ConfigValidationError",
]
