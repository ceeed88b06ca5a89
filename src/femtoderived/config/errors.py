"""Typed exceptions raised while loading a production configuration."""

from typing import List


class ConfigError(Exception):
    """Base class of all production configuration errors."""


class ConfigIncludeError(ConfigError):
    """Raised when a configuration file, or one it includes, cannot be read."""


class ConfigCycleError(ConfigError):
    """Raised when configuration files include each other in a loop."""

    def __init__(self, cycle_path: List[str]):
        """Initialize with the chain of includes which closes the loop.

        Parameters
        ----------
        cycle_path : List[str]
            Paths of the files along the loop, the first one repeated last
        """
        self.cycle_path = cycle_path
        super().__init__(
            "Configuration files include each other: " + " -> ".join(cycle_path)
        )


class ConfigPathError(ConfigError):
    """Raised when a removal targets a key which does not exist."""


class ConfigTypeError(ConfigError):
    """Raised when a directive or a collection operation has the wrong type."""


class ConfigValidationError(ConfigError):
    """Raised when a configuration block is invalid or incompatible."""
