"""Metadata keys and constants of the production configuration files."""

# Version of the configuration language
API_VERSION = "1.0"

# Environment variable which lists the configuration search directories
CONFIG_PATH_ENV = "FEMTO_CONFIG_PATH"

# Metadata block
META_KEY = "__meta__"

# Metadata fields
META_VERSION = "version"
META_DESCRIPTION = "description"
META_COMPATIBLE_WITH = "compatible_with"
META_STRICT = "strict"  # "warn" or "error"

# Default values
DEFAULT_STRICT = "error"

# Valid values
VALID_STRICT_MODES = {"warn", "error"}
