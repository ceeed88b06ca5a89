"""Extraction and compatibility checks of the `__meta__` configuration block.

Production configurations are versioned with a YYMMDD date string. A file
included by another may declare the versions of its parent it is compatible
with, e.g. `compatible_with: {selections: ">=240719"}`.
"""

import os
import warnings
from typing import Any, Dict, Optional, Tuple

from .api import (
    DEFAULT_STRICT,
    META_COMPATIBLE_WITH,
    META_KEY,
    META_STRICT,
    META_VERSION,
    VALID_STRICT_MODES,
)
from .errors import ConfigValidationError

__all__ = ["extract_metadata", "check_compatibility", "check_version"]

# Supported comparison operators, longest first
_OPERATORS = (">=", "<=", "==", "!=", ">", "<")


def check_version(version: Any) -> str:
    """Checks that a version string follows the YYMMDD format.

    Parameters
    ----------
    version : Any
        Version, as read from the configuration

    Returns
    -------
    str
        Validated version string

    Raises
    ------
    ConfigValidationError
        If the version is not made of exactly 6 digits
    """
    version = str(version)
    if not (version.isdigit() and len(version) == 6):
        raise ConfigValidationError(
            f"Invalid version format: '{version}'. Must be exactly 6 digits "
            "(YYMMDD format, e.g., '240719')"
        )

    return version


def _parse_constraint(constraint: str) -> Tuple[str, str]:
    """Splits a version constraint into its operator and version.

    Parameters
    ----------
    constraint : str
        Version constraint like ">=240719" or "240719"

    Returns
    -------
    Tuple[str, str]
        (operator, version) tuple. If no operator is given, returns "=="
    """
    constraint = str(constraint).strip()
    for op in _OPERATORS:
        if constraint.startswith(op):
            return op, constraint[len(op) :].strip()

    return "==", constraint


def _satisfies(actual: str, operator: str, required: str) -> bool:
    """Compares two YYMMDD versions."""
    actual, required = int(check_version(actual)), int(check_version(required))
    return {
        "==": actual == required,
        "!=": actual != required,
        ">=": actual >= required,
        "<=": actual <= required,
        ">": actual > required,
        "<": actual < required,
    }[operator]


def extract_metadata(
    config_dict: Dict[str, Any], cfg_path: Optional[str] = None
) -> Dict[str, Any]:
    """Extract and validate the `__meta__` block of a configuration.

    Parameters
    ----------
    config_dict : Dict[str, Any]
        Configuration dictionary
    cfg_path : str, optional
        Path to the configuration file

    Returns
    -------
    Dict[str, Any]
        Metadata dictionary with defaults filled in
    """
    meta = config_dict.get(META_KEY) or {}

    strict = meta.get(META_STRICT, DEFAULT_STRICT)
    if strict not in VALID_STRICT_MODES:
        warnings.warn(
            f"Invalid __meta__.strict: '{strict}', must be one of "
            f"{VALID_STRICT_MODES}. Using '{DEFAULT_STRICT}'"
        )
        strict = DEFAULT_STRICT

    result = {**meta, META_STRICT: strict}
    if META_VERSION in meta:
        result[META_VERSION] = check_version(meta[META_VERSION])

    if cfg_path:
        result["_file_path"] = cfg_path

    return result


def check_compatibility(
    parent_meta: Dict[str, Any], included_meta: Dict[str, Any], included_path: str
) -> None:
    """Check that an included configuration is compatible with its parent.

    The constraints are given as a dictionary which maps component names
    (the directory of an included file, e.g. `selections`) onto version
    constraints. A component which the parent does not know is compared to
    the version of the parent itself.

    Parameters
    ----------
    parent_meta : Dict[str, Any]
        Metadata of the including configuration
    included_meta : Dict[str, Any]
        Metadata of the included configuration
    included_path : str
        Path to the included file (for error messages)

    Raises
    ------
    ConfigValidationError
        If the included configuration is incompatible with its parent
    """
    compatible_with = included_meta.get(META_COMPATIBLE_WITH)
    if not compatible_with:
        return

    if not isinstance(compatible_with, dict):
        raise ConfigValidationError(
            f"`{META_COMPATIBLE_WITH}` of '{os.path.basename(included_path)}' "
            "must map component names onto version constraints."
        )

    components = parent_meta.get("components", {})
    failures = []
    for component, constraint in compatible_with.items():
        actual = components.get(component, parent_meta.get(META_VERSION))
        operator, required = _parse_constraint(constraint)
        if actual is None:
            failures.append(
                f"{component}: parent has no version (required {operator}{required})"
            )
        elif not _satisfies(actual, operator, required):
            failures.append(
                f"{component}: {actual} does not satisfy {operator}{required}"
            )

    if failures:
        file_name = os.path.basename(included_path)
        parent_file = os.path.basename(parent_meta.get("_file_path", "<unknown>"))
        raise ConfigValidationError(
            f"Compatibility error: '{file_name}' has incompatible version "
            f"requirements.\n  Parent: '{parent_file}'\n  Failed constraints: "
            + "; ".join(failures)
        )
