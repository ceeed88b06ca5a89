"""Dictionary operations used to merge and override configurations.

Overrides address nested keys with a dot notation (`binning.mult_width`).
A key suffixed with `+` or `-` applies a collection operation: append to or
remove from a list (e.g. the `bits` of a selection table), or remove keys
from a dictionary.
"""

import warnings
from copy import deepcopy
from typing import Any, Dict, List, Tuple

import yaml

from .errors import ConfigPathError, ConfigTypeError

__all__ = [
    "deep_merge",
    "parse_value",
    "apply_collection_operation",
    "set_nested_value",
    "extract_directives",
    "apply_directives",
]


def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Merges a configuration block into another, recursively.

    Nested dictionaries are merged key by key, any other value of `update`
    replaces the value of `base`.

    Parameters
    ----------
    base : Dict[str, Any]
        Block which is updated
    update : Dict[str, Any]
        Block which takes precedence

    Returns
    -------
    Dict[str, Any]
        Merged block, neither input is modified
    """
    merged = deepcopy(base)
    for key, value in update.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value

    return merged


def parse_value(value: Any) -> Any:
    """Parses an override value given as a string, e.g. `"[pt_min, dca_xy]"`.

    Parameters
    ----------
    value : Any
        Override value. Non-empty strings are parsed as YAML.

    Returns
    -------
    Any
        Parsed value, or the value itself if it cannot be parsed
    """
    if not isinstance(value, str) or not value.strip():
        return value

    try:
        return yaml.safe_load(value)
    except yaml.YAMLError:
        return value


def _parent(config: Dict[str, Any], keys: List[str], key_path: str, create: bool):
    """Walks down to the dictionary which holds the last key of a path.

    Returns `None` if the path does not exist and `create` is not set.
    """
    current = config
    for key in keys[:-1]:
        if key not in current:
            if not create:
                return None
            current[key] = {}
        elif not isinstance(current[key], dict):
            raise ConfigTypeError(
                f"Cannot reach '{key_path}': '{key}' does not hold a block"
            )
        current = current[key]

    return current


def _missing(msg: str, strict: str) -> None:
    """Reports a missing path according to the strict mode."""
    if strict == "error":
        raise ConfigPathError(msg)
    warnings.warn(msg)


def apply_collection_operation(
    config: Dict[str, Any],
    key_path: str,
    value: Any,
    operation: str,
    strict: str = "error",
) -> Dict[str, Any]:
    """Appends to, or removes from, a nested list or dictionary.

    For lists, `+` appends the values and `-` removes all their occurrences.
    For dictionaries, only `-` is supported: it removes the listed keys.

    Parameters
    ----------
    config : Dict[str, Any]
        Configuration dictionary, modified in place
    key_path : str
        Dot-separated path (e.g. `selections.cut.bits`)
    value : Any
        Value or list of values to append or remove
    operation : str
        `+` or `-`
    strict : str, default "error"
        Whether a missing path raises ("error") or warns ("warn")

    Returns
    -------
    Dict[str, Any]
        Modified configuration
    """
    keys = key_path.split(".")
    current = _parent(config, keys, key_path, create=False)
    if current is None:
        _missing(f"Cannot apply '{operation}' to '{key_path}': path does not exist", strict)
        return config

    last = keys[-1]
    if last not in current:
        if operation == "-":
            _missing(f"Cannot remove from '{key_path}': key does not exist", strict)
            return config
        current[last] = []

    target = current[last]
    values = value if isinstance(value, list) else [value]
    if isinstance(target, list):
        if operation == "+":
            current[last] = target + values
        else:
            current[last] = [v for v in target if v not in values]

    elif isinstance(target, dict):
        if operation == "+":
            raise ConfigTypeError(
                f"Cannot append to '{key_path}': only '-' applies to a block"
            )
        for key in values:
            if key in target:
                del target[key]
            else:
                _missing(f"Key '{key}' not found in '{key_path}'", strict)

    else:
        raise ConfigTypeError(
            f"Cannot apply '{operation}' to '{key_path}', which holds a "
            f"{type(target).__name__} instead of a list or a block"
        )

    return config


def set_nested_value(
    config: Dict[str, Any],
    key_path: str,
    value: Any,
    delete: bool = False,
    strict: str = "error",
    only_if_exists: bool = False,
) -> Tuple[Dict[str, Any], bool]:
    """Sets or deletes the value of a dot-separated key.

    Parameters
    ----------
    config : Dict[str, Any]
        Configuration dictionary, modified in place
    key_path : str
        Dot-separated path (e.g. `binning.mult_width`)
    value : Any
        New value, ignored when deleting
    delete : bool, default False
        If `True`, the key is deleted instead
    strict : str, default "error"
        Whether deleting a missing key raises ("error") or warns ("warn")
    only_if_exists : bool, default False
        If `True`, the value is only set if the enclosing block exists

    Returns
    -------
    Dict[str, Any]
        Modified configuration
    bool
        Whether the value was set or deleted
    """
    keys = key_path.split(".")
    create = not (delete or only_if_exists)
    current = _parent(config, keys, key_path, create=create)
    last = keys[-1]

    if delete:
        if current is None or last not in current:
            _missing(f"Cannot delete '{key_path}': key does not exist", strict)
            return config, False
        del current[last]
        return config, True

    if current is None:
        return config, False

    current[last] = value

    return config, True


def extract_directives(
    config_dict: Any,
) -> Tuple[List[str], Dict[str, Any], List[str], Dict[str, Any]]:
    """Separates the `include`, `override` and `remove` directives of a file.

    Parameters
    ----------
    config_dict : Any
        Parsed YAML document

    Returns
    -------
    List[str]
        Files to include, in order
    Dict[str, Any]
        Overrides, as (dot-separated path, value) pairs
    List[str]
        Dot-separated paths to remove
    Dict[str, Any]
        Remaining configuration content
    """
    if not isinstance(config_dict, dict):
        return [], {}, [], config_dict

    includes, overrides, removals, content = [], {}, [], {}
    for key, value in config_dict.items():
        if key in ("include", "remove"):
            if isinstance(value, str):
                value = [value]
            elif not isinstance(value, list):
                raise ConfigTypeError(
                    f"'{key}' expects a path or a list of paths, got "
                    f"{type(value).__name__}"
                )
            (includes if key == "include" else removals).extend(value)

        elif key == "override":
            if not isinstance(value, dict):
                raise ConfigTypeError(
                    f"'override' expects a block of path: value pairs, got "
                    f"{type(value).__name__}"
                )
            overrides = value

        else:
            content[key] = value

    return includes, overrides, removals, content


def apply_directives(
    config: Dict[str, Any],
    overrides: Dict[str, Any],
    removals: List[str],
    strict: str,
    propagate: bool = True,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Applies removals, then overrides, to a configuration.

    Parameters
    ----------
    config : Dict[str, Any]
        Configuration dictionary, modified in place
    overrides : Dict[str, Any]
        Overrides, possibly suffixed with `+` or `-`
    removals : List[str]
        Dot-separated paths to remove
    strict : str
        Whether missing paths raise ("error") or warn ("warn")
    propagate : bool, default True
        If `True`, collection operations on paths which do not exist yet are
        returned instead of being reported, so that the including file can
        apply them

    Returns
    -------
    Dict[str, Any]
        Modified configuration
    Dict[str, Any]
        Overrides which could not be applied
    """
    for key_path in removals:
        config, _ = set_nested_value(config, key_path, None, delete=True, strict=strict)

    unapplied = {}
    for key_path, value in overrides.items():
        parsed = parse_value(value)
        if key_path.endswith(("+", "-")):
            base_path, operation = key_path[:-1], key_path[-1]
            keys = base_path.split(".")
            if propagate and _parent(config, keys, base_path, create=False) is None:
                unapplied[key_path] = value
                continue
            config = apply_collection_operation(config, base_path, parsed, operation, strict)

        else:
            config, applied = set_nested_value(config, key_path, parsed, only_if_exists=True)
            if not applied:
                unapplied[key_path] = value

    return config, unapplied
