"""YAML loader of the production configuration files.

A production configuration is usually split across files, one per concern
(selection tables, binning), each carrying its own version:

.. code-block:: yaml

    __meta__:
      version: "240719"                  # YYMMDD
      strict: warn                       # missing removals only warn
      compatible_with: {selections: ">=240719"}

    include: [selections/base.yaml, binning/pp.yaml]
    track_one: !include selections/track_one.yaml
    pdg_table: !path tables/pdg.csv      # resolved, must exist

    override:
      binning.mult_width: 5.
      selections.cut.bits+: [dca_xy]     # append to a list
      selections.cut.bits-: [eta_max]    # remove from a list or a block

    remove: [binning.perc_width]

Includes are merged depth-first, in the order they are listed, and the
directives of an included file are applied as soon as it is merged. An
override which targets a block that does not exist yet is handed to the
including file. The own content of a file is merged last, then the
top-level overrides, then the top-level removals.

Relative paths are looked up next to the file which refers to them, then in
each directory of `FEMTO_CONFIG_PATH` (colon-separated).
"""

import os
import warnings
from typing import Any, Dict, List, Optional, TextIO, Tuple, cast

import yaml

from .api import CONFIG_PATH_ENV, META_KEY, META_STRICT, META_VERSION
from .errors import ConfigCycleError, ConfigIncludeError
from .meta import check_compatibility, extract_metadata
from .operations import apply_directives, deep_merge, extract_directives

__all__ = ["load_config", "load_config_string", "resolve_config_path", "ConfigLoader"]


def resolve_config_path(
    filename: str, current_dir: str, search_paths: Optional[List[str]] = None
) -> str:
    """Finds the file a configuration refers to.

    Absolute paths are returned if they exist. Relative paths are tried in
    `current_dir` first, then in each search path. The `.yaml` and `.yml`
    extensions may be omitted.

    Parameters
    ----------
    filename : str
        Name or path as written in the configuration
    current_dir : str
        Directory of the file which refers to it
    search_paths : List[str], optional
        Additional directories. Defaults to those listed in `FEMTO_CONFIG_PATH`.

    Returns
    -------
    str
        Absolute path of the file

    Raises
    ------
    ConfigIncludeError
        If no candidate exists
    """
    if os.path.isabs(filename):
        if os.path.exists(filename):
            return filename
        raise ConfigIncludeError(f"No such configuration file: {filename}")

    if search_paths is None:
        search_paths = [
            p.strip() for p in os.environ.get(CONFIG_PATH_ENV, "").split(":")
            if p.strip()
        ]

    extensions = [""]
    if not filename.endswith((".yaml", ".yml")):
        extensions += [".yaml", ".yml"]

    for directory in [current_dir, *search_paths]:
        for ext in extensions:
            path = os.path.join(directory, filename + ext)
            if os.path.exists(path):
                return os.path.abspath(path)

    looked_in = [current_dir, *search_paths]
    raise ConfigIncludeError(
        f"Could not find configuration file '{filename}' in any of: "
        + ", ".join(looked_in)
    )


class ConfigLoader(yaml.SafeLoader):
    """Safe YAML loader which understands the `!include` and `!path` tags."""

    def __init__(self, stream: TextIO, root_dir: Optional[str] = None) -> None:
        """Attach the directory relative paths are resolved from.

        Parameters
        ----------
        stream : TextIO
            Open file or YAML string
        root_dir : str, optional
            Defaults to the directory of `stream` if it is a file, or to the
            current working directory otherwise
        """
        if root_dir is None:
            name = getattr(stream, "name", None)
            root_dir = os.path.dirname(name) if isinstance(name, str) else os.getcwd()
        self._root = root_dir
        super().__init__(stream)

    def include(self, node: yaml.Node) -> Any:
        """Replaces the tagged value with the content of another file."""
        target = resolve_config_path(
            self.construct_scalar(cast(yaml.ScalarNode, node)), self._root
        )
        with open(target, "r", encoding="utf-8") as stream:
            return yaml.load(stream, Loader=ConfigLoader)

    def resolve_path(self, node: yaml.Node) -> str:
        """Replaces the tagged value with the absolute path it points to."""
        return resolve_config_path(
            self.construct_scalar(cast(yaml.ScalarNode, node)), self._root
        )


ConfigLoader.add_constructor("!include", ConfigLoader.include)
ConfigLoader.add_constructor("!path", ConfigLoader.resolve_path)


def _parse(
    cfg_path: Optional[str], config_string: Optional[str], root_dir: str
) -> Any:
    """Parses one YAML document, from a file or from a string."""
    if cfg_path is None:
        try:
            return ConfigLoader(config_string, root_dir).get_single_data()
        except yaml.YAMLError as exc:
            raise ConfigIncludeError(f"Malformed configuration: {exc}") from exc

    try:
        with open(cfg_path, "r", encoding="utf-8") as stream:
            return yaml.load(stream, Loader=ConfigLoader)
    except FileNotFoundError as exc:
        raise ConfigIncludeError(f"No such configuration file: {cfg_path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigIncludeError(f"Malformed configuration {cfg_path}: {exc}") from exc


def _load_tree(
    cfg_path: Optional[str] = None,
    config_string: Optional[str] = None,
    root_dir: Optional[str] = None,
    stack: Optional[List[str]] = None,
    deferred: Optional[List[Tuple[Dict, Dict, str]]] = None,
) -> Tuple[Dict[str, Any], Dict[str, Any], List[str], Dict[str, Any]]:
    """Loads a file and everything it includes.

    Parameters
    ----------
    cfg_path : str, optional
        Configuration file. Exactly one of `cfg_path` and `config_string`
        must be given.
    config_string : str, optional
        Configuration document
    root_dir : str, optional
        Directory of a document given as a string
    stack : List[str], optional
        Files being loaded, outermost first
    deferred : List[Tuple[Dict, Dict, str]], optional
        Collects (including metadata, included metadata, included path)
        compatibility checks, run once the whole tree is loaded

    Returns
    -------
    Dict[str, Any]
        Merged content
    Dict[str, Any]
        Overrides left to the caller
    List[str]
        Removals left to the caller
    Dict[str, Any]
        Metadata of this file
    """
    assert (cfg_path is None) != (config_string is None), (
        "Provide either a configuration file or a configuration string."
    )
    stack = stack or []
    if deferred is None:
        deferred = []

    if cfg_path is not None:
        cfg_path = os.path.abspath(cfg_path)
        if cfg_path in stack:
            raise ConfigCycleError(stack + [cfg_path])
        stack = stack + [cfg_path]
        root_dir = os.path.dirname(cfg_path)
    elif root_dir is None:
        root_dir = os.getcwd()

    document = _parse(cfg_path, config_string, root_dir)
    if document is None:
        return {}, {}, [], extract_metadata({}, cfg_path)

    meta = extract_metadata(document, cfg_path)
    includes, overrides, removals, content = extract_directives(document)
    content.pop(META_KEY, None)

    config = {}
    for name in includes:
        path = resolve_config_path(name, root_dir)
        sub_config, sub_overrides, sub_removals, sub_meta = _load_tree(
            path, stack=stack, deferred=deferred
        )
        if META_VERSION not in sub_meta:
            warnings.warn(
                f"Included file '{os.path.basename(path)}' declares "
                "no version in its __meta__ block.",
                stacklevel=2,
            )

        deferred.append((meta, sub_meta, path))
        config = deep_merge(config, sub_config)

        # Components are named after the directory of the file defining them
        components = meta.setdefault("components", {})
        components.update(sub_meta.get("components", {}))
        if META_VERSION in sub_meta:
            components.setdefault(
                os.path.basename(os.path.dirname(path)), sub_meta[META_VERSION]
            )

        config, pending = apply_directives(
            config, sub_overrides, sub_removals,
            sub_meta.get(META_STRICT, meta[META_STRICT]),
        )
        overrides = {**pending, **overrides}

    if content:
        config = deep_merge(config, content)

    return config, overrides, removals, meta


def _finalize(config, overrides, removals, meta, deferred):
    """Checks compatibility, then applies the top-level directives."""
    for parent_meta, sub_meta, path in deferred:
        check_compatibility(parent_meta, sub_meta, path)

    # Top-level overrides go first so they can be removed
    strict = meta[META_STRICT]
    config, _ = apply_directives(config, overrides, [], strict, propagate=False)
    config, _ = apply_directives(config, {}, removals, strict)
    config.pop(META_KEY, None)

    return config


def load_config(cfg_path: str, with_meta: bool = False) -> Any:
    """Loads a production configuration file.

    Parameters
    ----------
    cfg_path : str
        Top-level configuration file
    with_meta : bool, default False
        If `True`, the metadata of the top-level file is returned as well

    Returns
    -------
    Dict[str, Any]
        Configuration
    Dict[str, Any], optional
        Metadata, with the version of each included component

    Raises
    ------
    ConfigCycleError
        If files include each other
    ConfigIncludeError
        If a file is missing or malformed
    ConfigPathError
        If a removal targets a missing key in strict mode
    ConfigTypeError
        If a directive or a collection operation has the wrong type
    ConfigValidationError
        If the metadata is invalid or a component is incompatible
    """
    deferred = []
    config, overrides, removals, meta = _load_tree(cfg_path, deferred=deferred)
    config = _finalize(config, overrides, removals, meta, deferred)

    return (config, meta) if with_meta else config


def load_config_string(
    config_string: str, root_dir: Optional[str] = None
) -> Dict[str, Any]:
    """Loads a production configuration from a YAML document.

    Relative includes are resolved from `root_dir`, which defaults to the
    current working directory.
    """
    deferred = []
    config, overrides, removals, meta = _load_tree(
        config_string=config_string, root_dir=root_dir, deferred=deferred
    )

    return _finalize(config, overrides, removals, meta, deferred)
