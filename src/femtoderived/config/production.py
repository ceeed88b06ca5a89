"""Production configuration: the external conventions of a derived dataset.

The data model does not enforce what each selection bit means, nor how the
collisions are binned for event mixing. These conventions are defined here,
loaded from a YAML configuration, and must be stored next to the data they
were used to produce. Example configuration:

.. code-block:: yaml

    __meta__:
      version: "240719"
    selections:
      cut:
        version: "240719"
        bits: [pt_min, eta_max, dca_xy, n_cls_tpc]
      pidcut:
        bits: {tpc_proton: 0, tof_proton: 1}
      track_one:
        bits: [proton]
    binning:
      mode: mult
      pos_z_width: 2.
      mult_width: 10.

Instead of a `mode`, the binning can list its `dimensions` explicitly.
"""

from femtoderived.mix.hash import HashBinner
from femtoderived.utils.bitmask import SelectionBits
from femtoderived.utils.globals import (
    INVALID_BIN,
    INVALID_INDEX,
    MC_TYPE_LABELS,
    MOMENTUM_TYPE_LABELS,
    ORIGIN_LABELS,
    PART_TYPE_LABELS,
    TRACK_TYPE_LABELS,
)

from .api import META_VERSION
from .errors import ConfigValidationError
from .loader import load_config
from .meta import check_version

__all__ = ["ProductionConfig"]

# Selection containers which can be given a bit assignment table
SELECTION_NAMES = ("cut", "pidcut", "track_one", "track_two", "track_three")


class ProductionConfig:
    """External conventions of a production.

    Attributes
    ----------
    selections : Dict[str, SelectionBits]
        Bit assignment table of each selection container
    binner : HashBinner
        Event-mixing hash binning, `None` if no hash bins are produced
    version : str
        Version of the configuration (YYMMDD)
    """

    def __init__(self, selections=None, binner=None, version=None):
        """Initialize the configuration.

        Parameters
        ----------
        selections : Dict[str, SelectionBits], optional
            Bit assignment table of each selection container
        binner : HashBinner, optional
            Event-mixing hash binning
        version : str, optional
            Version of the configuration (YYMMDD)
        """
        selections = selections or {}
        unknown = set(selections).difference(SELECTION_NAMES)
        if unknown:
            raise ConfigValidationError(
                f"Unknown selection container(s): {sorted(unknown)}. Must be "
                f"one of {SELECTION_NAMES}."
            )

        self.selections = dict(selections)
        self.binner = binner
        self.version = None if version is None else check_version(version)

    @classmethod
    def from_dict(cls, cfg, version=None):
        """Builds the configuration from a dictionary.

        Parameters
        ----------
        cfg : dict
            Configuration dictionary, with optional `selections` and `binning`
            blocks
        version : str, optional
            Version of the configuration (YYMMDD)

        Returns
        -------
        ProductionConfig
            Production configuration
        """
        unknown = set(cfg).difference({"selections", "binning"})
        if unknown:
            raise ConfigValidationError(
                f"Unknown production configuration block(s): {sorted(unknown)}."
            )

        # Build the selection bit tables
        selections = {}
        for name, block in (cfg.get("selections") or {}).items():
            if isinstance(block, (list, tuple)):
                block = {"bits": block}
            if not isinstance(block, dict) or "bits" not in block:
                raise ConfigValidationError(
                    f"The `{name}` selection block must provide its `bits`."
                )
            try:
                selections[name] = SelectionBits(
                    block["bits"], name=name, version=block.get("version")
                )
            except ValueError as err:
                raise ConfigValidationError(str(err)) from err

        # Build the hash binner
        binner = None
        binning = cfg.get("binning")
        if binning is not None:
            binning = dict(binning)
            try:
                if "mode" in binning:
                    binner = HashBinner.from_binning(binning.pop("mode"), **binning)
                elif "dimensions" in binning:
                    binner = HashBinner(binning["dimensions"])
                else:
                    raise ConfigValidationError(
                        "The `binning` block must provide a `mode` or a list "
                        "of `dimensions`."
                    )
            except (TypeError, ValueError) as err:
                raise ConfigValidationError(f"Invalid `binning` block: {err}") from err

        return cls(selections, binner, version)

    @classmethod
    def from_yaml(cls, cfg_path):
        """Loads the configuration from a YAML file.

        Parameters
        ----------
        cfg_path : str
            Path to the configuration file

        Returns
        -------
        ProductionConfig
            Production configuration
        """
        cfg, meta = load_config(cfg_path, with_meta=True)

        return cls.from_dict(cfg, meta.get(META_VERSION))

    def selection(self, name):
        """Fetches the bit assignment table of one selection container.

        Parameters
        ----------
        name : str
            Name of the selection container

        Returns
        -------
        SelectionBits
            Bit assignment table
        """
        if name not in self.selections:
            raise KeyError(
                f"No bit assignment defined for `{name}`. Defined: "
                f"{list(self.selections.keys())}."
            )

        return self.selections[name]

    def conventions(self):
        """Returns all the conventions, to be stored next to the data.

        Returns
        -------
        dict
            Version, selection bit tables, enumeration names, invalid values
            and hash binning
        """
        return {
            "version": self.version,
            "selections": {k: v.as_dict() for k, v in self.selections.items()},
            "enums": {
                "part_type": dict(PART_TYPE_LABELS),
                "track_type": dict(TRACK_TYPE_LABELS),
                "momentum_type": dict(MOMENTUM_TYPE_LABELS),
                "part_origin_mc_truth": dict(ORIGIN_LABELS),
                "mc_type": dict(MC_TYPE_LABELS),
            },
            "invalid_index": INVALID_INDEX,
            "invalid_bin": INVALID_BIN,
            "binning": self.binner.as_dict() if self.binner is not None else None,
        }
